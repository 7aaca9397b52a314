import os

# Default to local SQLite for dev/tests; override via env in Docker/Prod
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./taskroster.db")
SQL_ECHO = os.environ.get("SQL_ECHO", "false").lower() == "true"

API_PREFIX = os.environ.get("API_PREFIX", "/api")

# Page size applied to GET /tasks when the client sends no limit
TASK_DEFAULT_LIMIT = int(os.environ.get("TASK_DEFAULT_LIMIT", 100))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
