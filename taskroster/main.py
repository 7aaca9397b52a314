import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskroster.config import API_PREFIX, LOG_LEVEL
from taskroster.database import create_schema
from taskroster.logging_setup import setup_logging
from taskroster.query import QueryError
from taskroster.routers import tasks, users
from taskroster.utils.responses import ApiError, envelope, ok

setup_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)

create_schema()

app = FastAPI(title="TaskRoster API")

app.include_router(tasks.router, prefix=API_PREFIX)
app.include_router(users.router, prefix=API_PREFIX)


@app.get(f"{API_PREFIX}/health", tags=["health"])
def health():
    return ok({"status": "ok"})


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return envelope(exc.data, exc.message, exc.status_code)


@app.exception_handler(QueryError)
async def query_error_handler(request: Request, exc: QueryError):
    return envelope(None, str(exc), 400)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # bad body or query types are client errors like any other validation failure
    problems = []
    for err in exc.errors():
        where = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{where}: {err.get('msg')}" if where else str(err.get("msg")))
    return envelope(None, "Invalid request: " + "; ".join(problems), 400)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return envelope(None, str(exc.detail), exc.status_code)


# Generic error handler so unexpected failures still answer with the envelope
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return envelope(None, "Server Error", 500)
