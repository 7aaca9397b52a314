import os

# keep the import-time engine off disk; requests use the engine below
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from datetime import datetime, timedelta, UTC
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from taskroster.database import Base, create_schema, get_db
from taskroster.main import app


@pytest.fixture
def engine():
    # StaticPool: every session (and the TestClient worker thread) sees the same in-memory db
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_schema(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def future(days: int = 7) -> str:
    return (datetime.now(UTC) + timedelta(days=days)).isoformat()


def create_user(client: TestClient, name: str = "Bob", email: str = "bob@x.com", **extra) -> dict:
    r = client.post("/api/users", json={"name": name, "email": email, **extra})
    assert r.status_code == 201, r.text
    return r.json()["data"]


def create_task(client: TestClient, name: str = "A", **extra) -> dict:
    body = {"name": name, "deadline": future()}
    body.update(extra)
    r = client.post("/api/tasks", json=body)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def get_user(client: TestClient, user_id: str) -> dict:
    r = client.get(f"/api/users/{user_id}")
    assert r.status_code == 200, r.text
    return r.json()["data"]


def get_task(client: TestClient, task_id: str) -> dict:
    r = client.get(f"/api/tasks/{task_id}")
    assert r.status_code == 200, r.text
    return r.json()["data"]
