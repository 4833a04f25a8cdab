import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

# Default to the memory backend so importing the app never touches the filesystem
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from src.books_api import repositories  # noqa: E402
from src.books_api.main import create_app  # noqa: E402
from src.books_api.repositories import InMemoryRepository  # noqa: E402
from src.books_api.settings import Settings  # noqa: E402


@pytest.fixture
def settings():
    return Settings(
        persistence_backend="memory",
        sqlite_db_path="./data/books.db",
        cors_allow_origins=["*"],
        host="127.0.0.1",
        port=5555,
        log_level="INFO",
        log_file=None,
    )


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def client(repo, settings):
    return TestClient(create_app(repository=repo, settings=settings))


@pytest.fixture
def stepping_clock(monkeypatch):
    """Make the stores' clock advance one second on every reading."""
    readings = iter(datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=i) for i in range(10_000))
    monkeypatch.setattr(repositories, "utcnow", lambda: next(readings))
    return readings


@pytest.fixture(params=["memory", "sqlite"])
def backend_client(request, settings, tmp_path):
    """Client over each storage backend."""
    from dataclasses import replace

    from src.books_api.db import SQLiteRepository

    if request.param == "sqlite":
        store = SQLiteRepository(str(tmp_path / "books.db"))
        settings = replace(settings, persistence_backend="sqlite", sqlite_db_path=str(tmp_path / "books.db"))
    else:
        store = InMemoryRepository()
    return TestClient(create_app(repository=store, settings=settings))
