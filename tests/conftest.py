"""Shared pytest configuration for the expense tracker test-suite."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable, Iterator
from pathlib import Path

import pytest


def _insert_repo_root() -> None:
    """Make the repository root importable when the package is not installed."""

    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_insert_repo_root()
# The engine is built lazily from settings; keep it in memory during tests.
os.environ.setdefault("EXPENSES_DB_URL", "sqlite://")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import expense_tracker.api.models  # noqa: E402,F401  # registers the tables on Base.metadata
from expense_tracker.api import database  # noqa: E402
from expense_tracker.api.database import Base  # noqa: E402
from expense_tracker.api.server import app  # noqa: E402
from expense_tracker.client.http import ExpenseClient  # noqa: E402
from expense_tracker.schemas import ExpenseRead  # noqa: E402


def pytest_report_header(config: pytest.Config) -> Iterable[str]:  # pragma: no cover - pytest hook
    log_level = os.environ.get("EXPENSES_LOG_LEVEL", "INFO")
    return [f"expense-tracker repo: {Path.cwd()}", f"EXPENSES_LOG_LEVEL={log_level}"]


@pytest.fixture(autouse=True)
def _quiet_json_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    """Never write JSON log files from tests unless a test opts in."""

    monkeypatch.delenv("EXPENSES_JSON_LOGS", raising=False)


@pytest.fixture(scope="session")
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture()
def db_session(engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    TestingSessionLocal = sessionmaker(bind=connection, autoflush=False, autocommit=False, future=True)
    session: Session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def client(db_session) -> Iterator[TestClient]:
    def override_get_db():
        yield db_session

    app.dependency_overrides[database.get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class InProcessSession:
    """Expose a ``TestClient`` through the requests-style call used by ``ExpenseClient``."""

    def __init__(self, test_client: TestClient) -> None:
        self._client = test_client

    def request(self, method: str, url: str, timeout: float | None = None, **kwargs):
        return self._client.request(method, url, **kwargs)


@pytest.fixture()
def api_client(client: TestClient) -> ExpenseClient:
    """HTTP client wired to the in-process API."""

    return ExpenseClient("http://testserver", timeout=5.0, session=InProcessSession(client))


@pytest.fixture()
def make_expense():
    """Factory building ``ExpenseRead`` records without touching the store."""

    counter = iter(range(1, 10_000))

    def _make(title: str = "Lunch", amount: str = "10.00", category: str = "food", date: str = "2024-01-01", **extra):
        number = next(counter)
        stamp = f"{date}T00:00:00"
        fields = {
            "_id": f"{number:032x}",
            "title": title,
            "amount": amount,
            "category": category,
            "date": stamp,
            "notes": "",
            "createdAt": stamp,
            "updatedAt": stamp,
        }
        fields.update(extra)
        return ExpenseRead.model_validate(fields)

    return _make
