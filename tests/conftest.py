"""Pytest configuration and fixtures."""
from pathlib import Path
from typing import Any, Dict
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from household_budget.api.budget_service import BudgetService
from household_budget.config import Settings
from household_budget.db.sqlite_store import SQLiteStore

CRON_SECRET = "test-cron-secret"


def audited(values: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """Row values with audit columns filled in."""
    now = "2026-10-01 12:00:00"
    return {**values, "created_at": now, "created_by": user_id, "updated_at": now, "updated_by": user_id}


def add_category(store: SQLiteStore, user_id: str, name: str, description: str = "test") -> str:
    return store.insert("categories", audited({"name": name, "description": description}, user_id))


def add_budget(store: SQLiteStore, user_id: str, category_id: str, amount: float, month: str, year: str) -> str:
    return store.insert("budgets", audited({
        "amount": amount, "month": month, "year": year,
        "category_id": category_id, "user_id": user_id,
    }, user_id))


def add_transaction(store: SQLiteStore, user_id: str, category_id: str, amount: float, date: str,
                    payee: str = "Store") -> str:
    return store.insert("transactions", audited({
        "amount": amount, "payee": payee, "notes": "test", "date": date,
        "category_id": category_id, "user_id": user_id,
    }, user_id))


@pytest.fixture
def temp_db_path(tmp_path) -> Path:
    """Path to a fresh database file."""
    return tmp_path / "test.db"


@pytest.fixture
def store(temp_db_path: Path):
    store = SQLiteStore(temp_db_path)
    yield store
    store.close()


@pytest.fixture
def users(store: SQLiteStore) -> Dict[str, str]:
    """A regular user and an admin."""
    return {
        "user": store.add_user("alex@example.com", "Alex"),
        "admin": store.add_user("robin@example.com", "Robin", role="admin"),
    }


@pytest.fixture
def settings(temp_db_path: Path) -> Settings:
    return Settings(app_env="test", database_path=temp_db_path, cron_secret=CRON_SECRET)


@pytest.fixture
def email_sender() -> MagicMock:
    return MagicMock()


@pytest.fixture
def service(settings: Settings, email_sender: MagicMock):
    with BudgetService(db_path=settings.database_path, email_sender=email_sender, settings=settings) as service:
        yield service


@pytest.fixture
def service_users(service: BudgetService) -> Dict[str, str]:
    return {
        "user": service.add_user("alex@example.com", "Alex"),
        "admin": service.add_user("robin@example.com", "Robin", role="admin"),
    }


@pytest.fixture
def client(service: BudgetService):
    """Create test client with temp service."""
    from household_budget.web.api import app, get_service

    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
