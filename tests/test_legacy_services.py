"""Tests for the legacy category and transaction services."""
import pytest
from pydantic import ValidationError

from household_budget.errors import AuthenticationError, ForbiddenError
from household_budget.legacy.services import (
    CategoryService,
    CreateCategoryInput,
    CreateTransactionInput,
    TransactionService,
    UpdateCategoryInput,
    UpdateTransactionInput,
)

from conftest import add_category


@pytest.fixture
def alex(store, users):
    return store.get_user(users["user"])


@pytest.fixture
def robin(store, users):
    return store.get_user(users["admin"])


class TestCategoryService:

    def test_requires_user(self, store):
        with pytest.raises(AuthenticationError):
            CategoryService(store).categories(None)

    def test_create_update_and_read(self, store, alex):
        service = CategoryService(store)

        created = service.create_category(alex, CreateCategoryInput(name="Fuel", description="Car"))
        assert created["created_by"] == alex["id"]

        updated = service.update_category(alex, created["id"], UpdateCategoryInput(description="Car and bike"))
        assert updated["name"] == "Fuel"
        assert updated["description"] == "Car and bike"

        assert [c["name"] for c in service.categories(alex)] == ["Fuel"]
        assert service.category(alex, created["id"])["description"] == "Car and bike"

    def test_update_missing(self, store, alex):
        assert CategoryService(store).update_category(alex, "nope", UpdateCategoryInput(name="x")) is None

    def test_delete_requires_admin(self, store, alex, robin):
        service = CategoryService(store)
        category_id = add_category(store, alex["id"], "Fuel")

        with pytest.raises(ForbiddenError):
            service.delete_category(alex, category_id)

        deleted = service.delete_category(robin, category_id)
        assert deleted["id"] == category_id
        assert store.get("categories", category_id) is None
        assert service.delete_category(robin, category_id) is None

    def test_input_validation(self):
        with pytest.raises(ValidationError):
            CreateCategoryInput(name="", description="x")


class TestTransactionService:

    def test_reads_are_public(self, store):
        assert TransactionService(store).transactions(None) == []
        assert TransactionService(store).transaction(None, "nope") is None

    def test_create_and_update(self, store, alex):
        service = TransactionService(store)
        category_id = add_category(store, alex["id"], "Fuel")

        created = service.create_transaction(alex, CreateTransactionInput(
            amount=45, payee="Station", notes="fill up", date="2026-10-04", category_id=category_id,
        ))
        assert created["user_id"] == alex["id"]
        assert created["date"].startswith("2026-10-04 ")

        updated = service.update_transaction(alex, created["id"], UpdateTransactionInput(amount=50))
        assert updated["amount"] == 50
        assert updated["payee"] == "Station"

    def test_create_requires_user(self, store):
        with pytest.raises(AuthenticationError):
            TransactionService(store).create_transaction(None, CreateTransactionInput(
                amount=1, payee="a", notes="b", date="2026-10-04", category_id="c",
            ))

    def test_amount_must_be_positive(self):
        with pytest.raises(ValidationError):
            CreateTransactionInput(amount=0, payee="a", notes="b", date="2026-10-04", category_id="c")

    def test_camel_case_input(self):
        data = CreateTransactionInput.model_validate({
            "amount": 1, "payee": "a", "notes": "b", "date": "2026-10-04", "categoryId": "c",
        })
        assert data.category_id == "c"
