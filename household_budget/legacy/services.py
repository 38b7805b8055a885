"""Legacy category and transaction services.

These back the older ``/api/legacy`` endpoints. Each operation declares
who may call it: ``@requires_auth()`` for any signed-in user,
``@requires_auth(roles=["admin"])`` for admins, ``@skip_auth`` for anyone.
"""
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from household_budget.actions.crud import with_audit_fields_for_create, with_audit_fields_for_update
from household_budget.db.queries import CategoryQueries, TransactionQueries
from household_budget.db.sqlite_store import SQLiteStore
from household_budget.errors import AuthenticationError, ForbiddenError
from household_budget.utils.dates import format_date_for_storage

User = Optional[Dict[str, Any]]


def require_auth(user: User, roles: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """Raise unless there is a signed-in user holding one of `roles` (if given)."""
    if not user:
        raise AuthenticationError()
    if roles and user.get("role") not in roles:
        raise ForbiddenError()
    return user


def requires_auth(roles: Optional[Sequence[str]] = None) -> Callable:
    def decorator(method: Callable) -> Callable:
        @wraps(method)
        def wrapper(self, user: User, *args, **kwargs):
            require_auth(user, roles)
            return method(self, user, *args, **kwargs)
        return wrapper
    return decorator


def skip_auth(method: Callable) -> Callable:
    return method


class InputModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class CreateCategoryInput(InputModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)


class UpdateCategoryInput(InputModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)


class CreateTransactionInput(InputModel):
    amount: float = Field(gt=0)
    payee: str = Field(min_length=1)
    notes: str = Field(min_length=1)
    date: str = Field(min_length=1)
    category_id: str = Field(min_length=1)


class UpdateTransactionInput(InputModel):
    amount: Optional[float] = Field(default=None, gt=0)
    payee: Optional[str] = Field(default=None, min_length=1)
    notes: Optional[str] = Field(default=None, min_length=1)
    date: Optional[str] = Field(default=None, min_length=1)
    category_id: Optional[str] = Field(default=None, min_length=1)


class CategoryService:
    """Category resolvers."""

    def __init__(self, store: SQLiteStore):
        self.store = store
        self.queries = CategoryQueries(store)

    @requires_auth()
    def categories(self, user: User) -> List[Dict[str, Any]]:
        return self.queries.find_all()

    @requires_auth()
    def category(self, user: User, category_id: str) -> Optional[Dict[str, Any]]:
        return self.queries.find_by_id(category_id)

    @requires_auth()
    def create_category(self, user: User, data: CreateCategoryInput) -> Dict[str, Any]:
        values = with_audit_fields_for_create(data.model_dump(), user)
        return self.store.get("categories", self.store.insert("categories", values))

    @requires_auth()
    def update_category(self, user: User, category_id: str, data: UpdateCategoryInput) -> Optional[Dict[str, Any]]:
        values = with_audit_fields_for_update(data.model_dump(exclude_none=True), user)
        if not self.store.update("categories", category_id, values):
            return None
        return self.store.get("categories", category_id)

    @requires_auth(roles=["admin"])
    def delete_category(self, user: User, category_id: str) -> Optional[Dict[str, Any]]:
        existing = self.store.get("categories", category_id)
        if existing:
            self.store.delete("categories", category_id)
        return existing


class TransactionService:
    """Transaction resolvers. Reads are public."""

    def __init__(self, store: SQLiteStore):
        self.store = store
        self.queries = TransactionQueries(store)

    @skip_auth
    def transactions(self, user: User) -> List[Dict[str, Any]]:
        return self.queries.find_all()

    @skip_auth
    def transaction(self, user: User, transaction_id: str) -> Optional[Dict[str, Any]]:
        return self.queries.find_by_id(transaction_id)

    @requires_auth()
    def create_transaction(self, user: User, data: CreateTransactionInput) -> Dict[str, Any]:
        values = data.model_dump()
        values["date"] = format_date_for_storage(values["date"])
        values["user_id"] = user["id"]
        values = with_audit_fields_for_create(values, user)
        return self.store.get("transactions", self.store.insert("transactions", values))

    @requires_auth()
    def update_transaction(
        self,
        user: User,
        transaction_id: str,
        data: UpdateTransactionInput
    ) -> Optional[Dict[str, Any]]:
        values = data.model_dump(exclude_none=True)
        if "date" in values:
            values["date"] = format_date_for_storage(values["date"])
        values = with_audit_fields_for_update(values, user)
        if not self.store.update("transactions", transaction_id, values):
            return None
        return self.store.get("transactions", transaction_id)

    @requires_auth(roles=["admin"])
    def delete_transaction(self, user: User, transaction_id: str) -> Optional[Dict[str, Any]]:
        existing = self.store.get("transactions", transaction_id)
        if existing:
            self.store.delete("transactions", transaction_id)
        return existing
