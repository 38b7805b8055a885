"""Authentication guards for action handlers."""
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Dict, Mapping, Optional

from household_budget.db.sqlite_store import SQLiteStore


@dataclass
class ActionEvent:
    """One form submission: the store it acts on, the signed-in user, the raw form."""
    store: SQLiteStore
    user: Optional[Dict[str, Any]]
    form: Mapping[str, Any]


@dataclass
class ActionResult:
    status: int
    body: Dict[str, Any]

    @property
    def ok(self) -> bool:
        return self.status < 400


def fail(status: int, body: Dict[str, Any]) -> ActionResult:
    return ActionResult(status, body)


def success(body: Dict[str, Any]) -> ActionResult:
    return ActionResult(200, body)


Handler = Callable[[ActionEvent], ActionResult]


def get_user_id(user: Dict[str, Any]) -> str:
    return str(user["id"])


def require_auth(handler: Callable[[ActionEvent, Dict[str, Any]], ActionResult]) -> Handler:
    """Reject submissions without a signed-in user before the handler runs."""
    @wraps(handler)
    def wrapper(event: ActionEvent) -> ActionResult:
        if not event.user:
            return fail(401, {"error": "Unauthorized"})
        return handler(event, event.user)
    return wrapper


def require_admin(handler: Callable[[ActionEvent, Dict[str, Any]], ActionResult]) -> Handler:
    """Like require_auth, and the user must also hold the admin role."""
    @wraps(handler)
    def wrapper(event: ActionEvent) -> ActionResult:
        if not event.user:
            return fail(401, {"error": "Unauthorized"})
        if event.user.get("role") != "admin":
            return fail(403, {"error": "Forbidden"})
        return handler(event, event.user)
    return wrapper
