"""Form actions for each page.

build_page_actions(store) returns ``{page: {action: handler}}``. Hooks that
need to look at other tables close over the store.
"""
import logging
from typing import Any, Dict, Optional

from household_budget.db.sqlite_store import SQLiteStore
from household_budget.forms import (
    BanUserForm,
    BudgetForm,
    CategoryForm,
    ContributionForm,
    DeleteForm,
    IncomeForm,
    RecurringForm,
    SavingsForm,
    SavingsGoalForm,
    SetUserRoleForm,
    TransactionForm,
    UnarchiveForm,
    UnbanUserForm,
    UpdateProfileForm,
    validate_form,
)
from household_budget.utils.dates import format_date_for_storage, get_current_utc_timestamp, pad_month

from .auth_guard import ActionEvent, ActionResult, Handler, fail, require_admin, require_auth, success
from .crud import (
    CrudConfig,
    create_action,
    create_crud_actions,
    delete_action,
    update_action,
    with_audit_fields_for_update,
)


logger = logging.getLogger(__name__)

PageActions = Dict[str, Dict[str, Handler]]


def _with_storage_date(data: Dict[str, Any], _user_id: str) -> Dict[str, Any]:
    return {**data, "date": format_date_for_storage(data["date"])}


def _budget_values(data: Dict[str, Any], _user_id: str) -> Dict[str, Any]:
    return {**data, "month": pad_month(int(data["month"]))}


def _savings_values(data: Dict[str, Any], _user_id: str) -> Dict[str, Any]:
    return {
        "title": data["title"],
        "description": data.get("description") or None,
        "amount": data["amount"],
    }


def _recurring_create(data: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    return {
        "amount": float(data["amount"]),
        "description": data["description"],
        "merchant": data["merchant"],
        "cadence": data["cadence"],
        "paid": data.get("paid", False),
        "user_id": user_id,
    }


def _recurring_update(data: Dict[str, Any], _user_id: str) -> Dict[str, Any]:
    return {
        "amount": data["amount"],
        "description": data["description"],
        "merchant": data["merchant"],
        "cadence": data["cadence"],
        "paid": data.get("paid", False),
    }


def _goal_values(data: Dict[str, Any], _user_id: str) -> Dict[str, Any]:
    target_date = data.get("target_date")
    return {
        "name": data["name"],
        "description": data.get("description") or None,
        "target_amount": data["target_amount"],
        "target_date": format_date_for_storage(target_date) if target_date else None,
        "status": data.get("status") or "active",
    }


def _contribution_values(data: Dict[str, Any], _user_id: str) -> Dict[str, Any]:
    return {
        "goal_id": data["goal_id"],
        "amount": data["amount"],
        "date": format_date_for_storage(data["date"]),
        "description": data.get("description") or None,
    }


def _category_actions(store: SQLiteStore) -> Dict[str, Handler]:
    def block_if_used(category_id: str, _user_id: str) -> Optional[Dict[str, str]]:
        if store.get_category_transaction_count(category_id) > 0:
            return {"error": "Cannot delete category that is in use by transactions"}
        return None

    return create_crud_actions(CrudConfig(
        schema=CategoryForm,
        table="categories",
        entity_name="Category",
        before_delete=block_if_used,
    ))


def _savings_goal_actions(store: SQLiteStore) -> Dict[str, Handler]:
    def block_if_contributions(goal_id: str, _user_id: str) -> Optional[Dict[str, str]]:
        count = store.get_goal_contribution_count(goal_id)
        if count > 0:
            return {"error": f"Cannot delete goal. Please delete all {count} contribution(s) first."}
        return None

    goal = CrudConfig(
        schema=SavingsGoalForm,
        table="savings_goals",
        entity_name="Savings goal",
        transform_create=_goal_values,
        transform_update=_goal_values,
        before_delete=block_if_contributions,
        delete_schema=DeleteForm,
    )
    contribution = CrudConfig(
        schema=ContributionForm,
        table="contributions",
        entity_name="Contribution",
        transform_create=_contribution_values,
        transform_update=_contribution_values,
        delete_schema=DeleteForm,
    )
    return {
        "createGoal": create_action(goal),
        "updateGoal": update_action(goal),
        "deleteGoal": delete_action(goal),
        "createContribution": create_action(contribution),
        "updateContribution": update_action(contribution),
        "deleteContribution": delete_action(contribution),
    }


@require_admin
def unarchive_goal(event: ActionEvent, user: Dict[str, Any]) -> ActionResult:
    form = validate_form(UnarchiveForm, event.form)
    if not form.valid:
        return fail(400, {"form": form.to_dict()})

    goal_id = form.data["goal_id"]
    try:
        event.store.update("savings_goals", goal_id, with_audit_fields_for_update({"status": "active"}, user))
        logger.info(f"Goal with ID {goal_id} updated successfully")
    except Exception as e:
        logger.error(f"Failed to unarchive goal: {e}")
        form.set_message("Failed to unarchive goal")
        return fail(400, {"form": form.to_dict()})

    return success({"success": True, "form": form.to_dict()})


@require_auth
def update_profile(event: ActionEvent, user: Dict[str, Any]) -> ActionResult:
    form = validate_form(UpdateProfileForm, event.form)
    if not form.valid:
        return fail(400, {"form": form.to_dict()})

    try:
        event.store.update("users", user["id"], {
            "name": form.data["name"],
            "updated_at": get_current_utc_timestamp(),
        })
        logger.info("Profile updated successfully")
    except Exception as e:
        logger.error(f"Failed to update profile: {e}")
        form.set_message("Failed to update profile")
        return fail(400, {"form": form.to_dict()})

    form.set_message("Profile updated successfully", kind="success")
    return success({"success": True, "form": form.to_dict()})


def _user_update(form_model, values_for, failure: str, done: str) -> Handler:
    """Admin action that validates a form and writes to the target user's row."""
    @require_admin
    def handler(event: ActionEvent, user: Dict[str, Any]) -> ActionResult:
        form = validate_form(form_model, event.form)
        if not form.valid:
            return fail(400, {"form": form.to_dict()})

        try:
            values = {**values_for(form.data), "updated_at": get_current_utc_timestamp()}
            if not event.store.update("users", form.data["user_id"], values):
                raise LookupError(f"No user {form.data['user_id']}")
            logger.info(done)
        except Exception as e:
            logger.error(f"{failure}: {e}")
            form.set_message(failure)
            return fail(400, {"form": form.to_dict()})

        return success({"success": True, "form": form.to_dict()})

    return handler


def _admin_user_actions() -> Dict[str, Handler]:
    return {
        "setRole": _user_update(
            SetUserRoleForm,
            lambda data: {"role": data["role"]},
            "Failed to set user role",
            "Set role updated successfully",
        ),
        "banUser": _user_update(
            BanUserForm,
            lambda data: {"banned": 1, "ban_reason": data.get("ban_reason")},
            "Failed to ban user",
            "User banned successfully",
        ),
        "unbanUser": _user_update(
            UnbanUserForm,
            lambda data: {"banned": 0, "ban_reason": None},
            "Failed to unban user",
            "User unbanned successfully",
        ),
    }


def build_page_actions(store: SQLiteStore) -> PageActions:
    """All form actions keyed by page then action name."""
    return {
        "categories": _category_actions(store),
        "transactions": create_crud_actions(CrudConfig(
            schema=TransactionForm,
            table="transactions",
            entity_name="Transaction",
            transform_create=_with_storage_date,
            transform_update=_with_storage_date,
        )),
        "budgets": create_crud_actions(CrudConfig(
            schema=BudgetForm,
            table="budgets",
            entity_name="Budget",
            transform_create=_budget_values,
            transform_update=_budget_values,
        )),
        "income": create_crud_actions(CrudConfig(
            schema=IncomeForm,
            table="income",
            entity_name="Income",
            transform_create=_with_storage_date,
            transform_update=_with_storage_date,
        )),
        "recurring": create_crud_actions(CrudConfig(
            schema=RecurringForm,
            table="recurring",
            entity_name="Recurring expense",
            transform_create=_recurring_create,
            transform_update=_recurring_update,
        )),
        "savings": create_crud_actions(CrudConfig(
            schema=SavingsForm,
            table="savings",
            entity_name="Savings",
            transform_create=_savings_values,
            transform_update=_savings_values,
        )),
        "savings-goals": _savings_goal_actions(store),
        "archived-goals": {"unarchive": unarchive_goal},
        "profile": {"update": update_profile},
        "admin-users": _admin_user_actions(),
    }
