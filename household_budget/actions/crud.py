"""Generic create/update/delete action handlers.

A CrudConfig names the form model, target table and entity; the factory
turns it into request handlers that validate the form, run optional hooks,
stamp audit fields and write through the store.

Example:
    actions = create_crud_actions(CrudConfig(
        schema=TransactionForm,
        table="transactions",
        entity_name="Transaction",
        transform_create=lambda data, user_id: {
            **data, "date": format_date_for_storage(data["date"])
        },
    ))
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Type

from household_budget.db.schema import TABLES
from household_budget.forms import FormModel, validate_form
from household_budget.utils.dates import get_current_utc_timestamp

from .auth_guard import ActionEvent, ActionResult, Handler, fail, get_user_id, require_auth, success
from .messages import CrudMessages, get_crud_message


logger = logging.getLogger(__name__)

Values = Dict[str, Any]


@dataclass
class CrudConfig:
    """Configuration for one entity's CRUD actions."""
    schema: Optional[Type[FormModel]]
    table: str
    entity_name: str
    messages: Optional[CrudMessages] = None
    transform_create: Optional[Callable[[Values, str], Values]] = None
    transform_update: Optional[Callable[[Values, str], Values]] = None
    before_create: Optional[Callable[[Values, str], None]] = None
    after_create: Optional[Callable[[str, Values], None]] = None
    before_update: Optional[Callable[[str, Values, str], None]] = None
    after_update: Optional[Callable[[str, Values], None]] = None
    # May return {"error": message} to veto the delete
    before_delete: Optional[Callable[[str, str], Optional[Dict[str, str]]]] = None
    after_delete: Optional[Callable[[str], None]] = None
    delete_schema: Optional[Type[FormModel]] = None


def with_audit_fields_for_create(values: Values, user: Dict[str, Any]) -> Values:
    now = get_current_utc_timestamp()
    user_id = get_user_id(user)
    return {**values, "created_at": now, "created_by": user_id, "updated_at": now, "updated_by": user_id}


def with_audit_fields_for_update(values: Values, user: Dict[str, Any]) -> Values:
    return {**values, "updated_at": get_current_utc_timestamp(), "updated_by": get_user_id(user)}


def _create_handler(config: CrudConfig) -> Handler:
    def handler(event: ActionEvent, user: Dict[str, Any]) -> ActionResult:
        form = validate_form(config.schema, event.form)
        if not form.valid:
            return fail(400, {"form": form.to_dict()})

        user_id = get_user_id(user)
        table = TABLES[config.table]

        try:
            if config.before_create:
                config.before_create(form.data, user_id)

            if config.transform_create:
                values = config.transform_create(form.data, user_id)
            else:
                values = dict(form.data)

            # Identifiers are always generated by the store
            values.pop("id", None)

            if table.has_column("user_id") and not values.get("user_id"):
                values["user_id"] = user_id

            values = with_audit_fields_for_create(values, user)
            record_id = event.store.insert(config.table, values)

            logger.info(f"{config.entity_name} created successfully")

            if config.after_create:
                config.after_create(record_id, event.store.get(config.table, record_id))
        except Exception as e:
            logger.error(f"Failed to create {config.entity_name.lower()}: {e}")
            form.set_message(get_crud_message("create_error", config.entity_name, config.messages))
            return fail(400, {"form": form.to_dict()})

        return success({"success": True, "create": True, "form": form.to_dict()})

    return require_auth(handler)


def _update_handler(config: CrudConfig) -> Handler:
    def handler(event: ActionEvent, user: Dict[str, Any]) -> ActionResult:
        form = validate_form(config.schema, event.form)
        if not form.valid:
            return fail(400, {"form": form.to_dict()})

        record_id = form.data.get("id")
        if not record_id:
            return fail(400, {"error": "ID is required for update"})

        user_id = get_user_id(user)

        try:
            if config.before_update:
                config.before_update(record_id, form.data, user_id)

            if config.transform_update:
                values = config.transform_update(form.data, user_id)
            else:
                values = dict(form.data)

            values.pop("id", None)
            values = with_audit_fields_for_update(values, user)
            event.store.update(config.table, record_id, values)

            logger.info(f"{config.entity_name} updated successfully")

            if config.after_update:
                config.after_update(record_id, values)
        except Exception as e:
            logger.error(f"Failed to update {config.entity_name.lower()}: {e}")
            form.set_message(get_crud_message("update_error", config.entity_name, config.messages))
            return fail(400, {"form": form.to_dict()})

        return success({"success": True, "update": True, "form": form.to_dict()})

    return require_auth(handler)


def _delete_handler(config: CrudConfig) -> Handler:
    if config.delete_schema:
        delete_schema = config.delete_schema

        def validated(event: ActionEvent, user: Dict[str, Any]) -> ActionResult:
            form = validate_form(delete_schema, event.form)
            if not form.valid:
                return fail(400, {"form": form.to_dict()})

            record_id = form.data["id"]
            user_id = get_user_id(user)

            try:
                if config.before_delete:
                    veto = config.before_delete(record_id, user_id)
                    if veto and "error" in veto:
                        form.set_message(veto["error"])
                        return fail(400, {"form": form.to_dict(), "error": veto["error"]})

                event.store.delete(config.table, record_id)
                logger.info(f"{config.entity_name} deleted successfully by: {user_id}")

                if config.after_delete:
                    config.after_delete(record_id)
            except Exception as e:
                logger.error(f"Failed to delete {config.entity_name.lower()}: {e}")
                form.set_message(get_crud_message("delete_error", config.entity_name, config.messages))
                return fail(500, {"form": form.to_dict()})

            return success({"success": True, "delete": True, "form": form.to_dict()})

        return require_auth(validated)

    def plain(event: ActionEvent, user: Dict[str, Any]) -> ActionResult:
        has_id = "id" in event.form
        if not has_id:
            return fail(400, {"hasId": has_id})

        record_id = str(event.form["id"])
        user_id = get_user_id(user)

        try:
            if config.before_delete:
                veto = config.before_delete(record_id, user_id)
                if veto and "error" in veto:
                    return fail(400, {"error": veto["error"]})

            event.store.delete(config.table, record_id)
            logger.info(f"{config.entity_name} deleted successfully by: {user_id}")

            if config.after_delete:
                config.after_delete(record_id)
        except Exception as e:
            logger.error(f"Failed to delete {config.entity_name.lower()}: {e}")
            return fail(500, {"error": get_crud_message("delete_error", config.entity_name, config.messages)})

        return success({"success": True, "delete": True})

    return require_auth(plain)


def create_crud_actions(config: CrudConfig) -> Dict[str, Handler]:
    """Build the create, update and delete handlers for one entity."""
    return {
        "create": _create_handler(config),
        "update": _update_handler(config),
        "delete": _delete_handler(config),
    }


def create_action(config: CrudConfig) -> Handler:
    return _create_handler(config)


def update_action(config: CrudConfig) -> Handler:
    return _update_handler(config)


def delete_action(config: CrudConfig) -> Handler:
    return _delete_handler(config)
