"""Standard CRUD message templates.

Entity configs may override any of these through ``CrudConfig.messages``.
"""
from typing import Callable, Dict, Optional

CrudMessages = Dict[str, str]

DEFAULT_CRUD_MESSAGES: Dict[str, Callable[[str], str]] = {
    "create_success": lambda entity: f"{entity} created successfully",
    "create_error": lambda entity: f"Failed to create {entity.lower()}. A database error occurred.",
    "update_success": lambda entity: f"{entity} updated successfully",
    "update_error": lambda entity: f"Failed to update {entity.lower()}. A database error occurred.",
    "delete_success": lambda entity: f"{entity} deleted successfully",
    "delete_error": lambda entity: f"Failed to delete {entity.lower()}. A database error occurred.",
}


def get_crud_message(operation: str, entity_name: str, custom: Optional[CrudMessages] = None) -> str:
    """Message text for a CRUD operation, preferring a configured override."""
    if custom and custom.get(operation):
        return custom[operation]
    return DEFAULT_CRUD_MESSAGES[operation](entity_name)
