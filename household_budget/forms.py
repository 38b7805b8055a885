"""Form validation models.

Forms arrive as flat string mappings with camelCase keys (``categoryId``,
``targetAmount``). Each model accepts either the camelCase alias or the
snake_case field name. Empty strings count as missing.
"""
from dataclasses import dataclass, field
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Mapping, Optional, Type

from pydantic import AfterValidator, BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel


class FormModel(BaseModel):
    """Base for all forms."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    # Message shown when a required field is missing, keyed by field name
    required_messages: ClassVar[Dict[str, str]] = {}


def _positive(value: float) -> float:
    if value <= 0:
        raise ValueError("Amount must be positive")
    return value


PositiveAmount = Annotated[float, AfterValidator(_positive)]


class CategoryForm(FormModel):
    id: Optional[str] = None
    name: str
    description: str

    required_messages: ClassVar[Dict[str, str]] = {
        "name": "Name is required",
        "description": "Description is required",
    }


class TransactionForm(FormModel):
    id: Optional[str] = None
    amount: PositiveAmount
    payee: str
    notes: str
    date: str
    category_id: str

    required_messages: ClassVar[Dict[str, str]] = {
        "amount": "Amount is required",
        "payee": "Payee is required",
        "notes": "Notes are required",
        "date": "Date is required",
        "category_id": "Category is required",
    }


class IncomeForm(FormModel):
    id: Optional[str] = None
    name: str
    description: str
    date: str
    amount: PositiveAmount

    required_messages: ClassVar[Dict[str, str]] = {
        "name": "Name is required",
        "description": "Description is required",
        "date": "Date is required",
        "amount": "Amount is required",
    }


class BudgetForm(FormModel):
    id: Optional[str] = None
    amount: PositiveAmount
    month: str
    year: str
    category_id: str

    required_messages: ClassVar[Dict[str, str]] = {
        "amount": "Amount is required",
        "month": "Month is required",
        "year": "Year is required",
        "category_id": "Category is required",
    }

    @field_validator("month")
    @classmethod
    def check_month(cls, value: str) -> str:
        if not value.isdigit() or len(value) > 2:
            raise ValueError("Month must be in MM format (01-12)")
        if not 1 <= int(value) <= 12:
            raise ValueError("Month must be between 01 and 12")
        return value

    @field_validator("year")
    @classmethod
    def check_year(cls, value: str) -> str:
        if not value.isdigit() or len(value) != 4:
            raise ValueError("Year must be in YYYY format")
        if not 2000 <= int(value) <= 2100:
            raise ValueError("Year must be between 2000 and 2100")
        return value


class RecurringForm(FormModel):
    id: Optional[str] = None
    merchant: str
    description: str
    cadence: Literal["Monthly", "Yearly"]
    amount: PositiveAmount
    paid: bool = False

    required_messages: ClassVar[Dict[str, str]] = {
        "merchant": "Merchant is required",
        "description": "Description is required",
        "cadence": "Cadence is required",
        "amount": "Amount is required",
    }


class SavingsForm(FormModel):
    id: Optional[str] = None
    title: str
    description: Optional[str] = None
    amount: PositiveAmount

    required_messages: ClassVar[Dict[str, str]] = {
        "title": "Title is required",
        "amount": "Amount is required",
    }


class SavingsGoalForm(FormModel):
    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    target_amount: float
    target_date: Optional[str] = None
    status: Optional[Literal["active", "completed", "paused", "archived"]] = None

    required_messages: ClassVar[Dict[str, str]] = {
        "name": "Name is required",
        "target_amount": "Target amount is required",
    }

    @field_validator("target_amount")
    @classmethod
    def check_target(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Target amount must be positive")
        return value


class ContributionForm(FormModel):
    id: Optional[str] = None
    goal_id: str
    amount: PositiveAmount
    date: str
    description: Optional[str] = None

    required_messages: ClassVar[Dict[str, str]] = {
        "goal_id": "Goal is required",
        "amount": "Amount is required",
        "date": "Date is required",
    }


class DeleteForm(FormModel):
    id: str

    required_messages: ClassVar[Dict[str, str]] = {"id": "ID is required"}


class UnarchiveForm(FormModel):
    goal_id: str

    required_messages: ClassVar[Dict[str, str]] = {"goal_id": "Goal is required"}


class UpdateProfileForm(FormModel):
    name: str

    required_messages: ClassVar[Dict[str, str]] = {"name": "Name is required"}

    @field_validator("name")
    @classmethod
    def check_length(cls, value: str) -> str:
        if len(value) > 100:
            raise ValueError("Name must be at most 100 characters")
        return value


class SetUserRoleForm(FormModel):
    user_id: str
    role: Literal["user", "admin"]

    required_messages: ClassVar[Dict[str, str]] = {
        "user_id": "User is required",
        "role": "Role is required",
    }


class BanUserForm(FormModel):
    user_id: str
    ban_reason: Optional[str] = None

    required_messages: ClassVar[Dict[str, str]] = {"user_id": "User is required"}


class UnbanUserForm(FormModel):
    user_id: str

    required_messages: ClassVar[Dict[str, str]] = {"user_id": "User is required"}


@dataclass
class FormState:
    """Result of validating a submission; echoed back to the page."""
    valid: bool
    data: Dict[str, Any]
    errors: Dict[str, List[str]] = field(default_factory=dict)
    message: Optional[Dict[str, str]] = None

    def set_message(self, text: str, kind: str = "error") -> "FormState":
        self.message = {"type": kind, "text": text}
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "data": {to_camel(k): v for k, v in self.data.items()},
            "errors": self.errors,
            "message": self.message,
        }


def _error_message(model: Type[FormModel], field_name: str, error: Dict[str, Any]) -> str:
    if error["type"] == "missing" and field_name in model.required_messages:
        return model.required_messages[field_name]
    msg = error["msg"]
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return msg


def validate_form(model: Type[FormModel], raw: Mapping[str, Any]) -> FormState:
    """Validate a raw form submission against a form model.

    Returns a FormState; invalid input never raises. Field errors are keyed
    by the camelCase field name.
    """
    cleaned = {
        k: v for k, v in raw.items()
        if not (isinstance(v, str) and v.strip() == "")
    }
    try:
        parsed = model.model_validate(cleaned)
    except ValidationError as e:
        by_alias = {to_camel(name): name for name in model.model_fields}
        errors: Dict[str, List[str]] = {}
        for error in e.errors():
            loc = str(error["loc"][0]) if error["loc"] else "form"
            field_name = by_alias.get(loc, loc)
            errors.setdefault(to_camel(field_name), []).append(_error_message(model, field_name, error))
        data = {by_alias.get(k, k): v for k, v in raw.items() if by_alias.get(k, k) in model.model_fields}
        return FormState(valid=False, data=data, errors=errors)

    return FormState(valid=True, data=parsed.model_dump())
