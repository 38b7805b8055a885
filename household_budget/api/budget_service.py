"""Budget service - main orchestration layer."""
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Tuple

import pandas as pd

from household_budget.actions.auth_guard import ActionEvent, ActionResult
from household_budget.actions.pages import build_page_actions
from household_budget.config import Settings, get_settings
from household_budget.db.queries import Queries
from household_budget.db.sqlite_store import SQLiteStore
from household_budget.emailer.sender import ResendEmailSender
from household_budget.jobs.recurring import run_reset_recurring_paid
from household_budget.jobs.weekly_summary import WeeklySummaryRunResult, get_zoned_date_parts, run_weekly_summary_email
from household_budget.legacy.services import CategoryService, TransactionService
from household_budget.utils.dates import (
    get_calendar_year_months,
    get_month_date_range,
    get_previous_months,
    get_year_date_range,
    month_label,
    pad_month,
)


logger = logging.getLogger(__name__)


ROLLING_MONTHS = 6


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def monthly_recurring_total(recurring: List[Dict[str, Any]]) -> float:
    """Monthly cost of recurring charges: Yearly charges count as 1/12."""
    total = 0.0
    for item in recurring:
        if item["cadence"] == "Monthly":
            total += item["amount"]
        elif item["cadence"] == "Yearly":
            total += item["amount"] / 12
    return total


def goal_progress(goal: Dict[str, Any], contributions: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Attach current amount and percentage (capped at 100) to a goal."""
    current = sum(c["amount"] for c in contributions if c["goal_id"] == goal["id"])
    target = goal["target_amount"]
    percentage = (current / target) * 100 if target > 0 else 0
    return {**goal, "current_amount": current, "percentage": min(percentage, 100)}


def monthly_rollup(rows: List[Dict[str, Any]], periods: List[str]) -> pd.Series:
    """Sum row amounts by the YYYY-MM period of their date. Missing periods are 0."""
    if not rows:
        return pd.Series(0.0, index=periods)
    df = pd.DataFrame(rows, columns=["date", "amount"])
    df["period"] = df["date"].str.slice(0, 7)
    return df.groupby("period")["amount"].sum().reindex(periods, fill_value=0.0)


class BudgetService:
    """Main service for the household budget.

    Owns the store and wires page actions, page data, dashboards, jobs and
    the legacy services to it.
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        email_sender=None,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[Settings] = None
    ):
        """Initialize the budget service.

        Args:
            db_path: Path to SQLite database (default: from settings)
            email_sender: Sender for summary emails (default: Resend)
            clock: Returns the current instant; injectable for jobs
            settings: Environment settings (default: read from env)
        """
        self.settings = settings or get_settings()
        self.db_path = Path(db_path or self.settings.database_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.store = SQLiteStore(self.db_path)
        self.queries = Queries(self.store)
        self.actions = build_page_actions(self.store)
        self.categories = CategoryService(self.store)
        self.transactions = TransactionService(self.store)
        self.clock = clock or utc_now
        self._email_sender = email_sender

    @property
    def email_sender(self):
        if self._email_sender is None:
            self._email_sender = ResendEmailSender(
                self.settings.resend_api_key,
                self.settings.resend_from_address
            )
        return self._email_sender

    def close(self):
        """Close all connections."""
        self.store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def healthy(self) -> bool:
        return self.store.ping()

    # === Users ===

    def resolve_user(self, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Look up the acting user. Unknown and banned users resolve to None."""
        if not user_id:
            return None
        user = self.store.get_user(user_id)
        if not user or user.get("banned"):
            return None
        return user

    def add_user(self, email: str, name: Optional[str] = None, role: str = "user") -> str:
        user_id = self.store.add_user(email, name, role)
        logger.info(f"Added {role} {email}")
        return user_id

    # === Actions ===

    def has_action(self, page: str, action: str) -> bool:
        return action in self.actions.get(page, {})

    def run_action(
        self,
        page: str,
        action: str,
        user: Optional[Dict[str, Any]],
        form: Mapping[str, Any]
    ) -> ActionResult:
        """Dispatch a form submission to its page action.

        Raises:
            KeyError: if the page has no such action
        """
        handler = self.actions[page][action]
        return handler(ActionEvent(store=self.store, user=user, form=form))

    # === Page data ===

    def _today(self) -> Tuple[int, int]:
        """Current (year, month) in the household's timezone."""
        parts = get_zoned_date_parts(self.clock())
        return parts.year, parts.month

    def _month_year(self, month: Optional[int], year: Optional[int]) -> Tuple[int, int]:
        today_year, today_month = self._today()
        return month or today_month, year or today_year

    def get_categories(self) -> List[Dict[str, Any]]:
        return self.queries.categories.find_all()

    def get_transactions_page(self, month: Optional[int] = None, year: Optional[int] = None) -> Dict[str, Any]:
        """Transactions for a month with that month's budgets and spend per category."""
        month, year = self._month_year(month, year)
        date_range = get_month_date_range(month, year)
        categories = self.get_categories()
        budgets = self.queries.budgets.find_by_month_year(month, year)
        spend = self.store.get_category_spending_totals(
            [c["id"] for c in categories], date_range["start_date"], date_range["end_date"]
        )

        budget_by_category: Dict[str, float] = {}
        for b in budgets:
            budget_by_category[b["category_id"]] = budget_by_category.get(b["category_id"], 0) + b["amount"]

        return {
            "month": month,
            "year": year,
            "month_label": month_label(month, year),
            "transactions": self.queries.transactions.find_by_month(month, year),
            "budgets": budgets,
            "categories": categories,
            "category_spending": [
                {
                    "category_id": c["id"],
                    "category_name": c["name"],
                    "budget": round(budget_by_category.get(c["id"], 0), 2),
                    "spent": round(spend.get(c["id"], 0), 2),
                }
                for c in categories
            ],
        }

    def get_budgets_page(self, month: Optional[int] = None, year: Optional[int] = None) -> Dict[str, Any]:
        month, year = self._month_year(month, year)
        return {
            "month": month,
            "year": year,
            "budgets": self.queries.budgets.find_by_month_year(month, year),
            "categories": self.get_categories(),
            "recurring": self.queries.recurring.find_all(),
        }

    def get_income(self, month: Optional[int] = None, year: Optional[int] = None) -> List[Dict[str, Any]]:
        if month and year:
            r = get_month_date_range(month, year)
            return self.queries.income.find_by_date_range(r["start_date"], r["end_date"])
        return self.queries.income.find_all()

    def get_recurring(self) -> List[Dict[str, Any]]:
        return self.queries.recurring.find_all()

    def get_savings(self) -> List[Dict[str, Any]]:
        return self.queries.savings.find_all()

    def get_savings_goals(self) -> Dict[str, Any]:
        """Goals with progress, plus every contribution (newest first)."""
        goals = self.queries.savings_goals.find_all()
        contributions = self.queries.contributions.find_all()
        return {
            "goals": [goal_progress(g, contributions) for g in goals],
            "contributions": contributions,
        }

    def get_archived_goals(self) -> List[Dict[str, Any]]:
        return self.queries.savings_goals.find_by_status("archived")

    def get_users(self) -> List[Dict[str, Any]]:
        return self.queries.users.find_all()

    # === Dashboards ===

    def get_monthly_dashboard(self, month: Optional[int] = None, year: Optional[int] = None) -> Dict[str, Any]:
        """Actual vs planned spending and income for one month."""
        month, year = self._month_year(month, year)
        r = get_month_date_range(month, year)

        actual = self.queries.transactions.find_by_date_range(r["start_date"], r["end_date"])
        planned = self.queries.budgets.find_by_month_year(month, year)
        income = self.queries.income.find_by_date_range(r["start_date"], r["end_date"])
        recurring_total = monthly_recurring_total(self.queries.recurring.find_all())

        actual_total = sum(t["amount"] for t in actual) + recurring_total
        planned_total = sum(b["amount"] for b in planned) + recurring_total
        total_income = sum(i["amount"] for i in income)

        return {
            "month": month,
            "year": year,
            "month_label": month_label(month, year),
            "actual_expenses": actual,
            "planned_expenses": planned,
            "actual_expenses_total": round(actual_total, 2),
            "planned_expenses_total": round(planned_total, 2),
            "total_income": round(total_income, 2),
            "remaining_balance": round(total_income - planned_total, 2),
        }

    def get_yearly_dashboard(
        self,
        year: Optional[int] = None,
        view: Literal["current", "full"] = "current"
    ) -> Dict[str, Any]:
        """Yearly totals and a month-by-month income/expense breakdown.

        With view "current" on the current year the breakdown is the last six
        months, which may reach into the previous year. Otherwise it is the
        calendar year, stopping at the current month for the current year.
        """
        today = self._today()
        year = year or today[0]
        r = get_year_date_range(year)

        actual = self.queries.transactions.find_by_date_range(r["start_date"], r["end_date"])
        income = self.queries.income.find_by_date_range(r["start_date"], r["end_date"])
        budgets = self.queries.budgets.find_by_year(year)
        recurring_monthly = monthly_recurring_total(self.queries.recurring.find_all())
        recurring_yearly = recurring_monthly * 12

        yearly_budgets: Dict[str, float] = {}
        for b in budgets:
            yearly_budgets[b["category_id"]] = yearly_budgets.get(b["category_id"], 0) + b["amount"]

        actual_total = sum(t["amount"] for t in actual) + recurring_yearly
        planned_total = sum(yearly_budgets.values()) + recurring_yearly
        total_income = sum(i["amount"] for i in income)

        if view == "current" and year == today[0]:
            window = get_previous_months(ROLLING_MONTHS, *today)
        else:
            window = get_calendar_year_months(year, today)

        start_date = get_month_date_range(window[0][1], window[0][0])["start_date"]
        end_date = get_month_date_range(window[-1][1], window[-1][0])["end_date"]
        periods = [f"{y}-{pad_month(m)}" for y, m in window]
        out_by_month = monthly_rollup(
            self.queries.transactions.find_by_date_range(start_date, end_date), periods
        ) + recurring_monthly
        in_by_month = monthly_rollup(self.queries.income.find_by_date_range(start_date, end_date), periods)

        return {
            "year": year,
            "view": view,
            "yearly_budgets": [
                {"category_id": cid, "amount": round(amount, 2)} for cid, amount in yearly_budgets.items()
            ],
            "actual_expenses_total": round(actual_total, 2),
            "planned_expenses_total": round(planned_total, 2),
            "total_income": round(total_income, 2),
            "remaining_balance": round(total_income - planned_total, 2),
            "time_range_data": [
                {
                    "month": month_label(m, y).split(" ")[0],
                    "in": round(float(in_by_month[period]), 2),
                    "out": round(float(out_by_month[period]), 2),
                }
                for (y, m), period in zip(window, periods)
            ],
        }

    # === Jobs ===

    def run_weekly_summary(self, now: Optional[datetime] = None) -> WeeklySummaryRunResult:
        return run_weekly_summary_email(self.store, self.email_sender, now or self.clock())

    def reset_recurring_paid(self) -> int:
        return run_reset_recurring_paid(self.store)
