"""Weekly budget summary email job.

Runs from a cron trigger. Does work only on Monday at 8am Pacific; every
other call returns a skipped result without touching the store.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, NamedTuple, Optional, Tuple
from zoneinfo import ZoneInfo

from household_budget.config import NEAR_LIMIT_THRESHOLD, SUMMARY_HOUR, SUMMARY_TIMEZONE, SUMMARY_WEEKDAY
from household_budget.db.sqlite_store import SQLiteStore
from household_budget.emailer.sender import CamelModel, WeeklySummaryCategory, WeeklySummaryEmailPayload
from household_budget.utils.dates import month_label, pad_month


logger = logging.getLogger(__name__)

SKIP_NOT_SCHEDULED = "Not Monday 8am Pacific time"
SKIP_NO_BUDGETS = "No budgets found for current month"


class WeeklySummaryRunResult(CamelModel):
    success: bool
    skipped: bool
    reason: Optional[str] = None
    month_label: str
    recipients_scanned: int = 0
    emails_sent: int = 0
    emails_failed: int = 0
    over_budget_count: int = 0
    near_limit_count: int = 0
    over_budget_categories: List[WeeklySummaryCategory] = []
    near_limit_categories: List[WeeklySummaryCategory] = []

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class ZonedDateParts(NamedTuple):
    year: int
    month: int
    day: int
    hour: int
    weekday: int  # Monday == 0


class MonthRange(NamedTuple):
    year: str
    month: str
    start_date: str
    end_date: str
    month_label: str


def get_zoned_date_parts(moment: datetime, tz_name: str = SUMMARY_TIMEZONE) -> ZonedDateParts:
    """Calendar parts of an instant in the summary timezone. Naive values are UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone(ZoneInfo(tz_name))
    return ZonedDateParts(local.year, local.month, local.day, local.hour, local.weekday())


def should_run_at_scheduled_time(moment: datetime) -> bool:
    parts = get_zoned_date_parts(moment)
    return parts.weekday == SUMMARY_WEEKDAY and parts.hour == SUMMARY_HOUR


def build_month_range(moment: datetime) -> MonthRange:
    """First of the zoned month through the zoned 'today'."""
    parts = get_zoned_date_parts(moment)
    month = pad_month(parts.month)
    return MonthRange(
        year=str(parts.year),
        month=month,
        start_date=f"{parts.year}-{month}-01",
        end_date=f"{parts.year}-{month}-{parts.day:02d}",
        month_label=month_label(parts.month, parts.year),
    )


def dedupe_budgets(rows: List[dict]) -> Dict[str, Tuple[str, float]]:
    """Sum budget rows per category: {category_id: (category_name, amount)}."""
    by_category: Dict[str, Tuple[str, float]] = {}
    for row in rows:
        _, amount = by_category.get(row["category_id"], (row["category_name"], 0.0))
        by_category[row["category_id"]] = (row["category_name"], round(amount + row["amount"], 2))
    return by_category


def to_summary_rows(
    budgets: Dict[str, Tuple[str, float]],
    spend_by_category: Dict[str, float],
    threshold: float = NEAR_LIMIT_THRESHOLD
) -> Tuple[List[WeeklySummaryCategory], List[WeeklySummaryCategory]]:
    """Split budgeted categories into over-budget and near-limit rows.

    A category exactly at its budget is in neither list. A zero budget is
    never near-limit.
    """
    over_budget: List[WeeklySummaryCategory] = []
    near_limit: List[WeeklySummaryCategory] = []

    for category_id, (name, budget_amount) in budgets.items():
        spent = round(spend_by_category.get(category_id, 0.0), 2)
        over_by = round(spent - budget_amount, 2)

        if over_by > 0:
            over_budget.append(WeeklySummaryCategory(
                category_name=name,
                budget_amount=budget_amount,
                spent_amount=spent,
                over_by_amount=over_by,
            ))
            continue

        if budget_amount <= 0:
            continue

        # Compare in cents so exactly 90% of a budget counts
        if spent >= round(budget_amount * threshold, 2):
            near_limit.append(WeeklySummaryCategory(
                category_name=name,
                budget_amount=budget_amount,
                spent_amount=spent,
                remaining_amount=max(round(budget_amount - spent, 2), 0),
            ))

    over_budget.sort(key=lambda row: row.over_by_amount or 0, reverse=True)
    near_limit.sort(key=lambda row: row.spent_amount, reverse=True)
    return over_budget, near_limit


def run_weekly_summary_email(
    store: SQLiteStore,
    sender,
    now: Optional[datetime] = None
) -> WeeklySummaryRunResult:
    """Email every active user this month's over-budget and near-limit categories.

    Args:
        store: Budget store
        sender: Object with send_weekly_summary(payload)
        now: Reference instant (default: current UTC time)

    Returns:
        WeeklySummaryRunResult describing what happened
    """
    now = now or datetime.now(timezone.utc)
    month_range = build_month_range(now)

    if not should_run_at_scheduled_time(now):
        return WeeklySummaryRunResult(
            success=True,
            skipped=True,
            reason=SKIP_NOT_SCHEDULED,
            month_label=month_range.month_label,
        )

    budget_rows = store.get_budgets_for_month(int(month_range.month), int(month_range.year))
    if not budget_rows:
        logger.info(f"No monthly budgets found for weekly summary email run ({month_range.month}/{month_range.year})")
        return WeeklySummaryRunResult(
            success=True,
            skipped=True,
            reason=SKIP_NO_BUDGETS,
            month_label=month_range.month_label,
        )

    budgets = dedupe_budgets(budget_rows)
    spend = store.get_category_spending_totals(list(budgets.keys()), month_range.start_date, month_range.end_date)
    over_budget, near_limit = to_summary_rows(budgets, spend)

    recipients = store.get_summary_recipients()
    emails_sent = 0
    emails_failed = 0

    for recipient in recipients:
        payload = WeeklySummaryEmailPayload(
            to=recipient["email"],
            name=recipient.get("name") or "there",
            month_label=month_range.month_label,
            over_budget_categories=over_budget,
            near_limit_categories=near_limit,
        )
        try:
            sender.send_weekly_summary(payload)
            emails_sent += 1
        except Exception as e:
            emails_failed += 1
            logger.error(f"Failed to send weekly summary email to recipient: {e}")

    logger.info(
        f"Weekly summary email run completed: {len(recipients)} recipients, "
        f"{emails_sent} sent, {emails_failed} failed, "
        f"{len(over_budget)} over budget, {len(near_limit)} near limit ({month_range.month_label})"
    )

    return WeeklySummaryRunResult(
        success=True,
        skipped=False,
        month_label=month_range.month_label,
        recipients_scanned=len(recipients),
        emails_sent=emails_sent,
        emails_failed=emails_failed,
        over_budget_count=len(over_budget),
        near_limit_count=len(near_limit),
        over_budget_categories=over_budget,
        near_limit_categories=near_limit,
    )
