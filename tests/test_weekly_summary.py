"""Tests for the weekly summary email job."""
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from household_budget.db.sqlite_store import SQLiteStore
from household_budget.errors import EmailDeliveryError
from household_budget.jobs.weekly_summary import (
    SKIP_NO_BUDGETS,
    SKIP_NOT_SCHEDULED,
    build_month_range,
    dedupe_budgets,
    get_zoned_date_parts,
    run_weekly_summary_email,
    should_run_at_scheduled_time,
    to_summary_rows,
)

from conftest import add_budget, add_category, add_transaction

# Monday 2026-10-19 08:00 PDT
MONDAY_8AM = datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc)


class TestSchedule:
    """Scheduling is evaluated in America/Los_Angeles."""

    def test_monday_8am_daylight_time(self):
        assert should_run_at_scheduled_time(MONDAY_8AM) is True

    def test_monday_8am_standard_time(self):
        # Monday 2026-01-05 08:00 PST
        assert should_run_at_scheduled_time(datetime(2026, 1, 5, 16, 0, tzinfo=timezone.utc)) is True

    def test_other_hours_and_days(self):
        assert should_run_at_scheduled_time(datetime(2026, 10, 19, 16, 0, tzinfo=timezone.utc)) is False
        assert should_run_at_scheduled_time(datetime(2026, 10, 19, 14, 59, tzinfo=timezone.utc)) is False
        assert should_run_at_scheduled_time(datetime(2026, 10, 20, 15, 0, tzinfo=timezone.utc)) is False

    def test_naive_datetime_is_utc(self):
        assert should_run_at_scheduled_time(datetime(2026, 10, 19, 15, 0)) is True

    def test_zoned_parts_cross_midnight(self):
        """01:00 UTC on the 1st is still the previous month in Pacific time."""
        parts = get_zoned_date_parts(datetime(2026, 11, 1, 1, 0, tzinfo=timezone.utc))
        assert (parts.year, parts.month, parts.day) == (2026, 10, 31)

    def test_month_range(self):
        month_range = build_month_range(MONDAY_8AM)
        assert month_range.year == "2026"
        assert month_range.month == "10"
        assert month_range.start_date == "2026-10-01"
        assert month_range.end_date == "2026-10-19"
        assert month_range.month_label == "October 2026"


class TestSummaryRows:
    """Classification of budgeted categories."""

    def _rows(self, budget, spent):
        return to_summary_rows({"c1": ("Groceries", budget)}, {"c1": spent})

    def test_ninety_percent_is_near_limit(self):
        over, near = self._rows(100, 90)
        assert over == []
        assert len(near) == 1
        assert near[0].remaining_amount == 10
        assert near[0].over_by_amount is None

    @pytest.mark.parametrize("budget, spent", [
        (350.10, 315.09),
        (1.10, 0.99),
        (0.80, 0.72),
        (1234.70, 1111.23),
    ])
    def test_ninety_percent_of_cent_budgets_is_near_limit(self, budget, spent):
        over, near = self._rows(budget, spent)
        assert over == []
        assert len(near) == 1
        assert near[0].remaining_amount == round(budget - spent, 2)

    def test_one_cent_under_ninety_percent_is_neither(self):
        assert self._rows(350.10, 315.08) == ([], [])

    def test_just_under_ninety_percent_is_neither(self):
        assert self._rows(100, 89.99) == ([], [])

    def test_over_budget(self):
        over, near = self._rows(100, 101)
        assert near == []
        assert over[0].over_by_amount == 1
        assert over[0].remaining_amount is None

    def test_exactly_at_budget_is_neither(self):
        assert self._rows(100, 100) == ([], [])

    def test_zero_budget_never_near_limit(self):
        assert self._rows(0, 0) == ([], [])

    def test_zero_budget_with_spend_is_over(self):
        over, near = self._rows(0, 5)
        assert over[0].over_by_amount == 5
        assert near == []

    def test_no_spend_recorded(self):
        over, near = to_summary_rows({"c1": ("Groceries", 100)}, {})
        assert over == [] and near == []

    def test_sorted_by_severity(self):
        budgets = {"a": ("A", 100), "b": ("B", 100), "c": ("C", 100), "d": ("D", 100)}
        spend = {"a": 110, "b": 150, "c": 91, "d": 97}
        over, near = to_summary_rows(budgets, spend)
        assert [r.category_name for r in over] == ["B", "A"]
        assert [r.category_name for r in near] == ["D", "C"]

    def test_duplicate_budgets_are_summed(self):
        rows = [
            {"category_id": "c1", "category_name": "Groceries", "amount": 300},
            {"category_id": "c1", "category_name": "Groceries", "amount": 200},
            {"category_id": "c2", "category_name": "Fuel", "amount": 80},
        ]
        assert dedupe_budgets(rows) == {"c1": ("Groceries", 500), "c2": ("Fuel", 80)}


class TestRunWeeklySummary:
    """End-to-end job runs against a real store."""

    @pytest.fixture
    def sender(self):
        return MagicMock()

    def test_skips_outside_schedule_without_store_access(self, sender):
        store = MagicMock(spec=SQLiteStore)
        result = run_weekly_summary_email(store, sender, datetime(2026, 10, 20, 15, 0, tzinfo=timezone.utc))

        assert result.success is True
        assert result.skipped is True
        assert result.reason == SKIP_NOT_SCHEDULED
        assert result.month_label == "October 2026"
        assert result.emails_sent == 0
        assert store.method_calls == []
        sender.send_weekly_summary.assert_not_called()

    def test_skips_without_budgets(self, store, users, sender):
        result = run_weekly_summary_email(store, sender, MONDAY_8AM)

        assert result.skipped is True
        assert result.reason == SKIP_NO_BUDGETS
        assert result.recipients_scanned == 0
        assert result.emails_sent == 0
        sender.send_weekly_summary.assert_not_called()

    def test_over_budget_and_near_limit(self, store, users, sender):
        uid = users["user"]
        groceries = add_category(store, uid, "Groceries")
        dining = add_category(store, uid, "Dining")
        fuel = add_category(store, uid, "Fuel")
        add_budget(store, uid, groceries, 500, "10", "2026")
        add_budget(store, uid, dining, 200, "10", "2026")
        add_budget(store, uid, fuel, 100, "10", "2026")
        add_transaction(store, uid, groceries, 300, "2026-10-02 09:00:00")
        add_transaction(store, uid, groceries, 220, "2026-10-12 18:30:00")
        add_transaction(store, uid, dining, 185, "2026-10-10 20:00:00")
        add_transaction(store, uid, fuel, 40, "2026-10-03 07:00:00")
        # Outside the month-to-date window
        add_transaction(store, uid, fuel, 500, "2026-09-28 07:00:00")

        result = run_weekly_summary_email(store, sender, MONDAY_8AM)

        assert result.skipped is False
        assert result.recipients_scanned == 2
        assert result.emails_sent == 2
        assert result.emails_failed == 0
        assert result.over_budget_count == 1
        assert result.near_limit_count == 1

        over = result.over_budget_categories[0]
        assert over.category_name == "Groceries"
        assert over.budget_amount == 500
        assert over.spent_amount == 520
        assert over.over_by_amount == 20

        near = result.near_limit_categories[0]
        assert near.category_name == "Dining"
        assert near.spent_amount == 185
        assert near.remaining_amount == 15

        payload = sender.send_weekly_summary.call_args_list[0].args[0]
        assert payload.month_label == "October 2026"
        assert [c.category_name for c in payload.over_budget_categories] == ["Groceries"]

    def test_sends_when_nothing_flagged(self, store, users, sender):
        category_id = add_category(store, users["user"], "Groceries")
        add_budget(store, users["user"], category_id, 500, "10", "2026")

        result = run_weekly_summary_email(store, sender, MONDAY_8AM)

        assert result.skipped is False
        assert result.emails_sent == 2
        assert result.over_budget_count == 0
        assert result.near_limit_count == 0

    def test_recipient_failure_is_isolated(self, store, users, sender):
        category_id = add_category(store, users["user"], "Groceries")
        add_budget(store, users["user"], category_id, 500, "10", "2026")

        def send(payload):
            if payload.to == "alex@example.com":
                raise EmailDeliveryError("Email provider request failed")
            return {"id": "email-1"}

        sender.send_weekly_summary.side_effect = send
        result = run_weekly_summary_email(store, sender, MONDAY_8AM)

        assert result.success is True
        assert result.emails_sent == 1
        assert result.emails_failed == 1
        assert sender.send_weekly_summary.call_count == 2

    def test_banned_and_nameless_recipients(self, store, users, sender):
        category_id = add_category(store, users["user"], "Groceries")
        add_budget(store, users["user"], category_id, 500, "10", "2026")
        store.update("users", users["admin"], {"banned": 1})
        store.add_user("sam@example.com")

        result = run_weekly_summary_email(store, sender, MONDAY_8AM)

        assert result.recipients_scanned == 2
        names = {c.args[0].to: c.args[0].name for c in sender.send_weekly_summary.call_args_list}
        assert names == {"alex@example.com": "Alex", "sam@example.com": "there"}

    def test_result_uses_camel_case_keys(self, store, users, sender):
        category_id = add_category(store, users["user"], "Groceries")
        add_budget(store, users["user"], category_id, 100, "10", "2026")
        add_transaction(store, users["user"], category_id, 150, "2026-10-05 10:00:00")

        data = run_weekly_summary_email(store, sender, MONDAY_8AM).to_dict()

        for key in ("success", "skipped", "monthLabel", "recipientsScanned", "emailsSent",
                    "emailsFailed", "overBudgetCount", "nearLimitCount"):
            assert key in data
        assert data["overBudgetCategories"][0]["overByAmount"] == 50
        assert data["overBudgetCategories"][0]["categoryName"] == "Groceries"
