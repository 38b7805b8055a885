"""Tests for weekly summary email rendering and delivery."""
import pytest
import requests
from unittest.mock import MagicMock

from household_budget.emailer.sender import (
    ResendEmailSender,
    WeeklySummaryCategory,
    WeeklySummaryEmailPayload,
    render_weekly_summary,
    weekly_summary_subject,
)
from household_budget.errors import EmailDeliveryError


@pytest.fixture
def payload():
    return WeeklySummaryEmailPayload(
        to="alex@example.com",
        name="Alex",
        month_label="October 2026",
        over_budget_categories=[WeeklySummaryCategory(
            category_name="Groceries", budget_amount=500, spent_amount=520, over_by_amount=20,
        )],
        near_limit_categories=[],
    )


@pytest.fixture
def session():
    session = MagicMock()
    session.post.return_value.json.return_value = {"id": "email-123"}
    return session


class TestRender:

    def test_subject(self):
        assert weekly_summary_subject("October 2026") == "[Household Budget] Weekly Budget Summary - October 2026"

    def test_body(self, payload):
        html = render_weekly_summary(payload)

        assert "Hi Alex" in html
        assert "October 2026" in html
        assert "Groceries" in html
        assert "$520.00" in html
        assert "$20.00" in html
        assert "No categories are within 10% of their budget limit right now." in html
        assert "No categories are over budget this month." not in html

    def test_escapes_names(self, payload):
        payload.over_budget_categories[0].category_name = "<b>Food</b>"
        html = render_weekly_summary(payload)
        assert "<b>Food</b>" not in html
        assert "&lt;b&gt;Food&lt;/b&gt;" in html


class TestResendEmailSender:

    def test_send_weekly_summary(self, payload, session):
        sender = ResendEmailSender("re_key", "budget@example.com", session=session)

        assert sender.send_weekly_summary(payload) == {"id": "email-123"}

        args, kwargs = session.post.call_args
        assert args[0] == "https://api.resend.com/emails"
        assert kwargs["headers"] == {"Authorization": "Bearer re_key"}
        assert kwargs["json"]["from"] == "budget@example.com"
        assert kwargs["json"]["to"] == ["alex@example.com"]
        assert kwargs["json"]["subject"].endswith("October 2026")
        assert "Groceries" in kwargs["json"]["html"]

    def test_http_error_raises(self, payload, session):
        session.post.return_value.raise_for_status.side_effect = requests.HTTPError("422 Client Error")
        sender = ResendEmailSender("re_key", "budget@example.com", session=session)

        with pytest.raises(EmailDeliveryError):
            sender.send_weekly_summary(payload)

    def test_connection_error_raises(self, session):
        session.post.side_effect = requests.ConnectionError("refused")
        sender = ResendEmailSender("re_key", "budget@example.com", session=session)

        with pytest.raises(EmailDeliveryError) as exc_info:
            sender.send("alex@example.com", "Hello", "<p>Hi</p>")
        assert isinstance(exc_info.value.original_error, requests.ConnectionError)
