"""Weekly summary email rendering and delivery through the Resend HTTP API."""
import logging
from pathlib import Path
from typing import List, Optional

import requests
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from household_budget.config import APP_NAME, EMAIL_TIMEOUT_SECONDS, RESEND_API_URL
from household_budget.errors import EmailDeliveryError
from household_budget.utils.dates import format_currency


logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WeeklySummaryCategory(CamelModel):
    """One budgeted category in the summary. Over-budget rows carry
    over_by_amount; near-limit rows carry remaining_amount."""
    category_name: str
    budget_amount: float
    spent_amount: float
    over_by_amount: Optional[float] = None
    remaining_amount: Optional[float] = None


class WeeklySummaryEmailPayload(CamelModel):
    to: str
    name: str
    month_label: str
    over_budget_categories: List[WeeklySummaryCategory]
    near_limit_categories: List[WeeklySummaryCategory]


def _build_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
    )
    env.filters["currency"] = format_currency
    return env


_env = _build_environment()


def render_weekly_summary(payload: WeeklySummaryEmailPayload) -> str:
    """Render the HTML body of the weekly summary email."""
    template = _env.get_template("weekly_summary.html")
    return template.render(
        name=payload.name,
        month_label=payload.month_label,
        over_budget_categories=payload.over_budget_categories,
        near_limit_categories=payload.near_limit_categories,
        app_name=APP_NAME,
    )


def weekly_summary_subject(month_label: str) -> str:
    return f"[{APP_NAME}] Weekly Budget Summary - {month_label}"


class ResendEmailSender:
    """Send emails through Resend.

    One POST per message, no retries. Any transport error or non-2xx
    response raises EmailDeliveryError.
    """

    def __init__(
        self,
        api_key: str,
        from_address: str,
        session: Optional[requests.Session] = None,
        api_url: str = RESEND_API_URL,
        timeout: float = EMAIL_TIMEOUT_SECONDS
    ):
        self.api_key = api_key
        self.from_address = from_address
        self.session = session or requests.Session()
        self.api_url = api_url
        self.timeout = timeout

    def send(self, to: str, subject: str, html: str) -> dict:
        """Send one email. Returns the provider's JSON response."""
        try:
            response = self.session.post(
                self.api_url,
                json={"from": self.from_address, "to": [to], "subject": subject, "html": html},
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise EmailDeliveryError("Email provider request failed", details={"subject": subject}, original_error=e)
        return response.json()

    def send_weekly_summary(self, payload: WeeklySummaryEmailPayload) -> dict:
        logger.debug(f"Sending weekly summary email to: {payload.to}")
        try:
            return self.send(payload.to, weekly_summary_subject(payload.month_label), render_weekly_summary(payload))
        except EmailDeliveryError as e:
            logger.error(f"Failed to send weekly summary email: {e}")
            raise
