"""Monthly reset of recurring charges' paid flags."""
import logging

from household_budget.db.sqlite_store import SQLiteStore


logger = logging.getLogger(__name__)


def run_reset_recurring_paid(store: SQLiteStore) -> int:
    """Mark every recurring charge unpaid. Returns the number of rows reset."""
    count = store.reset_recurring_paid()
    logger.info(f"Reset paid flag on {count} recurring charges")
    return count
