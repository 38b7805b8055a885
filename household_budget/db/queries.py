"""Read queries for page data.

Each entity gets a QueryBuilder that knows how to select its rows together
with the related names pages display (category name, owner name), plus a few
entity-specific finders.
"""
from typing import Any, Dict, List, Optional, Sequence

from household_budget.utils.dates import get_month_date_range, pad_month

from .sqlite_store import SQLiteStore


class QueryBuilder:
    """Find rows of one table with its default relations and ordering."""

    def __init__(
        self,
        store: SQLiteStore,
        table: str,
        alias: str,
        relations: Sequence[str] = (),
        default_order_by: Optional[str] = None
    ):
        self.store = store
        self.table = table
        self.alias = alias
        self.relations = list(relations)
        self.default_order_by = default_order_by

    def _select(self) -> str:
        a = self.alias
        columns = [f"{a}.*"]
        joins = []
        if "category" in self.relations:
            columns.append("c.name AS category_name")
            joins.append(f"LEFT JOIN categories c ON c.id = {a}.category_id")
        if "user" in self.relations:
            columns.append("u.name AS user_name")
            joins.append(f"LEFT JOIN users u ON u.id = {a}.user_id")
        if "goal" in self.relations:
            columns.append("g.name AS goal_name")
            joins.append(f"LEFT JOIN savings_goals g ON g.id = {a}.goal_id")
        return f"SELECT {', '.join(columns)} FROM {self.table} {a} " + " ".join(joins)

    def find_all(
        self,
        where: Optional[str] = None,
        params: Sequence[Any] = (),
        order_by: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Find all rows, optionally filtered. `where` may reference the table alias."""
        sql = self._select()
        if where:
            sql += f" WHERE {where}"
        order = order_by or self.default_order_by
        if order:
            sql += f" ORDER BY {order}"
        return self.store.query(sql, params)

    def find_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        return self.find_first(f"{self.alias}.id = ?", (record_id,))

    def find_first(self, where: Optional[str] = None, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        rows = self.find_all(where, params)
        return rows[0] if rows else None


class CategoryQueries(QueryBuilder):
    def __init__(self, store: SQLiteStore):
        super().__init__(store, "categories", "cat", default_order_by="cat.name")


class TransactionQueries(QueryBuilder):
    def __init__(self, store: SQLiteStore):
        super().__init__(store, "transactions", "t", relations=("category", "user"),
                         default_order_by="t.date DESC")

    def find_by_date_range(self, start_date: str, end_date: str) -> List[Dict[str, Any]]:
        """Transactions whose date falls within [start_date, end_date]."""
        return self.find_all(
            "date(t.date) >= date(?) AND date(t.date) <= date(?)",
            (start_date, end_date)
        )

    def find_by_month(self, month: int, year: int) -> List[Dict[str, Any]]:
        r = get_month_date_range(month, year)
        return self.find_by_date_range(r["start_date"], r["end_date"])


class BudgetQueries(QueryBuilder):
    def __init__(self, store: SQLiteStore):
        super().__init__(store, "budgets", "b", relations=("category", "user"),
                         default_order_by="c.name")

    def find_by_month_year(self, month: int, year: int) -> List[Dict[str, Any]]:
        return self.find_all("b.year = ? AND b.month = ?", (str(year), pad_month(month)))

    def find_by_year(self, year: int) -> List[Dict[str, Any]]:
        return self.find_all("b.year = ?", (str(year),), order_by="b.month, c.name")


class IncomeQueries(QueryBuilder):
    def __init__(self, store: SQLiteStore):
        super().__init__(store, "income", "i", relations=("user",), default_order_by="i.date DESC")

    def find_by_date_range(self, start_date: str, end_date: str) -> List[Dict[str, Any]]:
        return self.find_all(
            "date(i.date) >= date(?) AND date(i.date) <= date(?)",
            (start_date, end_date)
        )


class RecurringQueries(QueryBuilder):
    def __init__(self, store: SQLiteStore):
        super().__init__(store, "recurring", "r", relations=("user",), default_order_by="r.merchant")


class SavingsQueries(QueryBuilder):
    def __init__(self, store: SQLiteStore):
        super().__init__(store, "savings", "s", relations=("user",), default_order_by="s.title")


class SavingsGoalQueries(QueryBuilder):
    def __init__(self, store: SQLiteStore):
        super().__init__(store, "savings_goals", "sg", relations=("user",), default_order_by="sg.name")

    def find_by_status(self, *statuses: str) -> List[Dict[str, Any]]:
        placeholders = ", ".join("?" for _ in statuses)
        return self.find_all(f"sg.status IN ({placeholders})", statuses)


class ContributionQueries(QueryBuilder):
    def __init__(self, store: SQLiteStore):
        super().__init__(store, "contributions", "con", relations=("goal", "user"),
                         default_order_by="con.date DESC")


class UserQueries(QueryBuilder):
    def __init__(self, store: SQLiteStore):
        super().__init__(store, "users", "usr", default_order_by="usr.email")


class Queries:
    """All entity query builders bound to one store."""

    def __init__(self, store: SQLiteStore):
        self.categories = CategoryQueries(store)
        self.transactions = TransactionQueries(store)
        self.budgets = BudgetQueries(store)
        self.income = IncomeQueries(store)
        self.recurring = RecurringQueries(store)
        self.savings = SavingsQueries(store)
        self.savings_goals = SavingsGoalQueries(store)
        self.contributions = ContributionQueries(store)
        self.users = UserQueries(store)
