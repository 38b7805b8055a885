"""SQLite store for the household budget tables."""
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from household_budget.errors import DatabaseError

from .schema import SCHEMA_SQL, TABLES, Table


logger = logging.getLogger(__name__)


def new_id() -> str:
    """Generate a server-side record identifier."""
    return uuid.uuid4().hex


class SQLiteStore:
    """SQLite storage for users, categories, transactions, budgets and savings."""

    def __init__(self, db_path: Path):
        """Initialize the store with database path."""
        self.db_path = db_path
        try:
            self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        except sqlite3.Error as e:
            raise DatabaseError("Could not open database", details={"path": str(db_path)}, original_error=e)
        self.conn.row_factory = sqlite3.Row
        # Enable WAL mode for better concurrency
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._init_schema()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        self.conn.executescript(SCHEMA_SQL)
        self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            self.conn.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    @contextmanager
    def _write(self, operation: str, table: str):
        """Commit on success, roll back and wrap sqlite errors on failure."""
        try:
            yield
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            logger.error(f"{operation} on {table} failed: {e}")
            raise DatabaseError(f"Failed to {operation} {table}", details={"table": table}, original_error=e)

    def _table(self, table_name: str) -> Table:
        table = TABLES.get(table_name)
        if table is None:
            raise DatabaseError(f"Unknown table: {table_name}")
        return table

    def get_tables(self) -> List[str]:
        """Get list of tables in the database."""
        cursor = self.conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        )
        return [row[0] for row in cursor.fetchall()]

    def ping(self) -> bool:
        """Check that the connection answers a trivial query."""
        try:
            return self.conn.execute("SELECT 1").fetchone()[0] == 1
        except sqlite3.Error as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Run a read query and return rows as dicts."""
        try:
            cursor = self.conn.execute(sql, tuple(params))
        except sqlite3.Error as e:
            raise DatabaseError("Query failed", original_error=e)
        return [dict(row) for row in cursor.fetchall()]

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        """Run a read query and return the first row, if any."""
        rows = self.query(sql, params)
        return rows[0] if rows else None

    # === Generic row methods ===

    def insert(self, table_name: str, values: Dict[str, Any]) -> str:
        """Insert a row. The identifier is always generated here. Returns the new ID."""
        table = self._table(table_name)
        row = {k: v for k, v in values.items() if table.has_column(k) and k != "id"}
        row["id"] = new_id()

        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)
        with self._write("insert into", table.name):
            self.conn.execute(
                f"INSERT INTO {table.name} ({columns}) VALUES ({placeholders})",
                list(row.values())
            )
        return row["id"]

    def update(self, table_name: str, record_id: str, values: Dict[str, Any]) -> bool:
        """Update a row's fields. Returns False if nothing matched."""
        table = self._table(table_name)
        updates = {k: v for k, v in values.items() if table.has_column(k) and k != "id"}
        if not updates:
            return False

        set_clause = ", ".join(f"{k} = ?" for k in updates.keys())
        params = list(updates.values()) + [record_id]
        with self._write("update", table.name):
            cursor = self.conn.execute(f"UPDATE {table.name} SET {set_clause} WHERE id = ?", params)
        return cursor.rowcount > 0

    def delete(self, table_name: str, record_id: str) -> bool:
        """Delete a row by ID. Returns False if nothing matched."""
        table = self._table(table_name)
        with self._write("delete from", table.name):
            cursor = self.conn.execute(f"DELETE FROM {table.name} WHERE id = ?", (record_id,))
        return cursor.rowcount > 0

    def get(self, table_name: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Get a single row by ID."""
        table = self._table(table_name)
        return self.query_one(f"SELECT * FROM {table.name} WHERE id = ?", (record_id,))

    def count(self, table_name: str) -> int:
        table = self._table(table_name)
        return self.conn.execute(f"SELECT COUNT(*) FROM {table.name}").fetchone()[0]

    # === User Methods ===

    def add_user(self, email: str, name: Optional[str] = None, role: str = "user") -> str:
        """Add a user. Returns the new user ID."""
        return self.insert("users", {"email": email, "name": name, "role": role})

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get a user by ID."""
        return self.get("users", user_id)

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Get a user by email."""
        return self.query_one("SELECT * FROM users WHERE email = ?", (email,))

    def get_summary_recipients(self) -> List[Dict[str, Any]]:
        """Users who should receive summary emails: not banned, with an email address."""
        return self.query("""
            SELECT id, email, name FROM users
            WHERE banned = 0 AND email IS NOT NULL AND TRIM(email) != ''
            ORDER BY email
        """)

    # === Budget Methods ===

    def get_budgets_for_month(self, month: int, year: int) -> List[Dict[str, Any]]:
        """Get budget rows for a month joined with their category name."""
        return self.query("""
            SELECT b.id, b.category_id, c.name AS category_name, b.amount
            FROM budgets b
            JOIN categories c ON c.id = b.category_id
            WHERE b.year = ? AND b.month = ?
            ORDER BY c.name
        """, (str(year), f"{int(month):02d}"))

    def get_category_spending_totals(
        self,
        category_ids: Iterable[str],
        start_date: str,
        end_date: str
    ) -> Dict[str, float]:
        """Sum transaction amounts per category within an inclusive date range."""
        ids = list(category_ids)
        if not ids:
            return {}

        placeholders = ", ".join("?" for _ in ids)
        rows = self.query(f"""
            SELECT category_id, SUM(amount) AS total
            FROM transactions
            WHERE category_id IN ({placeholders})
              AND date(date) >= date(?)
              AND date(date) <= date(?)
            GROUP BY category_id
        """, ids + [start_date, end_date])
        return {row["category_id"]: row["total"] or 0 for row in rows}

    # === Reference checks ===

    def get_category_transaction_count(self, category_id: str) -> int:
        """Get the count of transactions using this category."""
        cursor = self.conn.execute(
            "SELECT COUNT(*) FROM transactions WHERE category_id = ?",
            (category_id,)
        )
        return cursor.fetchone()[0]

    def get_goal_contribution_count(self, goal_id: str) -> int:
        """Get the count of contributions recorded against a savings goal."""
        cursor = self.conn.execute(
            "SELECT COUNT(*) FROM contributions WHERE goal_id = ?",
            (goal_id,)
        )
        return cursor.fetchone()[0]

    # === Recurring Methods ===

    def reset_recurring_paid(self) -> int:
        """Clear the paid flag on every recurring charge. Returns rows touched."""
        with self._write("reset", "recurring"):
            cursor = self.conn.execute("UPDATE recurring SET paid = 0")
        return cursor.rowcount
