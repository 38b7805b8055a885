"""SQLite schema definitions for the household budget service."""
from typing import Dict, FrozenSet, NamedTuple

AUDIT_COLUMNS_SQL = """
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    created_by TEXT NOT NULL REFERENCES users(id),
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_by TEXT NOT NULL REFERENCES users(id)"""

SCHEMA_SQL = f"""
-- Users (identity is managed externally; this table holds profile and role)
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    name TEXT,
    role TEXT NOT NULL DEFAULT 'user',  -- user, admin
    banned INTEGER NOT NULL DEFAULT 0,
    ban_reason TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Categories table
CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL,{AUDIT_COLUMNS_SQL}
);

-- Transactions table
CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    amount REAL NOT NULL,
    payee TEXT NOT NULL,
    notes TEXT NOT NULL,
    date TEXT NOT NULL,  -- Local timestamp YYYY-MM-DD HH:MM:SS
    category_id TEXT NOT NULL REFERENCES categories(id),
    user_id TEXT NOT NULL REFERENCES users(id),{AUDIT_COLUMNS_SQL}
);

-- Monthly budget per category
CREATE TABLE IF NOT EXISTS budgets (
    id TEXT PRIMARY KEY,
    amount REAL NOT NULL,
    month TEXT NOT NULL,  -- MM
    year TEXT NOT NULL,  -- YYYY
    category_id TEXT NOT NULL REFERENCES categories(id),
    user_id TEXT NOT NULL REFERENCES users(id),{AUDIT_COLUMNS_SQL}
);

-- Income table
CREATE TABLE IF NOT EXISTS income (
    id TEXT PRIMARY KEY,
    amount REAL NOT NULL,
    name TEXT NOT NULL,
    description TEXT NOT NULL,
    date TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES users(id),{AUDIT_COLUMNS_SQL}
);

-- Recurring charges (subscriptions, insurance, ...)
CREATE TABLE IF NOT EXISTS recurring (
    id TEXT PRIMARY KEY,
    merchant TEXT NOT NULL,
    description TEXT NOT NULL,
    cadence TEXT NOT NULL,  -- Monthly, Yearly
    amount REAL NOT NULL,
    paid INTEGER NOT NULL DEFAULT 0,
    user_id TEXT NOT NULL REFERENCES users(id),{AUDIT_COLUMNS_SQL}
);

-- Savings balances
CREATE TABLE IF NOT EXISTS savings (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    amount REAL NOT NULL,
    user_id TEXT NOT NULL REFERENCES users(id),{AUDIT_COLUMNS_SQL}
);

-- Savings goals
CREATE TABLE IF NOT EXISTS savings_goals (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    target_amount REAL NOT NULL,
    target_date TEXT,
    status TEXT NOT NULL DEFAULT 'active',  -- active, completed, paused, archived
    user_id TEXT NOT NULL REFERENCES users(id),{AUDIT_COLUMNS_SQL}
);

-- Contributions toward a savings goal
CREATE TABLE IF NOT EXISTS contributions (
    id TEXT PRIMARY KEY,
    goal_id TEXT NOT NULL REFERENCES savings_goals(id),
    amount REAL NOT NULL,
    date TEXT NOT NULL,
    description TEXT,
    user_id TEXT NOT NULL REFERENCES users(id),{AUDIT_COLUMNS_SQL}
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(date);
CREATE INDEX IF NOT EXISTS idx_transactions_category ON transactions(category_id);
CREATE INDEX IF NOT EXISTS idx_budgets_period ON budgets(year, month);
CREATE INDEX IF NOT EXISTS idx_budgets_category ON budgets(category_id);
CREATE INDEX IF NOT EXISTS idx_income_date ON income(date);
CREATE INDEX IF NOT EXISTS idx_savings_goals_status ON savings_goals(status);
CREATE INDEX IF NOT EXISTS idx_contributions_goal ON contributions(goal_id);
"""


class Table(NamedTuple):
    """A table reference: its name and the columns writes may touch."""
    name: str
    columns: FrozenSet[str]

    def has_column(self, column: str) -> bool:
        return column in self.columns


AUDIT_COLUMNS = frozenset({"created_at", "created_by", "updated_at", "updated_by"})


def _table(name: str, *columns: str, audited: bool = True) -> Table:
    cols = frozenset({"id", *columns})
    if audited:
        cols = cols | AUDIT_COLUMNS
    return Table(name, cols)


users = _table("users", "email", "name", "role", "banned", "ban_reason",
               "created_at", "updated_at", audited=False)
categories = _table("categories", "name", "description")
transactions = _table("transactions", "amount", "payee", "notes", "date", "category_id", "user_id")
budgets = _table("budgets", "amount", "month", "year", "category_id", "user_id")
income = _table("income", "amount", "name", "description", "date", "user_id")
recurring = _table("recurring", "merchant", "description", "cadence", "amount", "paid", "user_id")
savings = _table("savings", "title", "description", "amount", "user_id")
savings_goals = _table("savings_goals", "name", "description", "target_amount", "target_date",
                       "status", "user_id")
contributions = _table("contributions", "goal_id", "amount", "date", "description", "user_id")

TABLES: Dict[str, Table] = {
    t.name: t for t in (
        users, categories, transactions, budgets, income,
        recurring, savings, savings_goals, contributions,
    )
}
