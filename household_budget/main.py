#!/usr/bin/env python3
"""Household Budget CLI - serve the web app and run scheduled jobs."""
import argparse
import json
import sys
from datetime import datetime
from typing import List, Optional

from household_budget.api.budget_service import BudgetService
from household_budget.config import USER_ROLES, get_settings
from household_budget.errors import BudgetError
from household_budget.log import setup_logging, uvicorn_log_config


def cmd_serve(args):
    """Run the web server."""
    import uvicorn

    uvicorn.run(
        "household_budget.web.api:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=uvicorn_log_config(get_settings().is_production)
    )
    return 0


def cmd_init_db(args):
    """Create the database and its tables."""
    with BudgetService() as service:
        print(f"Database ready: {service.db_path}")
        print(f"Tables: {', '.join(sorted(service.store.get_tables()))}")
    return 0


def cmd_add_user(args):
    """Add a user who can sign in and receive summaries."""
    with BudgetService() as service:
        if service.store.get_user_by_email(args.email):
            print(f"Error: User already exists: {args.email}")
            return 1
        user_id = service.add_user(args.email, args.name, args.role)
        print(f"Added {args.role} {args.email} ({user_id})")
    return 0


def cmd_weekly_summary(args):
    """Run the weekly summary email job."""
    now = None
    if args.at:
        try:
            now = datetime.fromisoformat(args.at)
        except ValueError:
            print(f"Error: Not an ISO-8601 instant: {args.at}")
            return 1

    with BudgetService() as service:
        result = service.run_weekly_summary(now)

    print(json.dumps(result.to_dict(), indent=2))
    return 0


def cmd_reset_recurring(args):
    """Mark every recurring charge unpaid."""
    with BudgetService() as service:
        count = service.reset_recurring_paid()
    print(f"Reset {count} recurring charges")
    return 0


def cmd_categories(args):
    """List all categories."""
    with BudgetService() as service:
        categories = service.get_categories()

        print("Categories:")
        for c in categories:
            print(f"  - {c['name']}: {c['description']}")

    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Household Budget - shared budgeting with weekly summaries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  budget serve --port 8000                     Run the web app
  budget init-db                               Create the database
  budget add-user sam@example.com --role admin Add an admin user
  budget weekly-summary                        Run the summary job now
  budget weekly-summary --at 2026-10-19T15:00Z Run as if at a given instant
  budget reset-recurring                       Clear recurring paid flags
"""
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the web server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve_parser.set_defaults(func=cmd_serve)

    # Init command
    init_parser = subparsers.add_parser("init-db", help="Create the database")
    init_parser.set_defaults(func=cmd_init_db)

    # Add user command
    user_parser = subparsers.add_parser("add-user", help="Add a user")
    user_parser.add_argument("email", help="Email address")
    user_parser.add_argument("--name", help="Display name")
    user_parser.add_argument("--role", choices=USER_ROLES, default="user", help="Role")
    user_parser.set_defaults(func=cmd_add_user)

    # Weekly summary command
    summary_parser = subparsers.add_parser("weekly-summary", help="Run the weekly summary email job")
    summary_parser.add_argument("--at", help="Reference instant (ISO-8601); default now")
    summary_parser.set_defaults(func=cmd_weekly_summary)

    # Reset recurring command
    reset_parser = subparsers.add_parser("reset-recurring", help="Mark recurring charges unpaid")
    reset_parser.set_defaults(func=cmd_reset_recurring)

    # Categories command
    cats_parser = subparsers.add_parser("categories", help="List all categories")
    cats_parser.set_defaults(func=cmd_categories)

    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except BudgetError as e:
        print(f"Error: {e}")
        return 1
    setup_logging(args.verbose, production=settings.is_production)

    if not args.command:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except BudgetError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
