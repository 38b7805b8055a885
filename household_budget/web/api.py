"""FastAPI backend for the household budget."""
import hmac
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from household_budget.api.budget_service import BudgetService
from household_budget.errors import AuthenticationError, DatabaseError, ForbiddenError
from household_budget.legacy.services import (
    CreateCategoryInput,
    CreateTransactionInput,
    UpdateCategoryInput,
    UpdateTransactionInput,
)


logger = logging.getLogger(__name__)

# Global service instance (for production use)
_service: Optional[BudgetService] = None


def get_service() -> BudgetService:
    """Dependency to get the budget service."""
    global _service
    if _service is None:
        _service = BudgetService()
        _service.__enter__()
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage service lifecycle."""
    yield
    # Cleanup on shutdown
    global _service
    if _service is not None:
        _service.__exit__(None, None, None)
        _service = None


app = FastAPI(
    title="Household Budget API",
    description="Shared household budgeting: transactions, budgets, savings goals and weekly summaries",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(status_code=401, content={"error": exc.message})


@app.exception_handler(ForbiddenError)
async def forbidden_error_handler(request: Request, exc: ForbiddenError):
    return JSONResponse(status_code=403, content={"error": exc.message})


@app.exception_handler(DatabaseError)
async def database_error_handler(request: Request, exc: DatabaseError):
    logger.error(f"Database error on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"error": "A database error occurred."})


# === Identity ===

def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="x-user-id"),
    service: BudgetService = Depends(get_service)
) -> Optional[Dict[str, Any]]:
    """Acting user from the X-User-Id header; None when unknown or banned."""
    return service.resolve_user(x_user_id)


def require_user(user: Optional[Dict[str, Any]] = Depends(get_current_user)) -> Dict[str, Any]:
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def require_admin(user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Forbidden")
    return user


# === Form actions ===

@app.post("/actions/{page}/{action}")
async def submit_action(
    page: str,
    action: str,
    request: Request,
    user: Optional[Dict[str, Any]] = Depends(get_current_user),
    service: BudgetService = Depends(get_service)
):
    """Run a page's form action against a form-encoded submission."""
    if not service.has_action(page, action):
        raise HTTPException(status_code=404, detail=f"Unknown action '{action}' on page '{page}'")

    form = await request.form()
    result = service.run_action(page, action, user, dict(form))
    return JSONResponse(status_code=result.status, content=result.body)


# === Page data ===

@app.get("/api/categories")
def list_categories(
    user: Dict[str, Any] = Depends(require_user),
    service: BudgetService = Depends(get_service)
) -> List[dict]:
    return service.get_categories()


@app.get("/api/transactions")
def transactions_page(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user: Dict[str, Any] = Depends(require_user),
    service: BudgetService = Depends(get_service)
):
    return service.get_transactions_page(month, year)


@app.get("/api/budgets")
def budgets_page(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user: Dict[str, Any] = Depends(require_user),
    service: BudgetService = Depends(get_service)
):
    return service.get_budgets_page(month, year)


@app.get("/api/income")
def list_income(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user: Dict[str, Any] = Depends(require_user),
    service: BudgetService = Depends(get_service)
) -> List[dict]:
    return service.get_income(month, year)


@app.get("/api/recurring")
def list_recurring(
    user: Dict[str, Any] = Depends(require_user),
    service: BudgetService = Depends(get_service)
) -> List[dict]:
    return service.get_recurring()


@app.get("/api/savings")
def list_savings(
    user: Dict[str, Any] = Depends(require_user),
    service: BudgetService = Depends(get_service)
) -> List[dict]:
    return service.get_savings()


@app.get("/api/savings-goals")
def savings_goals_page(
    user: Dict[str, Any] = Depends(require_user),
    service: BudgetService = Depends(get_service)
):
    return service.get_savings_goals()


@app.get("/api/archived-goals")
def archived_goals(
    user: Dict[str, Any] = Depends(require_admin),
    service: BudgetService = Depends(get_service)
) -> List[dict]:
    return service.get_archived_goals()


@app.get("/api/users")
def list_users(
    user: Dict[str, Any] = Depends(require_admin),
    service: BudgetService = Depends(get_service)
) -> List[dict]:
    return service.get_users()


@app.get("/api/profile")
def profile(user: Dict[str, Any] = Depends(require_user)):
    return {"id": user["id"], "email": user["email"], "name": user["name"], "role": user["role"]}


@app.get("/api/dashboard")
def monthly_dashboard(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user: Dict[str, Any] = Depends(require_user),
    service: BudgetService = Depends(get_service)
):
    return service.get_monthly_dashboard(month, year)


@app.get("/api/dashboard/yearly")
def yearly_dashboard(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    view: Literal["current", "full"] = Query("current"),
    user: Dict[str, Any] = Depends(require_user),
    service: BudgetService = Depends(get_service)
):
    return service.get_yearly_dashboard(year, view)


# === Cron ===

def _cron_authorized(authorization: Optional[str], secret: Optional[str]) -> bool:
    if not secret or not authorization:
        return False
    return hmac.compare_digest(authorization.encode(), f"Bearer {secret}".encode())


def _run_cron_job(name: str, authorization: Optional[str], service: BudgetService, job):
    if not _cron_authorized(authorization, service.settings.cron_secret):
        logger.warning(f"Unauthorized cron request for {name}")
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    try:
        result = job()
    except Exception as e:
        logger.error(f"Cron job {name} failed: {e}")
        return JSONResponse(status_code=500, content={"error": "Job failed"})

    return {
        "success": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "result": result,
    }


@app.post("/api/cron/email-weekly-summary")
def cron_weekly_summary(
    authorization: Optional[str] = Header(None),
    service: BudgetService = Depends(get_service)
):
    """Run the weekly summary email job. Skips itself outside Monday 8am Pacific."""
    return _run_cron_job(
        "email-weekly-summary", authorization, service,
        lambda: service.run_weekly_summary().to_dict()
    )


@app.post("/api/cron/reset-recurring-paid")
def cron_reset_recurring(
    authorization: Optional[str] = Header(None),
    service: BudgetService = Depends(get_service)
):
    return _run_cron_job(
        "reset-recurring-paid", authorization, service,
        lambda: {"reset": service.reset_recurring_paid()}
    )


@app.get("/api/healthz")
def healthz(service: BudgetService = Depends(get_service)):
    if service.healthy():
        return PlainTextResponse("OK")
    return PlainTextResponse("Service Unavailable", status_code=503)


# === Legacy API ===

@app.get("/api/legacy/categories")
def legacy_categories(
    user: Optional[Dict[str, Any]] = Depends(get_current_user),
    service: BudgetService = Depends(get_service)
) -> List[dict]:
    return service.categories.categories(user)


@app.get("/api/legacy/categories/{category_id}")
def legacy_category(
    category_id: str,
    user: Optional[Dict[str, Any]] = Depends(get_current_user),
    service: BudgetService = Depends(get_service)
):
    category = service.categories.category(user, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@app.post("/api/legacy/categories")
def legacy_create_category(
    data: CreateCategoryInput,
    user: Optional[Dict[str, Any]] = Depends(get_current_user),
    service: BudgetService = Depends(get_service)
):
    return service.categories.create_category(user, data)


@app.put("/api/legacy/categories/{category_id}")
def legacy_update_category(
    category_id: str,
    data: UpdateCategoryInput,
    user: Optional[Dict[str, Any]] = Depends(get_current_user),
    service: BudgetService = Depends(get_service)
):
    category = service.categories.update_category(user, category_id, data)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@app.delete("/api/legacy/categories/{category_id}")
def legacy_delete_category(
    category_id: str,
    user: Optional[Dict[str, Any]] = Depends(get_current_user),
    service: BudgetService = Depends(get_service)
):
    category = service.categories.delete_category(user, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@app.get("/api/legacy/transactions")
def legacy_transactions(
    user: Optional[Dict[str, Any]] = Depends(get_current_user),
    service: BudgetService = Depends(get_service)
) -> List[dict]:
    return service.transactions.transactions(user)


@app.get("/api/legacy/transactions/{transaction_id}")
def legacy_transaction(
    transaction_id: str,
    user: Optional[Dict[str, Any]] = Depends(get_current_user),
    service: BudgetService = Depends(get_service)
):
    txn = service.transactions.transaction(user, transaction_id)
    if not txn:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return txn


@app.post("/api/legacy/transactions")
def legacy_create_transaction(
    data: CreateTransactionInput,
    user: Optional[Dict[str, Any]] = Depends(get_current_user),
    service: BudgetService = Depends(get_service)
):
    return service.transactions.create_transaction(user, data)


@app.put("/api/legacy/transactions/{transaction_id}")
def legacy_update_transaction(
    transaction_id: str,
    data: UpdateTransactionInput,
    user: Optional[Dict[str, Any]] = Depends(get_current_user),
    service: BudgetService = Depends(get_service)
):
    txn = service.transactions.update_transaction(user, transaction_id, data)
    if not txn:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return txn


@app.delete("/api/legacy/transactions/{transaction_id}")
def legacy_delete_transaction(
    transaction_id: str,
    user: Optional[Dict[str, Any]] = Depends(get_current_user),
    service: BudgetService = Depends(get_service)
):
    txn = service.transactions.delete_transaction(user, transaction_id)
    if not txn:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return txn
