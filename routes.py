"""API Routes for expenses"""
from fastapi import APIRouter, HTTPException, Depends, Request, Query
from typing import List, Annotated, Optional
from services import expenses_service
from services.database import SchemaInitializer
from models.expense import Expense, ExpenseCreate
import asyncpg
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

DATABASE_FAILED_MESSAGE = "Database connection failed. Configure DATABASE_URL for an external PostgreSQL database."
DELETE_FAILED_MESSAGE = "Delete failed."
MISSING_ID_MESSAGE = "Missing id"

# --- Dependency Function ---
def get_schema_initializer(request: Request) -> Optional[SchemaInitializer]:
    """Dependency to get the schema initializer (and through it the pool) from the request state."""
    initializer = getattr(request.state, "schema_initializer", None)
    if initializer is None:
        logger.error("Database pool not found in application state. Check DATABASE_URL.")
    return initializer

# Type hint for the dependency
SchemaInitializerDep = Annotated[Optional[SchemaInitializer], Depends(get_schema_initializer)]


async def ensure_schema(initializer: Optional[SchemaInitializer]) -> asyncpg.Pool:
    """Runs the schema setup if needed and hands back the pool, or raises ConnectionError."""
    if initializer is None:
        raise ConnectionError("Database pool is not configured.")
    await initializer.ensure()
    return initializer.pool

# --- API Routes ---

@router.get("/expenses", response_model=List[Expense], summary="List Expenses", description="Retrieves the 200 most recent expenses, newest first.")
async def get_expenses(initializer: SchemaInitializerDep) -> List[Expense]:
    logger.info("GET /expenses endpoint called.")
    try:
        pool = await ensure_schema(initializer)
        return await expenses_service.list_expenses(pool)
    except ConnectionError as ce:
        logger.error(f"Connection error fetching expenses: {ce}")
        raise HTTPException(status_code=500, detail=DATABASE_FAILED_MESSAGE)


@router.post("/expenses", response_model=Expense, status_code=201, summary="Create Expense", description="Validates and stores a new expense.")
async def create_expense(initializer: SchemaInitializerDep, expense_in: ExpenseCreate) -> Expense:
    """
    The body is validated before this runs; an invalid payload never reaches the database.
    """
    logger.info(f"POST /expenses endpoint called: {expense_in.title} {expense_in.amount} {expense_in.currency}")
    try:
        pool = await ensure_schema(initializer)
        return await expenses_service.create_expense(pool, expense_in)
    except ConnectionError as ce:
        logger.error(f"Connection error creating expense: {ce}")
        raise HTTPException(status_code=500, detail=DATABASE_FAILED_MESSAGE)


@router.delete("/expenses", summary="Delete Expense", description="Deletes one expense by id. Unknown ids are treated as already deleted.")
async def delete_expense(initializer: SchemaInitializerDep, id: Optional[str] = Query(None, description="Id of the expense to delete.")):
    logger.info(f"DELETE /expenses endpoint called for id={id!r}")
    if not id:
        raise HTTPException(status_code=400, detail=MISSING_ID_MESSAGE)
    try:
        pool = await ensure_schema(initializer)
        await expenses_service.delete_expense(pool, id)
    except ConnectionError as ce:
        logger.error(f"Connection error deleting expense {id}: {ce}")
        raise HTTPException(status_code=500, detail=DELETE_FAILED_MESSAGE)
    return {"ok": True}
