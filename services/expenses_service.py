"""Service layer for handling expense-related logic."""
import logging
import uuid
from decimal import Decimal
from typing import List

import asyncpg

from models.expense import Expense, ExpenseCreate

logger = logging.getLogger(__name__)

LIST_LIMIT = 200

EXPENSE_COLUMNS = (
    'id, title, amount::float8 AS amount, currency, country, category, note, '
    'occurred_at AS "occurredAt", created_at AS "createdAt"'
)

# --- Database Interaction Functions (Depend on pool passed from route) ---

async def list_expenses(pool: asyncpg.Pool, limit: int = LIST_LIMIT) -> List[Expense]:
    """Fetches the most recent expenses, newest first."""
    logger.info(f"Fetching up to {limit} expenses ordered by created_at desc...")
    try:
        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {EXPENSE_COLUMNS} FROM expenses ORDER BY created_at DESC LIMIT $1;",
                limit,
            )
    except Exception as e:
        logger.error(f"Database error fetching expenses: {e}")
        raise ConnectionError(f"Database error fetching expenses: {e}") from e
    expenses = [Expense(**dict(row)) for row in rows]
    logger.info(f"Fetched {len(expenses)} expenses successfully.")
    return expenses


async def create_expense(pool: asyncpg.Pool, candidate: ExpenseCreate) -> Expense:
    """Stores a validated candidate and returns it with its generated id and createdAt."""
    expense_id = str(uuid.uuid4())
    logger.debug(f"Inserting expense {expense_id}: {candidate.model_dump(mode='json')}")
    try:
        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""INSERT INTO expenses (id, title, amount, currency, country, category, note, occurred_at)
                VALUES ($1,$2,$3,$4,$5,$6,$7,$8)
                RETURNING {EXPENSE_COLUMNS};""",
                expense_id,
                candidate.title,
                Decimal(str(candidate.amount)),
                candidate.currency,
                candidate.country,
                candidate.category,
                candidate.note,
                candidate.occurred_at,
            )
    except Exception as e:
        logger.error(f"Database error inserting expense: {e}")
        raise ConnectionError(f"Database error inserting expense: {e}") from e
    logger.info(f"Inserted expense {expense_id}.")
    return Expense(**dict(row))


async def delete_expense(pool: asyncpg.Pool, expense_id: str) -> int:
    """Deletes one expense by id. Returns the number of rows removed; zero is not an error."""
    try:
        async with pool.acquire() as conn:
            status = await conn.execute("DELETE FROM expenses WHERE id = $1;", expense_id)
    except Exception as e:
        logger.error(f"Database error deleting expense {expense_id}: {e}")
        raise ConnectionError(f"Database error deleting expense: {e}") from e
    # asyncpg returns the command tag, e.g. "DELETE 1"
    deleted_count = int(status.split()[-1])
    if deleted_count:
        logger.info(f"Deleted expense {expense_id}.")
    else:
        logger.info(f"Expense {expense_id} not found; nothing to delete.")
    return deleted_count
