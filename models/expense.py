"""Pydantic models for Expense data"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional


class Expense(BaseModel):
    """
    Represents a single stored expense.
    Field names follow the table columns; JSON uses the camelCase aliases.
    """
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str
    title: str
    amount: float
    currency: str
    country: str
    category: Optional[str] = None
    note: Optional[str] = None
    occurred_at: date = Field(..., alias="occurredAt")
    created_at: datetime = Field(..., alias="createdAt")


# NUMERIC(12,2) holds at most ten integer digits
MAX_AMOUNT = 10**10


class ExpenseCreate(BaseModel):
    """
    A candidate expense as submitted by the client, before id and createdAt exist.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0, lt=MAX_AMOUNT, allow_inf_nan=False)
    currency: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    occurred_at: date = Field(..., alias="occurredAt")
    category: Optional[str] = None
    note: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def round_to_cents(cls, value: float) -> float:
        # Stored as NUMERIC(12,2), so check the amount the column will actually hold
        cents = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        if cents <= 0 or cents >= MAX_AMOUNT:
            raise ValueError("amount must round to a positive number of cents that fits the column")
        return float(cents)

    @field_validator("category", "note")
    @classmethod
    def empty_to_none(cls, value: Optional[str]) -> Optional[str]:
        # Whitespace is already stripped at this point
        return value or None
