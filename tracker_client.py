"""Client-side state for the expense tracker UI.

Mirrors what the browser page keeps in memory: the fetched expenses, the
selected currency, the add-expense form, an error message and a loading flag.
The filtered view and the total are derived on every access, so switching
currency never goes back to the server.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

EXPENSES_PATH = "/api/expenses"

CURRENCY_OPTIONS = [
    {"code": "USD", "country": "United States"},
    {"code": "INR", "country": "India"},
    {"code": "CAD", "country": "Canada"},
]


def country_for_currency(code: str) -> str:
    for option in CURRENCY_OPTIONS:
        if option["code"] == code:
            return option["country"]
    return "Unknown"


@dataclass
class ExpenseForm:
    title: str = ""
    amount: str = ""
    date: str = field(default_factory=lambda: date.today().isoformat())
    category: str = ""
    note: str = ""

    def clear(self) -> None:
        """Resets everything except the date, which users tend to reuse."""
        self.title = ""
        self.amount = ""
        self.category = ""
        self.note = ""


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        data = response.json()
    except ValueError:
        return fallback
    if isinstance(data, dict) and data.get("message"):
        return data["message"]
    return fallback


class ExpenseTrackerState:
    def __init__(self, http_client: httpx.Client, currency: str = "USD"):
        self.http = http_client
        self.expenses: List[Dict[str, Any]] = []
        self.currency = currency
        self.form = ExpenseForm()
        self.error = ""
        self.loading = False

    @property
    def visible_expenses(self) -> List[Dict[str, Any]]:
        return [item for item in self.expenses if item["currency"] == self.currency]

    @property
    def total(self) -> float:
        return sum(float(item["amount"]) for item in self.visible_expenses)

    def set_currency(self, code: str) -> None:
        self.currency = code

    def load(self) -> None:
        """Fetches the list once. On failure the list stays empty and the error is shown."""
        self.loading = True
        try:
            try:
                response = self.http.get(EXPENSES_PATH, headers={"Cache-Control": "no-store"})
            except httpx.HTTPError as e:
                logger.error(f"Failed to load expenses: {e}")
                self.error = "Unable to load expenses."
                return
            if not response.is_success:
                self.error = _error_message(response, "Unable to load expenses.")
                return
            try:
                self.expenses = response.json()
            except ValueError:
                logger.error("Expense list response was not JSON.")
                self.error = "Unable to load expenses."
                return
            logger.info(f"Loaded {len(self.expenses)} expenses.")
        finally:
            self.loading = False

    def add_expense(self) -> Optional[Dict[str, Any]]:
        """Submits the form. Returns the stored expense, or None if the server refused it."""
        self.error = ""
        # A non-numeric amount is sent as-is and rejected server-side.
        try:
            amount: Any = float(self.form.amount)
        except ValueError:
            amount = self.form.amount
        payload = {
            "title": self.form.title,
            "amount": amount,
            "occurredAt": self.form.date,
            "category": self.form.category,
            "note": self.form.note,
            "currency": self.currency,
            "country": country_for_currency(self.currency),
        }
        try:
            response = self.http.post(EXPENSES_PATH, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Failed to save expense: {e}")
            self.error = "Save failed."
            return None
        if not response.is_success:
            self.error = _error_message(response, "Save failed.")
            return None

        created = response.json()
        self.expenses = [created] + self.expenses
        self.form.clear()
        return created

    def remove_expense(self, expense_id: str) -> bool:
        """Removes the expense locally right away and puts it back if the server delete fails."""
        previous = self.expenses
        self.expenses = [item for item in self.expenses if item["id"] != expense_id]
        try:
            response = self.http.delete(EXPENSES_PATH, params={"id": expense_id})
            confirmed = response.is_success
        except httpx.HTTPError as e:
            logger.error(f"Failed to delete expense {expense_id}: {e}")
            confirmed = False
        if not confirmed:
            self.expenses = previous
            self.error = "Delete failed."
        return confirmed
