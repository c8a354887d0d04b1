"""
Aggregate computation over a transaction sequence.

Pure and deterministic: the same transactions always give the same totals.
Recomputed on every render, O(n) over a small personal ledger.
"""

from decimal import Decimal
from typing import Iterable

from finance_tracker.models.transaction import Aggregates, Transaction


def compute_aggregates(transactions: Iterable[Transaction]) -> Aggregates:
    """
    Sum income and expense.

    income  = sum of positive amounts
    expense = sum of negative amounts (keeps its sign, so <= 0)
    balance = income + expense

    Zero amounts count towards `count` but neither total.
    """
    income = Decimal("0")
    expense = Decimal("0")
    count = 0

    for tx in transactions:
        count += 1
        if tx.amount > 0:
            income += tx.amount
        elif tx.amount < 0:
            expense += tx.amount

    return Aggregates(
        income=income,
        expense=expense,
        balance=income + expense,
        count=count,
    )


def format_amount(amount: Decimal, currency_symbol: str = "₹", signed: bool = True) -> str:
    """'+₹1,000.00' / '-₹50.00' / '₹0.00'."""
    sign = ""
    if signed:
        sign = "+" if amount > 0 else "-" if amount < 0 else ""
    return f"{sign}{currency_symbol}{abs(amount):,.2f}"
