"""
Aggregation Engine

DESIGN DECISION: Aggregation is PURE and DETERMINISTIC.
The data-access layer loads transactions; this module only computes.
It never performs I/O and never raises for any well-formed input:
empty collections produce zeros, sentinels and the healthy message.

All arithmetic is Decimal so that, e.g., balance == income - expense
holds exactly.

Tie-break: when several categories share the highest total, the one whose
name sorts first wins.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Sequence, Union

from lume.models.finance import (
    ALL,
    BalanceSummary,
    CategoryTotal,
    MonthlyTotals,
    ReserveMode,
    Transaction,
    TransactionFilter,
    TransactionType,
)


RESERVE_RATE = Decimal("0.3")
CONCENTRATION_RATE = Decimal("0.3")
NO_CATEGORY = "-"

OVERSPENDING_MESSAGE = "Warning: your expenses exceeded your income in this period."
NEGATIVE_BALANCE_MESSAGE = "Your balance is negative. Try cutting non-essential spending."
CONCENTRATION_MESSAGE = "The category {name} takes more than 30% of your income."
RESERVE_MISSED_MESSAGE = "You are not reaching the 30% savings reserve target."
HEALTHY_MESSAGE = "Your finances are healthy. Keep it up!"


# =============================================================================
# FILTERING
# =============================================================================

def matches_filter(transaction: Transaction, filters: TransactionFilter) -> bool:
    """All four predicates must hold."""
    if filters.query.lower() not in transaction.description.lower():
        return False
    if filters.category != ALL and transaction.category != filters.category:
        return False
    if filters.month != ALL and transaction.date.month != filters.month:
        return False
    if filters.year != ALL and transaction.date.year != filters.year:
        return False
    return True


def filter_transactions(
    transactions: Iterable[Transaction],
    filters: TransactionFilter,
) -> list[Transaction]:
    """Subset of `transactions` matching `filters`, in the original order."""
    return [t for t in transactions if matches_filter(t, filters)]


# =============================================================================
# SUMMARY
# =============================================================================

def distinct_month_count(transactions: Iterable[Transaction]) -> int:
    """Number of distinct (year, month) pairs, at least 1."""
    months = {(t.date.year, t.date.month) for t in transactions}
    return max(len(months), 1)


def _category_totals(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = defaultdict(Decimal)
    for transaction in transactions:
        if transaction.type == transaction_type:
            totals[transaction.category] += transaction.amount
    return totals


def _top_category(totals: dict[str, Decimal]) -> CategoryTotal:
    if not totals:
        return CategoryTotal(name=NO_CATEGORY, value=Decimal("0"))
    name, value = min(totals.items(), key=lambda item: (-item[1], item[0]))
    return CategoryTotal(name=name, value=value)


def summarize(transactions: Sequence[Transaction]) -> BalanceSummary:
    """
    Totals, monthly averages and top categories of a transaction subset.
    """
    total_income = sum(
        (t.amount for t in transactions if t.type == TransactionType.INCOME),
        Decimal("0"),
    )
    total_expense = sum(
        (t.amount for t in transactions if t.type == TransactionType.EXPENSE),
        Decimal("0"),
    )
    month_count = distinct_month_count(transactions)

    return BalanceSummary(
        total_income=total_income,
        total_expense=total_expense,
        balance=total_income - total_expense,
        avg_income=total_income / month_count,
        avg_expense=total_expense / month_count,
        max_category_income=_top_category(
            _category_totals(transactions, TransactionType.INCOME)
        ),
        max_category_expense=_top_category(
            _category_totals(transactions, TransactionType.EXPENSE)
        ),
        month_count=month_count,
    )


# =============================================================================
# RESERVE & INSIGHTS
# =============================================================================

def calculate_reserve(
    summary: BalanceSummary,
    mode: Union[ReserveMode, str] = ReserveMode.TOTAL,
) -> Decimal:
    """
    Recommended reserve: 30% of income minus expenses.

    In monthly mode, and only when more than one month is in view,
    the figure is averaged over the months.
    """
    raw_reserve = RESERVE_RATE * summary.total_income - summary.total_expense
    if ReserveMode(mode) == ReserveMode.MONTHLY and summary.month_count > 1:
        return raw_reserve / summary.month_count
    return raw_reserve


def generate_insights(summary: BalanceSummary, reserve: Decimal) -> list[str]:
    """
    Diagnostic messages, in fixed priority order. Never empty.
    """
    insights = []
    if summary.total_expense > summary.total_income:
        insights.append(OVERSPENDING_MESSAGE)
    if summary.balance < 0:
        insights.append(NEGATIVE_BALANCE_MESSAGE)
    if summary.max_category_expense.value > summary.total_income * CONCENTRATION_RATE:
        insights.append(
            CONCENTRATION_MESSAGE.format(name=summary.max_category_expense.name)
        )
    if reserve < 0:
        insights.append(RESERVE_MISSED_MESSAGE)
    if not insights:
        insights.append(HEALTHY_MESSAGE)
    return insights


# =============================================================================
# SERIES
# =============================================================================

def monthly_history(transactions: Iterable[Transaction]) -> list[MonthlyTotals]:
    """Income and expense per month, chronological. Only months with data."""
    months: dict[str, MonthlyTotals] = {}
    for transaction in transactions:
        key = transaction.month_key
        if key not in months:
            months[key] = MonthlyTotals(month=key)
        if transaction.type == TransactionType.INCOME:
            months[key].income += transaction.amount
        else:
            months[key].expense += transaction.amount
    return [months[key] for key in sorted(months)]


def category_breakdown(
    transactions: Iterable[Transaction],
    transaction_type: Union[TransactionType, str],
) -> list[CategoryTotal]:
    """Per-category totals for one direction, largest first."""
    totals = _category_totals(transactions, TransactionType(transaction_type))
    ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [CategoryTotal(name=name, value=value) for name, value in ordered]
