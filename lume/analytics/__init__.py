"""Analytics package."""

from lume.analytics.engine import (
    calculate_reserve,
    category_breakdown,
    distinct_month_count,
    filter_transactions,
    generate_insights,
    monthly_history,
    summarize,
)

__all__ = [
    "calculate_reserve",
    "category_breakdown",
    "distinct_month_count",
    "filter_transactions",
    "generate_insights",
    "monthly_history",
    "summarize",
]
