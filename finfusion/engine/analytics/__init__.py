"""Pandas-backed aggregation for dashboards, trends and budget reports."""

from .aggregation import (
    GROUP_BY,
    budget_status,
    build_recommendations,
    category_breakdown,
    month_bounds,
    recommended_amount,
    summarize,
    transactions_frame,
    trends,
    utilization,
)

__all__ = [
    "GROUP_BY",
    "budget_status",
    "build_recommendations",
    "category_breakdown",
    "month_bounds",
    "recommended_amount",
    "summarize",
    "transactions_frame",
    "trends",
    "utilization",
]
