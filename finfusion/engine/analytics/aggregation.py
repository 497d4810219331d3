"""Aggregation helpers for dashboards and budget reports.

Callers hand over plain transaction rows (mappings with ``date``, ``type``,
``amount`` and optional category fields). Everything here works on a pandas
frame built from those rows and returns JSON-friendly Python values with
amounts rounded to cents.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any, Final

import pandas as pd
from dateutil.relativedelta import relativedelta

__all__ = [
    "FRAME_COLUMNS",
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

FRAME_COLUMNS: Final[tuple[str, ...]] = (
    "date",
    "type",
    "amount",
    "category_id",
    "category_name",
    "category_type",
    "category_icon",
    "category_color",
    "is_opening_balance",
)
GROUP_BY: Final[tuple[str, ...]] = ("day", "week", "month")
TOP_CATEGORY_SHARE: Final[float] = 30.0
HIGH_UTILIZATION: Final[float] = 90.0


def transactions_frame(rows: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Normalise transaction rows into a typed frame.

    Opening-balance rows are dropped so they never count as income.
    """

    frame = pd.DataFrame.from_records(list(rows), columns=list(FRAME_COLUMNS))
    if frame.empty:
        return frame
    frame["date"] = pd.to_datetime(frame["date"])
    frame["amount"] = pd.to_numeric(frame["amount"]).astype(float)
    frame["is_opening_balance"] = frame["is_opening_balance"].fillna(False).astype(bool)
    return frame.loc[~frame["is_opening_balance"]].reset_index(drop=True)


def _clean(value: Any) -> Any:
    """Map pandas missing markers to ``None``."""

    return None if pd.isna(value) else value


def _total(frame: pd.DataFrame, kind: str) -> float:
    if frame.empty:
        return 0.0
    return round(float(frame.loc[frame["type"] == kind, "amount"].sum()), 2)


def _count(frame: pd.DataFrame, kind: str) -> int:
    if frame.empty:
        return 0
    return int((frame["type"] == kind).sum())


def summarize(frame: pd.DataFrame) -> dict[str, Any]:
    """Income, expense and net totals with transaction counts."""

    income = _total(frame, "INCOME")
    expenses = _total(frame, "EXPENSE")
    return {
        "total_income": income,
        "total_expenses": expenses,
        "net_income": round(income - expenses, 2),
        "income_count": _count(frame, "INCOME"),
        "expense_count": _count(frame, "EXPENSE"),
        "transaction_count": int(len(frame)),
    }


def category_breakdown(frame: pd.DataFrame, kind: str = "EXPENSE") -> list[dict[str, Any]]:
    """Per-category totals for ``kind`` sorted by amount, with percentages."""

    if frame.empty:
        return []
    subset = frame.loc[(frame["type"] == kind) & frame["category_id"].notna()]
    if subset.empty:
        return []
    grouped = (
        subset.groupby("category_id", sort=False)
        .agg(
            name=("category_name", "first"),
            category_type=("category_type", "first"),
            icon=("category_icon", "first"),
            color=("category_color", "first"),
            amount=("amount", "sum"),
            transaction_count=("amount", "size"),
        )
        .sort_values("amount", ascending=False)
    )
    total = float(grouped["amount"].sum())
    breakdown: list[dict[str, Any]] = []
    for category_id, row in grouped.iterrows():
        amount = float(row["amount"])
        breakdown.append(
            {
                "category": {
                    "id": category_id,
                    "name": row["name"],
                    "type": _clean(row["category_type"]) or kind,
                    "icon": _clean(row["icon"]),
                    "color": _clean(row["color"]),
                },
                "amount": round(amount, 2),
                "transaction_count": int(row["transaction_count"]),
                "percentage": round(amount / total * 100.0, 2) if total > 0 else 0.0,
            }
        )
    return breakdown


def _period_labels(dates: pd.Series, group_by: str) -> pd.Series:
    if group_by == "day":
        return dates.dt.strftime("%Y-%m-%d")
    if group_by == "week":
        # weeks start on Monday
        starts = dates - pd.to_timedelta(dates.dt.weekday, unit="D")
        return starts.dt.strftime("%Y-%m-%d")
    if group_by == "month":
        return dates.dt.strftime("%Y-%m")
    raise ValueError(f"group_by must be one of {', '.join(GROUP_BY)}")


def trends(frame: pd.DataFrame, group_by: str = "month") -> list[dict[str, Any]]:
    """Income and expenses per period, oldest first."""

    if group_by not in GROUP_BY:
        raise ValueError(f"group_by must be one of {', '.join(GROUP_BY)}")
    if frame.empty:
        return []
    subset = frame.loc[frame["type"].isin(["INCOME", "EXPENSE"])].copy()
    if subset.empty:
        return []
    subset["period"] = _period_labels(subset["date"], group_by)
    table = subset.pivot_table(
        index="period", columns="type", values="amount", aggfunc="sum", fill_value=0.0
    ).sort_index()
    income = table["INCOME"] if "INCOME" in table else pd.Series(0.0, index=table.index)
    expenses = table["EXPENSE"] if "EXPENSE" in table else pd.Series(0.0, index=table.index)
    return [
        {
            "period": str(period),
            "income": round(float(income[period]), 2),
            "expenses": round(float(expenses[period]), 2),
            "net_income": round(float(income[period] - expenses[period]), 2),
        }
        for period in table.index
    ]


def utilization(spent: float, allocated: float) -> float:
    if allocated <= 0:
        return 0.0
    return round(spent / allocated * 100.0, 2)


def budget_status(utilization_pct: float, alert_threshold: float) -> str:
    """Classify a budget as ``over-budget``, ``warning`` or ``on-track``."""

    if utilization_pct >= 100.0:
        return "over-budget"
    if utilization_pct >= alert_threshold:
        return "warning"
    return "on-track"


def recommended_amount(average_monthly: float) -> int:
    """Suggested monthly budget: the average plus a ten percent buffer."""

    return int(math.ceil(round(average_monthly * 1.1, 6)))


def build_recommendations(
    monthly_net: float,
    overall_utilization: float,
    over_budget: int,
    top_category: Mapping[str, Any] | None,
) -> list[str]:
    """Plain-language advice derived from the insight figures."""

    advice: list[str] = []
    if monthly_net < 0:
        advice.append(
            "Your expenses exceed your income. Consider reducing spending or increasing income."
        )
    if overall_utilization > HIGH_UTILIZATION:
        advice.append(
            "You're using over 90% of your budget. Consider reviewing your spending habits."
        )
    if over_budget > 0:
        advice.append(f"You have {over_budget} budget(s) that are over budget.")
    if top_category is not None and top_category["percentage"] > TOP_CATEGORY_SHARE:
        advice.append(
            f"{top_category['category_name']} accounts for {top_category['percentage']}% "
            "of your spending. Consider if this is necessary."
        )
    if not advice:
        advice.append("Great job! Your finances look healthy. Keep up the good work!")
    return advice


def month_bounds(day: date, months_back: int = 0) -> tuple[date, date]:
    """First day ``months_back`` months before ``day`` and the last day of ``day``'s month."""

    first_of_month = day.replace(day=1)
    start = first_of_month - relativedelta(months=months_back)
    end = first_of_month + relativedelta(months=1, days=-1)
    return start, end
