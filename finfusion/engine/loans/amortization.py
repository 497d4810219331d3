"""Loan amortization utilities.

The helpers implement the standard reducing-balance formulas used for
equated monthly instalments (EMI): instalment size, payoff horizon at a fixed
instalment, the split of a single payment into interest and principal, and
the effect of a pre-payment on the remaining schedule. All functions are pure
and operate on floats; callers convert to :class:`~decimal.Decimal` through
:func:`as_money` before persisting amounts.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

import numpy as np
import pandas as pd

__all__ = [
    "CENT",
    "PaymentSplit",
    "PrepaymentBenefits",
    "PrepaymentScenario",
    "amortization_schedule",
    "as_money",
    "calculate_emi",
    "classify_prepayment",
    "monthly_rate",
    "months_elapsed",
    "payoff_months",
    "prepayment_benefits",
    "prepayment_scenario",
    "remaining_interest",
    "split_payment",
]

CENT = 0.005


def as_money(value: float | Decimal | int) -> Decimal:
    """Round ``value`` half-up to cents."""

    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def monthly_rate(annual_rate: float) -> float:
    """Convert an annual percentage rate into a monthly decimal rate."""

    if annual_rate < 0:
        raise ValueError("Interest rate cannot be negative")
    return float(annual_rate) / 100.0 / 12.0


def calculate_emi(principal: float, annual_rate: float, term_months: int) -> float:
    """Return the equated monthly instalment for a reducing-balance loan.

    Args:
      principal: Outstanding balance to be repaid.
      annual_rate: Annual interest rate in percent.
      term_months: Number of monthly instalments, at least one.

    Returns:
      The unrounded monthly instalment; ``principal / term_months`` for
      interest-free loans and ``0.0`` when nothing is owed.

    Raises:
      ValueError: If ``term_months`` is not positive or the rate is negative.
    """

    if term_months < 1:
        raise ValueError("Loan term must be at least one month")
    if principal <= 0:
        return 0.0
    rate = monthly_rate(annual_rate)
    if rate == 0:
        return float(principal) / term_months
    growth = (1.0 + rate) ** term_months
    return float(principal) * rate * growth / (growth - 1.0)


def payoff_months(balance: float, annual_rate: float, emi: float) -> int:
    """Number of instalments of ``emi`` needed to clear ``balance``.

    Raises:
      ValueError: If the instalment does not cover the monthly interest, in
        which case the balance would never decrease.
    """

    if balance <= CENT:
        return 0
    if emi <= 0:
        raise ValueError("Instalment must be positive")
    rate = monthly_rate(annual_rate)
    if rate == 0:
        return max(1, math.ceil(round(balance / emi, 9)))
    if emi <= balance * rate:
        raise ValueError("Instalment does not cover the monthly interest")
    months = -math.log(1.0 - balance * rate / emi) / math.log(1.0 + rate)
    # float noise can push an exact term like 12.0000000001 to 13
    return max(1, math.ceil(round(months, 9)))


def amortization_schedule(
    balance: float,
    annual_rate: float,
    *,
    term_months: int | None = None,
    emi: float | None = None,
    start: date | None = None,
) -> pd.DataFrame:
    """Build the month-by-month repayment table of a loan.

    Exactly one of ``term_months`` and ``emi`` is usually given: the term fixes
    the instalment through :func:`calculate_emi`, while a fixed instalment
    determines the term through :func:`payoff_months`. The last instalment is
    trimmed so the balance ends at zero.

    Returns:
      DataFrame with columns ``period``, ``payment``, ``interest``,
      ``principal`` and ``balance`` (plus ``due_date`` when ``start`` is given).
    """

    columns = ["period", "payment", "interest", "principal", "balance"]
    if balance <= CENT:
        return pd.DataFrame(columns=columns)
    if emi is None:
        if term_months is None:
            raise ValueError("Either term_months or emi is required")
        emi = calculate_emi(balance, annual_rate, term_months)
    periods = payoff_months(balance, annual_rate, emi)
    rate = monthly_rate(annual_rate)

    k = np.arange(0, periods + 1, dtype=float)
    if rate == 0:
        balances = balance - emi * k
    else:
        growth = np.power(1.0 + rate, k)
        balances = balance * growth - emi * (growth - 1.0) / rate
    balances = np.clip(balances, 0.0, None)
    balances[-1] = 0.0

    opening = balances[:-1]
    interest = opening * rate
    principal = opening - balances[1:]
    payment = interest + principal

    frame = pd.DataFrame(
        {
            "period": np.arange(1, periods + 1),
            "payment": payment.round(2),
            "interest": interest.round(2),
            "principal": principal.round(2),
            "balance": balances[1:].round(2),
        }
    )
    if start is not None:
        frame["due_date"] = [
            (pd.Timestamp(start) + pd.DateOffset(months=int(p))).date() for p in frame["period"]
        ]
    return frame


def remaining_interest(balance: float, annual_rate: float, emi: float) -> float:
    """Total interest still to be paid when repaying ``balance`` with ``emi``."""

    schedule = amortization_schedule(balance, annual_rate, emi=emi)
    if schedule.empty:
        return 0.0
    return float(schedule["interest"].sum())


@dataclass(frozen=True)
class PaymentSplit:
    """Breakdown of a single loan payment.

    Attributes:
      emi: Instalment due for the balance and term before the payment.
      interest: Portion of the payment covering the month's interest.
      principal: Portion reducing the outstanding balance.
      new_balance: Balance after the payment.
      is_prepayment: Whether the payment counts as a pre-payment.
      prepayment_type: ``FULL``, ``PARTIAL`` or ``EMI_ONLY`` for pre-payments.
    """

    emi: float
    interest: float
    principal: float
    new_balance: float
    is_prepayment: bool
    prepayment_type: str | None


def classify_prepayment(amount: float, emi: float, principal: float, balance: float) -> str:
    if principal >= balance - CENT:
        return "FULL"
    if amount > emi + CENT:
        return "PARTIAL"
    return "EMI_ONLY"


def split_payment(
    balance: float,
    annual_rate: float,
    term_months: int,
    amount: float,
    *,
    force_prepayment: bool = False,
) -> PaymentSplit:
    """Apply ``amount`` to a loan with ``balance`` outstanding.

    Interest accrued for the month is settled first and the remainder reduces
    the principal. Payments above the instalment, or flagged explicitly, are
    pre-payments.

    Raises:
      ValueError: If ``amount`` is not positive or exceeds the payoff amount.
    """

    if amount <= 0:
        raise ValueError("Payment amount must be positive")
    rate = monthly_rate(annual_rate)
    accrued = balance * rate
    if amount > round(balance + accrued, 2) + CENT:
        raise ValueError("Payment amount cannot exceed the outstanding balance plus interest")

    emi = calculate_emi(balance, annual_rate, max(1, term_months))
    interest = min(accrued, amount)
    principal = min(amount - interest, balance)
    new_balance = max(0.0, balance - principal)
    if new_balance <= CENT:
        new_balance = 0.0

    is_prepayment = force_prepayment or amount > emi + CENT
    prepayment_type = classify_prepayment(amount, emi, principal, balance) if is_prepayment else None
    return PaymentSplit(
        emi=emi,
        interest=interest,
        principal=principal,
        new_balance=new_balance,
        is_prepayment=is_prepayment,
        prepayment_type=prepayment_type,
    )


@dataclass(frozen=True)
class PrepaymentBenefits:
    """Effect of a pre-payment when the instalment is kept and the tenure shrinks.

    Attributes:
      new_emi: Instalment after the pre-payment (``0.0`` once paid off).
      new_term: Instalments left after the pre-payment.
      interest_savings: Interest no longer due compared with the baseline.
      term_reduction: Instalments removed from the baseline schedule.
      new_balance: Balance after the pre-payment.
    """

    new_emi: float
    new_term: int
    interest_savings: float
    term_reduction: int
    new_balance: float


def _compare_schedules(
    baseline_balance: float,
    new_balance: float,
    annual_rate: float,
    emi: float,
) -> PrepaymentBenefits:
    """Compare repaying ``baseline_balance`` and ``new_balance`` with the same ``emi``."""

    baseline_term = payoff_months(baseline_balance, annual_rate, emi)
    new_term = payoff_months(new_balance, annual_rate, emi)
    savings = remaining_interest(baseline_balance, annual_rate, emi) - remaining_interest(
        new_balance, annual_rate, emi
    )
    return PrepaymentBenefits(
        new_emi=emi if new_term else 0.0,
        new_term=new_term,
        interest_savings=max(0.0, savings),
        term_reduction=max(0, baseline_term - new_term),
        new_balance=new_balance if new_term else 0.0,
    )


def prepayment_benefits(
    balance: float,
    annual_rate: float,
    term_months: int,
    split: PaymentSplit,
) -> PrepaymentBenefits | None:
    """Benefits of a payment already split by :func:`split_payment`.

    The baseline is the balance a regular instalment would have left, so the
    savings only count what the extra amount achieved.
    """

    if not split.is_prepayment:
        return None
    accrued = balance * monthly_rate(annual_rate)
    baseline = max(0.0, balance - max(0.0, split.emi - accrued))
    if baseline <= CENT:
        baseline = 0.0
    return _compare_schedules(baseline, split.new_balance, annual_rate, split.emi)


@dataclass(frozen=True)
class PrepaymentScenario:
    """What-if result for a prospective pre-payment.

    ``reduced_emi`` is the alternative of keeping the tenure and lowering the
    instalment instead.
    """

    is_full_prepayment: bool
    current_emi: float
    new_balance: float
    new_emi: float
    new_term: int
    interest_savings: float
    term_reduction: int
    monthly_savings: float
    reduced_emi: float


def prepayment_scenario(
    balance: float,
    annual_rate: float,
    term_months: int,
    prepayment: float,
) -> PrepaymentScenario:
    """Model a lump-sum pre-payment of ``prepayment`` on top of the schedule."""

    if prepayment <= 0:
        raise ValueError("Pre-payment amount must be positive")
    term = max(1, term_months)
    current_emi = calculate_emi(balance, annual_rate, term)
    new_balance = max(0.0, balance - prepayment)
    if new_balance <= CENT:
        new_balance = 0.0
    benefits = _compare_schedules(balance, new_balance, annual_rate, current_emi)
    is_full = benefits.new_term == 0
    reduced_emi = 0.0 if is_full else calculate_emi(new_balance, annual_rate, term)
    return PrepaymentScenario(
        is_full_prepayment=is_full,
        current_emi=current_emi,
        new_balance=benefits.new_balance,
        new_emi=benefits.new_emi,
        new_term=benefits.new_term,
        interest_savings=benefits.interest_savings,
        term_reduction=benefits.term_reduction,
        monthly_savings=current_emi * benefits.term_reduction,
        reduced_emi=reduced_emi,
    )


def months_elapsed(start: date, today: date) -> int:
    """Whole calendar months between ``start`` and ``today`` (never negative)."""

    return max(0, (today.year - start.year) * 12 + (today.month - start.month))
