"""Loan amortization engine: EMI, payment splits and pre-payment modelling."""

from .amortization import (
    PaymentSplit,
    PrepaymentBenefits,
    PrepaymentScenario,
    amortization_schedule,
    as_money,
    calculate_emi,
    classify_prepayment,
    monthly_rate,
    months_elapsed,
    payoff_months,
    prepayment_benefits,
    prepayment_scenario,
    remaining_interest,
    split_payment,
)

__all__ = [
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
