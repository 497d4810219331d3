from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from finfusion.engine.loans import (
    amortization_schedule,
    as_money,
    calculate_emi,
    months_elapsed,
    payoff_months,
    prepayment_benefits,
    prepayment_scenario,
    remaining_interest,
    split_payment,
)


def test_calculate_emi_interest_free_and_standard() -> None:
    assert calculate_emi(1200, 0, 12) == pytest.approx(100.0)
    assert calculate_emi(100000, 12, 12) == pytest.approx(8884.88, abs=0.01)
    assert calculate_emi(0, 12, 12) == 0.0


def test_calculate_emi_rejects_bad_inputs() -> None:
    with pytest.raises(ValueError, match="at least one month"):
        calculate_emi(1000, 5, 0)
    with pytest.raises(ValueError, match="negative"):
        calculate_emi(1000, -1, 12)


def test_payoff_months_matches_original_term() -> None:
    emi = calculate_emi(12000, 12, 12)
    assert payoff_months(12000, 12, emi) == 12
    assert payoff_months(1200, 0, 100) == 12
    assert payoff_months(0, 12, 100) == 0


def test_payoff_months_requires_instalment_above_interest() -> None:
    with pytest.raises(ValueError, match="monthly interest"):
        payoff_months(1000, 12, 10)


def test_amortization_schedule_interest_free_with_due_dates() -> None:
    schedule = amortization_schedule(1200, 0, term_months=12, start=date(2024, 1, 1))
    assert len(schedule) == 12
    assert list(schedule["period"]) == list(range(1, 13))
    assert schedule["principal"].tolist() == [100.0] * 12
    assert schedule["interest"].sum() == 0.0
    assert schedule["balance"].iloc[-1] == 0.0
    assert schedule["due_date"].iloc[0] == date(2024, 2, 1)
    assert schedule["due_date"].iloc[-1] == date(2025, 1, 1)


def test_amortization_schedule_with_interest() -> None:
    schedule = amortization_schedule(12000, 12, term_months=12)
    assert schedule["interest"].iloc[0] == pytest.approx(120.0)
    assert schedule["principal"].sum() == pytest.approx(12000.0, abs=0.05)
    assert schedule["balance"].is_monotonic_decreasing
    assert remaining_interest(12000, 12, calculate_emi(12000, 12, 12)) == pytest.approx(
        schedule["interest"].sum()
    )


def test_amortization_schedule_empty_when_nothing_owed() -> None:
    assert amortization_schedule(0, 10, term_months=12).empty
    with pytest.raises(ValueError, match="term_months or emi"):
        amortization_schedule(1000, 10)


def test_split_payment_regular_instalment() -> None:
    split = split_payment(12000, 12, 12, 1000)
    assert split.interest == pytest.approx(120.0)
    assert split.principal == pytest.approx(880.0)
    assert split.new_balance == pytest.approx(11120.0)
    assert split.is_prepayment is False
    assert split.prepayment_type is None
    assert prepayment_benefits(12000, 12, 12, split) is None


def test_split_payment_classifies_prepayments() -> None:
    partial = split_payment(12000, 12, 12, 4000)
    assert partial.is_prepayment is True
    assert partial.prepayment_type == "PARTIAL"

    full = split_payment(12000, 12, 12, 12120)
    assert full.new_balance == 0.0
    assert full.prepayment_type == "FULL"

    flagged = split_payment(12000, 12, 12, 500, force_prepayment=True)
    assert flagged.prepayment_type == "EMI_ONLY"


def test_split_payment_rejects_overpayment_and_non_positive() -> None:
    with pytest.raises(ValueError, match="cannot exceed"):
        split_payment(12000, 12, 12, 13000)
    with pytest.raises(ValueError, match="positive"):
        split_payment(12000, 12, 12, 0)


def test_prepayment_benefits_shorten_term() -> None:
    split = split_payment(12000, 12, 12, 4000)
    benefits = prepayment_benefits(12000, 12, 12, split)
    assert benefits is not None
    assert benefits.term_reduction >= 2
    assert benefits.new_term + benefits.term_reduction <= 12
    assert benefits.interest_savings > 0
    assert benefits.new_emi == pytest.approx(split.emi)


def test_prepayment_scenario_partial_and_full() -> None:
    scenario = prepayment_scenario(12000, 12, 12, 3000)
    assert scenario.is_full_prepayment is False
    assert scenario.new_balance == pytest.approx(9000.0)
    assert scenario.new_term == 9
    assert scenario.term_reduction == 3
    assert scenario.interest_savings > 0
    assert scenario.reduced_emi < scenario.current_emi
    assert scenario.monthly_savings == pytest.approx(scenario.current_emi * 3)

    full = prepayment_scenario(12000, 12, 12, 12000)
    assert full.is_full_prepayment is True
    assert full.new_term == 0
    assert full.new_emi == 0.0
    assert full.reduced_emi == 0.0

    with pytest.raises(ValueError):
        prepayment_scenario(12000, 12, 12, 0)


def test_as_money_and_months_elapsed() -> None:
    assert as_money(1.005) == Decimal("1.01")
    assert as_money(2) == Decimal("2.00")
    assert months_elapsed(date(2024, 1, 31), date(2024, 3, 1)) == 2
    assert months_elapsed(date(2024, 5, 1), date(2024, 3, 1)) == 0
