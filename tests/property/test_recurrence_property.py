from __future__ import annotations

from datetime import date, timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from finfusion.engine.recurring import FREQUENCIES, is_due, next_occurrence

starts = st.dates(min_value=date(2020, 1, 1), max_value=date(2026, 12, 31))
offsets = st.integers(min_value=0, max_value=800)


@settings(max_examples=200, deadline=None)
@given(starts, st.sampled_from(FREQUENCIES), offsets)
def test_is_due_agrees_with_next_occurrence(start: date, frequency: str, offset: int) -> None:
    on = start + timedelta(days=offset)
    assert is_due(start, frequency, on) == (next_occurrence(start, frequency, on) == on)


@settings(max_examples=200, deadline=None)
@given(starts, st.sampled_from(FREQUENCIES), offsets)
def test_next_occurrence_is_due_and_not_before(start: date, frequency: str, offset: int) -> None:
    after = start + timedelta(days=offset)
    upcoming = next_occurrence(start, frequency, after)
    assert upcoming is not None
    assert upcoming >= after
    assert is_due(start, frequency, upcoming)
