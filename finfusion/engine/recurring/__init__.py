from .schedule import FREQUENCIES, is_due, next_occurrence, occurrences_between, step_for

__all__ = ["FREQUENCIES", "is_due", "next_occurrence", "occurrences_between", "step_for"]
