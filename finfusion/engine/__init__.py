"""Pure calculation layer of FinFusion (no database access)."""

from __future__ import annotations

from . import analytics, infra, loans, recurring

__all__ = ["analytics", "infra", "loans", "recurring"]
