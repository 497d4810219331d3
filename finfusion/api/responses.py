"""Builders for the ``{"success": ..., "data": ...}`` response envelope."""
from __future__ import annotations

from typing import Any, Optional, Sequence

from .crud.common import page_count


def ok(data: Any, message: Optional[str] = None) -> dict[str, Any]:
    return {"success": True, "data": data, "message": message}


def paginated(items: Sequence[Any], page: int, limit: int, total: int) -> dict[str, Any]:
    return {
        "success": True,
        "data": list(items),
        "pagination": {"page": page, "limit": limit, "total": total, "pages": page_count(total, limit)},
    }


def done(message: str) -> dict[str, Any]:
    return {"success": True, "message": message}


def failure(error: str, details: Optional[list[dict[str, str]]] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    return body
