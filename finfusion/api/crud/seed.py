"""Reference data installed by ``finfusion seed``."""
from __future__ import annotations

import logging
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models

LOG = logging.getLogger(__name__)

SYSTEM_CATEGORIES: List[Dict[str, str]] = [
    {"name": "Salary", "type": "INCOME", "icon": "💼", "color": "#4CAF50"},
    {"name": "Freelance", "type": "INCOME", "icon": "💻", "color": "#2196F3"},
    {"name": "Investment", "type": "INCOME", "icon": "📈", "color": "#FF9800"},
    {"name": "Business", "type": "INCOME", "icon": "🏢", "color": "#9C27B0"},
    {"name": "Other Income", "type": "INCOME", "icon": "💰", "color": "#607D8B"},
    {"name": "Food & Dining", "type": "EXPENSE", "icon": "🍽️", "color": "#F44336"},
    {"name": "Transportation", "type": "EXPENSE", "icon": "🚗", "color": "#3F51B5"},
    {"name": "Shopping", "type": "EXPENSE", "icon": "🛍️", "color": "#E91E63"},
    {"name": "Entertainment", "type": "EXPENSE", "icon": "🎬", "color": "#FF5722"},
    {"name": "Bills & Utilities", "type": "EXPENSE", "icon": "⚡", "color": "#FFC107"},
    {"name": "Healthcare", "type": "EXPENSE", "icon": "🏥", "color": "#4CAF50"},
    {"name": "Education", "type": "EXPENSE", "icon": "📚", "color": "#2196F3"},
    {"name": "Travel", "type": "EXPENSE", "icon": "✈️", "color": "#00BCD4"},
    {"name": "Personal Care", "type": "EXPENSE", "icon": "💄", "color": "#E91E63"},
    {"name": "Home & Garden", "type": "EXPENSE", "icon": "🏠", "color": "#8BC34A"},
    {"name": "Technology", "type": "EXPENSE", "icon": "💻", "color": "#607D8B"},
    {"name": "Sports & Fitness", "type": "EXPENSE", "icon": "🏃", "color": "#FF9800"},
    {"name": "Gifts & Donations", "type": "EXPENSE", "icon": "🎁", "color": "#9C27B0"},
    {"name": "Insurance", "type": "EXPENSE", "icon": "🛡️", "color": "#795548"},
    {"name": "Taxes", "type": "EXPENSE", "icon": "📋", "color": "#FF5722"},
    {"name": "Other Expenses", "type": "EXPENSE", "icon": "📝", "color": "#9E9E9E"},
]

DEFAULT_PAYMENT_METHODS: List[Dict[str, str]] = [
    {"code": "CASH", "name": "Cash", "description": "Physical cash transactions"},
    {"code": "CARD", "name": "Card", "description": "Credit or debit card transactions"},
    {"code": "BANK_TRANSFER", "name": "Bank Transfer", "description": "Direct bank transfers"},
    {
        "code": "DIGITAL_WALLET",
        "name": "Digital Wallet",
        "description": "Digital wallet payments (PayPal, Apple Pay, etc.)",
    },
    {"code": "UPI", "name": "UPI", "description": "Unified Payments Interface transactions"},
    {"code": "OTHER", "name": "Other", "description": "Other payment methods"},
]


def seed_system_categories(session: Session) -> int:
    """Insert or refresh the shared categories; returns how many were created."""
    created = 0
    for entry in SYSTEM_CATEGORIES:
        stmt = select(models.Category).where(
            models.Category.is_system.is_(True),
            models.Category.name == entry["name"],
            models.Category.type == entry["type"],
        )
        category = session.scalars(stmt).first()
        if category is None:
            session.add(models.Category(is_system=True, user_id=None, **entry))
            created += 1
        else:
            category.icon = entry["icon"]
            category.color = entry["color"]
    session.flush()
    return created


def seed_payment_methods(session: Session) -> int:
    created = 0
    for entry in DEFAULT_PAYMENT_METHODS:
        method = session.scalars(
            select(models.PaymentMethod).where(models.PaymentMethod.code == entry["code"])
        ).first()
        if method is None:
            session.add(models.PaymentMethod(**entry))
            created += 1
        else:
            method.name = entry["name"]
            method.description = entry["description"]
    session.flush()
    return created


def seed_all(session: Session) -> Dict[str, int]:
    counts = {
        "categories": seed_system_categories(session),
        "payment_methods": seed_payment_methods(session),
    }
    LOG.info("Seeded %d categories and %d payment methods", counts["categories"], counts["payment_methods"])
    return counts
