"""
Shared Enumerations for FinSync Models.

All string enumerations for type-safe field constraints.
StrEnum values compare equal to their string equivalents, so rows read
back from Supabase or SQLite validate without a mapping table.
"""

from __future__ import annotations
from enum import StrEnum


class RecordKind(StrEnum):
    """The four record collections kept in sync.

    The value doubles as the cache-key prefix and the ``kind`` column of
    the local ``record_snapshots`` table.
    """

    TRANSACTIONS = "transactions"
    BUDGETS = "budgets"
    CATEGORIES = "categories"
    GOALS = "goals"


class EntryType(StrEnum):
    """Direction of money flow for transactions and categories."""

    EXPENSE = "expense"
    INCOME = "income"


class BudgetPeriod(StrEnum):
    """Recurrence window of a budget."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class PaymentMethod(StrEnum):
    """How a transaction was settled."""

    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bankTransfer"
    DIGITAL_WALLET = "digitalWallet"
    OTHER = "other"


class GoalCategory(StrEnum):
    """What a savings goal is for."""

    EMERGENCY = "emergency"
    TRAVEL = "travel"
    HOUSE = "house"
    CAR = "car"
    EDUCATION = "education"
    INVESTMENT = "investment"
    RETIREMENT = "retirement"
    WEDDING = "wedding"
    HEALTH = "health"
    BUSINESS = "business"
    GADGETS = "gadgets"
    VACATION = "vacation"
    OTHER = "other"


class GoalType(StrEnum):
    """How progress toward a goal is made."""

    SAVINGS = "savings"
    DEBT_PAYOFF = "debtPayoff"
    INVESTMENT = "investment"
    PURCHASE = "purchase"
    EMERGENCY = "emergency"
