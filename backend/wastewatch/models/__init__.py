"""
Database models package.
"""

from wastewatch.models.account import Account, AccountType
from wastewatch.models.category import Category
from wastewatch.models.transaction import Transaction
from wastewatch.models.subscription import (
    Subscription,
    Frequency,
    SubscriptionStatus,
    CancelSource,
    monthly_equivalent,
)
from wastewatch.models.alert import Alert, AlertType, Severity, DetectionSettings
from wastewatch.models.receipt import Receipt

__all__ = [
    "Account",
    "AccountType",
    "Category",
    "Transaction",
    "Subscription",
    "Frequency",
    "SubscriptionStatus",
    "CancelSource",
    "monthly_equivalent",
    "Alert",
    "AlertType",
    "Severity",
    "DetectionSettings",
    "Receipt",
]
