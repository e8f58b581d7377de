"""
Subscription database model.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import Column, String, Boolean, DateTime, Date, Numeric, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
import enum
from wastewatch.database import Base


class Frequency(str, enum.Enum):
    """Billing cadence inferred from charge gaps."""
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


class SubscriptionStatus(str, enum.Enum):
    """Subscription lifecycle status."""
    active = "active"
    zombie = "zombie"
    cancelled = "cancelled"
    excluded = "excluded"  # User said "not a subscription"

    def can_transition(self, target: "SubscriptionStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS = {
    SubscriptionStatus.active: {SubscriptionStatus.zombie, SubscriptionStatus.cancelled, SubscriptionStatus.excluded},
    SubscriptionStatus.zombie: {SubscriptionStatus.active, SubscriptionStatus.cancelled, SubscriptionStatus.excluded},
    SubscriptionStatus.cancelled: {SubscriptionStatus.active, SubscriptionStatus.excluded},
    SubscriptionStatus.excluded: {SubscriptionStatus.active},
}


class CancelSource(str, enum.Enum):
    """Who cancelled a subscription."""
    user = "user"
    auto = "auto"  # Merchant stopped billing


WEEKS_PER_MONTH = Decimal(52) / Decimal(12)


def monthly_equivalent(amount: Optional[Decimal], frequency: Optional[Frequency]) -> Decimal:
    """Normalize a charge amount to a monthly cost."""
    if amount is None:
        return Decimal("0")
    amount = Decimal(amount)
    if frequency == Frequency.weekly:
        value = amount * WEEKS_PER_MONTH
    elif frequency == Frequency.yearly:
        value = amount / Decimal(12)
    else:
        value = amount
    return value.quantize(Decimal("0.01"))


class Subscription(Base):
    """A recurring charge series mined from the ledger."""

    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    merchant = Column(String(255), nullable=False)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    amount = Column(Numeric(12, 2), nullable=True)  # Most recent charge, positive
    frequency = Column(Enum(Frequency), nullable=True)
    first_seen = Column(Date, nullable=True)
    last_seen = Column(Date, nullable=True)
    status = Column(Enum(SubscriptionStatus), nullable=False, default=SubscriptionStatus.active, index=True)
    user_acknowledged = Column(Boolean, default=False, nullable=False)
    acknowledged_at = Column(DateTime, nullable=True)
    cancelled_at = Column(Date, nullable=True)
    cancel_source = Column(Enum(CancelSource), nullable=True)
    cancelled_last_seen = Column(Date, nullable=True)
    cancelled_monthly_amount = Column(Numeric(12, 2), nullable=True)
    user_action_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    account = relationship("Account", back_populates="subscriptions")
    category = relationship("Category", back_populates="subscriptions")
    alerts = relationship("Alert", back_populates="subscription")

    __table_args__ = (
        UniqueConstraint("merchant", "account_id", name="uq_subscription_merchant_account"),
    )

    @property
    def monthly_amount(self) -> Decimal:
        return monthly_equivalent(self.amount, self.frequency)
