"""
Alert database models.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Date, Enum, Text, JSON, ForeignKey, Integer, Numeric, Index
from sqlalchemy.orm import relationship
import enum
from wastewatch.database import Base


class AlertType(str, enum.Enum):
    """Alert type enumeration, one per detector."""
    zombie = "zombie"
    price_increase = "price_increase"
    duplicate = "duplicate"
    auto_cancellation = "auto_cancellation"
    resume = "resume"
    spending_anomaly = "spending_anomaly"
    tip_discrepancy = "tip_discrepancy"


class Severity(str, enum.Enum):
    """Alert severity enumeration."""
    info = "info"
    warning = "warning"
    attention = "attention"


class Alert(Base):
    """Alert emitted by a detection run."""

    __tablename__ = "alerts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    alert_type = Column(Enum(AlertType), nullable=False, index=True)
    severity = Column(Enum(Severity), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    subscription_id = Column(String(36), ForeignKey("subscriptions.id"), nullable=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    transaction_id = Column(String(36), ForeignKey("transactions.id"), nullable=True)
    account_id = Column(String(36), nullable=True)  # Scope of the run that raised it
    dedup_key = Column(String(255), nullable=False, index=True)
    event_date = Column(Date, nullable=True)
    payload = Column(JSON, nullable=True)  # Type-specific data
    is_read = Column(Boolean, default=False, nullable=False, index=True)
    dismissed = Column(Boolean, default=False, nullable=False)
    dismissed_at = Column(DateTime, nullable=True)
    resolved_at = Column(DateTime, nullable=True)  # Condition cleared on a later run
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    subscription = relationship("Subscription", back_populates="alerts")
    transaction = relationship("Transaction", back_populates="alerts")

    __table_args__ = (
        Index("idx_alert_open", "dismissed", "resolved_at"),
    )

    @property
    def is_open(self) -> bool:
        return not self.dismissed and self.resolved_at is None


class DetectionSettings(Base):
    """Tunable detection thresholds, a single row."""

    __tablename__ = "detection_settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    min_occurrences = Column(Integer, default=2, nullable=False)
    price_increase_min_delta = Column(Numeric(12, 2), default=0.50, nullable=False)
    price_increase_min_percent = Column(Numeric(5, 2), default=2.0, nullable=False)
    anomaly_percent_threshold = Column(Numeric(5, 2), default=40.0, nullable=False)
    anomaly_min_delta = Column(Numeric(12, 2), default=25.0, nullable=False)
    anomaly_baseline_months = Column(Integer, default=3, nullable=False)
    tip_ceiling_percent = Column(Numeric(5, 2), default=25.0, nullable=False)
    alerts_enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
