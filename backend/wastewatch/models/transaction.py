"""
Transaction database model.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Date, Numeric, Text, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from wastewatch.database import Base


class Transaction(Base):
    """Ledger entry. Immutable once imported, apart from the archived flag."""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    date = Column(Date, nullable=True, index=True)  # Null means the import could not parse it
    amount = Column(Numeric(12, 2), nullable=True)  # Negative = expense, positive = income
    description = Column(Text, nullable=False, default="")
    merchant_normalized = Column(String(255), nullable=True, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    import_hash = Column(String(64), nullable=False)
    archived = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    account = relationship("Account", back_populates="transactions")
    category = relationship("Category", back_populates="transactions")
    receipts = relationship("Receipt", back_populates="transaction")
    alerts = relationship("Alert", back_populates="transaction")

    __table_args__ = (
        UniqueConstraint("account_id", "import_hash", name="uq_transaction_account_hash"),
        Index("idx_transaction_date_account", "date", "account_id"),
        Index("idx_transaction_category", "category_id"),
    )
