"""
Receipt database model.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Date, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from wastewatch.database import Base


class Receipt(Base):
    """Parsed receipt, matched to a bank transaction by the receipts pipeline."""

    __tablename__ = "receipts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    transaction_id = Column(String(36), ForeignKey("transactions.id"), nullable=True, index=True)
    merchant = Column(String(255), nullable=True)
    receipt_date = Column(Date, nullable=True)
    total = Column(Numeric(12, 2), nullable=False)  # Itemized total before tip
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    transaction = relationship("Transaction", back_populates="receipts")
