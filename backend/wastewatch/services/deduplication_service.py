"""
Import hash for ledger deduplication.
"""

import hashlib
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from wastewatch.models.transaction import Transaction


def generate_import_hash(
    txn_date: Optional[date],
    amount: Optional[Decimal],
    description: str,
) -> str:
    """
    SHA256 over date|amount|description.
    The account is not part of the hash; uniqueness is enforced per account.
    """
    components = [
        txn_date.isoformat() if txn_date else "",
        f"{Decimal(amount):.2f}" if amount is not None else "",
        (description or "").strip().lower(),
    ]
    combined = "|".join(components)
    return hashlib.sha256(combined.encode()).hexdigest()


def is_duplicate(db: Session, account_id: str, import_hash: str) -> bool:
    """Check if this account already holds a transaction with this hash"""
    return db.query(Transaction).filter(
        Transaction.account_id == account_id,
        Transaction.import_hash == import_hash,
    ).first() is not None
