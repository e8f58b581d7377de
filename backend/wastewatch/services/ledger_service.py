"""Recording ledger entries with import-hash deduplication."""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from wastewatch.models.transaction import Transaction
from wastewatch.services.deduplication_service import generate_import_hash, is_duplicate

logger = logging.getLogger(__name__)


def record_transaction(
    db: Session,
    account_id: str,
    txn_date: Optional[date],
    amount: Optional[Decimal],
    description: str,
    merchant_normalized: Optional[str] = None,
    category_id: Optional[str] = None,
    commit: bool = True,
) -> Tuple[Optional[Transaction], bool]:
    """
    Add a transaction unless the account already has the same charge.

    Returns (transaction, created). A re-imported charge returns (None, False).
    """
    import_hash = generate_import_hash(txn_date, amount, description)
    if is_duplicate(db, account_id, import_hash):
        logger.debug("Skipping duplicate transaction %s on %s", description, txn_date)
        return None, False

    transaction = Transaction(
        id=str(uuid.uuid4()),
        account_id=account_id,
        date=txn_date,
        amount=amount,
        description=description,
        merchant_normalized=merchant_normalized,
        category_id=category_id,
        import_hash=import_hash,
    )
    db.add(transaction)
    if commit:
        db.commit()
    else:
        db.flush()
    return transaction, True
