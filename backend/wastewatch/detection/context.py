"""Per-run detection context: thresholds plus a read-only snapshot of the ledger and subscriptions."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from wastewatch.models.alert import DetectionSettings
from wastewatch.models.category import Category
from wastewatch.models.receipt import Receipt
from wastewatch.models.subscription import Frequency, Subscription, SubscriptionStatus
from wastewatch.models.transaction import Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionConfig:
    min_occurrences: int = 2
    price_increase_min_delta: Decimal = Decimal("0.50")
    price_increase_min_percent: Decimal = Decimal("2.0")
    anomaly_percent_threshold: Decimal = Decimal("40.0")
    anomaly_min_delta: Decimal = Decimal("25.00")
    anomaly_baseline_months: int = 3
    tip_ceiling_percent: Decimal = Decimal("25.0")
    alerts_enabled: bool = True

    @classmethod
    def from_settings(cls, row: DetectionSettings) -> "DetectionConfig":
        return cls(
            min_occurrences=max(2, row.min_occurrences),
            price_increase_min_delta=Decimal(str(row.price_increase_min_delta)),
            price_increase_min_percent=Decimal(str(row.price_increase_min_percent)),
            anomaly_percent_threshold=Decimal(str(row.anomaly_percent_threshold)),
            anomaly_min_delta=Decimal(str(row.anomaly_min_delta)),
            anomaly_baseline_months=max(1, row.anomaly_baseline_months),
            tip_ceiling_percent=Decimal(str(row.tip_ceiling_percent)),
            alerts_enabled=row.alerts_enabled,
        )


@dataclass(frozen=True)
class LedgerEntry:
    id: str
    account_id: str
    date: date
    amount: Decimal
    merchant: Optional[str]
    category_id: Optional[str]

    @property
    def is_expense(self) -> bool:
        return self.amount < 0


@dataclass(frozen=True)
class SubscriptionView:
    id: str
    merchant: str
    account_id: Optional[str]
    category_id: Optional[str]
    amount: Optional[Decimal]
    frequency: Optional[Frequency]
    first_seen: Optional[date]
    last_seen: Optional[date]
    status: SubscriptionStatus
    user_acknowledged: bool = False
    acknowledged_at: Optional[datetime] = None
    cancelled_last_seen: Optional[date] = None

    @classmethod
    def from_row(cls, row: Subscription) -> "SubscriptionView":
        return cls(
            id=row.id,
            merchant=row.merchant,
            account_id=row.account_id,
            category_id=row.category_id,
            amount=Decimal(row.amount) if row.amount is not None else None,
            frequency=row.frequency,
            first_seen=row.first_seen,
            last_seen=row.last_seen,
            status=row.status,
            user_acknowledged=bool(row.user_acknowledged),
            acknowledged_at=row.acknowledged_at,
            cancelled_last_seen=row.cancelled_last_seen,
        )


@dataclass(frozen=True)
class Occurrence:
    transaction_id: str
    date: date
    amount: Decimal  # Positive charge amount
    category_id: Optional[str]


@dataclass
class Series:
    """Charges from one merchant on one account, oldest first."""

    merchant: str
    account_id: str
    occurrences: List[Occurrence]
    frequency: Optional[Frequency] = None

    @property
    def dates(self) -> List[date]:
        return [o.date for o in self.occurrences]

    @property
    def first_seen(self) -> date:
        return self.occurrences[0].date

    @property
    def last_seen(self) -> date:
        return self.occurrences[-1].date

    @property
    def latest(self) -> Occurrence:
        return self.occurrences[-1]

    @property
    def previous(self) -> Optional[Occurrence]:
        if len(self.occurrences) < 2:
            return None
        return self.occurrences[-2]


@dataclass(frozen=True)
class ReceiptView:
    id: str
    transaction_id: str
    merchant: Optional[str]
    total: Decimal


@dataclass
class DetectionContext:
    """
    Everything one detection run reads.

    The snapshot is taken once at the start of the run. Stages add their
    outputs (mined subscriptions and charge series) but never touch the
    database; writes happen in the lifecycle manager at the end.
    """

    today: date
    started_at: datetime
    account_id: Optional[str]
    config: DetectionConfig
    transactions: List[LedgerEntry]
    snapshot: Dict[str, SubscriptionView]
    receipts: List[ReceiptView]
    categories: Dict[str, str]
    skipped_transactions: int = 0
    subscriptions: Dict[str, SubscriptionView] = field(default_factory=dict)
    series: Dict[str, Series] = field(default_factory=dict)  # Keyed by subscription id
    _by_id: Dict[str, LedgerEntry] = field(init=False, repr=False)

    def __post_init__(self):
        self._by_id = {t.id: t for t in self.transactions}

    @property
    def scope(self) -> str:
        return self.account_id or "all"

    @property
    def period_start(self) -> date:
        return self.today.replace(day=1)

    def transaction(self, transaction_id: str) -> Optional[LedgerEntry]:
        return self._by_id.get(transaction_id)

    def category_name(self, category_id: Optional[str]) -> str:
        if category_id is None:
            return "Uncategorized"
        return self.categories.get(category_id, "Unknown category")


def load_context(
    db: Session,
    config: DetectionConfig,
    account_id: Optional[str] = None,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> DetectionContext:
    """Take the start-of-run snapshot."""
    started_at = now or datetime.utcnow()
    today = today or started_at.date()

    txn_query = db.query(Transaction).filter(Transaction.archived == False)  # noqa: E712
    if account_id:
        txn_query = txn_query.filter(Transaction.account_id == account_id)

    entries = []
    skipped = 0
    for t in txn_query.order_by(Transaction.date, Transaction.id).all():
        if t.date is None or t.amount is None:
            skipped += 1
            logger.debug("Skipping transaction %s: missing date or amount", t.id)
            continue
        merchant = (t.merchant_normalized or "").strip() or None
        entries.append(LedgerEntry(
            id=t.id,
            account_id=t.account_id,
            date=t.date,
            amount=Decimal(t.amount),
            merchant=merchant,
            category_id=t.category_id,
        ))

    sub_query = db.query(Subscription)
    if account_id:
        sub_query = sub_query.filter(Subscription.account_id == account_id)
    snapshot = {s.id: SubscriptionView.from_row(s) for s in sub_query.all()}

    txn_ids = {e.id for e in entries}
    receipts = [
        ReceiptView(id=r.id, transaction_id=r.transaction_id, merchant=r.merchant, total=Decimal(r.total))
        for r in db.query(Receipt).filter(Receipt.transaction_id.isnot(None)).all()
        if r.transaction_id in txn_ids
    ]

    categories = {c.id: c.name for c in db.query(Category).all()}

    return DetectionContext(
        today=today,
        started_at=started_at,
        account_id=account_id,
        config=config,
        transactions=entries,
        snapshot=snapshot,
        receipts=receipts,
        categories=categories,
        skipped_transactions=skipped,
        subscriptions=dict(snapshot),
    )
