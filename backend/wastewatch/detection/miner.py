"""
Subscription mining.

Groups ledger expenses by (merchant, account) into charge series and works out
which Subscription rows to create or refresh. Nothing is written here; the
upserts are applied with the rest of the run by the lifecycle manager.
"""

import logging
import uuid
from collections import Counter, defaultdict
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from wastewatch.detection.context import DetectionContext, Occurrence, Series, SubscriptionView
from wastewatch.models.subscription import SubscriptionStatus

logger = logging.getLogger(__name__)


@dataclass
class SubscriptionUpsert:
    subscription_id: str
    is_new: bool
    fields: Dict[str, Any]


@dataclass
class MiningResult:
    upserts: List[SubscriptionUpsert] = field(default_factory=list)
    series_count: int = 0
    skipped_transactions: int = 0

    @property
    def created(self) -> int:
        return sum(1 for u in self.upserts if u.is_new)

    @property
    def updated(self) -> int:
        return sum(1 for u in self.upserts if not u.is_new)


def group_ledger(ctx: DetectionContext) -> Tuple[List[Series], int]:
    """
    Group expense entries into series with enough charges to count as recurring.

    Returns the series and the number of expenses skipped for having no merchant.
    """
    groups: Dict[Tuple[str, str], List[Occurrence]] = defaultdict(list)
    skipped = 0

    for entry in ctx.transactions:
        if not entry.is_expense:
            continue
        if entry.merchant is None:
            skipped += 1
            logger.debug("Skipping transaction %s: no merchant", entry.id)
            continue
        groups[(entry.merchant, entry.account_id)].append(Occurrence(
            transaction_id=entry.id,
            date=entry.date,
            amount=abs(entry.amount),
            category_id=entry.category_id,
        ))

    series = []
    for (merchant, account_id), occurrences in groups.items():
        if len(occurrences) < ctx.config.min_occurrences:
            continue
        occurrences.sort(key=lambda o: (o.date, o.transaction_id))
        series.append(Series(merchant=merchant, account_id=account_id, occurrences=occurrences))

    return series, skipped


def most_common_category(occurrences: List[Occurrence]) -> Optional[str]:
    counts = Counter(o.category_id for o in occurrences if o.category_id)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def reconcile_subscriptions(ctx: DetectionContext, series: List[Series]) -> MiningResult:
    """
    Match series against the subscription snapshot.

    New series get a fresh id and an `active` row. Existing rows get their
    amount, last_seen and frequency refreshed; status is left alone. The mined
    view is recorded on the context for the detectors.
    """
    result = MiningResult(series_count=len(series))
    by_key = {(s.merchant, s.account_id): s for s in ctx.snapshot.values()}

    for s in series:
        latest = s.latest
        existing = by_key.get((s.merchant, s.account_id))

        if existing is None:
            fields = {
                "merchant": s.merchant,
                "account_id": s.account_id,
                "category_id": most_common_category(s.occurrences),
                "amount": latest.amount,
                "frequency": s.frequency,
                "first_seen": s.first_seen,
                "last_seen": s.last_seen,
                "status": SubscriptionStatus.active,
            }
            view = SubscriptionView(id=str(uuid.uuid4()), **fields)
            result.upserts.append(SubscriptionUpsert(view.id, True, fields))
            logger.debug("New subscription %s (%s)", s.merchant, s.frequency)
        else:
            changes: Dict[str, Any] = {}
            if existing.amount != latest.amount:
                changes["amount"] = latest.amount
            if existing.last_seen != s.last_seen:
                changes["last_seen"] = s.last_seen
            frequency = s.frequency
            if frequency is None and existing.status == SubscriptionStatus.cancelled:
                # The silent stretch before a resumed charge breaks the gap majority
                frequency = existing.frequency
            if existing.frequency != frequency:
                changes["frequency"] = frequency
            if existing.first_seen is None:
                changes["first_seen"] = s.first_seen
            if existing.category_id is None:
                category_id = most_common_category(s.occurrences)
                if category_id:
                    changes["category_id"] = category_id

            view = existing
            if changes:
                view = replace(existing, **changes)
                result.upserts.append(SubscriptionUpsert(existing.id, False, changes))
                logger.debug("Refreshing subscription %s: %s", existing.merchant, sorted(changes))

        ctx.subscriptions[view.id] = view
        ctx.series[view.id] = s

    return result
