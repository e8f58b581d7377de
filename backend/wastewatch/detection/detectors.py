"""
The seven waste detectors.

Each detector reads the run context and returns drafts. None of them touch the
database or see each other's output.
"""

import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List

from wastewatch.detection.context import DetectionContext, SubscriptionView
from wastewatch.detection.drafts import (
    AutoCancellationDraft,
    DetectorOutput,
    DuplicateDraft,
    DuplicateMember,
    PriceIncreaseDraft,
    ResumeDraft,
    SpendingAnomalyDraft,
    StatusChange,
    TipDiscrepancyDraft,
    ZombieDraft,
)
from wastewatch.detection.frequency import NOMINAL_INTERVAL_DAYS, cancellation_threshold, zombie_threshold
from wastewatch.models.subscription import CancelSource, SubscriptionStatus, monthly_equivalent

logger = logging.getLogger(__name__)

BILLING_STATUSES = (SubscriptionStatus.active, SubscriptionStatus.zombie)


def _days_since(ctx: DetectionContext, sub: SubscriptionView) -> int:
    return (ctx.today - sub.last_seen).days


def latest_missed_deadline(last_seen: date, threshold: int, interval: int, today: date) -> date:
    """
    Most recent missed-cycle deadline on or before today.

    Deadlines fall at last_seen + threshold + 1 and then every `interval` days.
    Callers guarantee today is past the first one.
    """
    first = last_seen + timedelta(days=threshold + 1)
    cycles = (today - first).days // interval
    return first + timedelta(days=cycles * interval)


def detect_zombies(ctx: DetectionContext) -> DetectorOutput:
    """Billing subscriptions that have missed a cycle."""
    out = DetectorOutput()

    for sub in ctx.subscriptions.values():
        if sub.status not in BILLING_STATUSES or sub.frequency is None or sub.last_seen is None:
            continue

        threshold = zombie_threshold(sub.frequency)
        days_since = _days_since(ctx, sub)

        if days_since > cancellation_threshold(sub.frequency):
            continue  # Auto-cancellation territory

        if days_since <= threshold:
            if sub.status == SubscriptionStatus.zombie:
                out.status_changes.append(StatusChange(
                    subscription_id=sub.id,
                    expected_status=SubscriptionStatus.zombie,
                    new_status=SubscriptionStatus.active,
                    reason="revived",
                ))
            continue

        deadline = latest_missed_deadline(
            sub.last_seen, threshold, NOMINAL_INTERVAL_DAYS[sub.frequency], ctx.today
        )

        if sub.user_acknowledged:
            if sub.acknowledged_at is None or deadline <= sub.acknowledged_at.date():
                logger.debug("Zombie %s acknowledged, no missed cycle since", sub.merchant)
                continue
            out.status_changes.append(StatusChange(
                subscription_id=sub.id,
                expected_status=sub.status,
                new_status=SubscriptionStatus.zombie,
                reason="missed cycle after acknowledgement",
                fields={"user_acknowledged": False},
            ))
        elif sub.status == SubscriptionStatus.active:
            out.status_changes.append(StatusChange(
                subscription_id=sub.id,
                expected_status=SubscriptionStatus.active,
                new_status=SubscriptionStatus.zombie,
                reason="missed cycle",
            ))

        out.alerts.append(ZombieDraft(
            event_date=deadline,
            sub_id=sub.id,
            merchant=sub.merchant,
            last_seen=sub.last_seen,
            days_since=days_since,
            amount=sub.amount or Decimal("0"),
            frequency=sub.frequency,
        ))

    return out


def detect_price_increases(ctx: DetectionContext) -> DetectorOutput:
    """Latest charge against the one before it."""
    out = DetectorOutput()
    cfg = ctx.config

    for sub_id, series in ctx.series.items():
        sub = ctx.subscriptions[sub_id]
        if sub.status not in BILLING_STATUSES or sub.frequency is None:
            continue
        previous = series.previous
        if previous is None or previous.amount <= 0:
            continue

        new_amount = series.latest.amount
        increase = new_amount - previous.amount
        if increase < cfg.price_increase_min_delta:
            continue
        if increase / previous.amount * 100 <= cfg.price_increase_min_percent:
            continue

        out.alerts.append(PriceIncreaseDraft(
            event_date=series.latest.date,
            sub_id=sub.id,
            merchant=sub.merchant,
            baseline=previous.amount,
            new_amount=new_amount,
            frequency=sub.frequency,
        ))

    return out


def detect_duplicates(ctx: DetectionContext) -> DetectorOutput:
    """Categories holding two or more billing subscriptions."""
    out = DetectorOutput()
    by_category: Dict[str, List[SubscriptionView]] = defaultdict(list)

    for sub in ctx.subscriptions.values():
        if sub.status in BILLING_STATUSES and sub.category_id:
            by_category[sub.category_id].append(sub)

    for category_id, subs in sorted(by_category.items()):
        if len(subs) < 2:
            continue
        members = tuple(
            DuplicateMember(s.id, s.merchant, monthly_equivalent(s.amount, s.frequency))
            for s in sorted(subs, key=lambda s: s.id)
        )
        # The overlap dates from when its newest member appeared
        joined = max(s.first_seen or ctx.today for s in subs)
        out.alerts.append(DuplicateDraft(
            event_date=joined,
            cat_id=category_id,
            category_name=ctx.category_name(category_id),
            members=members,
        ))

    return out


def detect_auto_cancellations(ctx: DetectionContext) -> DetectorOutput:
    """Subscriptions silent for twice the zombie threshold are treated as cancelled by the merchant."""
    out = DetectorOutput()

    for sub in ctx.subscriptions.values():
        if sub.status not in BILLING_STATUSES or sub.frequency is None or sub.last_seen is None:
            continue
        days_since = _days_since(ctx, sub)
        if days_since <= cancellation_threshold(sub.frequency):
            continue

        out.status_changes.append(StatusChange(
            subscription_id=sub.id,
            expected_status=sub.status,
            new_status=SubscriptionStatus.cancelled,
            reason="billing stopped",
            fields={
                "cancel_source": CancelSource.auto,
                "cancelled_at": ctx.today,
                "cancelled_last_seen": sub.last_seen,
                "cancelled_monthly_amount": None,
            },
        ))
        out.alerts.append(AutoCancellationDraft(
            event_date=sub.last_seen + timedelta(days=cancellation_threshold(sub.frequency) + 1),
            sub_id=sub.id,
            merchant=sub.merchant,
            last_seen=sub.last_seen,
            days_since=days_since,
        ))

    return out


def detect_resumes(ctx: DetectionContext) -> DetectorOutput:
    """Cancelled subscriptions that charged again."""
    out = DetectorOutput()

    for sub_id, series in ctx.series.items():
        sub = ctx.subscriptions[sub_id]
        if sub.status != SubscriptionStatus.cancelled or sub.frequency is None:
            continue

        # Mining refreshes last_seen, so compare against the pre-run value when the
        # cancellation did not record one
        reference = sub.cancelled_last_seen
        if reference is None and sub_id in ctx.snapshot:
            reference = ctx.snapshot[sub_id].last_seen
        if reference is None or series.last_seen <= reference:
            continue

        out.status_changes.append(StatusChange(
            subscription_id=sub.id,
            expected_status=SubscriptionStatus.cancelled,
            new_status=SubscriptionStatus.active,
            reason="charged after cancellation",
            fields={
                "cancel_source": None,
                "cancelled_at": None,
                "cancelled_last_seen": None,
                "cancelled_monthly_amount": None,
            },
        ))
        out.alerts.append(ResumeDraft(
            event_date=series.last_seen,
            sub_id=sub.id,
            merchant=sub.merchant,
            cancelled_last_seen=reference,
            amount=series.latest.amount,
        ))

    return out


def _month_start(d: date, months_back: int) -> date:
    index = d.year * 12 + d.month - 1 - months_back
    return date(index // 12, index % 12 + 1, 1)


def detect_spending_anomalies(ctx: DetectionContext) -> DetectorOutput:
    """Month-to-date category spend against the mean of the previous full months."""
    out = DetectorOutput()
    cfg = ctx.config
    period_start = ctx.period_start
    baseline_start = _month_start(period_start, cfg.anomaly_baseline_months)

    current: Dict[str, Decimal] = defaultdict(Decimal)
    history: Dict[str, Decimal] = defaultdict(Decimal)
    for entry in ctx.transactions:
        if not entry.is_expense or entry.category_id is None:
            continue
        if period_start <= entry.date <= ctx.today:
            current[entry.category_id] += -entry.amount
        elif baseline_start <= entry.date < period_start:
            history[entry.category_id] += -entry.amount

    for category_id, spent in sorted(current.items()):
        baseline = history.get(category_id, Decimal("0")) / cfg.anomaly_baseline_months
        if baseline <= 0:
            continue
        delta = spent - baseline
        percent = delta / baseline * 100
        if abs(percent) <= cfg.anomaly_percent_threshold or abs(delta) < cfg.anomaly_min_delta:
            continue

        logger.debug("Spending anomaly in %s: %s vs baseline %s", category_id, spent, baseline)
        out.alerts.append(SpendingAnomalyDraft(
            event_date=period_start,
            cat_id=category_id,
            category_name=ctx.category_name(category_id),
            baseline=baseline.quantize(Decimal("0.01")),
            current=spent,
            baseline_months=cfg.anomaly_baseline_months,
        ))

    return out


def detect_tip_discrepancies(ctx: DetectionContext) -> DetectorOutput:
    """Bank charges well above the matched receipt total."""
    out = DetectorOutput()
    ceiling_factor = 1 + ctx.config.tip_ceiling_percent / 100

    for receipt in ctx.receipts:
        if receipt.total <= 0:
            continue
        entry = ctx.transaction(receipt.transaction_id)
        if entry is None:
            continue
        bank_amount = abs(entry.amount)
        if bank_amount <= receipt.total * ceiling_factor:
            continue

        out.alerts.append(TipDiscrepancyDraft(
            event_date=entry.date,
            txn_id=entry.id,
            receipt_id=receipt.id,
            merchant=receipt.merchant or entry.merchant or "Unknown merchant",
            receipt_total=receipt.total,
            bank_amount=bank_amount,
        ))

    return out

