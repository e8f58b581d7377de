"""Service for subscription queries and user actions."""

from typing import List, Optional
from datetime import datetime
from sqlalchemy.orm import Session
import logging

from wastewatch.exceptions import InvalidTransition, SubscriptionNotFound
from wastewatch.models.subscription import CancelSource, Subscription, SubscriptionStatus

logger = logging.getLogger(__name__)


def get_subscriptions(
    db: Session,
    status: Optional[SubscriptionStatus] = None,
    account_id: Optional[str] = None
) -> List[Subscription]:
    """Get subscriptions, optionally filtered by status and account."""
    query = db.query(Subscription)

    if status:
        query = query.filter(Subscription.status == status)

    if account_id:
        query = query.filter(Subscription.account_id == account_id)

    return query.order_by(Subscription.merchant).all()


def get_subscription(db: Session, subscription_id: str) -> Subscription:
    subscription = db.query(Subscription).filter(Subscription.id == subscription_id).first()
    if not subscription:
        raise SubscriptionNotFound(subscription_id)
    return subscription


def _transition(subscription: Subscription, target: SubscriptionStatus) -> None:
    if subscription.status == target:
        return
    if not subscription.status.can_transition(target):
        raise InvalidTransition(subscription.status, target)
    subscription.status = target


def _finish(db: Session, subscription: Subscription, now: datetime, commit: bool) -> Subscription:
    subscription.user_action_at = now
    if commit:
        db.commit()
        db.refresh(subscription)
    else:
        db.flush()
    return subscription


def _clear_cancellation(subscription: Subscription) -> None:
    subscription.cancelled_at = None
    subscription.cancel_source = None
    subscription.cancelled_last_seen = None
    subscription.cancelled_monthly_amount = None


def acknowledge(db: Session, subscription_id: str, now: Optional[datetime] = None, commit: bool = True) -> Subscription:
    """
    User confirms they know about (and keep) this subscription.
    A zombie goes back to active; it is only flagged again for a cycle missed after now.
    """
    now = now or datetime.utcnow()
    subscription = get_subscription(db, subscription_id)
    if subscription.status not in (SubscriptionStatus.active, SubscriptionStatus.zombie):
        raise InvalidTransition(subscription.status, SubscriptionStatus.active)

    _transition(subscription, SubscriptionStatus.active)
    subscription.user_acknowledged = True
    subscription.acknowledged_at = now
    logger.info("Subscription %s acknowledged", subscription.merchant)
    return _finish(db, subscription, now, commit)


def cancel(db: Session, subscription_id: str, now: Optional[datetime] = None, commit: bool = True) -> Subscription:
    """User cancelled the subscription. Its monthly cost counts toward savings."""
    now = now or datetime.utcnow()
    subscription = get_subscription(db, subscription_id)
    _transition(subscription, SubscriptionStatus.cancelled)

    subscription.cancel_source = CancelSource.user
    subscription.cancelled_at = now.date()
    subscription.cancelled_last_seen = subscription.last_seen
    subscription.cancelled_monthly_amount = subscription.monthly_amount
    logger.info("Subscription %s cancelled by user", subscription.merchant)
    return _finish(db, subscription, now, commit)


def exclude(db: Session, subscription_id: str, now: Optional[datetime] = None, commit: bool = True) -> Subscription:
    """User says this is not a subscription. Detectors ignore it from now on."""
    now = now or datetime.utcnow()
    subscription = get_subscription(db, subscription_id)
    _transition(subscription, SubscriptionStatus.excluded)
    logger.info("Subscription %s excluded", subscription.merchant)
    return _finish(db, subscription, now, commit)


def unexclude(db: Session, subscription_id: str, now: Optional[datetime] = None, commit: bool = True) -> Subscription:
    now = now or datetime.utcnow()
    subscription = get_subscription(db, subscription_id)
    if subscription.status != SubscriptionStatus.excluded:
        raise InvalidTransition(subscription.status, SubscriptionStatus.active)
    _transition(subscription, SubscriptionStatus.active)
    _clear_cancellation(subscription)
    return _finish(db, subscription, now, commit)


def reactivate(db: Session, subscription_id: str, now: Optional[datetime] = None, commit: bool = True) -> Subscription:
    """Undo a cancellation (user or automatic)."""
    now = now or datetime.utcnow()
    subscription = get_subscription(db, subscription_id)
    if subscription.status != SubscriptionStatus.cancelled:
        raise InvalidTransition(subscription.status, SubscriptionStatus.active)
    _transition(subscription, SubscriptionStatus.active)
    _clear_cancellation(subscription)
    return _finish(db, subscription, now, commit)


def delete_subscription(db: Session, subscription_id: str) -> None:
    """Delete a subscription and its alerts. The miner recreates it if the charges continue."""
    subscription = get_subscription(db, subscription_id)
    for alert in subscription.alerts:
        db.delete(alert)
    db.delete(subscription)
    db.commit()
