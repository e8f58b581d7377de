"""Waste and savings reports built from subscriptions and open alerts."""

from typing import Dict, Any, Optional
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session

from wastewatch.models.alert import Alert, AlertType
from wastewatch.models.subscription import CancelSource, Subscription, SubscriptionStatus
from wastewatch.services.alerts_service import count_open_by_type

SAVINGS_CAP_MONTHS = 12


def _payload_amount(alert: Alert, key: str) -> Decimal:
    value = (alert.payload or {}).get(key)
    return Decimal(str(value)) if value is not None else Decimal("0")


def get_waste_report(db: Session, account_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Current subscription spend and how much of it looks like waste.
    Potential savings = open zombies + duplicate overlap + price increase deltas, monthly.
    """
    query = db.query(Subscription).filter(Subscription.status == SubscriptionStatus.active)
    if account_id:
        query = query.filter(Subscription.account_id == account_id)
    active = query.all()
    monthly_cost = sum((s.monthly_amount for s in active), Decimal("0"))

    open_alerts = db.query(Alert).filter(
        Alert.dismissed == False,
        Alert.resolved_at.is_(None),
        Alert.alert_type.in_([AlertType.zombie, AlertType.duplicate, AlertType.price_increase])
    ).all()

    zombie = Decimal("0")
    duplicate = Decimal("0")
    price_increase = Decimal("0")
    for alert in open_alerts:
        if alert.alert_type == AlertType.zombie:
            zombie += _payload_amount(alert, "monthly_amount")
        elif alert.alert_type == AlertType.duplicate:
            duplicate += _payload_amount(alert, "potential_savings")
        else:
            price_increase += _payload_amount(alert, "monthly_increase")

    return {
        "active_count": len(active),
        "monthly_cost": float(monthly_cost),
        "yearly_cost": float(monthly_cost * 12),
        "open_alerts": count_open_by_type(db),
        "zombie_monthly": float(zombie),
        "duplicate_monthly": float(duplicate),
        "price_increase_monthly": float(price_increase),
        "potential_monthly_savings": float(zombie + duplicate + price_increase),
    }


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start to end."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def get_savings_report(db: Session, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Savings from subscriptions the user cancelled, counted for at most 12 months.
    Automatic cancellations are not the user's doing and are left out.
    """
    today = today or date.today()

    cancelled = db.query(Subscription).filter(
        Subscription.status == SubscriptionStatus.cancelled,
        Subscription.cancel_source == CancelSource.user,
        Subscription.cancelled_at.isnot(None),
        Subscription.cancelled_monthly_amount > 0
    ).order_by(Subscription.cancelled_at.desc()).all()

    items = []
    total_savings = Decimal("0")
    total_monthly = Decimal("0")
    for s in cancelled:
        monthly = Decimal(s.cancelled_monthly_amount)
        counted = max(0, min(SAVINGS_CAP_MONTHS, months_between(s.cancelled_at, today)))
        savings = monthly * counted
        total_savings += savings
        total_monthly += monthly
        items.append({
            "subscription_id": s.id,
            "merchant": s.merchant,
            "monthly_amount": float(monthly),
            "cancelled_at": s.cancelled_at.isoformat(),
            "months_counted": counted,
            "months_remaining": SAVINGS_CAP_MONTHS - counted,
            "savings": float(savings),
        })

    return {
        "total_savings": float(total_savings),
        "total_monthly_saved": float(total_monthly),
        "cancelled_count": len(items),
        "cancelled": items,
    }
