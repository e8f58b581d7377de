"""Service for alert management and detection settings."""

from typing import List, Optional, Dict, Any
from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy.orm import Session
import logging
import uuid

from wastewatch.config import settings as app_settings
from wastewatch.exceptions import AlertNotFound
from wastewatch.models.alert import Alert, AlertType, DetectionSettings
from wastewatch.services import subscription_service

logger = logging.getLogger(__name__)


def get_or_create_settings(db: Session) -> DetectionSettings:
    """Get detection settings, creating them from config defaults if none exist."""
    settings = db.query(DetectionSettings).first()
    if not settings:
        settings = DetectionSettings(
            id=str(uuid.uuid4()),
            min_occurrences=app_settings.min_occurrences,
            price_increase_min_delta=Decimal(str(app_settings.price_increase_min_delta)),
            price_increase_min_percent=Decimal(str(app_settings.price_increase_min_percent)),
            anomaly_percent_threshold=Decimal(str(app_settings.anomaly_percent_threshold)),
            anomaly_min_delta=Decimal(str(app_settings.anomaly_min_delta)),
            anomaly_baseline_months=app_settings.anomaly_baseline_months,
            tip_ceiling_percent=Decimal(str(app_settings.tip_ceiling_percent)),
            alerts_enabled=True,
        )
        db.add(settings)
        db.commit()
        db.refresh(settings)
    return settings


def update_settings(db: Session, changes: Dict[str, Any]) -> DetectionSettings:
    """Apply a partial update to the detection settings."""
    settings = get_or_create_settings(db)
    for field, value in changes.items():
        if isinstance(value, float):
            value = Decimal(str(value))
        setattr(settings, field, value)
    settings.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(settings)
    return settings


def get_alert(db: Session, alert_id: str) -> Alert:
    alert = db.query(Alert).filter(Alert.id == alert_id).first()
    if not alert:
        raise AlertNotFound(alert_id)
    return alert


def get_alerts(
    db: Session,
    is_read: Optional[bool] = None,
    include_dismissed: bool = False,
    include_resolved: bool = False,
    alert_type: Optional[AlertType] = None,
    subscription_id: Optional[str] = None,
    limit: int = 50
) -> List[Alert]:
    """Get alerts with optional filters. Open alerts only by default."""
    query = db.query(Alert)

    if is_read is not None:
        query = query.filter(Alert.is_read == is_read)

    if not include_dismissed:
        query = query.filter(Alert.dismissed == False)

    if not include_resolved:
        query = query.filter(Alert.resolved_at.is_(None))

    if alert_type:
        query = query.filter(Alert.alert_type == alert_type)

    if subscription_id:
        query = query.filter(Alert.subscription_id == subscription_id)

    return query.order_by(Alert.created_at.desc()).limit(limit).all()


def get_unread_count(db: Session) -> int:
    """Get count of unread open alerts."""
    return db.query(Alert).filter(
        Alert.is_read == False,
        Alert.dismissed == False,
        Alert.resolved_at.is_(None)
    ).count()


def count_open_by_type(db: Session) -> Dict[str, int]:
    counts = {t.value: 0 for t in AlertType}
    for alert in db.query(Alert).filter(Alert.dismissed == False, Alert.resolved_at.is_(None)).all():
        counts[alert.alert_type.value] += 1
    return counts


def mark_all_read(db: Session) -> int:
    """Mark all alerts as read. Returns count updated."""
    result = db.query(Alert).filter(
        Alert.is_read == False
    ).update({Alert.is_read: True})
    db.commit()
    return result


def update_alert(
    db: Session,
    alert_id: str,
    is_read: Optional[bool] = None,
    dismissed: Optional[bool] = None,
    now: Optional[datetime] = None
) -> Alert:
    """Mark an alert read/unread or dismiss it."""
    alert = get_alert(db, alert_id)
    if is_read is not None:
        alert.is_read = is_read
    if dismissed is not None:
        if dismissed and not alert.dismissed:
            alert.dismissed = True
            alert.dismissed_at = now or datetime.utcnow()
        elif not dismissed and alert.dismissed:
            _restore(alert)
    db.commit()
    db.refresh(alert)
    return alert


def _restore(alert: Alert) -> None:
    alert.dismissed = False
    alert.dismissed_at = None


def restore_alert(db: Session, alert_id: str) -> Alert:
    """Undo a dismissal."""
    alert = get_alert(db, alert_id)
    _restore(alert)
    db.commit()
    db.refresh(alert)
    return alert


def dismiss_and_exclude(db: Session, alert_id: str, now: Optional[datetime] = None) -> Alert:
    """
    Dismiss an alert and exclude its subscription ("not a subscription").
    Raises ValueError when the alert has no subscription.
    """
    alert = get_alert(db, alert_id)
    if not alert.subscription_id:
        raise ValueError("Alert is not linked to a subscription")

    now = now or datetime.utcnow()
    subscription_service.exclude(db, alert.subscription_id, now=now, commit=False)
    alert.dismissed = True
    alert.dismissed_at = now
    db.commit()
    db.refresh(alert)
    return alert


def delete_alert(db: Session, alert_id: str) -> None:
    """Permanently delete an alert."""
    alert = get_alert(db, alert_id)
    db.delete(alert)
    db.commit()


def prune_alerts(db: Session, older_than_days: Optional[int] = None, now: Optional[datetime] = None) -> int:
    """
    Delete dismissed or resolved alerts not touched within the retention window.
    Open alerts are never pruned. Returns count deleted.
    """
    days = older_than_days if older_than_days is not None else app_settings.alert_retention_days
    cutoff = (now or datetime.utcnow()) - timedelta(days=days)

    stale = db.query(Alert).filter(
        (Alert.dismissed == True) | (Alert.resolved_at.isnot(None)),
        Alert.updated_at < cutoff
    ).all()
    for alert in stale:
        db.delete(alert)
    db.commit()

    logger.info("Pruned %d alerts older than %d days", len(stale), days)
    return len(stale)
