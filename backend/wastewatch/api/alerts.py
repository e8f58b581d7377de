"""API endpoints for alerts management."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional

from wastewatch.dependencies import get_db
from wastewatch.exceptions import AlertNotFound, InvalidTransition, SubscriptionNotFound
from wastewatch.models.alert import AlertType
from wastewatch.schemas.alert import (
    AlertResponse,
    AlertsListResponse,
    AlertUpdate,
    UnreadCountResponse,
    PruneRequest,
    PruneResponse,
    DetectionSettingsResponse,
    DetectionSettingsUpdate,
)
from wastewatch.services import alerts_service

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.get("", response_model=AlertsListResponse)
def get_alerts(
    is_read: Optional[bool] = Query(None),
    include_dismissed: bool = Query(False),
    include_resolved: bool = Query(False),
    type: Optional[AlertType] = Query(None),
    subscription_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Get alerts with optional filters. Open alerts only unless asked otherwise."""
    alerts = alerts_service.get_alerts(
        db,
        is_read=is_read,
        include_dismissed=include_dismissed,
        include_resolved=include_resolved,
        alert_type=type,
        subscription_id=subscription_id,
        limit=limit
    )
    unread_count = alerts_service.get_unread_count(db)

    return AlertsListResponse(
        items=[AlertResponse.model_validate(a) for a in alerts],
        unread_count=unread_count,
        total=len(alerts)
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(db: Session = Depends(get_db)):
    """Get count of unread alerts."""
    count = alerts_service.get_unread_count(db)
    return UnreadCountResponse(count=count)


@router.post("/mark-all-read")
def mark_all_read(db: Session = Depends(get_db)):
    """Mark all alerts as read."""
    count = alerts_service.mark_all_read(db)
    return {"marked_read": count}


@router.post("/prune", response_model=PruneResponse)
def prune_alerts(
    request: Optional[PruneRequest] = None,
    db: Session = Depends(get_db)
):
    """Delete old dismissed and resolved alerts."""
    older_than_days = request.older_than_days if request else None
    deleted = alerts_service.prune_alerts(db, older_than_days=older_than_days)
    return PruneResponse(deleted=deleted)


@router.get("/settings", response_model=DetectionSettingsResponse)
def get_detection_settings(db: Session = Depends(get_db)):
    """Get detection settings."""
    settings = alerts_service.get_or_create_settings(db)
    return DetectionSettingsResponse.model_validate(settings)


@router.patch("/settings", response_model=DetectionSettingsResponse)
def update_detection_settings(
    update: DetectionSettingsUpdate,
    db: Session = Depends(get_db)
):
    """Update detection settings."""
    settings = alerts_service.update_settings(db, update.model_dump(exclude_unset=True))
    return DetectionSettingsResponse.model_validate(settings)


@router.patch("/{alert_id}", response_model=AlertResponse)
def update_alert(
    alert_id: str,
    update: AlertUpdate,
    db: Session = Depends(get_db)
):
    """Mark an alert read or dismiss it."""
    try:
        alert = alerts_service.update_alert(db, alert_id, is_read=update.is_read, dismissed=update.dismissed)
    except AlertNotFound:
        raise HTTPException(status_code=404, detail="Alert not found")
    return AlertResponse.model_validate(alert)


@router.post("/{alert_id}/restore", response_model=AlertResponse)
def restore_alert(alert_id: str, db: Session = Depends(get_db)):
    """Undo a dismissal."""
    try:
        alert = alerts_service.restore_alert(db, alert_id)
    except AlertNotFound:
        raise HTTPException(status_code=404, detail="Alert not found")
    return AlertResponse.model_validate(alert)


@router.post("/{alert_id}/dismiss-exclude", response_model=AlertResponse)
def dismiss_and_exclude(alert_id: str, db: Session = Depends(get_db)):
    """Dismiss the alert and mark its subscription as not a subscription."""
    try:
        alert = alerts_service.dismiss_and_exclude(db, alert_id)
    except (AlertNotFound, SubscriptionNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AlertResponse.model_validate(alert)


@router.delete("/{alert_id}")
def delete_alert(
    alert_id: str,
    db: Session = Depends(get_db)
):
    """Permanently delete an alert."""
    try:
        alerts_service.delete_alert(db, alert_id)
    except AlertNotFound:
        raise HTTPException(status_code=404, detail="Alert not found")

    return {"deleted": True}
