"""API endpoints for subscriptions and user actions on them."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Callable, Optional

from wastewatch.dependencies import get_db
from wastewatch.exceptions import InvalidTransition, SubscriptionNotFound
from wastewatch.models.subscription import Subscription, SubscriptionStatus
from wastewatch.schemas.subscription import SubscriptionResponse, SubscriptionsListResponse
from wastewatch.services import subscription_service

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def _apply(action: Callable[..., Subscription], db: Session, subscription_id: str) -> SubscriptionResponse:
    try:
        subscription = action(db, subscription_id)
    except SubscriptionNotFound:
        raise HTTPException(status_code=404, detail="Subscription not found")
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SubscriptionResponse.model_validate(subscription)


@router.get("", response_model=SubscriptionsListResponse)
def get_subscriptions(
    status: Optional[SubscriptionStatus] = Query(None),
    account_id: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """List subscriptions."""
    subscriptions = subscription_service.get_subscriptions(db, status=status, account_id=account_id)
    return SubscriptionsListResponse(
        items=[SubscriptionResponse.model_validate(s) for s in subscriptions],
        total=len(subscriptions)
    )


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
def get_subscription(
    subscription_id: str,
    db: Session = Depends(get_db)
):
    """Get a single subscription."""
    return _apply(subscription_service.get_subscription, db, subscription_id)


@router.post("/{subscription_id}/acknowledge", response_model=SubscriptionResponse)
def acknowledge_subscription(subscription_id: str, db: Session = Depends(get_db)):
    """Keep this subscription; stop flagging it until another cycle is missed."""
    return _apply(subscription_service.acknowledge, db, subscription_id)


@router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
def cancel_subscription(subscription_id: str, db: Session = Depends(get_db)):
    """Record that the user cancelled this subscription."""
    return _apply(subscription_service.cancel, db, subscription_id)


@router.post("/{subscription_id}/exclude", response_model=SubscriptionResponse)
def exclude_subscription(subscription_id: str, db: Session = Depends(get_db)):
    """Mark as not a subscription."""
    return _apply(subscription_service.exclude, db, subscription_id)


@router.post("/{subscription_id}/unexclude", response_model=SubscriptionResponse)
def unexclude_subscription(subscription_id: str, db: Session = Depends(get_db)):
    return _apply(subscription_service.unexclude, db, subscription_id)


@router.post("/{subscription_id}/reactivate", response_model=SubscriptionResponse)
def reactivate_subscription(subscription_id: str, db: Session = Depends(get_db)):
    return _apply(subscription_service.reactivate, db, subscription_id)


@router.delete("/{subscription_id}")
def delete_subscription(
    subscription_id: str,
    db: Session = Depends(get_db)
):
    """Delete a subscription and its alerts."""
    try:
        subscription_service.delete_subscription(db, subscription_id)
    except SubscriptionNotFound:
        raise HTTPException(status_code=404, detail="Subscription not found")

    return {"deleted": True}
