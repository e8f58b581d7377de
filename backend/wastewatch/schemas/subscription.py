"""Pydantic schemas for subscriptions."""

from pydantic import BaseModel
from typing import Optional, List
from datetime import date, datetime
from wastewatch.models.subscription import CancelSource, Frequency, SubscriptionStatus


class SubscriptionResponse(BaseModel):
    id: str
    merchant: str
    account_id: Optional[str] = None
    category_id: Optional[str] = None
    amount: Optional[float] = None
    monthly_amount: float
    frequency: Optional[Frequency] = None
    first_seen: Optional[date] = None
    last_seen: Optional[date] = None
    status: SubscriptionStatus
    user_acknowledged: bool
    acknowledged_at: Optional[datetime] = None
    cancelled_at: Optional[date] = None
    cancel_source: Optional[CancelSource] = None
    cancelled_monthly_amount: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SubscriptionsListResponse(BaseModel):
    items: List[SubscriptionResponse]
    total: int
