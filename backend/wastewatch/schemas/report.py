"""
Report schemas.
"""

from pydantic import BaseModel
from typing import Dict, List


class WasteReport(BaseModel):
    active_count: int
    monthly_cost: float
    yearly_cost: float
    open_alerts: Dict[str, int]
    zombie_monthly: float
    duplicate_monthly: float
    price_increase_monthly: float
    potential_monthly_savings: float


class CancelledSubscription(BaseModel):
    subscription_id: str
    merchant: str
    monthly_amount: float
    cancelled_at: str
    months_counted: int
    months_remaining: int
    savings: float


class SavingsReport(BaseModel):
    total_savings: float
    total_monthly_saved: float
    cancelled_count: int
    cancelled: List[CancelledSubscription]
