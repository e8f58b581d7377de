"""Pydantic schemas for alerts."""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any, List
from datetime import date, datetime
from wastewatch.models.alert import AlertType, Severity


class AlertUpdate(BaseModel):
    is_read: Optional[bool] = None
    dismissed: Optional[bool] = None


class AlertResponse(BaseModel):
    id: str
    alert_type: AlertType
    severity: Severity
    title: str
    message: str
    subscription_id: Optional[str] = None
    category_id: Optional[str] = None
    transaction_id: Optional[str] = None
    account_id: Optional[str] = None
    event_date: Optional[date] = None
    payload: Optional[Dict[str, Any]] = None
    is_read: bool
    dismissed: bool
    dismissed_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator('payload', mode='before')
    @classmethod
    def extract_payload(cls, v):
        if v is None:
            return None
        if isinstance(v, dict):
            return v
        return None

    model_config = {"from_attributes": True}


class AlertsListResponse(BaseModel):
    items: List[AlertResponse]
    unread_count: int
    total: int


class UnreadCountResponse(BaseModel):
    count: int


class PruneRequest(BaseModel):
    older_than_days: Optional[int] = Field(None, ge=0)


class PruneResponse(BaseModel):
    deleted: int


class DetectionSettingsUpdate(BaseModel):
    min_occurrences: Optional[int] = Field(None, ge=2)
    price_increase_min_delta: Optional[float] = Field(None, ge=0)
    price_increase_min_percent: Optional[float] = Field(None, ge=0)
    anomaly_percent_threshold: Optional[float] = Field(None, ge=0)
    anomaly_min_delta: Optional[float] = Field(None, ge=0)
    anomaly_baseline_months: Optional[int] = Field(None, ge=1, le=24)
    tip_ceiling_percent: Optional[float] = Field(None, ge=0)
    alerts_enabled: Optional[bool] = None


class DetectionSettingsResponse(BaseModel):
    id: str
    min_occurrences: int
    price_increase_min_delta: float
    price_increase_min_percent: float
    anomaly_percent_threshold: float
    anomaly_min_delta: float
    anomaly_baseline_months: int
    tip_ceiling_percent: float
    alerts_enabled: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
