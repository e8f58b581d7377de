"""Pydantic schemas for detection runs."""

from pydantic import BaseModel
from typing import Optional, Dict, List
from datetime import date


class DetectionRunRequest(BaseModel):
    account_id: Optional[str] = None


class DetectorFailureResponse(BaseModel):
    detector: str
    error: str

    model_config = {"from_attributes": True}


class DetectionReportResponse(BaseModel):
    account_id: Optional[str] = None
    today: date
    transactions_scanned: int
    skipped_transactions: int
    series_found: int
    subscriptions_created: int
    subscriptions_updated: int
    status_changes: int
    alerts_created: int
    alerts_updated: int
    alerts_suppressed: int
    alerts_resolved: int
    detector_counts: Dict[str, int]
    failed_detectors: List[DetectorFailureResponse]
    partial: bool

    model_config = {"from_attributes": True}
