"""API endpoint for running waste detection."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional

from wastewatch.dependencies import get_db
from wastewatch.detection import run_detection
from wastewatch.exceptions import PersistenceError
from wastewatch.schemas.detection import DetectionReportResponse, DetectionRunRequest

router = APIRouter(prefix="/detection", tags=["detection"])


@router.post("/run", response_model=DetectionReportResponse)
def run(
    request: Optional[DetectionRunRequest] = None,
    db: Session = Depends(get_db)
):
    """
    Run subscription mining and all detectors.
    A failing detector shows up in `failed_detectors`; the rest still apply.
    """
    account_id = request.account_id if request else None
    try:
        report = run_detection(db, account_id=account_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return DetectionReportResponse.model_validate(report)
