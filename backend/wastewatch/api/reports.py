"""
Report API endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from wastewatch.dependencies import get_db
from wastewatch.schemas.report import SavingsReport, WasteReport
from wastewatch.services import report_service

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/waste", response_model=WasteReport)
def get_waste_report(
    account_id: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """Monthly subscription cost and potential savings from open alerts."""
    return report_service.get_waste_report(db, account_id=account_id)


@router.get("/savings", response_model=SavingsReport)
def get_savings_report(db: Session = Depends(get_db)):
    """Savings from subscriptions the user cancelled."""
    return report_service.get_savings_report(db)
