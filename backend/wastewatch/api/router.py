"""
Main API router.
"""

from fastapi import APIRouter
from wastewatch.api import alerts, detection, reports, subscriptions

api_router = APIRouter()

api_router.include_router(subscriptions.router)
api_router.include_router(alerts.router)
api_router.include_router(detection.router)
api_router.include_router(reports.router)
