"""
Pydantic schemas package.
"""

from wastewatch.schemas.alert import (
    AlertUpdate,
    AlertResponse,
    AlertsListResponse,
    UnreadCountResponse,
    PruneRequest,
    PruneResponse,
    DetectionSettingsUpdate,
    DetectionSettingsResponse,
)
from wastewatch.schemas.detection import (
    DetectionRunRequest,
    DetectorFailureResponse,
    DetectionReportResponse,
)
from wastewatch.schemas.report import (
    WasteReport,
    CancelledSubscription,
    SavingsReport,
)
from wastewatch.schemas.subscription import (
    SubscriptionResponse,
    SubscriptionsListResponse,
)

__all__ = [
    "AlertUpdate",
    "AlertResponse",
    "AlertsListResponse",
    "UnreadCountResponse",
    "PruneRequest",
    "PruneResponse",
    "DetectionSettingsUpdate",
    "DetectionSettingsResponse",
    "DetectionRunRequest",
    "DetectorFailureResponse",
    "DetectionReportResponse",
    "WasteReport",
    "CancelledSubscription",
    "SavingsReport",
    "SubscriptionResponse",
    "SubscriptionsListResponse",
]
