"""
Detection run orchestration: mine, classify, detect, persist.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from wastewatch.detection.context import DetectionConfig, DetectionContext, load_context
from wastewatch.detection.detectors import (
    detect_auto_cancellations,
    detect_duplicates,
    detect_price_increases,
    detect_resumes,
    detect_spending_anomalies,
    detect_tip_discrepancies,
    detect_zombies,
)
from wastewatch.detection.drafts import DetectorOutput
from wastewatch.detection.frequency import classify_series
from wastewatch.detection.lifecycle import AlertLifecycleManager, LifecycleResult
from wastewatch.detection.miner import group_ledger, reconcile_subscriptions
from wastewatch.models.alert import AlertType
from wastewatch.services.alerts_service import get_or_create_settings

logger = logging.getLogger(__name__)

Detector = Callable[[DetectionContext], DetectorOutput]

DETECTORS: Tuple[Tuple[str, AlertType, Detector], ...] = (
    ("zombie", AlertType.zombie, detect_zombies),
    ("price_increase", AlertType.price_increase, detect_price_increases),
    ("duplicate", AlertType.duplicate, detect_duplicates),
    ("auto_cancellation", AlertType.auto_cancellation, detect_auto_cancellations),
    ("resume", AlertType.resume, detect_resumes),
    ("spending_anomaly", AlertType.spending_anomaly, detect_spending_anomalies),
    ("tip_discrepancy", AlertType.tip_discrepancy, detect_tip_discrepancies),
)


@dataclass
class DetectorFailure:
    detector: str
    error: str


@dataclass
class DetectionReport:
    account_id: Optional[str]
    today: date
    transactions_scanned: int = 0
    skipped_transactions: int = 0
    series_found: int = 0
    subscriptions_created: int = 0
    subscriptions_updated: int = 0
    status_changes: int = 0
    alerts_created: int = 0
    alerts_updated: int = 0
    alerts_suppressed: int = 0
    alerts_resolved: int = 0
    detector_counts: Dict[str, int] = field(default_factory=dict)
    failed_detectors: List[DetectorFailure] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failed_detectors)

    def absorb(self, result: LifecycleResult) -> None:
        self.subscriptions_created = result.subscriptions_created
        self.subscriptions_updated = result.subscriptions_updated
        self.status_changes = result.status_changes
        self.alerts_created = result.alerts_created
        self.alerts_updated = result.alerts_updated
        self.alerts_suppressed = result.alerts_suppressed
        self.alerts_resolved = result.alerts_resolved


def run_detection(
    db: Session,
    account_id: Optional[str] = None,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> DetectionReport:
    """
    Run the full detection pipeline once.

    A failing detector is reported and skipped; everything else still
    persists. Persistence failures raise PersistenceError and leave the
    database as it was.
    """
    config = DetectionConfig.from_settings(get_or_create_settings(db))
    ctx = load_context(db, config, account_id=account_id, today=today, now=now)

    series, no_merchant = group_ledger(ctx)
    classify_series(series)
    mining = reconcile_subscriptions(ctx, series)
    mining.skipped_transactions = ctx.skipped_transactions + no_merchant

    report = DetectionReport(
        account_id=account_id,
        today=ctx.today,
        transactions_scanned=len(ctx.transactions),
        skipped_transactions=mining.skipped_transactions,
        series_found=mining.series_count,
    )

    outputs: Dict[AlertType, DetectorOutput] = {}
    failed_types: Set[AlertType] = set()
    for name, alert_type, detector in DETECTORS:
        try:
            output = detector(ctx)
        except Exception as e:
            logger.exception("Detector %s failed", name)
            report.failed_detectors.append(DetectorFailure(detector=name, error=str(e) or type(e).__name__))
            failed_types.add(alert_type)
            continue
        outputs[alert_type] = output
        report.detector_counts[name] = len(output.alerts)

    result = AlertLifecycleManager(db, ctx).apply(mining, outputs, failed_types)
    report.absorb(result)

    logger.info(
        "Detection complete (scope=%s): %d series, %d new subscriptions, %d status changes, "
        "%d alerts created, %d updated, %d resolved, %d skipped transactions%s",
        ctx.scope,
        report.series_found,
        report.subscriptions_created,
        report.status_changes,
        report.alerts_created,
        report.alerts_updated,
        report.alerts_resolved,
        report.skipped_transactions,
        f", failed: {[f.detector for f in report.failed_detectors]}" if report.partial else "",
    )
    return report
