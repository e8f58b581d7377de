"""
Alert lifecycle manager.

Applies a run's subscription upserts, status changes and alert drafts in a
single database transaction, deduplicating drafts against existing alerts and
resolving alerts whose condition has cleared.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wastewatch.detection.context import DetectionContext
from wastewatch.detection.drafts import RESOLVABLE_TYPES, AlertDraft, DetectorOutput, StatusChange
from wastewatch.detection.miner import MiningResult
from wastewatch.exceptions import PersistenceError
from wastewatch.models.alert import Alert, AlertType
from wastewatch.models.subscription import Subscription

logger = logging.getLogger(__name__)


@dataclass
class LifecycleResult:
    subscriptions_created: int = 0
    subscriptions_updated: int = 0
    status_changes: int = 0
    status_changes_skipped: int = 0
    alerts_created: int = 0
    alerts_updated: int = 0
    alerts_suppressed: int = 0
    alerts_resolved: int = 0


class AlertLifecycleManager:
    """Persists one detection run. Nothing is written unless the whole run commits."""

    def __init__(self, db: Session, ctx: DetectionContext):
        self.db = db
        self.ctx = ctx
        self.result = LifecycleResult()

    def apply(
        self,
        mining: MiningResult,
        outputs: Dict[AlertType, DetectorOutput],
        failed_types: Optional[Set[AlertType]] = None,
    ) -> LifecycleResult:
        failed_types = failed_types or set()
        try:
            self._apply_upserts(mining)
            self.db.flush()

            blocked = self._user_touched()
            for output in outputs.values():
                for change in output.status_changes:
                    self._apply_status_change(change, blocked)

            drafts = [d for output in outputs.values() for d in output.alerts]
            live_keys = self._apply_drafts(drafts, blocked)
            self._resolve_stale(live_keys, failed_types, blocked)

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Detection run rolled back: %s", e)
            raise PersistenceError("Could not persist detection results") from e

        return self.result

    def _apply_upserts(self, mining: MiningResult) -> None:
        for upsert in mining.upserts:
            if upsert.is_new:
                self.db.add(Subscription(id=upsert.subscription_id, **upsert.fields))
                self.result.subscriptions_created += 1
                continue

            row = self.db.query(Subscription).filter(Subscription.id == upsert.subscription_id).first()
            if row is None:
                # Deleted by the user after the snapshot
                continue
            for name, value in upsert.fields.items():
                setattr(row, name, value)
            self.result.subscriptions_updated += 1

    def _user_touched(self) -> Set[str]:
        """Subscriptions the user acted on after the run started."""
        rows = self.db.query(Subscription.id).filter(
            Subscription.user_action_at.isnot(None),
            Subscription.user_action_at >= self.ctx.started_at,
        ).all()
        return {r.id for r in rows}

    def _apply_status_change(self, change: StatusChange, blocked: Set[str]) -> None:
        if change.subscription_id in blocked:
            logger.debug("Skipping %s for %s: user action during run", change.reason, change.subscription_id)
            self.result.status_changes_skipped += 1
            return

        # Re-read so a user action committed since the snapshot wins
        row = self.db.query(Subscription).populate_existing().filter(
            Subscription.id == change.subscription_id
        ).first()
        if row is None or row.status != change.expected_status:
            self.result.status_changes_skipped += 1
            return

        if change.new_status != row.status and not row.status.can_transition(change.new_status):
            logger.warning(
                "Ignoring %s -> %s for subscription %s",
                row.status.value, change.new_status.value, row.id,
            )
            self.result.status_changes_skipped += 1
            return

        logger.debug("Subscription %s: %s -> %s (%s)", row.merchant, row.status.value, change.new_status.value, change.reason)
        row.status = change.new_status
        for name, value in change.fields.items():
            setattr(row, name, value)
        self.result.status_changes += 1

    def _apply_drafts(self, drafts: List[AlertDraft], blocked: Set[str]) -> Set[str]:
        """Create or refresh alerts. Returns the dedup keys still live this run."""
        open_by_key = {a.dedup_key: a for a in self._open_alerts()}
        last_dismissed = self._last_dismissed()
        live_keys: Set[str] = set()

        for draft in drafts:
            key = draft.dedup_key
            if key in live_keys:
                continue
            live_keys.add(key)

            if draft.subscription_id in blocked:
                continue

            existing = open_by_key.get(key)
            if existing is not None:
                if self._refresh(existing, draft):
                    self.result.alerts_updated += 1
                continue

            dismissed_on = last_dismissed.get(key)
            if dismissed_on is not None and dismissed_on >= draft.event_date:
                self.result.alerts_suppressed += 1
                continue

            if not self.ctx.config.alerts_enabled:
                continue

            self.db.add(Alert(
                id=str(uuid.uuid4()),
                alert_type=draft.alert_type,
                severity=draft.severity,
                title=draft.title,
                message=draft.message,
                subscription_id=draft.subscription_id,
                category_id=draft.category_id,
                transaction_id=draft.transaction_id,
                account_id=self.ctx.account_id,
                dedup_key=key,
                event_date=draft.event_date,
                payload=draft.payload(),
            ))
            self.result.alerts_created += 1

        return live_keys

    def _refresh(self, alert: Alert, draft: AlertDraft) -> bool:
        values = {
            "severity": draft.severity,
            "title": draft.title,
            "message": draft.message,
            "event_date": draft.event_date,
            "payload": draft.payload(),
            "account_id": self.ctx.account_id,
        }
        changed = False
        for name, value in values.items():
            if getattr(alert, name) != value:
                setattr(alert, name, value)
                changed = True
        return changed

    def _resolve_stale(self, live_keys: Set[str], failed_types: Set[AlertType], blocked: Set[str]) -> None:
        for alert in self._open_alerts(RESOLVABLE_TYPES - failed_types):
            if alert.dedup_key in live_keys or alert.subscription_id in blocked:
                continue
            if not self._in_scope(alert):
                continue
            logger.debug("Resolving %s", alert.dedup_key)
            alert.resolved_at = self.ctx.started_at
            self.result.alerts_resolved += 1

    def _in_scope(self, alert: Alert) -> bool:
        if alert.alert_type == AlertType.zombie:
            return alert.subscription_id in self.ctx.subscriptions
        # A scoped run only clears category alerts it raised itself
        if self.ctx.account_id is not None and alert.account_id != self.ctx.account_id:
            return False
        if alert.alert_type == AlertType.spending_anomaly:
            # Past months stay open until dismissed
            return alert.event_date == self.ctx.period_start
        return True

    def _open_alerts(self, types: Optional[Iterable[AlertType]] = None) -> List[Alert]:
        query = self.db.query(Alert).filter(
            Alert.dismissed == False,  # noqa: E712
            Alert.resolved_at.is_(None),
        )
        if types is not None:
            query = query.filter(Alert.alert_type.in_(list(types)))
        return query.order_by(Alert.created_at).all()

    def _last_dismissed(self) -> Dict[str, date]:
        latest: Dict[str, date] = {}
        rows = self.db.query(Alert.dedup_key, Alert.dismissed_at).filter(
            Alert.dismissed == True,  # noqa: E712
            Alert.dismissed_at.isnot(None),
        ).all()
        for key, dismissed_at in rows:
            day = dismissed_at.date()
            if key not in latest or day > latest[key]:
                latest[key] = day
        return latest
