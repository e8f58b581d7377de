"""
Alert and status-change drafts.

Detectors return drafts instead of writing rows. There is one draft class per
alert type; each owns its dedup key, wording and payload.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from wastewatch.models.alert import AlertType, Severity
from wastewatch.models.subscription import Frequency, SubscriptionStatus, monthly_equivalent


def _money(value: Decimal) -> float:
    return float(Decimal(value).quantize(Decimal("0.01")))


def _percent(part: Decimal, whole: Decimal) -> float:
    return float((part / whole * 100).quantize(Decimal("0.1")))


@dataclass(frozen=True)
class AlertDraft:
    """Base for alert drafts. `event_date` is when the condition arose."""

    alert_type: ClassVar[AlertType]
    default_severity: ClassVar[Severity] = Severity.warning
    # Open alerts of resolvable types are closed when a later run no longer drafts them
    resolvable: ClassVar[bool] = False

    event_date: date

    @property
    def severity(self) -> Severity:
        return self.default_severity

    @property
    def subscription_id(self) -> Optional[str]:
        return None

    @property
    def category_id(self) -> Optional[str]:
        return None

    @property
    def transaction_id(self) -> Optional[str]:
        return None

    @property
    def dedup_key(self) -> str:
        raise NotImplementedError

    @property
    def title(self) -> str:
        raise NotImplementedError

    @property
    def message(self) -> str:
        raise NotImplementedError

    def payload(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True)
class ZombieDraft(AlertDraft):
    alert_type: ClassVar[AlertType] = AlertType.zombie
    default_severity: ClassVar[Severity] = Severity.attention
    resolvable: ClassVar[bool] = True

    sub_id: str
    merchant: str
    last_seen: date
    days_since: int
    amount: Decimal
    frequency: Frequency

    @property
    def subscription_id(self) -> Optional[str]:
        return self.sub_id

    @property
    def dedup_key(self) -> str:
        return f"zombie:{self.sub_id}:{self.last_seen.isoformat()}"

    @property
    def title(self) -> str:
        return f"Possible zombie subscription: {self.merchant}"

    @property
    def message(self) -> str:
        return (
            f"{self.merchant} usually bills {self.frequency.value} but has not charged you "
            f"in {self.days_since} days. If you no longer use it, make sure it is cancelled."
        )

    def payload(self) -> Dict[str, Any]:
        return {
            "last_seen": self.last_seen.isoformat(),
            "days_since": self.days_since,
            "amount": _money(self.amount),
            "frequency": self.frequency.value,
            "monthly_amount": _money(monthly_equivalent(self.amount, self.frequency)),
        }


@dataclass(frozen=True)
class PriceIncreaseDraft(AlertDraft):
    alert_type: ClassVar[AlertType] = AlertType.price_increase

    sub_id: str
    merchant: str
    baseline: Decimal
    new_amount: Decimal
    frequency: Frequency

    @property
    def subscription_id(self) -> Optional[str]:
        return self.sub_id

    @property
    def increase(self) -> Decimal:
        return self.new_amount - self.baseline

    @property
    def dedup_key(self) -> str:
        return f"price_increase:{self.sub_id}:{self.new_amount:.2f}"

    @property
    def title(self) -> str:
        return f"Price increase: {self.merchant}"

    @property
    def message(self) -> str:
        return (
            f"{self.merchant} went from ${self.baseline:.2f} to ${self.new_amount:.2f} "
            f"(+${self.increase:.2f}, {_percent(self.increase, self.baseline)}%)."
        )

    def payload(self) -> Dict[str, Any]:
        return {
            "baseline": _money(self.baseline),
            "new": _money(self.new_amount),
            "increase": _money(self.increase),
            "percent_increase": _percent(self.increase, self.baseline),
            "monthly_increase": _money(monthly_equivalent(self.increase, self.frequency)),
        }


@dataclass(frozen=True)
class DuplicateMember:
    subscription_id: str
    merchant: str
    monthly_amount: Decimal


@dataclass(frozen=True)
class DuplicateDraft(AlertDraft):
    alert_type: ClassVar[AlertType] = AlertType.duplicate
    resolvable: ClassVar[bool] = True

    cat_id: str
    category_name: str
    members: Tuple[DuplicateMember, ...]  # Sorted by subscription id

    @property
    def category_id(self) -> Optional[str]:
        return self.cat_id

    @property
    def combined_monthly(self) -> Decimal:
        return sum((m.monthly_amount for m in self.members), Decimal("0"))

    @property
    def potential_savings(self) -> Decimal:
        # Keeping the priciest one, the rest are overlap
        return self.combined_monthly - max(m.monthly_amount for m in self.members)

    @property
    def dedup_key(self) -> str:
        return f"duplicate:{self.cat_id}"

    @property
    def title(self) -> str:
        return f"{len(self.members)} overlapping {self.category_name} subscriptions"

    @property
    def message(self) -> str:
        names = ", ".join(sorted(m.merchant for m in self.members))
        return (
            f"You are paying for {names} in {self.category_name}, "
            f"${self.combined_monthly:.2f}/month combined."
        )

    def payload(self) -> Dict[str, Any]:
        return {
            "category_name": self.category_name,
            "subscription_ids": [m.subscription_id for m in self.members],
            "merchants": [m.merchant for m in self.members],
            "combined_monthly": _money(self.combined_monthly),
            "potential_savings": _money(self.potential_savings),
        }


@dataclass(frozen=True)
class AutoCancellationDraft(AlertDraft):
    alert_type: ClassVar[AlertType] = AlertType.auto_cancellation
    default_severity: ClassVar[Severity] = Severity.info

    sub_id: str
    merchant: str
    last_seen: date
    days_since: int

    @property
    def subscription_id(self) -> Optional[str]:
        return self.sub_id

    @property
    def dedup_key(self) -> str:
        return f"auto_cancellation:{self.sub_id}:{self.last_seen.isoformat()}"

    @property
    def title(self) -> str:
        return f"{self.merchant} appears to have stopped billing"

    @property
    def message(self) -> str:
        return (
            f"No charge from {self.merchant} since {self.last_seen.isoformat()} "
            f"({self.days_since} days). It has been marked as cancelled."
        )

    def payload(self) -> Dict[str, Any]:
        return {"last_seen": self.last_seen.isoformat(), "days_since": self.days_since}


@dataclass(frozen=True)
class ResumeDraft(AlertDraft):
    alert_type: ClassVar[AlertType] = AlertType.resume
    default_severity: ClassVar[Severity] = Severity.attention

    sub_id: str
    merchant: str
    cancelled_last_seen: date
    amount: Decimal

    @property
    def subscription_id(self) -> Optional[str]:
        return self.sub_id

    @property
    def dedup_key(self) -> str:
        return f"resume:{self.sub_id}:{self.event_date.isoformat()}"

    @property
    def title(self) -> str:
        return f"{self.merchant} is charging again"

    @property
    def message(self) -> str:
        return (
            f"{self.merchant} was cancelled but charged ${self.amount:.2f} "
            f"on {self.event_date.isoformat()}."
        )

    def payload(self) -> Dict[str, Any]:
        return {
            "resumed_on": self.event_date.isoformat(),
            "amount": _money(self.amount),
            "previous_last_seen": self.cancelled_last_seen.isoformat(),
        }


@dataclass(frozen=True)
class SpendingAnomalyDraft(AlertDraft):
    """event_date is the first day of the evaluated month."""

    alert_type: ClassVar[AlertType] = AlertType.spending_anomaly
    resolvable: ClassVar[bool] = True

    cat_id: str
    category_name: str
    baseline: Decimal
    current: Decimal
    baseline_months: int

    @property
    def category_id(self) -> Optional[str]:
        return self.cat_id

    @property
    def period(self) -> str:
        return self.event_date.strftime("%Y-%m")

    @property
    def percent_change(self) -> float:
        return _percent(self.current - self.baseline, self.baseline)

    @property
    def severity(self) -> Severity:
        return Severity.warning if self.current > self.baseline else Severity.info

    @property
    def dedup_key(self) -> str:
        return f"spending_anomaly:{self.cat_id}:{self.period}"

    @property
    def title(self) -> str:
        direction = "up" if self.current > self.baseline else "down"
        return f"{self.category_name} spending {direction} {abs(self.percent_change):.0f}%"

    @property
    def message(self) -> str:
        return (
            f"You have spent ${self.current:.2f} on {self.category_name} this month, "
            f"against a {self.baseline_months}-month average of ${self.baseline:.2f}."
        )

    def payload(self) -> Dict[str, Any]:
        return {
            "category_name": self.category_name,
            "period": self.period,
            "baseline_amount": _money(self.baseline),
            "current_amount": _money(self.current),
            "percent_change": self.percent_change,
        }


@dataclass(frozen=True)
class TipDiscrepancyDraft(AlertDraft):
    alert_type: ClassVar[AlertType] = AlertType.tip_discrepancy

    txn_id: str
    receipt_id: str
    merchant: str
    receipt_total: Decimal
    bank_amount: Decimal

    @property
    def transaction_id(self) -> Optional[str]:
        return self.txn_id

    @property
    def difference(self) -> Decimal:
        return self.bank_amount - self.receipt_total

    @property
    def dedup_key(self) -> str:
        return f"tip_discrepancy:{self.txn_id}"

    @property
    def title(self) -> str:
        return f"Charge exceeds receipt at {self.merchant}"

    @property
    def message(self) -> str:
        return (
            f"Your receipt from {self.merchant} totals ${self.receipt_total:.2f} but you were "
            f"charged ${self.bank_amount:.2f}, {_percent(self.difference, self.receipt_total)}% more."
        )

    def payload(self) -> Dict[str, Any]:
        return {
            "receipt_id": self.receipt_id,
            "receipt_total": _money(self.receipt_total),
            "bank_amount": _money(self.bank_amount),
            "difference": _money(self.difference),
            "percent_over": _percent(self.difference, self.receipt_total),
        }


DRAFT_TYPES = (
    ZombieDraft,
    PriceIncreaseDraft,
    DuplicateDraft,
    AutoCancellationDraft,
    ResumeDraft,
    SpendingAnomalyDraft,
    TipDiscrepancyDraft,
)

RESOLVABLE_TYPES = frozenset(cls.alert_type for cls in DRAFT_TYPES if cls.resolvable)


@dataclass(frozen=True)
class StatusChange:
    """
    A detector-driven status transition.

    `expected_status` is the status the detector saw; the change is dropped if
    the row has moved on since. `new_status` may equal the current status when
    only `fields` change.
    """

    subscription_id: str
    expected_status: SubscriptionStatus
    new_status: SubscriptionStatus
    reason: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DetectorOutput:
    alerts: List[AlertDraft] = field(default_factory=list)
    status_changes: List[StatusChange] = field(default_factory=list)
