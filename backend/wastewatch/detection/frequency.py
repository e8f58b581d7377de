"""Billing cadence classification from the gaps between charges."""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from wastewatch.detection.context import Series
from wastewatch.models.subscription import Frequency

logger = logging.getLogger(__name__)


# Inclusive gap windows in days
CADENCE_WINDOWS: Dict[Frequency, Tuple[int, int]] = {
    Frequency.weekly: (5, 9),
    Frequency.monthly: (23, 36),
    Frequency.yearly: (355, 375),
}

# Days without a charge before a subscription counts as a zombie
ZOMBIE_THRESHOLD_DAYS: Dict[Frequency, int] = {
    Frequency.weekly: 14,
    Frequency.monthly: 45,
    Frequency.yearly: 400,
}

NOMINAL_INTERVAL_DAYS: Dict[Frequency, int] = {
    Frequency.weekly: 7,
    Frequency.monthly: 30,
    Frequency.yearly: 365,
}


def day_gaps(dates: Iterable[date]) -> List[int]:
    """Whole-day gaps between consecutive dates, after sorting."""
    ordered = sorted(dates)
    return [(b - a).days for a, b in zip(ordered, ordered[1:])]


def classify_frequency(dates: Iterable[date]) -> Optional[Frequency]:
    """
    Infer the cadence of a series of charge dates.

    A cadence wins only when strictly more than half of the gaps fall in its
    window. Irregular series and series with fewer than two dates return None.
    """
    gaps = day_gaps(dates)
    if not gaps:
        return None

    for frequency, (low, high) in CADENCE_WINDOWS.items():
        hits = sum(1 for gap in gaps if low <= gap <= high)
        if hits * 2 > len(gaps):
            return frequency
    return None


def classify_series(series: Iterable[Series]) -> None:
    """Set the cadence on each mined series in place."""
    for s in series:
        s.frequency = classify_frequency(s.dates)
        if s.frequency is None:
            logger.debug("No cadence for %s (%d charges)", s.merchant, len(s.occurrences))


def zombie_threshold(frequency: Frequency) -> int:
    return ZOMBIE_THRESHOLD_DAYS[frequency]


def cancellation_threshold(frequency: Frequency) -> int:
    """Days of silence after which billing is considered stopped."""
    return 2 * ZOMBIE_THRESHOLD_DAYS[frequency]
