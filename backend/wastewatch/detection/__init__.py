"""
Waste detection engine.

A run goes Miner -> Classifier -> Detectors -> Lifecycle manager, all driven
by `run_detection`.
"""

from wastewatch.detection.context import DetectionConfig, DetectionContext, load_context
from wastewatch.detection.engine import DETECTORS, DetectionReport, DetectorFailure, run_detection
from wastewatch.detection.frequency import classify_frequency

__all__ = [
    "DetectionConfig",
    "DetectionContext",
    "load_context",
    "DETECTORS",
    "DetectionReport",
    "DetectorFailure",
    "run_detection",
    "classify_frequency",
]
