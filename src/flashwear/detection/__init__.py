"""Storage-type detection cascade."""

from flashwear.detection.build_inference import infer_from_build_props
from flashwear.detection.detector import StorageTypeDetector
from flashwear.detection.rules import DEFAULT_RULES, DetectionRule, ProbeContext

__all__ = [
    "DEFAULT_RULES",
    "DetectionRule",
    "ProbeContext",
    "StorageTypeDetector",
    "infer_from_build_props",
]
