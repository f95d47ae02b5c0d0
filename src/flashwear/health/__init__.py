"""Remaining-life estimation tiers."""

from flashwear.health.estimator import (
    LIFE_TIME_BANDS,
    EstimateTier,
    HealthEstimate,
    HealthEstimator,
    decode_life_time,
    decode_life_time_band,
    estimate_health_by_usage,
    estimate_health_from_writes,
    estimate_tbw,
    is_life_time_readable,
    pe_cycles_for,
    round_half_up,
)

__all__ = [
    "LIFE_TIME_BANDS",
    "EstimateTier",
    "HealthEstimate",
    "HealthEstimator",
    "decode_life_time",
    "decode_life_time_band",
    "estimate_health_by_usage",
    "estimate_health_from_writes",
    "estimate_tbw",
    "is_life_time_readable",
    "pe_cycles_for",
    "round_half_up",
]
