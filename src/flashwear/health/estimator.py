"""Remaining-life estimation for soldered flash storage.

Three tiers, tried in order of decreasing confidence:

* **register**: decode the vendor ``life_time`` register (JEDEC banding).
* **writes**: compare total bytes written against a TBW budget derived
  from capacity, media P/E cycles and write amplification.
* **usage**: assume a fixed daily write volume over the time the device
  has been in use, then apply the same TBW formula.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from flashwear.config import EngineSettings
from flashwear.models.storage import UNKNOWN_PERCENT, HealthStatus, StorageType
from flashwear.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_WRITE_AMPLIFICATION = 2.0

PE_CYCLES: dict[StorageType, int] = {
    StorageType.EMMC: 3000,
    StorageType.UFS: 3000,
    StorageType.NVME: 600,
}
DEFAULT_PE_CYCLES = 1000

# life_time band -> remaining-life percentage (midpoint of the complementary band)
LIFE_TIME_BANDS: dict[int, int] = {
    0x00: UNKNOWN_PERCENT,
    0x01: 95,
    0x02: 85,
    0x03: 75,
    0x04: 65,
    0x05: 55,
    0x06: 45,
    0x07: 35,
    0x08: 25,
    0x09: 15,
    0x0A: 5,
    0x0B: 0,
}

_LIFE_TIME_RE = re.compile(r"0x[0-9a-fA-F]+.*", re.DOTALL)


class EstimateTier(StrEnum):
    """Which estimation tier produced a HealthEstimate."""
    REGISTER = "register"
    WRITES = "writes"
    USAGE = "usage"
    NONE = "none"


@dataclass(frozen=True)
class HealthEstimate:
    """Remaining-life estimate with the evidence behind it."""

    tier: EstimateTier
    percent_exact: float = float(UNKNOWN_PERCENT)
    bytes_written: int = 0
    estimated_tbw: float = 0.0
    reliability: str = "none"
    method: str = ""
    days_in_use: int = 0

    @property
    def percent(self) -> int:
        return round_half_up(self.percent_exact)

    @property
    def status(self) -> HealthStatus:
        return HealthStatus.from_percentage(self.percent)

    @property
    def is_known(self) -> bool:
        return self.percent >= 0

    @classmethod
    def unknown(cls, method: str = "no usable evidence") -> HealthEstimate:
        return cls(tier=EstimateTier.NONE, method=method)


# ----------------------------------------------------------------------
# Pure arithmetic
# ----------------------------------------------------------------------

def pe_cycles_for(storage_type: StorageType) -> int:
    return PE_CYCLES.get(storage_type, DEFAULT_PE_CYCLES)


def round_half_up(value: float) -> int:
    """Round a percentage half-up; negative values collapse to -1."""
    if value < 0:
        return UNKNOWN_PERCENT
    return math.floor(value + 0.5)


def decode_life_time_band(value: int) -> int:
    """Map one life_time band value to a remaining-life percentage."""
    return LIFE_TIME_BANDS.get(value, UNKNOWN_PERCENT)


def is_life_time_readable(raw: str) -> bool:
    """True if *raw* has the ``0x..`` shape of a life_time attribute."""
    return bool(raw) and _LIFE_TIME_RE.fullmatch(raw.strip()) is not None


def decode_life_time(raw: str) -> int:
    """Decode a life_time attribute to a remaining-life percentage.

    When the attribute carries several whitespace-separated tokens the
    most-worn one (the highest defined band) is used. Tokens outside the
    band table are ignored. Unparseable input gives -1.
    """
    values: list[int] = []
    for token in raw.split():
        try:
            value = int(token.removeprefix("0x").removeprefix("0X"), 16)
        except ValueError:
            continue
        if value in LIFE_TIME_BANDS:
            values.append(value)
    if not values:
        return UNKNOWN_PERCENT
    return decode_life_time_band(max(values))


def estimate_tbw(
    capacity_bytes: int,
    storage_type: StorageType,
    write_amplification: float = DEFAULT_WRITE_AMPLIFICATION,
) -> float:
    """Rated total-bytes-written budget for the medium."""
    if capacity_bytes <= 0 or write_amplification <= 0:
        return 0.0
    return capacity_bytes * pe_cycles_for(storage_type) / write_amplification


def estimate_health_from_writes(
    bytes_written: int,
    capacity_bytes: int,
    storage_type: StorageType,
    write_amplification: float = DEFAULT_WRITE_AMPLIFICATION,
) -> float:
    """Exact remaining-life percentage from bytes written, -1.0 if unknown."""
    tbw = estimate_tbw(capacity_bytes, storage_type, write_amplification)
    if tbw <= 0:
        return float(UNKNOWN_PERCENT)
    return min(max((1 - bytes_written / tbw) * 100, 0.0), 100.0)


def estimate_health_by_usage(
    days_in_use: int,
    capacity_bytes: int,
    storage_type: StorageType,
    daily_write_bytes: int,
    write_amplification: float = DEFAULT_WRITE_AMPLIFICATION,
) -> HealthEstimate:
    """Low-reliability estimate from elapsed days and a typical daily write volume."""
    days = max(days_in_use, 0)
    assumed_written = days * daily_write_bytes
    exact = estimate_health_from_writes(assumed_written, capacity_bytes, storage_type, write_amplification)
    if exact < 0:
        return HealthEstimate.unknown("usage estimate needs a known capacity")
    return HealthEstimate(
        tier=EstimateTier.USAGE,
        percent_exact=exact,
        bytes_written=assumed_written,
        estimated_tbw=estimate_tbw(capacity_bytes, storage_type, write_amplification),
        reliability="low",
        method=f"Rough estimate from {days} days in use",
        days_in_use=days,
    )


# ----------------------------------------------------------------------
# Tiered estimator service
# ----------------------------------------------------------------------

class HealthEstimator:
    """Picks the most confident estimation tier the evidence supports.

    Stateless apart from its settings; shared by every source variant.
    """

    def __init__(self, settings: EngineSettings | None = None) -> None:
        self._settings = settings or EngineSettings()

    @property
    def write_amplification(self) -> float:
        return self._settings.write_amplification

    def from_register(self, raw: str) -> HealthEstimate | None:
        if not is_life_time_readable(raw):
            return None
        percent = decode_life_time(raw)
        if percent < 0:
            logger.debug("life_time_undefined", raw=raw)
            return None
        return HealthEstimate(
            tier=EstimateTier.REGISTER,
            percent_exact=float(percent),
            reliability="high",
            method=f"life_time register {raw.strip()}",
        )

    def from_writes(
        self, candidates: Iterable[int], capacity_bytes: int, storage_type: StorageType,
    ) -> HealthEstimate | None:
        bytes_written = next((c for c in candidates if c > 0), 0)
        if bytes_written <= 0 or capacity_bytes <= 0:
            return None
        exact = estimate_health_from_writes(
            bytes_written, capacity_bytes, storage_type, self.write_amplification,
        )
        return HealthEstimate(
            tier=EstimateTier.WRITES,
            percent_exact=exact,
            bytes_written=bytes_written,
            estimated_tbw=estimate_tbw(capacity_bytes, storage_type, self.write_amplification),
            reliability="medium",
            method=f"Bytes written vs. estimated TBW ({pe_cycles_for(storage_type)} P/E cycles)",
        )

    def from_usage(
        self, days_in_use: int | None, capacity_bytes: int, storage_type: StorageType,
    ) -> HealthEstimate | None:
        if days_in_use is None or capacity_bytes <= 0:
            return None
        estimate = estimate_health_by_usage(
            days_in_use,
            capacity_bytes,
            storage_type,
            self._settings.assumed_daily_write_bytes,
            self.write_amplification,
        )
        return estimate if estimate.is_known else None

    def estimate(
        self,
        storage_type: StorageType,
        capacity_bytes: int,
        life_time_raw: str = "",
        write_candidates: Iterable[int] = (),
        days_in_use: int | None = None,
    ) -> HealthEstimate:
        """Run the register, writes and usage tiers in order.

        Args:
            storage_type: Detected medium; selects the P/E cycle constant.
            capacity_bytes: Device capacity used for the TBW budget.
            life_time_raw: Raw ``device/life_time`` attribute, may be empty.
            write_candidates: Bytes-written counters in preference order;
                the first positive one is used.
            days_in_use: Days since first install, None if unknown.
        """
        estimate = (
            self.from_register(life_time_raw)
            or self.from_writes(write_candidates, capacity_bytes, storage_type)
            or self.from_usage(days_in_use, capacity_bytes, storage_type)
            or HealthEstimate.unknown()
        )
        logger.debug(
            "health_tier_selected",
            tier=estimate.tier.value,
            percent=estimate.percent,
            reliability=estimate.reliability,
        )
        return estimate
