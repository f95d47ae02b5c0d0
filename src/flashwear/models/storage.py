"""Inference output models: storage record, provenance and source outcomes."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from flashwear.exceptions import FailureKind

UNKNOWN_PERCENT = -1


class StorageType(StrEnum):
    """Physical storage medium."""
    EMMC = "emmc"
    UFS = "ufs"
    NVME = "nvme"
    UNKNOWN = "unknown"


class HealthStatus(StrEnum):
    """Banded health derived from the remaining-life percentage."""
    GOOD = "good"
    CAUTION = "caution"
    BAD = "bad"
    UNKNOWN = "unknown"

    @classmethod
    def from_percentage(cls, percent: float) -> HealthStatus:
        if percent < 0:
            return cls.UNKNOWN
        if percent >= 80:
            return cls.GOOD
        if percent >= 50:
            return cls.CAUTION
        return cls.BAD


class RootStatus(StrEnum):
    """Result of probing for full root privilege."""
    GRANTED = "granted"
    DENIED = "denied"
    UNKNOWN = "unknown"


class DataSourceType(StrEnum):
    """Evidence channel a source variant reads through."""
    ROOT = "root"
    BROKER = "broker"
    SYSTEM_API = "system_api"
    ESTIMATED = "estimated"


def _check_percent(value: int | float | None) -> int | float | None:
    if value is None or value == UNKNOWN_PERCENT or 0 <= value <= 100:
        return value
    raise ValueError(f"percentage must be -1 or within 0..100, got {value}")


class StorageInfo(BaseModel):
    """One populated inference result. Never mutated after construction."""
    model_config = {"frozen": True}

    name: str = Field(default="Unknown", description="Block device path, e.g. /dev/block/sda")
    type: StorageType = StorageType.UNKNOWN
    model: str = "Unknown"
    firmware_version: str = "Unknown"
    serial_number: str = "Unknown"
    total_capacity: int = Field(default=0, ge=0, description="Bytes")
    available_bytes: int = Field(default=-1, ge=-1, description="Bytes, -1 when unknown")
    health_status: HealthStatus = HealthStatus.UNKNOWN
    health_percentage: int = UNKNOWN_PERCENT
    health_percentage_exact: float | None = Field(
        default=None, description="Unrounded percentage when a precise source was used",
    )
    pre_eol_info: str = Field(default="", description="Decoded PRE_EOL_INFO register, empty if unread")
    temperature: int = Field(default=-1, description="Celsius, -1 when unknown")
    total_bytes_written: int = Field(default=0, ge=0, description="0 means not measured")
    power_on_hours: int = Field(default=0, ge=0)
    power_cycle_count: int = Field(default=0, ge=0)
    wear_level: int = UNKNOWN_PERCENT
    estimated_life_percent: int = UNKNOWN_PERCENT
    detection_method: str = ""
    source: DataSourceType | None = None

    @field_validator(
        "health_percentage", "health_percentage_exact", "wear_level", "estimated_life_percent",
    )
    @classmethod
    def validate_percentage(cls, v: int | float | None) -> int | float | None:
        return _check_percent(v)


class DetectionResult(BaseModel):
    """Storage type classification with the rule that produced it."""
    model_config = {"frozen": True}

    type: StorageType
    method: str
    details: str = ""

    def trail(self) -> str:
        """Provenance text carried verbatim into StorageInfo.detection_method."""
        if self.details.strip():
            return f"Detection method: {self.method}\nDetails: {self.details}"
        return f"Detection method: {self.method}"


class DataSourceInfo(BaseModel):
    """Whether an evidence channel exists on this device."""
    model_config = {"frozen": True}

    type: DataSourceType
    is_available: bool
    description: str


class SourceOutcome(BaseModel):
    """Result of one source attempt: a record, or the reason there is none."""
    model_config = {"frozen": True}

    source: DataSourceType
    info: StorageInfo | None = None
    failure: FailureKind | None = None
    detail: str = ""

    @property
    def succeeded(self) -> bool:
        return self.info is not None
