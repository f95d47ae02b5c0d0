"""Engine settings with environment variable overrides.

Every field can be overridden with a ``FLASHWEAR_<FIELD>`` environment
variable, e.g. ``FLASHWEAR_COMMAND_TIMEOUT_SECONDS=5``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field

ENV_PREFIX = "FLASHWEAR_"

GIB = 1024 ** 3


class EngineSettings(BaseModel):
    """Tunables shared by executors, estimator and source variants."""
    model_config = {"frozen": True}

    command_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Per-command timeout for every privilege tier",
    )
    write_amplification: float = Field(default=2.0, gt=0)
    assumed_daily_write_bytes: int = Field(
        default=10 * GIB, ge=0,
        description="Typical daily write volume used by the usage estimate",
    )
    data_path: str = Field(default="/data", description="Filesystem used for capacity statistics")
    platform_api_min_sdk: int = Field(default=35, ge=1)
    broker_command: str = Field(default="rish", min_length=1)
    su_command: str = Field(default="su", min_length=1)
    package_name: str = Field(
        default="", description="Package whose first install time anchors the usage estimate",
    )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineSettings:
        """Build settings from ``FLASHWEAR_*`` variables, defaults elsewhere."""
        environ = os.environ if environ is None else environ
        overrides: dict[str, str] = {}
        for name in cls.model_fields:
            value = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                overrides[name] = value
        return cls.model_validate(overrides)
