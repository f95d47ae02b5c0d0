"""Source coordinator -- tries each source in priority order, first success wins."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from flashwear.config import EngineSettings
from flashwear.detection.detector import StorageTypeDetector
from flashwear.exceptions import FailureKind, NoEvidenceError
from flashwear.health.estimator import HealthEstimator
from flashwear.models.storage import (
    DataSourceInfo,
    DataSourceType,
    RootStatus,
    SourceOutcome,
    StorageInfo,
)
from flashwear.shell.executor import BrokerExecutor, RootExecutor, UnprivilegedExecutor
from flashwear.sources.base import StorageSource
from flashwear.sources.broker import BrokerSource
from flashwear.sources.estimated import EstimatedSource
from flashwear.sources.platform_api import PlatformApiSource
from flashwear.sources.root import RootSource
from flashwear.utils.logging import get_logger

logger = get_logger(__name__)


class StorageCoordinator:
    """Runs the source cascade: root, broker, platform API, estimate.

    Sources are tried strictly one after another. The source list is
    fixed at construction and never mutated, so one coordinator can
    serve overlapping callers.
    """

    def __init__(self, sources: Sequence[StorageSource]) -> None:
        self._sources = tuple(sources)

    @classmethod
    def default(cls, settings: EngineSettings | None = None) -> StorageCoordinator:
        """Build the standard cascade with shared detector and estimator."""
        settings = settings or EngineSettings()
        timeout = settings.command_timeout_seconds
        detector = StorageTypeDetector()
        estimator = HealthEstimator(settings)
        unprivileged = UnprivilegedExecutor(timeout)
        return cls([
            RootSource(RootExecutor(settings.su_command, timeout), detector, estimator, settings),
            BrokerSource(BrokerExecutor(settings.broker_command, timeout), detector, estimator, settings),
            PlatformApiSource(unprivileged, detector, estimator, settings),
            EstimatedSource(unprivileged, detector, estimator, settings),
        ])

    @property
    def sources(self) -> tuple[StorageSource, ...]:
        return self._sources

    def restricted_to(self, source_type: DataSourceType) -> StorageCoordinator:
        """A coordinator that only tries sources of *source_type*."""
        return StorageCoordinator([s for s in self._sources if s.source_type == source_type])

    def _is_available(self, source: StorageSource) -> bool:
        try:
            return source.is_available()
        except Exception as exc:
            logger.warning("availability_check_failed", source=source.source_type.value, error=str(exc))
            return False

    def attempt_all(self) -> list[SourceOutcome]:
        """Try sources in order and return every outcome up to the first success."""
        outcomes: list[SourceOutcome] = []
        for source in self._sources:
            if not self._is_available(source):
                logger.debug("source_skipped", source=source.source_type.value)
                outcomes.append(SourceOutcome(
                    source=source.source_type,
                    failure=FailureKind.SOURCE_UNAVAILABLE,
                    detail=f"{source.source_type.value} source is not available",
                ))
                continue
            outcome = source.collect()
            outcomes.append(outcome)
            if outcome.succeeded:
                break
        return outcomes

    def infer(self) -> StorageInfo:
        """Return the first populated record.

        Raises:
            NoEvidenceError: If every source was unavailable or failed.
        """
        outcomes = self.attempt_all()
        info = outcomes[-1].info if outcomes else None
        if info is not None:
            logger.info("storage_inferred", source=outcomes[-1].source.value, attempts=len(outcomes))
            return info
        logger.warning(
            "storage_inference_failed",
            failures={o.source.value: o.failure.value if o.failure else None for o in outcomes},
        )
        raise NoEvidenceError(outcomes=outcomes)

    async def infer_async(self) -> StorageInfo:
        """Run :meth:`infer` on a worker thread."""
        return await asyncio.to_thread(self.infer)

    def check_root_status(self) -> RootStatus:
        """Ask the root source; UNKNOWN if none is configured."""
        for source in self._sources:
            if source.source_type == DataSourceType.ROOT:
                return source.check_root_status()
        return RootStatus.UNKNOWN

    def available_data_sources(self) -> list[DataSourceInfo]:
        return [
            DataSourceInfo(
                type=source.source_type,
                is_available=self._is_available(source),
                description=source.description,
            )
            for source in self._sources
        ]
