"""Exception hierarchy for evidence gathering and inference failures."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flashwear.models.storage import SourceOutcome


class FailureKind(StrEnum):
    """Why a source attempt produced no record."""
    SOURCE_UNAVAILABLE = "source_unavailable"
    COMMAND_FAILED = "command_failed"
    PARSE_FAILURE = "parse_failure"
    TIMEOUT = "timeout"
    UNEXPECTED_ERROR = "unexpected_error"


class FlashwearError(Exception):
    """Base exception for all Flashwear errors."""

    kind: FailureKind = FailureKind.UNEXPECTED_ERROR

    def __init__(self, message: str, kind: FailureKind | None = None) -> None:
        if kind is not None:
            self.kind = kind
        super().__init__(message)


class SourceUnavailableError(FlashwearError):
    """Capability check failed (privilege absent, API level too low)."""

    kind = FailureKind.SOURCE_UNAVAILABLE


class CommandFailedError(FlashwearError):
    """Subprocess exited non-zero or produced no output."""

    kind = FailureKind.COMMAND_FAILED


class ParseFailureError(FlashwearError):
    """Expected pattern absent in otherwise successful output."""

    kind = FailureKind.PARSE_FAILURE


class CommandTimeoutError(FlashwearError):
    """Subprocess exceeded its allotted time and was terminated."""

    kind = FailureKind.TIMEOUT


class NoEvidenceError(FlashwearError):
    """Every configured source was unavailable or produced nothing."""

    def __init__(
        self,
        message: str = "could not determine storage information",
        outcomes: list[SourceOutcome] | None = None,
    ) -> None:
        self.outcomes: list[SourceOutcome] = list(outcomes or [])
        super().__init__(message)
