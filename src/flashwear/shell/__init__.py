"""Privileged shell execution."""

from flashwear.shell.executor import (
    BrokerExecutor,
    CommandResult,
    ExecutorTier,
    PrivilegedExecutor,
    RootExecutor,
    SubprocessExecutor,
    UnprivilegedExecutor,
)

__all__ = [
    "BrokerExecutor",
    "CommandResult",
    "ExecutorTier",
    "PrivilegedExecutor",
    "RootExecutor",
    "SubprocessExecutor",
    "UnprivilegedExecutor",
]
