"""Generic evaluator for the ordered detection rules."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from flashwear.detection.rules import DEFAULT_RULES, DetectionRule, ProbeContext
from flashwear.models.evidence import BuildProps
from flashwear.models.storage import DetectionResult, StorageType
from flashwear.shell.executor import PrivilegedExecutor
from flashwear.utils.logging import get_logger

logger = get_logger(__name__)


class StorageTypeDetector:
    """Classifies the storage medium with the first conclusive rule.

    Stateless apart from its rule list; one instance can be shared by
    every source variant.
    """

    def __init__(self, rules: Sequence[DetectionRule] = DEFAULT_RULES) -> None:
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[DetectionRule, ...]:
        return self._rules

    def detect(
        self,
        device: str,
        executor: PrivilegedExecutor | None = None,
        build_props: BuildProps | Callable[[], BuildProps] | None = None,
    ) -> DetectionResult:
        """Run the cascade for block device *device*.

        Args:
            device: Block device name such as ``sda`` (may be empty).
            executor: Shell used by probing rules; None disables them.
            build_props: Build identity, or a loader called only if the
                build-property rule is reached.
        """
        ctx = ProbeContext(device=device, executor=executor)
        if isinstance(build_props, BuildProps):
            ctx.preset_build_props = build_props
        else:
            ctx.build_props_loader = build_props

        for rule in self._rules:
            if not rule.applies(ctx):
                continue
            try:
                result = rule.classify(ctx)
            except Exception as exc:
                logger.warning("detection_rule_failed", rule=rule.name, device=device, error=str(exc))
                continue
            if result is not None:
                logger.debug(
                    "detection_rule_matched",
                    rule=rule.name,
                    device=device,
                    type=result.type.value,
                    method=result.method,
                )
                return result

        logger.debug("detection_no_rule_matched", device=device)
        return DetectionResult(type=StorageType.UNKNOWN, method="No rule matched")
