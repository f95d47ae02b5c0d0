"""Storage type inference from build and hardware identification strings.

This is the weakest signal in the cascade: it only knows which SoC
families and device codenames usually ship with UFS.
"""

from __future__ import annotations

import re

from flashwear.models.evidence import BuildProps
from flashwear.models.storage import DetectionResult, StorageType

METHOD = "Build properties"

# Xiaomi codenames known to ship with UFS
XIAOMI_UFS_CODENAMES = ("venus", "star", "mars", "cetus", "umi", "cmi", "cas")

_SNAPDRAGON_RE = re.compile(r"msm\d+|sdm\d+|sm\d+|kona|lahaina|taro|kalama")
_SNAPDRAGON_CODENAMES = ("kona", "lahaina", "taro", "kalama")
# Lowest chipset number per prefix that ships with UFS; sdm and sm parts
# are numbered below msm8996 even though most of them use UFS
_SNAPDRAGON_UFS_THRESHOLDS = {"msm": 8996, "sdm": 710, "sm": 7000}
_KIRIN_RE = re.compile(r"kirin\d*|hi\d+")
_KIRIN_UFS_MARKERS = ("970", "980", "990", "9000")
_EXYNOS_RE = re.compile(r"exynos\d*|universal\d*")
_EXYNOS_UFS_MARKERS = ("8890", "8895", "9810", "9820", "990", "2100")
_MTK_RE = re.compile(r"mt\d+|dimensity\d*")
_MTK_UFS_THRESHOLD = 6797
_DIGITS_RE = re.compile(r"\d+")


def _matching(pattern: re.Pattern[str], *values: str) -> str | None:
    for value in values:
        if value and pattern.fullmatch(value):
            return value
    return None


def _chip_number(value: str) -> int | None:
    m = _DIGITS_RE.search(value)
    return int(m.group()) if m else None


def _infer_from_soc(hardware: str, board: str) -> DetectionResult | None:
    snapdragon = _matching(_SNAPDRAGON_RE, hardware, board)
    if snapdragon is not None:
        if snapdragon in _SNAPDRAGON_CODENAMES:
            return DetectionResult(type=StorageType.UFS, method=METHOD, details=f"Snapdragon {snapdragon}")
        prefix = snapdragon.rstrip("0123456789")
        number = _chip_number(snapdragon)
        threshold = _SNAPDRAGON_UFS_THRESHOLDS.get(prefix)
        if number is not None and threshold is not None and number >= threshold:
            return DetectionResult(type=StorageType.UFS, method=METHOD, details=f"Snapdragon {snapdragon}")
        return DetectionResult(type=StorageType.EMMC, method=METHOD, details=f"Snapdragon {snapdragon}")

    kirin = _matching(_KIRIN_RE, hardware, board)
    if kirin is not None:
        haystack = f"{board} {kirin}"
        is_ufs = any(marker in haystack for marker in _KIRIN_UFS_MARKERS)
        return DetectionResult(
            type=StorageType.UFS if is_ufs else StorageType.EMMC,
            method=METHOD,
            details=f"Kirin {kirin}",
        )

    exynos = _matching(_EXYNOS_RE, hardware, board)
    if exynos is not None:
        haystack = f"{board} {exynos}"
        is_ufs = any(marker in haystack for marker in _EXYNOS_UFS_MARKERS)
        return DetectionResult(
            type=StorageType.UFS if is_ufs else StorageType.EMMC,
            method=METHOD,
            details=f"Exynos {exynos}",
        )

    mtk = _matching(_MTK_RE, hardware, board)
    if mtk is not None:
        number = _chip_number(mtk)
        is_ufs = mtk.startswith("dimensity") or (number is not None and number >= _MTK_UFS_THRESHOLD)
        return DetectionResult(
            type=StorageType.UFS if is_ufs else StorageType.EMMC,
            method=METHOD,
            details=f"MediaTek {mtk}",
        )

    return None


def infer_from_build_props(props: BuildProps) -> DetectionResult:
    """Classify storage from manufacturer codenames, identity strings and SoC family."""
    hardware = props.hardware.lower()
    board = props.board.lower()
    device = props.device.lower()
    product = props.product.lower()
    manufacturer = props.manufacturer.lower()

    if "xiaomi" in manufacturer or "mi" in product:
        for codename in XIAOMI_UFS_CODENAMES:
            if codename in device or codename in product:
                return DetectionResult(
                    type=StorageType.UFS,
                    method=METHOD,
                    details=f"Xiaomi UFS codename {codename}",
                )

    identity = props.identity_string
    if "ufs" in identity:
        return DetectionResult(type=StorageType.UFS, method=METHOD, details="identity contains 'ufs'")
    if "emmc" in identity or "mmc" in identity:
        return DetectionResult(type=StorageType.EMMC, method=METHOD, details="identity contains 'mmc'")
    if "nvme" in identity:
        return DetectionResult(type=StorageType.NVME, method=METHOD, details="identity contains 'nvme'")

    soc = _infer_from_soc(hardware, board)
    if soc is not None:
        return soc

    return DetectionResult(type=StorageType.UNKNOWN, method=METHOD, details="no matching hardware signature")
