"""蜜罐检测模块"""

from .detector import (
    HoneypotDetector,
    classify_traps,
    is_effectively_hidden,
    is_suspiciously_named,
    suspicious_pattern,
)

__all__ = [
    "HoneypotDetector",
    "classify_traps",
    "is_effectively_hidden",
    "is_suspiciously_named",
    "suspicious_pattern",
]
