"""AdaptSpider - 自适应、抗蜜罐的主页数据提取引擎"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

__version__ = "0.1.0"

if TYPE_CHECKING:
    from .extraction.extractor import CascadingExtractor as CascadingExtractor
    from .honeypot.detector import HoneypotDetector as HoneypotDetector
    from .knowledge.store import KnowledgeStore as KnowledgeStore
    from .knowledge.traps import TrapRegistry as TrapRegistry
    from .navigation.controller import NavigationController as NavigationController
    from .pipeline.runner import ProfileScraper as ProfileScraper
    from .session import ExtractionSession as ExtractionSession

__all__ = [
    "__version__",
    "CascadingExtractor",
    "ExtractionSession",
    "HoneypotDetector",
    "KnowledgeStore",
    "NavigationController",
    "ProfileScraper",
    "TrapRegistry",
]

_LAZY_EXPORTS = {
    "CascadingExtractor": ".extraction.extractor",
    "ExtractionSession": ".session",
    "HoneypotDetector": ".honeypot.detector",
    "KnowledgeStore": ".knowledge.store",
    "NavigationController": ".navigation.controller",
    "ProfileScraper": ".pipeline.runner",
    "TrapRegistry": ".knowledge.traps",
}


def __getattr__(name: str) -> Any:
    """Lazy exports to avoid importing heavy runtime dependencies at package import time."""
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module 'adaptspider' has no attribute '{name}'")
    from importlib import import_module

    return getattr(import_module(module_name, __name__), name)
