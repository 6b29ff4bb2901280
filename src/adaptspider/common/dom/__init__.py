"""页面扫描模块"""

from .api import capture_snapshot, element_info, remove_elements
from .scripts import ELEMENT_INFO_JS, REMOVE_TRAPS_JS, SNAPSHOT_JS
from .selectors import (
    selector_options,
    stable_selector,
    candidate_selectors,
    css_escape,
    quote_attr,
    info_value,
    resolve_value,
    snapshot_value,
    trap_selector,
)

__all__ = [
    "capture_snapshot",
    "element_info",
    "remove_elements",
    "SNAPSHOT_JS",
    "REMOVE_TRAPS_JS",
    "ELEMENT_INFO_JS",
    "selector_options",
    "stable_selector",
    "candidate_selectors",
    "css_escape",
    "quote_attr",
    "info_value",
    "resolve_value",
    "snapshot_value",
    "trap_selector",
]
