"""级联提取模块"""

from .discovery import discover_selectors, is_present, rank_discovery_candidates
from .extractor import CascadingExtractor
from .heuristics import run_heuristic
from .patterns import default_patterns, default_selectors, looks_like, match_pattern
from .scoring import best_scored, score_element
from .strategies import STRATEGY_HANDLERS, STRATEGY_ORDER

__all__ = [
    "CascadingExtractor",
    "discover_selectors",
    "is_present",
    "rank_discovery_candidates",
    "run_heuristic",
    "default_patterns",
    "default_selectors",
    "looks_like",
    "match_pattern",
    "best_scored",
    "score_element",
    "STRATEGY_HANDLERS",
    "STRATEGY_ORDER",
]
