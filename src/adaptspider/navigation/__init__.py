"""导航控制模块"""

from .controller import (
    NavigationController,
    NavigationRun,
    default_navigation_selectors,
    rank_navigation_candidates,
)

__all__ = [
    "NavigationController",
    "NavigationRun",
    "default_navigation_selectors",
    "rank_navigation_candidates",
]
