"""流水线模块"""

from .runner import DEFAULT_FIELDS, ProfileResult, ProfileScraper

__all__ = ["DEFAULT_FIELDS", "ProfileResult", "ProfileScraper"]
