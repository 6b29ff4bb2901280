"""工具模块"""

from .delay import get_backoff_delay, get_random_delay
from .file_utils import ensure_directory, file_exists, load_json, save_json
from .url_pattern import host_of, navigation_type, url_pattern

__all__ = [
    "get_random_delay",
    "get_backoff_delay",
    "ensure_directory",
    "file_exists",
    "load_json",
    "save_json",
    "host_of",
    "url_pattern",
    "navigation_type",
]
