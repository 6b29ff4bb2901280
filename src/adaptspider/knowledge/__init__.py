"""知识库模块

选择器学习统计与陷阱注册表的持久化。
"""

from .document import JsonDocumentStore
from .maintenance import AutoMaintenance, compute_health, compute_insights
from .ranking import needs_rediscovery, rank_records
from .store import KnowledgeStore
from .traps import TrapRegistry, merge_traps

__all__ = [
    "JsonDocumentStore",
    "KnowledgeStore",
    "TrapRegistry",
    "AutoMaintenance",
    "compute_health",
    "compute_insights",
    "needs_rediscovery",
    "rank_records",
    "merge_traps",
]
