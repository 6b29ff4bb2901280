"""选择器学习知识库

按 (数据类型, URL 模式) 分桶记录每个选择器的成功/失败统计，以及学习到的正则。
所有写操作都是一次完整的 读取 → 合并 → 保存；持久化失败只记录日志，不影响提取。
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

from ..common.config import KnowledgeConfig, config
from ..common.logger import get_logger
from ..common.types import DataType, KnowledgeSnapshot, SelectorBucket, type_key
from ..common.utils.url_pattern import url_pattern as build_url_pattern
from .document import JsonDocumentStore
from .maintenance import cleanup_bucket, compute_health, compute_insights, prune_bucket
from .ranking import needs_rediscovery, rank_records

logger = get_logger(__name__)


class KnowledgeStore(JsonDocumentStore[KnowledgeSnapshot]):
    """选择器学习知识库（进程内单写者）

    Example:
        >>> store = KnowledgeStore("output/learning_data.json")
        >>> pattern = store.url_pattern("https://example.com/pages/123")
        >>> await store.record_success("email", ['a[href^="mailto:"]'], pattern)
        >>> await store.get_adaptive_selectors("email", pattern)
        ['a[href^="mailto:"]']
    """

    model = KnowledgeSnapshot
    label = "Knowledge"

    def __init__(
        self,
        path: str | Path | None = None,
        settings: KnowledgeConfig | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self.settings = settings or config.knowledge
        super().__init__(path or self.settings.store_path, clock=clock)

    def url_pattern(self, url: str | None) -> str:
        """按配置的路径深度归一化 URL"""
        return build_url_pattern(url, depth=self.settings.url_path_depth)

    # ========== 读取 ==========

    async def get_bucket(self, data_type: DataType | str, url_pattern: str) -> SelectorBucket | None:
        snapshot = await self.current()
        bucket = snapshot.get_bucket(data_type, url_pattern)
        return bucket.model_copy(deep=True) if bucket else None

    async def get_adaptive_selectors(self, data_type: DataType | str, url_pattern: str) -> list[str]:
        """返回至少成功过一次的选择器，按成功率、尝试次数、最近成功时间排序"""
        snapshot = await self.current()
        bucket = snapshot.get_bucket(data_type, url_pattern)
        if bucket is None:
            return []
        return [record.selector for record in rank_records(bucket.records) if record.success_count > 0]

    async def should_rediscover(self, data_type: DataType | str, url_pattern: str) -> bool:
        """最近失败且低成功率的记录超过桶内半数时需要重新发现"""
        snapshot = await self.current()
        return needs_rediscovery(
            snapshot.get_bucket(data_type, url_pattern),
            now=self.clock(),
            window_s=self.settings.rediscover_window_s,
            low_ratio=self.settings.rediscover_low_ratio,
            fraction=self.settings.rediscover_fraction,
        )

    async def get_patterns(self, data_type: DataType | str, url_pattern: str) -> list[str]:
        """返回该桶学习到的正则（可能为空）"""
        snapshot = await self.current()
        bucket = snapshot.get_bucket(data_type, url_pattern)
        return list(bucket.patterns) if bucket else []

    # ========== 写入 ==========

    async def record_success(
        self,
        data_type: DataType | str,
        selectors: Iterable[str],
        url_pattern: str,
    ) -> None:
        """记录选择器成功"""
        selectors = _unique(selectors)
        if not selectors:
            return
        now = self.clock()

        def mutate(snapshot: KnowledgeSnapshot) -> None:
            bucket = self._ensure_bucket(snapshot, data_type, url_pattern, now)
            for selector in selectors:
                bucket.ensure(selector).mark_success(now)
            snapshot.last_updated = now

        await self._commit(mutate)
        logger.debug(f"[Knowledge] 记录成功 {type_key(data_type)} @ {url_pattern}: {selectors}")

    async def record_failure(
        self,
        data_type: DataType | str,
        selectors: Iterable[str],
        reason: str | None,
        url_pattern: str,
    ) -> None:
        """记录选择器失败"""
        selectors = _unique(selectors)
        if not selectors:
            return
        now = self.clock()

        def mutate(snapshot: KnowledgeSnapshot) -> None:
            bucket = self._ensure_bucket(snapshot, data_type, url_pattern, now)
            for selector in selectors:
                bucket.ensure(selector).mark_failure(now, reason)
            snapshot.last_updated = now

        await self._commit(mutate)
        logger.debug(f"[Knowledge] 记录失败 {type_key(data_type)} @ {url_pattern}: {selectors} ({reason})")

    async def learn_pattern(self, data_type: DataType | str, url_pattern: str, pattern: str) -> None:
        """将产出有效结果的正则提到该桶学习列表的最前面"""
        now = self.clock()

        def mutate(snapshot: KnowledgeSnapshot) -> None:
            bucket = self._ensure_bucket(snapshot, data_type, url_pattern, now)
            if bucket.patterns and bucket.patterns[0] == pattern:
                return
            bucket.patterns = [pattern, *[p for p in bucket.patterns if p != pattern]]
            snapshot.last_updated = now

        await self._commit(mutate)

    # ========== 维护 ==========

    async def optimize(self) -> int:
        """剪枝所有桶，返回删除的记录总数"""
        now = self.clock()

        def mutate(snapshot: KnowledgeSnapshot) -> int:
            removed = sum(prune_bucket(bucket, now, self.settings) for bucket in snapshot.buckets.values())
            if removed:
                snapshot.last_updated = now
            return removed

        removed = await self._commit(mutate)
        logger.info(f"[Knowledge] 选择器剪枝完成，删除 {removed} 条记录")
        return removed

    async def cleanup_stale(self) -> int:
        """清理长期无活动的记录，返回删除的记录总数"""
        now = self.clock()

        def mutate(snapshot: KnowledgeSnapshot) -> int:
            removed = sum(cleanup_bucket(bucket, now, self.settings) for bucket in snapshot.buckets.values())
            for key in [k for k, bucket in snapshot.buckets.items() if not bucket.records and not bucket.patterns]:
                del snapshot.buckets[key]
            if removed:
                snapshot.last_updated = now
            return removed

        removed = await self._commit(mutate)
        logger.info(f"[Knowledge] 过期数据清理完成，删除 {removed} 条记录")
        return removed

    async def build_insights(self) -> dict[str, Any]:
        """生成统计与建议，并写入知识库"""
        now = self.clock()

        def mutate(snapshot: KnowledgeSnapshot) -> dict[str, Any]:
            snapshot.insights = compute_insights(snapshot, now)
            return snapshot.insights

        insights = await self._commit(mutate)
        logger.info(
            f"[Knowledge] 统计完成: {len(insights['top_performers'])} 个高表现选择器, "
            f"{len(insights['recommendations'])} 条建议"
        )
        return insights

    async def system_health(self) -> dict[str, Any]:
        """根据最近一次统计给出健康状态"""
        snapshot = await self.current()
        return compute_health(snapshot.insights)

    async def stats(self) -> list[dict[str, Any]]:
        """每个桶的概要统计"""
        snapshot = await self.current()
        rows = []
        for bucket in snapshot.buckets.values():
            success = sum(r.success_count for r in bucket.records)
            total = sum(r.total_attempts for r in bucket.records)
            ranked = rank_records(bucket.records)
            rows.append(
                {
                    "data_type": bucket.data_type,
                    "url_pattern": bucket.url_pattern,
                    "selectors": len(bucket.records),
                    "patterns": len(bucket.patterns),
                    "success_ratio": success / total if total else 0.0,
                    "attempts": total,
                    "best": ranked[0].selector if ranked else None,
                }
            )
        return rows

    # ========== 内部 ==========

    @staticmethod
    def _ensure_bucket(
        snapshot: KnowledgeSnapshot,
        data_type: DataType | str,
        url_pattern: str,
        now: float,
    ) -> SelectorBucket:
        key = KnowledgeSnapshot.bucket_key(data_type, url_pattern)
        bucket = snapshot.buckets.get(key)
        if bucket is None:
            bucket = SelectorBucket(
                data_type=type_key(data_type),
                url_pattern=url_pattern,
                created_at=now,
            )
            snapshot.buckets[key] = bucket
        bucket.updated_at = now
        return bucket


def _unique(selectors: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for selector in selectors:
        if selector and selector not in seen:
            seen.append(selector)
    return seen
