"""知识库维护

- prune_bucket: 剪枝长期低成功率的选择器，并限制单桶记录数
- cleanup_bucket: 清理长期无活动且成功次数不足的选择器
- compute_insights / compute_health: 统计表现并给出健康状态
- AutoMaintenance: 后台周期任务，依次执行 剪枝 → 清理 → 统计

所有清理都不会删除桶内表现最好的记录。
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from ..common.config import KnowledgeConfig
from ..common.logger import get_logger
from ..common.types import KnowledgeSnapshot, SelectorBucket, SelectorRecord
from .ranking import best_record, rank_records

if TYPE_CHECKING:
    from .store import KnowledgeStore

logger = get_logger(__name__)

DAY_SECONDS = 24 * 3600

# 统计阈值
INSIGHT_MIN_ATTEMPTS = 5
HIGH_PERFORMER_RATIO = 0.8
LOW_PERFORMER_RATIO = 0.3
TOP_PERFORMERS_LIMIT = 10
PROBLEMATIC_LIMIT = 5


def prune_bucket(bucket: SelectorBucket, now: float, settings: KnowledgeConfig) -> int:
    """剪枝单个桶，返回删除的记录数"""
    if not bucket.records:
        return 0

    best = best_record(bucket)

    def should_prune(record: SelectorRecord) -> bool:
        if record is best:
            return False
        if record.total_attempts < settings.prune_min_attempts:
            return False
        if now - record.last_activity_at < settings.prune_grace_s:
            return False
        return record.success_ratio < settings.prune_ratio_threshold

    kept = [record for record in bucket.records if not should_prune(record)]
    kept = rank_records(kept)[: max(settings.max_records_per_bucket, 1)]

    removed = len(bucket.records) - len(kept)
    if removed:
        bucket.records = kept
        bucket.updated_at = now
    return removed


def cleanup_bucket(bucket: SelectorBucket, now: float, settings: KnowledgeConfig) -> int:
    """清理长期无活动的记录，返回删除的记录数"""
    if not bucket.records:
        return 0

    best = best_record(bucket)
    stale_after = settings.stale_after_days * DAY_SECONDS

    kept = [
        record
        for record in bucket.records
        if record is best
        or now - record.last_activity_at < stale_after
        or record.success_count > settings.stale_keep_success_count
    ]

    removed = len(bucket.records) - len(kept)
    if removed:
        bucket.records = kept
        bucket.updated_at = now
    return removed


def compute_insights(snapshot: KnowledgeSnapshot, now: float) -> dict[str, Any]:
    """汇总全部选择器的表现"""
    records = [record for bucket in snapshot.buckets.values() for record in bucket.records]

    def summary(record: SelectorRecord) -> dict[str, Any]:
        return {
            "selector": record.selector,
            "success_ratio": round(record.success_ratio, 4),
            "attempts": record.total_attempts,
        }

    sampled = [r for r in records if r.total_attempts >= INSIGHT_MIN_ATTEMPTS]
    top = sorted(sampled, key=lambda r: -r.success_ratio)[:TOP_PERFORMERS_LIMIT]
    problematic = sorted(
        (r for r in sampled if r.success_ratio < LOW_PERFORMER_RATIO),
        key=lambda r: r.success_ratio,
    )[:PROBLEMATIC_LIMIT]

    average = sum(r.success_ratio for r in records) / len(records) if records else 0.0
    statistics = {
        "total_buckets": len(snapshot.buckets),
        "total_selectors": len(records),
        "average_success_ratio": round(average, 4),
        "high_performers": sum(1 for r in records if r.success_ratio > HIGH_PERFORMER_RATIO),
        "low_performers": sum(1 for r in records if r.success_ratio < LOW_PERFORMER_RATIO),
        "total_attempts": sum(r.total_attempts for r in records),
    }

    recommendations: list[str] = []
    if statistics["low_performers"] > statistics["high_performers"]:
        recommendations.append("低成功率选择器多于高成功率选择器，建议检查提取策略")
    if records and average < 0.6:
        recommendations.append("整体成功率偏低，可能需要重新发现选择器")
    if len(top) < 5:
        recommendations.append("高表现选择器较少，需要积累更多学习数据")

    return {
        "top_performers": [summary(r) for r in top],
        "problematic": [summary(r) for r in problematic],
        "statistics": statistics,
        "recommendations": recommendations,
        "generated_at": now,
    }


def compute_health(insights: dict[str, Any] | None) -> dict[str, Any]:
    """根据统计结果给出健康状态：healthy / warning / critical / unknown"""
    if not insights or not insights.get("statistics", {}).get("total_selectors"):
        return {"status": "unknown", "message": "暂无统计数据"}

    stats = insights["statistics"]
    average = stats["average_success_ratio"]
    status, message = "healthy", "运行良好"
    if average < 0.4:
        status, message = "critical", "成功率过低，需要立即处理"
    elif average < 0.6:
        status, message = "warning", "成功率低于预期"
    elif stats["low_performers"] > stats["high_performers"] * 2:
        status, message = "warning", "失败的选择器过多"

    return {
        "status": status,
        "message": message,
        "success_ratio": average,
        "total_selectors": stats["total_selectors"],
        "recommendations": insights.get("recommendations", []),
        "last_maintenance": insights.get("generated_at"),
    }


class AutoMaintenance:
    """知识库自动维护

    首次运行在 initial_delay_s 秒后，之后每 interval_s 秒执行一次。

    Example:
        >>> maintenance = AutoMaintenance(store)
        >>> maintenance.start()
        >>> ...
        >>> await maintenance.stop()
    """

    def __init__(
        self,
        store: "KnowledgeStore",
        interval_s: float | None = None,
        initial_delay_s: float | None = None,
    ):
        self.store = store
        self.interval_s = interval_s if interval_s is not None else store.settings.maintenance_interval_s
        self.initial_delay_s = (
            initial_delay_s if initial_delay_s is not None else store.settings.maintenance_initial_delay_s
        )
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """启动后台维护任务（需在事件循环中调用）"""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"[Maintenance] 自动维护已启动 (间隔 {self.interval_s:.0f} 秒)")

    async def stop(self) -> None:
        """停止后台维护任务"""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[Maintenance] 自动维护已停止")

    async def run_once(self) -> dict[str, Any]:
        """执行一轮维护：剪枝 → 清理 → 统计"""
        logger.info("[Maintenance] 开始维护")
        pruned = await self.store.optimize()
        cleaned = await self.store.cleanup_stale()
        insights = await self.store.build_insights()
        report = {
            "pruned": pruned,
            "cleaned": cleaned,
            "recommendations": insights.get("recommendations", []),
        }
        logger.info(f"[Maintenance] 维护完成: 剪枝 {pruned} 条, 清理 {cleaned} 条")
        return report

    async def _loop(self) -> None:
        await asyncio.sleep(self.initial_delay_s)
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:  # noqa: BLE001
                logger.error(f"[Maintenance] 维护失败: {e}")
            await asyncio.sleep(self.interval_s)
