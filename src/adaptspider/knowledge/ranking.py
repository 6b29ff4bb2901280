"""选择器排序与重新发现判定（纯函数）"""

from __future__ import annotations

from ..common.types import SelectorBucket, SelectorRecord


def rank_key(record: SelectorRecord) -> tuple[float, int, float]:
    """排序键：成功率降序 → 总尝试次数降序 → 最近成功时间降序"""
    return (-record.success_ratio, -record.total_attempts, -(record.last_success_at or 0.0))


def rank_records(records: list[SelectorRecord]) -> list[SelectorRecord]:
    """按排序键稳定排序"""
    return sorted(records, key=rank_key)


def best_record(bucket: SelectorBucket) -> SelectorRecord | None:
    """桶内表现最好的记录"""
    if not bucket.records:
        return None
    return rank_records(bucket.records)[0]


def needs_rediscovery(
    bucket: SelectorBucket | None,
    now: float,
    window_s: float = 60.0,
    low_ratio: float = 0.3,
    fraction: float = 0.5,
) -> bool:
    """判断是否需要重新发现选择器

    统计最近 window_s 秒内失败过、且历史成功率低于 low_ratio 的记录，
    数量超过桶内记录总数的 fraction 时返回 True。空桶直接返回 True。
    """
    if bucket is None or not bucket.records:
        return True

    low_confidence = [
        record
        for record in bucket.records
        if record.last_failure_at is not None
        and now - record.last_failure_at <= window_s
        and record.success_ratio < low_ratio
    ]
    return len(low_confidence) > fraction * len(bucket.records)
