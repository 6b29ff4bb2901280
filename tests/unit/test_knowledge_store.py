"""知识库单元测试"""

import asyncio
import json

import pytest

from adaptspider.common.types import KnowledgeSnapshot, SelectorBucket, SelectorRecord
from adaptspider.knowledge import KnowledgeStore, TrapRegistry
from adaptspider.knowledge.document import document_state
from adaptspider.knowledge.ranking import needs_rediscovery, rank_records

PATTERN = "www.facebook.com/acme"


class TestRanking:
    """选择器排序测试"""

    def test_success_ratio_first(self):
        """成功率高的排在前面"""
        records = [
            SelectorRecord(selector="b", success_count=1, failure_count=1),
            SelectorRecord(selector="a", success_count=3, failure_count=0),
        ]
        assert [r.selector for r in rank_records(records)] == ["a", "b"]

    def test_attempts_break_ties(self):
        """成功率相同时尝试次数多的排在前面"""
        records = [
            SelectorRecord(selector="few", success_count=1),
            SelectorRecord(selector="many", success_count=4),
        ]
        assert [r.selector for r in rank_records(records)] == ["many", "few"]

    def test_recent_success_breaks_remaining_ties(self):
        """成功率与次数都相同时最近成功的排在前面"""
        records = [
            SelectorRecord(selector="old", success_count=2, last_success_at=100.0),
            SelectorRecord(selector="new", success_count=2, last_success_at=200.0),
        ]
        assert [r.selector for r in rank_records(records)] == ["new", "old"]


class TestNeedsRediscovery:
    """重新发现判定测试"""

    def test_missing_bucket(self):
        """没有桶时需要重新发现"""
        assert needs_rediscovery(None, now=0.0) is True

    def test_empty_bucket(self):
        """空桶需要重新发现"""
        assert needs_rediscovery(SelectorBucket(data_type="email", url_pattern="x"), now=0.0) is True

    def test_majority_recent_low_confidence(self):
        """近期失败且低成功率的记录超过半数"""
        bucket = SelectorBucket(
            data_type="email",
            url_pattern="x",
            records=[
                SelectorRecord(selector="a", failure_count=3, last_failure_at=990.0),
                SelectorRecord(selector="b", failure_count=2, last_failure_at=995.0),
                SelectorRecord(selector="c", success_count=5, last_success_at=900.0),
            ],
        )
        assert needs_rediscovery(bucket, now=1000.0) is True

    def test_old_failures_do_not_count(self):
        """超出时间窗口的失败不计入"""
        bucket = SelectorBucket(
            data_type="email",
            url_pattern="x",
            records=[
                SelectorRecord(selector="a", failure_count=3, last_failure_at=100.0),
                SelectorRecord(selector="b", failure_count=2, last_failure_at=100.0),
            ],
        )
        assert needs_rediscovery(bucket, now=1000.0) is False

    def test_exactly_half_is_not_enough(self):
        """恰好半数不触发"""
        bucket = SelectorBucket(
            data_type="email",
            url_pattern="x",
            records=[
                SelectorRecord(selector="a", failure_count=1, last_failure_at=999.0),
                SelectorRecord(selector="b", success_count=1, last_success_at=999.0),
            ],
        )
        assert needs_rediscovery(bucket, now=1000.0) is False


class TestKnowledgeStore:
    """知识库读写测试"""

    @pytest.mark.asyncio
    async def test_empty_store(self, store):
        """新知识库没有任何候选"""
        assert await store.get_adaptive_selectors("email", PATTERN) == []
        assert await store.should_rediscover("email", PATTERN) is True
        assert await store.get_patterns("email", PATTERN) == []

    @pytest.mark.asyncio
    async def test_selectors_ordered_by_performance(self, store):
        """按成功率、尝试次数排序返回"""
        await store.record_success("email", ["a.one"], PATTERN)
        await store.record_success("email", ["a.one"], PATTERN)
        await store.record_success("email", ["a.two"], PATTERN)
        await store.record_failure("email", ["a.two"], "未命中", PATTERN)
        await store.record_success("email", ["a.three"], PATTERN)

        assert await store.get_adaptive_selectors("email", PATTERN) == ["a.one", "a.three", "a.two"]

    @pytest.mark.asyncio
    async def test_never_succeeded_selectors_are_excluded(self, store):
        """从未成功的选择器不作为候选"""
        await store.record_failure("email", ["a.bad"], "未命中", PATTERN)
        await store.record_success("email", ["a.good"], PATTERN)

        assert await store.get_adaptive_selectors("email", PATTERN) == ["a.good"]

    @pytest.mark.asyncio
    async def test_buckets_are_isolated(self, store):
        """不同数据类型与 URL 模式互不影响"""
        await store.record_success("email", ["a.mail"], PATTERN)

        assert await store.get_adaptive_selectors("phone", PATTERN) == []
        assert await store.get_adaptive_selectors("email", "www.facebook.com/other") == []

    @pytest.mark.asyncio
    async def test_counts_and_timestamps(self, store, clock):
        """成功/失败计数与时间戳"""
        await store.record_success("email", ["a.mail"], PATTERN)
        clock.advance(10)
        await store.record_failure("email", ["a.mail"], "x" * 500, PATTERN)

        bucket = await store.get_bucket("email", PATTERN)
        record = bucket.get("a.mail")
        assert record.success_count == 1
        assert record.failure_count == 1
        assert record.last_success_at == clock.now - 10
        assert record.last_failure_at == clock.now
        assert len(record.last_error) == 100

    @pytest.mark.asyncio
    async def test_duplicate_selectors_counted_once(self, store):
        """同一批中重复的选择器只计一次"""
        await store.record_success("email", ["a.mail", "a.mail"], PATTERN)

        bucket = await store.get_bucket("email", PATTERN)
        assert bucket.get("a.mail").success_count == 1

    @pytest.mark.asyncio
    async def test_should_rediscover_after_recent_failures(self, store, clock):
        """近期普遍失败时需要重新发现，窗口过后恢复"""
        await store.record_success("email", ["a.good"], PATTERN)
        assert await store.should_rediscover("email", PATTERN) is False

        await store.record_failure("email", ["a.bad1", "a.bad2"], "未命中", PATTERN)
        assert await store.should_rediscover("email", PATTERN) is True

        clock.advance(120)
        assert await store.should_rediscover("email", PATTERN) is False

    @pytest.mark.asyncio
    async def test_learn_pattern_moves_to_front(self, store):
        """学习到的正则移到最前面且不重复"""
        await store.learn_pattern("likes", PATTERN, "p1")
        await store.learn_pattern("likes", PATTERN, "p2")
        await store.learn_pattern("likes", PATTERN, "p1")

        assert await store.get_patterns("likes", PATTERN) == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_persisted_between_instances(self, store, knowledge_settings):
        """写入的内容对新实例可见"""
        await store.record_success("email", ["a.mail"], PATTERN)

        reopened = KnowledgeStore(settings=knowledge_settings)
        assert await reopened.get_adaptive_selectors("email", PATTERN) == ["a.mail"]

        with open(knowledge_settings.store_path, encoding="utf-8") as f:
            data = json.load(f)
        assert "email|www.facebook.com/acme" in data["buckets"]

    @pytest.mark.asyncio
    async def test_corrupt_file_treated_as_empty(self, tmp_path, knowledge_settings):
        """无法解析的文件按空知识库处理"""
        path = tmp_path / "learning_data.json"
        path.write_text("{not json", encoding="utf-8")

        store = KnowledgeStore(path, settings=knowledge_settings)
        assert await store.get_adaptive_selectors("email", PATTERN) == []

        await store.record_success("email", ["a.mail"], PATTERN)
        assert await store.get_adaptive_selectors("email", PATTERN) == ["a.mail"]

    @pytest.mark.asyncio
    async def test_write_failure_keeps_memory_snapshot(self, tmp_path, knowledge_settings):
        """持久化失败不抛出，内存快照仍然更新"""
        # 路径是目录，写入必然失败
        store = KnowledgeStore(tmp_path, settings=knowledge_settings)

        await store.record_success("email", ["a.mail"], PATTERN)

        assert store.snapshot.get_bucket("email", PATTERN) is not None

    @pytest.mark.asyncio
    async def test_save_and_load(self, store):
        """整体保存与重新加载"""
        document = KnowledgeSnapshot()
        document.buckets["email|x"] = SelectorBucket(
            data_type="email",
            url_pattern="x",
            records=[SelectorRecord(selector="a", success_count=1)],
        )
        assert await store.save(document) is True

        loaded = await store.load()
        assert loaded.get_bucket("email", "x").get("a").success_count == 1

    def test_url_pattern_uses_configured_depth(self, tmp_path):
        """URL 模式按配置的路径深度截断"""
        from adaptspider.common.config import KnowledgeConfig

        store = KnowledgeStore(tmp_path / "k.json", settings=KnowledgeConfig(url_path_depth=1))
        assert store.url_pattern("https://www.facebook.com/acme/about") == "www.facebook.com/acme"

    @pytest.mark.asyncio
    async def test_stats_rows(self, store):
        """每个桶一行统计"""
        await store.record_success("email", ["a.mail"], PATTERN)
        await store.record_failure("email", ["a.other"], "未命中", PATTERN)

        rows = await store.stats()
        assert len(rows) == 1
        row = rows[0]
        assert row["data_type"] == "email"
        assert row["selectors"] == 2
        assert row["attempts"] == 2
        assert row["success_ratio"] == 0.5
        assert row["best"] == "a.mail"


class TestConcurrentWrites:
    """同一文件上多个存储实例的并发写入"""

    def test_state_shared_per_resolved_path(self, tmp_path):
        assert document_state(tmp_path / "a" / ".." / "k.json") is document_state(tmp_path / "k.json")
        assert document_state(tmp_path / "k.json") is not document_state(tmp_path / "other.json")

    @pytest.mark.asyncio
    async def test_gathered_records_reach_exact_totals(self, knowledge_settings):
        """两个实例并发记录，计数不丢失"""
        first = KnowledgeStore(settings=knowledge_settings)
        second = KnowledgeStore(settings=knowledge_settings)

        await asyncio.gather(
            *(first.record_success("email", ["a.mail"], PATTERN) for _ in range(40)),
            *(second.record_success("email", ["a.mail"], PATTERN) for _ in range(40)),
            *(first.record_failure("email", ["a.mail"], "未命中", PATTERN) for _ in range(5)),
            *(second.record_failure("email", ["a.mail"], "未命中", PATTERN) for _ in range(5)),
        )

        loaded = await KnowledgeStore(settings=knowledge_settings).load()
        record = loaded.get_bucket("email", PATTERN).get("a.mail")
        assert record.success_count == 80
        assert record.failure_count == 10

    @pytest.mark.asyncio
    async def test_gathered_trap_adds_reach_exact_totals(self, honeypot_settings):
        first = TrapRegistry(settings=honeypot_settings)
        second = TrapRegistry(settings=honeypot_settings)
        url = "https://www.facebook.com/acme"

        await asyncio.gather(
            *(first.add(url, [f"#first-{i}"]) for i in range(30)),
            *(second.add(url, [f"#second-{i}"]) for i in range(30)),
        )

        traps = await TrapRegistry(settings=honeypot_settings).get(url)
        assert len(traps) == 60
        assert len(set(traps)) == 60

    @pytest.mark.asyncio
    async def test_cancelled_record_still_persisted(self, knowledge_settings):
        """提交途中被取消的任务仍完成写入"""
        store = KnowledgeStore(settings=knowledge_settings)

        task = asyncio.create_task(store.record_success("email", ["a.mail"], PATTERN))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        # 排在被取消的提交之后，返回时前一次写入已落盘
        await store.record_success("email", ["b.mail"], PATTERN)

        bucket = (await KnowledgeStore(settings=knowledge_settings).load()).get_bucket("email", PATTERN)
        assert bucket.get("a.mail").success_count == 1
        assert bucket.get("b.mail").success_count == 1
