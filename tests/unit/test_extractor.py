"""级联提取器单元测试"""

import pytest

from adaptspider.common.exceptions import DomEvaluationError
from adaptspider.common.types import StrategyType
from adaptspider.extraction import CascadingExtractor
from adaptspider.extraction.patterns import LIKES_PATTERN
from adaptspider.extraction.strategies import StrategyContext, extract_by_scoring
from adaptspider.honeypot import HoneypotDetector
from fakes import FakePage, el

URL = "https://www.facebook.com/acme"
PATTERN = "www.facebook.com/acme"


@pytest.fixture
def extractor(store, extraction_settings):
    return CascadingExtractor(store, extraction_settings)


class TestCascadingExtractor:
    """级联提取流程测试"""

    @pytest.mark.asyncio
    async def test_happy_path_records_single_success(self, extractor, store, make_session):
        """h1 标题被发现、提取并记录一次成功"""
        page = FakePage(URL, el("h1", "Acme Corp", bbox=(0, 50, 400, 40)), el("p", "Welcome to our page"))

        outcome = await extractor.extract_detailed("companyName", make_session(page))

        assert outcome.value == "Acme Corp"
        assert outcome.strategy is StrategyType.SELECTOR
        assert outcome.rediscovered is True
        bucket = await store.get_bucket("companyName", PATTERN)
        assert [(r.selector, r.success_count, r.failure_count) for r in bucket.records] == [("h1", 1, 0)]

    @pytest.mark.asyncio
    async def test_learned_selector_reused(self, extractor, store, make_session):
        """已学到的选择器直接使用，不再重新发现"""
        page = FakePage(URL, el("h1", "Acme Corp", bbox=(0, 50, 400, 40)))
        await store.record_success("companyName", ["h1"], PATTERN)

        outcome = await extractor.extract_detailed("companyName", make_session(page))

        assert outcome.value == "Acme Corp"
        assert outcome.rediscovered is False
        assert "snapshot" not in page.scripts

    @pytest.mark.asyncio
    async def test_mailto_link_value(self, extractor, make_session):
        page = FakePage(URL, el("a", "Email us", href="mailto:info@acme.test"))

        assert await extractor.extract("email", make_session(page)) == "info@acme.test"

    @pytest.mark.asyncio
    async def test_earlier_selectors_recorded_as_failures(self, extractor, store, make_session):
        """胜出选择器之前尝试过的选择器记录失败"""
        page = FakePage(URL, el("h1", "Acme Corp", bbox=(0, 50, 400, 40)))
        await store.record_success("companyName", ["h1.gone"], PATTERN)
        await store.record_success("companyName", ["h1.gone"], PATTERN)
        await store.record_success("companyName", ["h1"], PATTERN)

        assert await extractor.extract("companyName", make_session(page)) == "Acme Corp"

        bucket = await store.get_bucket("companyName", PATTERN)
        assert bucket.get("h1.gone").failure_count == 1
        assert bucket.get("h1").success_count == 2

    @pytest.mark.asyncio
    async def test_full_miss_records_failures(self, extractor, store, make_session):
        """所有策略都失败时返回 None，并为尝试过的选择器记录失败"""
        page = FakePage(URL, el("p", "Welcome"))

        outcome = await extractor.extract_detailed("email", make_session(page))

        assert outcome.value is None
        assert len(outcome.attempts) == 4
        assert [a.strategy_used for a in outcome.attempts] == list(StrategyType)
        bucket = await store.get_bucket("email", PATTERN)
        record = bucket.get('a[href^="mailto:"]')
        assert record.failure_count == 1
        assert record.success_count == 0
        assert await store.get_adaptive_selectors("email", PATTERN) == []

    @pytest.mark.asyncio
    async def test_pattern_strategy_learns_pattern(self, extractor, store, make_session):
        """正则策略胜出时正则被学习"""
        page = FakePage(URL, el("div", "1,234 people like this"))

        outcome = await extractor.extract_detailed("likes", make_session(page))

        assert outcome.value == "1,234"
        assert outcome.strategy is StrategyType.PATTERN
        assert await store.get_patterns("likes", PATTERN) == [LIKES_PATTERN]

    @pytest.mark.asyncio
    async def test_heuristic_strategy(self, extractor, make_session):
        """没有可用元素时从页面标题取公司名"""
        page = FakePage(URL, el("img", "", src="https://cdn.test/a.jpg"), title="Acme Bakery | Facebook")

        outcome = await extractor.extract_detailed("companyName", make_session(page))

        assert outcome.value == "Acme Bakery"
        assert outcome.strategy is StrategyType.HEURISTIC

    @pytest.mark.asyncio
    async def test_honeypot_stripped_before_extraction(
        self, extractor, store, registry, honeypot_settings, make_session
    ):
        """清理陷阱后，已学到的通用选择器不会命中诱饵"""
        page = FakePage(
            URL,
            el("a", "trap@bad.test", id="contact-trap", href="mailto:trap@bad.test", bbox=(-5000, 0, 10, 10)),
            el("a", "info@acme.test", href="mailto:info@acme.test"),
        )
        await store.record_success("email", ['a[href^="mailto:"]'], PATTERN)
        session = make_session(page)

        await HoneypotDetector(registry, honeypot_settings).strip(session)
        value = await extractor.extract("email", session)

        assert value == "info@acme.test"
        assert await registry.get(URL) == ["#contact-trap"]

    @pytest.mark.asyncio
    async def test_without_stripping_trap_wins(self, extractor, store, make_session):
        """对照：不清理陷阱时诱饵会被取到"""
        page = FakePage(
            URL,
            el("a", "trap@bad.test", id="contact-trap", href="mailto:trap@bad.test", bbox=(-5000, 0, 10, 10)),
            el("a", "info@acme.test", href="mailto:info@acme.test"),
        )
        await store.record_success("email", ['a[href^="mailto:"]'], PATTERN)

        assert await extractor.extract("email", make_session(page)) == "trap@bad.test"

    @pytest.mark.asyncio
    async def test_page_errors_never_raise(self, extractor, make_session):
        """页面端持续失败时最多尝试四个策略并返回 None"""
        page = FakePage(URL, el("h1", "Acme Corp", bbox=(0, 50, 400, 40)))
        page.evaluate_error = DomEvaluationError("evaluate", "detached")

        outcome = await extractor.extract_detailed("companyName", make_session(page))

        assert outcome.value is None
        assert len(outcome.attempts) <= 4

    @pytest.mark.asyncio
    async def test_unexpected_errors_never_raise(self, extractor, make_session):
        page = FakePage(URL, el("h1", "Acme Corp", bbox=(0, 50, 400, 40)))
        page.evaluate_error = RuntimeError("boom")

        outcome = await extractor.extract_detailed("companyName", make_session(page))

        assert outcome.value is None
        assert len(outcome.attempts) == 4
        assert all(a.error for a in outcome.attempts)

    @pytest.mark.asyncio
    async def test_closed_session(self, extractor, store, make_session, events):
        """会话关闭后不再发起 DOM 操作"""
        page = FakePage(URL, el("h1", "Acme Corp", bbox=(0, 50, 400, 40)))
        session = make_session(page)
        session.close()

        outcome = await extractor.extract_detailed("companyName", session)

        assert outcome.value is None
        assert outcome.attempts == []
        assert page.scripts == []
        assert await store.get_bucket("companyName", PATTERN) is None

    @pytest.mark.asyncio
    async def test_session_closed_mid_extraction(self, extractor, make_session):
        """提取过程中会话被放弃时停止后续策略"""
        page = FakePage(URL, el("p", "Welcome"))
        session = make_session(page)
        original = page.evaluate

        async def closing_evaluate(script, arg=None):
            result = await original(script, arg)
            session.close()
            return result

        page.evaluate = closing_evaluate

        outcome = await extractor.extract_detailed("email", session)

        assert outcome.value is None
        assert len(outcome.attempts) < 4

    @pytest.mark.asyncio
    async def test_optimize_extraction(self, extractor, store):
        assert await extractor.optimize_extraction() == 0


class TestScoringStrategy:
    """打分策略测试"""

    @pytest.mark.asyncio
    async def test_uses_stable_selector(self, extraction_settings, make_session):
        page = FakePage(
            URL,
            el("span", "Our office"),
            el("span", "12 Main Street, Springfield 12345", data_testid="address"),
        )
        ctx = StrategyContext(
            data_type="address",
            url_pattern=PATTERN,
            session=make_session(page),
            settings=extraction_settings,
        )

        result = await extract_by_scoring(ctx)

        assert result.value == "12 Main Street, Springfield 12345"
        assert result.used == ['[data-testid="address"]']
