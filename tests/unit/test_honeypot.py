"""蜜罐检测单元测试"""

import re

import pytest

from adaptspider.common.config import HoneypotConfig
from adaptspider.common.constants import DEFAULT_SUSPICIOUS_TOKENS
from adaptspider.common.exceptions import DomEvaluationError
from adaptspider.common.types import BoundingBox, DocumentSnapshot, ElementSnapshot
from adaptspider.honeypot import (
    HoneypotDetector,
    classify_traps,
    is_effectively_hidden,
    suspicious_pattern,
)
from fakes import FakePage, el

URL = "https://www.facebook.com/acme"


def _snap(index=0, tag="input", bbox=(0, 0, 100, 20), **kwargs):
    x, y, w, h = bbox
    return ElementSnapshot(index=index, tag=tag, bbox=BoundingBox(x=x, y=y, width=w, height=h), **kwargs)


@pytest.fixture
def pattern():
    return re.compile(suspicious_pattern(DEFAULT_SUSPICIOUS_TOKENS))


class TestSuspiciousPattern:
    """可疑命名正则测试"""

    @pytest.mark.parametrize(
        "value",
        ["honeypot", "HONEYPOT", "email-trap", "bot", "bots-field", "isBot", "botField", "do-not-fill", "leave-empty"],
    )
    def test_flags_tokens(self, pattern, value):
        assert pattern.search(value)

    @pytest.mark.parametrize("value", ["bottom", "robot", "bootstrap", "trapezoid", "about", "phone"])
    def test_ignores_embedded_words(self, pattern, value):
        assert pattern.search(value) is None

    @pytest.mark.parametrize(
        "value",
        ["contacthoneypot", "emailHoneypotField", "xhuman-check", "hpdo-not-fill", "form_leave-empty_1"],
    )
    def test_long_tokens_match_anywhere(self, pattern, value):
        assert pattern.search(value)

    def test_short_token_length_is_configurable(self):
        loose = re.compile(suspicious_pattern(["bot"], short_token_max_length=0))
        assert loose.search("robot")

    def test_empty_tokens(self):
        assert suspicious_pattern([]) == ""
        assert suspicious_pattern(["  "]) == ""


class TestIsEffectivelyHidden:
    """不可见判定测试"""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"bbox": (0, 0, 0, 20)},
            {"display": "none"},
            {"visibility": "hidden"},
            {"opacity": 0.0},
            {"hidden": True},
            {"aria_hidden": True},
            {"bbox": (-5000, 0, 10, 10)},
            {"bbox": (0, -5000, 10, 10)},
            {"bbox": (5000, 0, 10, 10)},
        ],
    )
    def test_hidden(self, kwargs):
        assert is_effectively_hidden(_snap(**kwargs), 1280, 2000) is True

    def test_visible(self):
        assert is_effectively_hidden(_snap(display="block", opacity=0.5), 1280, 2000) is False

    def test_far_below_viewport_is_visible(self):
        """长页面下方的内容可以滚动到，不算隐藏"""
        assert is_effectively_hidden(_snap(bbox=(0, 9000, 100, 20)), 1280, 2000) is False


class TestClassifyTraps:
    """陷阱分类测试"""

    def test_hidden_and_suspicious(self):
        snapshot = DocumentSnapshot(
            elements=[
                _snap(0, "input", name="q"),
                _snap(1, "input", id="hp", display="none"),
                _snap(2, "div", class_name="bot-check"),
                _snap(3, "img", display="none"),
                _snap(4, "a", class_name="bottom-link"),
            ]
        )

        assert classify_traps(snapshot, HoneypotConfig()) == ["#hp", ".bot-check"]

    def test_deduplicates(self):
        snapshot = DocumentSnapshot(
            elements=[_snap(0, "input", name="trap"), _snap(1, "input", name="trap")],
        )
        assert classify_traps(snapshot, HoneypotConfig()) == ['[name="trap"]']

    def test_respects_max_detect(self):
        snapshot = DocumentSnapshot(
            elements=[_snap(i, "input", id=f"f{i}", display="none") for i in range(10)],
        )
        assert len(classify_traps(snapshot, HoneypotConfig(max_detect=3))) == 3


class TestHoneypotDetector:
    """陷阱清理流程测试"""

    def _page(self):
        return FakePage(
            URL,
            el("h1", "Acme Corp", bbox=(0, 50, 400, 40)),
            el("a", "trap@bad.test", id="email-trap", href="mailto:trap@bad.test", bbox=(-5000, 0, 10, 10)),
            el("a", "info@acme.test", href="mailto:info@acme.test"),
            el("input", "", name="website", display="none"),
        )

    @pytest.mark.asyncio
    async def test_strip_removes_and_persists(self, registry, honeypot_settings, make_session, events):
        page = self._page()
        detector = HoneypotDetector(registry, honeypot_settings)

        report = await detector.strip(make_session(page))

        assert report.host == "www.facebook.com"
        assert report.known == []
        assert set(report.detected) == {"#email-trap", '[name="website"]'}
        assert report.removed_count == 2
        assert page.query("#email-trap") is None
        assert page.query('a[href^="mailto:"]').text == "info@acme.test"
        assert set(await registry.get(URL)) == {"#email-trap", '[name="website"]'}
        assert any(e["message"] == "陷阱清理完成" for e in events)

    @pytest.mark.asyncio
    async def test_known_traps_removed_first(self, registry, honeypot_settings, make_session):
        """已知陷阱在检测前删除，不会被重复持久化"""
        await registry.add(URL, ["#email-trap"])
        page = self._page()
        detector = HoneypotDetector(registry, honeypot_settings)

        report = await detector.strip(make_session(page))

        assert report.known == ["#email-trap"]
        assert "#email-trap" not in report.detected
        assert report.persisted == ['[name="website"]']
        assert report.removed_count == 2

    @pytest.mark.asyncio
    async def test_visible_element_matching_known_selector_survives(self, registry, honeypot_settings, make_session):
        """已知陷阱选择器命中的可见、命名正常的元素不删除"""
        await registry.add(URL, ["h1"])
        page = self._page()

        await HoneypotDetector(registry, honeypot_settings).strip(make_session(page))

        assert page.query("h1") is not None

    @pytest.mark.asyncio
    async def test_page_failure_does_not_raise(self, registry, honeypot_settings, make_session, events):
        page = self._page()
        page.evaluate_error = DomEvaluationError("evaluate", "page crashed")

        report = await HoneypotDetector(registry, honeypot_settings).strip(make_session(page))

        assert report.detected == []
        assert report.removed_count == 0
        assert any(e["kind"] == "error" for e in events)

    @pytest.mark.asyncio
    async def test_closed_session(self, registry, honeypot_settings, make_session):
        session = make_session(self._page())
        session.close()

        report = await HoneypotDetector(registry, honeypot_settings).strip(session)

        assert report.host == "unknown"
        assert report.removed_count == 0
