"""pytest 全局配置和 fixtures

提供测试所需的基础设施：可控时钟、临时知识库/陷阱库、内存假页面与会话。
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# 添加项目路径
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
# 测试辅助模块（fakes.py）
sys.path.insert(0, str(Path(__file__).parent))

from adaptspider.common.config import (  # noqa: E402
    ExtractionConfig,
    HoneypotConfig,
    KnowledgeConfig,
    NavigationConfig,
)
from adaptspider.common.logger import SessionEventLogger  # noqa: E402
from adaptspider.knowledge import KnowledgeStore, TrapRegistry  # noqa: E402
from adaptspider.session import ExtractionSession  # noqa: E402


# ============================================================================
# 时钟
# ============================================================================


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


# ============================================================================
# 配置
# ============================================================================


@pytest.fixture
def knowledge_settings(tmp_path):
    return KnowledgeConfig(store_path=str(tmp_path / "learning_data.json"))


@pytest.fixture
def honeypot_settings(tmp_path):
    return HoneypotConfig(store_path=str(tmp_path / "honeypots.json"))


@pytest.fixture
def extraction_settings():
    return ExtractionConfig(selector_wait_ms=0, discovery_limit=20, snapshot_max_elements=4000)


@pytest.fixture
def navigation_settings():
    """退避 500ms，点击后不等待稳定，便于断言等待序列"""
    return NavigationConfig(
        max_attempts=2,
        base_delay_ms=500,
        presence_timeout_ms=100,
        settle_ms=0,
        settle_jitter_ms=0,
    )


# ============================================================================
# 存储
# ============================================================================


@pytest.fixture
def store(knowledge_settings, clock):
    """使用临时文件与可控时钟的知识库"""
    return KnowledgeStore(settings=knowledge_settings, clock=clock)


@pytest.fixture
def registry(honeypot_settings):
    """使用临时文件的陷阱库"""
    return TrapRegistry(settings=honeypot_settings)


# ============================================================================
# 会话
# ============================================================================


@pytest.fixture
def events():
    """收集会话事件的 sink"""
    return []


@pytest.fixture
def make_session(events):
    """把假页面包装为提取会话"""

    def factory(page, session_id: str = "test-session") -> ExtractionSession:
        logger = SessionEventLogger("adaptspider.test", sink=events.append)
        return ExtractionSession(page, session_id=session_id, events=logger)

    return factory
