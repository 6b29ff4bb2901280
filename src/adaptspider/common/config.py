"""配置管理"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .constants import DEFAULT_SUSPICIOUS_TOKENS

# 加载 .env 文件
load_dotenv()


class BrowserConfig(BaseModel):
    """浏览器配置（仅 CLI 自带的会话使用）"""

    headless: bool = Field(default_factory=lambda: os.getenv("HEADLESS", "true").lower() == "true")
    viewport_width: int = Field(default_factory=lambda: int(os.getenv("VIEWPORT_WIDTH", "1280")))
    viewport_height: int = Field(default_factory=lambda: int(os.getenv("VIEWPORT_HEIGHT", "720")))
    timeout_ms: int = Field(default_factory=lambda: int(os.getenv("STEP_TIMEOUT_MS", "30000")))


class KnowledgeConfig(BaseModel):
    """选择器学习知识库配置

    重新发现判定与剪枝阈值都是经验值，不同站点可能需要单独调整。
    """

    store_path: str = Field(
        default_factory=lambda: os.getenv("KNOWLEDGE_STORE_PATH", "output/learning_data.json")
    )

    # ===== 重新发现判定 =====
    # 最近失败的时间窗口（秒）
    rediscover_window_s: float = Field(
        default_factory=lambda: float(os.getenv("REDISCOVER_WINDOW_S", "60"))
    )
    # 低置信度成功率阈值
    rediscover_low_ratio: float = Field(
        default_factory=lambda: float(os.getenv("REDISCOVER_LOW_RATIO", "0.3"))
    )
    # 低置信度记录占比超过该值时触发重新发现
    rediscover_fraction: float = Field(
        default_factory=lambda: float(os.getenv("REDISCOVER_FRACTION", "0.5"))
    )

    # ===== 剪枝 =====
    # 成功率低于该值的记录会被剪枝
    prune_ratio_threshold: float = Field(
        default_factory=lambda: float(os.getenv("PRUNE_RATIO_THRESHOLD", "0.2"))
    )
    # 样本量达到该值后才允许剪枝
    prune_min_attempts: int = Field(
        default_factory=lambda: int(os.getenv("PRUNE_MIN_ATTEMPTS", "3"))
    )
    # 最近活跃（秒）的记录不剪枝，默认一周
    prune_grace_s: float = Field(
        default_factory=lambda: float(os.getenv("PRUNE_GRACE_S", str(7 * 24 * 3600)))
    )
    # 单个桶保留的最大记录数
    max_records_per_bucket: int = Field(
        default_factory=lambda: int(os.getenv("MAX_RECORDS_PER_BUCKET", "50"))
    )
    # 超过该天数无活动且成功次数不足的记录会被清理
    stale_after_days: float = Field(
        default_factory=lambda: float(os.getenv("STALE_AFTER_DAYS", "90"))
    )
    stale_keep_success_count: int = Field(
        default_factory=lambda: int(os.getenv("STALE_KEEP_SUCCESS_COUNT", "5"))
    )

    # ===== URL 模式 =====
    # URL 模式保留的路径段数
    url_path_depth: int = Field(default_factory=lambda: int(os.getenv("URL_PATH_DEPTH", "2")))

    # ===== 自动维护 =====
    maintenance_interval_s: float = Field(
        default_factory=lambda: float(os.getenv("MAINTENANCE_INTERVAL_S", str(6 * 3600)))
    )
    maintenance_initial_delay_s: float = Field(
        default_factory=lambda: float(os.getenv("MAINTENANCE_INITIAL_DELAY_S", "30"))
    )


class HoneypotConfig(BaseModel):
    """蜜罐检测配置"""

    store_path: str = Field(
        default_factory=lambda: os.getenv("HONEYPOT_STORE_PATH", "output/honeypots.json")
    )
    # 每个 host 最多保留的陷阱选择器数量
    max_per_host: int = Field(default_factory=lambda: int(os.getenv("HONEYPOT_MAX_PER_HOST", "500")))
    # 单次检测最多返回的选择器数量
    max_detect: int = Field(default_factory=lambda: int(os.getenv("HONEYPOT_MAX_DETECT", "200")))
    # 元素偏离视口超过该像素数视为不可见
    offscreen_px: float = Field(default_factory=lambda: float(os.getenv("HONEYPOT_OFFSCREEN_PX", "2000")))
    # 可疑命名关键字（逗号分隔）
    suspicious_tokens: list[str] = Field(
        default_factory=lambda: [
            token.strip().lower()
            for token in os.getenv("HONEYPOT_SUSPICIOUS_TOKENS", ",".join(DEFAULT_SUSPICIOUS_TOKENS)).split(",")
            if token.strip()
        ]
    )


class ExtractionConfig(BaseModel):
    """级联提取器配置"""

    # 等待候选选择器出现的时间（毫秒），0 表示不等待直接查询
    selector_wait_ms: int = Field(default_factory=lambda: int(os.getenv("SELECTOR_WAIT_MS", "0")))
    # 重新发现返回的候选选择器数量上限
    discovery_limit: int = Field(default_factory=lambda: int(os.getenv("DISCOVERY_LIMIT", "20")))
    # 页面快照采集的元素数量上限
    snapshot_max_elements: int = Field(
        default_factory=lambda: int(os.getenv("SNAPSHOT_MAX_ELEMENTS", "4000"))
    )


class NavigationConfig(BaseModel):
    """导航控制器配置"""

    max_attempts: int = Field(default_factory=lambda: int(os.getenv("NAV_MAX_ATTEMPTS", "2")))
    # 退避基础延迟（毫秒），实际延迟 = base × 尝试次数
    base_delay_ms: int = Field(default_factory=lambda: int(os.getenv("NAV_BASE_DELAY_MS", "500")))
    # 等待元素出现的超时（毫秒）
    presence_timeout_ms: int = Field(
        default_factory=lambda: int(os.getenv("NAV_PRESENCE_TIMEOUT_MS", "2000"))
    )
    # 点击后等待页面稳定的时间（毫秒）
    settle_ms: int = Field(default_factory=lambda: int(os.getenv("NAV_SETTLE_MS", "2000")))
    # 稳定等待的随机波动（毫秒）
    settle_jitter_ms: int = Field(default_factory=lambda: int(os.getenv("NAV_SETTLE_JITTER_MS", "300")))


class LoggingConfig(BaseModel):
    """会话事件日志配置"""

    # 会话事件文件（为空则不落盘）
    event_file: str = Field(default_factory=lambda: os.getenv("SESSION_EVENT_FILE", ""))
    event_max_chars: int = Field(
        default_factory=lambda: int(os.getenv("SESSION_EVENT_MAX_CHARS", "2000"))
    )


class Config(BaseModel):
    """全局配置"""

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    knowledge: KnowledgeConfig = Field(default_factory=KnowledgeConfig)
    honeypot: HoneypotConfig = Field(default_factory=HoneypotConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls) -> "Config":
        """加载配置"""
        return cls()

    def ensure_dirs(self) -> None:
        """确保知识库所在目录存在"""
        Path(self.knowledge.store_path).parent.mkdir(parents=True, exist_ok=True)
        Path(self.honeypot.store_path).parent.mkdir(parents=True, exist_ok=True)


# 全局配置实例
config = Config.load()
