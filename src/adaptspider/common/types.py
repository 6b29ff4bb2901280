"""核心数据类型定义"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from .constants import BUCKET_KEY_SEPARATOR, ERROR_TEXT_LIMIT, OPACITY_EPSILON


# ============================================================================
# 数据类型与策略
# ============================================================================


class DataType(str, Enum):
    """常用提取字段

    提取接口同样接受任意字符串作为数据类型，枚举只收录内置了默认规则的字段。
    """

    COMPANY_NAME = "companyName"
    EMAIL = "email"
    PHONE = "phone"
    ADDRESS = "address"
    WEBSITE = "website"
    LIKES = "likes"
    FOLLOWERS = "followers"
    BUSINESS_HOURS = "businessHours"
    PROFILE_IMAGE = "profileImage"
    BANNER_IMAGE = "bannerImage"
    NAVIGATION = "navigation"


class StrategyType(str, Enum):
    """提取策略（按优先级排列）"""

    SELECTOR = "selector"
    PATTERN = "pattern"
    HEURISTIC = "heuristic"
    SCORED = "scored"


class NavigationState(str, Enum):
    """导航状态机的状态"""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    VERIFYING = "verifying"
    SUCCEEDED = "succeeded"
    RETRYING = "retrying"
    FAILED = "failed"


def type_key(data_type: "DataType | str") -> str:
    """将数据类型统一为字符串键"""
    if isinstance(data_type, DataType):
        return data_type.value
    return str(data_type)


# ============================================================================
# 页面快照（页面端扫描的结构化输出）
# ============================================================================


class BoundingBox(BaseModel):
    """元素边界框（视口坐标）"""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)


class ElementSnapshot(BaseModel):
    """页面元素快照"""

    index: int = Field(..., description="文档顺序")
    tag: str = Field(..., description="小写标签名")
    id: str | None = None
    name: str | None = None
    class_name: str = ""
    text: str = Field(default="", description="可见文本（截断）")
    href: str | None = None
    src: str | None = None
    alt: str | None = None
    title: str | None = None
    role: str | None = None
    aria_label: str | None = None
    aria_hidden: bool = False
    hidden: bool = Field(default=False, description="是否带 hidden 属性")
    test_id: str | None = None
    display: str = ""
    visibility: str = ""
    opacity: float = 1.0
    bbox: BoundingBox = Field(default_factory=BoundingBox)
    nth_child: int = Field(default=1, description="在父元素子节点中的位置（从 1 开始）")
    parent_id: str | None = None
    parent_tag: str | None = None
    path: str = Field(default="", description="唯一的位置 CSS 路径")

    @property
    def classes(self) -> list[str]:
        return [c for c in self.class_name.split() if c]

    @property
    def has_area(self) -> bool:
        return self.bbox.area > 0

    @property
    def is_displayed(self) -> bool:
        """是否实际渲染可见（不考虑是否在视口内）"""
        return (
            self.display != "none"
            and self.visibility != "hidden"
            and self.opacity > OPACITY_EPSILON
            and not self.hidden
            and self.has_area
        )


class DocumentSnapshot(BaseModel):
    """一次页面扫描的完整结果"""

    url: str = ""
    title: str = ""
    viewport_width: int = 1280
    viewport_height: int = 720
    body_text: str = Field(default="", description="body 的可见文本")
    og_image: str | None = None
    elements: list[ElementSnapshot] = Field(default_factory=list)
    timestamp: float = 0.0

    def visible_elements(self) -> list[ElementSnapshot]:
        return [el for el in self.elements if el.is_displayed]


# ============================================================================
# 知识库
# ============================================================================


class SelectorRecord(BaseModel):
    """单个选择器的成功/失败统计"""

    selector: str
    success_count: int = Field(default=0, ge=0)
    failure_count: int = Field(default=0, ge=0)
    last_success_at: float | None = None
    last_failure_at: float | None = None
    last_error: str | None = None

    @property
    def total_attempts(self) -> int:
        return self.success_count + self.failure_count

    @property
    def success_ratio(self) -> float:
        total = self.total_attempts
        return self.success_count / total if total else 0.0

    @property
    def last_activity_at(self) -> float:
        return max(self.last_success_at or 0.0, self.last_failure_at or 0.0)

    def mark_success(self, now: float) -> None:
        self.success_count += 1
        self.last_success_at = now

    def mark_failure(self, now: float, reason: str | None = None) -> None:
        self.failure_count += 1
        self.last_failure_at = now
        if reason:
            self.last_error = reason[:ERROR_TEXT_LIMIT]


class SelectorBucket(BaseModel):
    """(数据类型, URL 模式) 对应的选择器集合"""

    data_type: str
    url_pattern: str
    records: list[SelectorRecord] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list, description="学习到的正则（优先于默认正则）")
    created_at: float = 0.0
    updated_at: float = 0.0

    def get(self, selector: str) -> SelectorRecord | None:
        for record in self.records:
            if record.selector == selector:
                return record
        return None

    def ensure(self, selector: str) -> SelectorRecord:
        record = self.get(selector)
        if record is None:
            record = SelectorRecord(selector=selector)
            self.records.append(record)
        return record


class KnowledgeSnapshot(BaseModel):
    """知识库的完整持久化内容"""

    buckets: dict[str, SelectorBucket] = Field(default_factory=dict)
    insights: dict | None = None
    last_updated: float | None = None

    @staticmethod
    def bucket_key(data_type: "DataType | str", url_pattern: str) -> str:
        return f"{type_key(data_type)}{BUCKET_KEY_SEPARATOR}{url_pattern}"

    def get_bucket(self, data_type: "DataType | str", url_pattern: str) -> SelectorBucket | None:
        return self.buckets.get(self.bucket_key(data_type, url_pattern))


# ============================================================================
# 提取与陷阱处理结果
# ============================================================================


class ExtractionAttempt(BaseModel):
    """一次策略尝试（不持久化）"""

    data_type: str
    selectors_tried: list[str] = Field(default_factory=list)
    strategy_used: StrategyType
    result: str | None = None
    succeeded: bool = False
    error: str | None = None


class ExtractionOutcome(BaseModel):
    """一次级联提取的结果"""

    data_type: str
    url_pattern: str
    value: str | None = None
    attempts: list[ExtractionAttempt] = Field(default_factory=list)
    rediscovered: bool = False

    @property
    def strategy(self) -> StrategyType | None:
        for attempt in self.attempts:
            if attempt.succeeded:
                return attempt.strategy_used
        return None


class StripReport(BaseModel):
    """一次陷阱清理的结果"""

    host: str
    known: list[str] = Field(default_factory=list)
    detected: list[str] = Field(default_factory=list)
    removed_count: int = 0
    persisted: list[str] = Field(default_factory=list)
