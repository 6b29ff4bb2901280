"""常量定义"""

from __future__ import annotations

# ===== 输入验证 =====
MAX_URL_LENGTH = 2048
VALID_URL_SCHEMES = ("http", "https")

# ===== 提取结果 =====
# 有效结果：去除首尾空白后非空，且长度严格小于该值
MAX_RESULT_LENGTH = 1000
# 快照中单个元素文本的截断长度（大于 MAX_RESULT_LENGTH 即可判定无效）
SNAPSHOT_TEXT_LIMIT = 2000

# ===== 知识库 =====
UNKNOWN_HOST = "unknown"
BUCKET_KEY_SEPARATOR = "|"
NAVIGATION_TYPE_PREFIX = "navigation"
ERROR_TEXT_LIMIT = 100

# ===== 蜜罐检测 =====
TRAP_CANDIDATE_TAGS = ("input", "textarea", "select", "a", "button", "div", "span", "form")
DEFAULT_SUSPICIOUS_TOKENS = (
    "honeypot",
    "trap",
    "bot",
    "do-not-fill",
    "human-check",
    "leave-empty",
)
# 长度不超过该值的可疑关键字按单词边界匹配，其余按子串匹配
SHORT_TOKEN_MAX_LENGTH = 4
# opacity 小于该值视为透明
OPACITY_EPSILON = 0.01
