"""选择器合成与元素取值

- trap_selector: 陷阱元素的选择器（id → name → class → 父元素 + nth-child）
- selector_options / stable_selector: 发现阶段为元素生成的可学习选择器
- resolve_value: 按数据类型从元素中取出语义相关的值
"""

from __future__ import annotations

import re
from typing import Any, Callable
from urllib.parse import unquote

from ..types import DataType, ElementSnapshot, type_key

IMAGE_TYPES = {DataType.PROFILE_IMAGE.value, DataType.BANNER_IMAGE.value}
IMAGE_TAGS = {"img", "image"}

_PLAIN_IDENT_CHAR = re.compile(r"[a-zA-Z0-9_\-\u0080-\uffff]")


def css_escape(value: str) -> str:
    """转义 CSS 标识符（与浏览器的 CSS.escape 行为一致）"""
    out: list[str] = []
    for i, ch in enumerate(value):
        code = ord(ch)
        if code == 0:
            out.append("\ufffd")
        elif 0x01 <= code <= 0x1F or code == 0x7F:
            out.append(f"\\{code:x} ")
        elif i == 0 and ch.isdigit():
            out.append(f"\\{code:x} ")
        elif i == 1 and ch.isdigit() and value[0] == "-":
            out.append(f"\\{code:x} ")
        elif i == 0 and ch == "-" and len(value) == 1:
            out.append("\\-")
        elif _PLAIN_IDENT_CHAR.match(ch):
            out.append(ch)
        else:
            out.append("\\" + ch)
    return "".join(out)


def quote_attr(value: str) -> str:
    """转义属性选择器中的字符串值"""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def trap_selector(el: ElementSnapshot) -> str:
    """为陷阱元素合成选择器"""
    if el.id:
        return f"#{css_escape(el.id)}"
    if el.name:
        return f'[name="{quote_attr(el.name)}"]'
    if el.classes:
        return "".join(f".{css_escape(c)}" for c in el.classes)

    positional = f"{el.tag}:nth-child({el.nth_child})"
    if el.parent_id:
        return f"#{css_escape(el.parent_id)} > {positional}"
    if el.parent_tag:
        return f"{el.parent_tag} > {positional}"
    return el.path or positional


SelectorOption = tuple[str, Callable[[ElementSnapshot], bool]]


def selector_options(el: ElementSnapshot) -> list[SelectorOption]:
    """为元素生成候选选择器及其在快照上的匹配条件（稳定性从高到低）"""
    options: list[SelectorOption] = []
    if el.test_id:
        test_id = el.test_id
        options.append((f'[data-testid="{quote_attr(test_id)}"]', lambda o: o.test_id == test_id))
    if el.id:
        el_id = el.id
        options.append((f"#{css_escape(el_id)}", lambda o: o.id == el_id))
    if el.aria_label:
        tag, label = el.tag, el.aria_label
        options.append(
            (f'{tag}[aria-label="{quote_attr(label)}"]', lambda o: o.tag == tag and o.aria_label == label)
        )

    href = el.href or ""
    for scheme in ("mailto:", "tel:"):
        if el.tag == "a" and href.startswith(scheme):
            options.append(
                (f'a[href^="{scheme}"]', lambda o, s=scheme: o.tag == "a" and (o.href or "").startswith(s))
            )
            break

    tag = el.tag
    if el.classes:
        classes = set(el.classes)
        options.append(
            (
                tag + "".join(f".{css_escape(c)}" for c in el.classes),
                lambda o: o.tag == tag and classes.issubset(o.classes),
            )
        )
    options.append((tag, lambda o: o.tag == tag))
    return options


def candidate_selectors(el: ElementSnapshot) -> list[str]:
    """为元素生成候选选择器（稳定性从高到低）"""
    return [selector for selector, _ in selector_options(el)]


def stable_selector(el: ElementSnapshot, elements: list[ElementSnapshot]) -> str:
    """在文档中首个命中即为该元素的最稳定选择器，都不满足时退回唯一路径"""
    for selector, predicate in selector_options(el):
        first = next((o for o in elements if predicate(o)), None)
        if first is not None and first.index == el.index:
            return selector
    return el.path or candidate_selectors(el)[-1]


def decode_link_target(href: str) -> str:
    """解码 mailto:/tel: 链接的目标"""
    target = href.split(":", 1)[1] if ":" in href else href
    return unquote(target.split("?", 1)[0]).strip()


def resolve_value(
    data_type: "DataType | str",
    tag: str | None,
    text: str | None,
    href: str | None = None,
    src: str | None = None,
) -> str | None:
    """按数据类型取出元素的语义值

    - 图片类型：src（跳过 data: URI）
    - mailto:/tel: 链接：解码后的地址/号码
    - website：链接的 href
    - 其他：去除空白后的文本
    """
    key = type_key(data_type)
    tag = (tag or "").lower()

    if key in IMAGE_TYPES:
        if src and not src.startswith("data:"):
            return src.strip()
        return None

    link = (href or "").strip()
    lowered = link.lower()
    if lowered.startswith(("mailto:", "tel:")):
        return decode_link_target(link) or None

    if key == DataType.WEBSITE.value and link:
        return link

    value = (text or "").strip()
    if value:
        return value
    if tag == "a" and link:
        return link
    return None


def snapshot_value(data_type: "DataType | str", el: ElementSnapshot) -> str | None:
    """从快照元素中取值"""
    return resolve_value(data_type, el.tag, el.text, el.href, el.src)


def info_value(data_type: "DataType | str", info: dict[str, Any] | None) -> str | None:
    """从 ELEMENT_INFO_JS 的返回中取值"""
    if not info:
        return None
    return resolve_value(data_type, info.get("tag"), info.get("text"), info.get("href"), info.get("src"))
