"""陷阱选择器注册表

按 host 持久化被判定为蜜罐的选择器，磁盘格式为 ``{host: [selector, ...]}``。
只追加、去重，从不自动删除；再次加入的选择器视为最新，超过上限时淘汰最久未加入的条目。
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

from pydantic import BaseModel, Field

from ..common.config import HoneypotConfig, config
from ..common.logger import get_logger
from ..common.utils.url_pattern import host_of
from .document import JsonDocumentStore

logger = get_logger(__name__)


class TrapDocument(BaseModel):
    """陷阱注册表的持久化内容（列表按加入顺序排列）"""

    hosts: dict[str, list[str]] = Field(default_factory=dict)


def merge_traps(existing: list[str], traps: Iterable[str], max_per_host: int) -> list[str]:
    """合并陷阱选择器

    本次传入的选择器视为最新加入（已存在的会移到末尾），超过上限时从头部淘汰。
    对同一批选择器重复合并结果不变。
    """
    incoming: list[str] = []
    for selector in traps:
        if selector and selector not in incoming:
            incoming.append(selector)

    incoming_set = set(incoming)
    merged = [s for s in existing if s not in incoming_set] + incoming
    if max_per_host <= 0:
        return []
    return merged[-max_per_host:]


class TrapRegistry(JsonDocumentStore[TrapDocument]):
    """按 host 分桶的陷阱选择器注册表"""

    model = TrapDocument
    label = "Traps"

    def __init__(
        self,
        path: str | Path | None = None,
        settings: HoneypotConfig | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self.settings = settings or config.honeypot
        super().__init__(path or self.settings.store_path, clock=clock)

    async def get(self, url: str) -> list[str]:
        """返回该 URL 所在 host 的已知陷阱（首次访问为空）"""
        document = await self.current()
        return list(document.hosts.get(host_of(url), []))

    async def add(self, url: str, traps: Iterable[str]) -> list[str]:
        """合并新检测到的陷阱，返回本次新增的选择器"""
        traps = list(traps)
        if not traps:
            return []
        host = host_of(url)
        max_per_host = self.settings.max_per_host

        def mutate(document: TrapDocument) -> list[str]:
            existing = document.hosts.get(host, [])
            merged = merge_traps(existing, traps, max_per_host)
            document.hosts[host] = merged
            known = set(existing)
            return [s for s in merged if s not in known]

        added = await self._commit(mutate)
        if added:
            logger.info(f"[Traps] {host} 新增 {len(added)} 个陷阱选择器")
        return added

    async def hosts(self) -> dict[str, int]:
        """每个 host 的陷阱数量"""
        document = await self.current()
        return {host: len(selectors) for host, selectors in document.hosts.items()}

    def _parse(self, raw: Any) -> TrapDocument:
        if isinstance(raw, dict) and "hosts" not in raw:
            raw = {
                "hosts": {
                    str(host): [s for s in selectors if isinstance(s, str)]
                    for host, selectors in raw.items()
                    if isinstance(selectors, list)
                }
            }
        return super()._parse(raw)

    def _dump(self, document: TrapDocument) -> dict[str, Any]:
        return {host: list(selectors) for host, selectors in document.hosts.items()}
