"""JSON 文档存储基类

知识库与陷阱库共用的单写者持久化协议：
- 每次写入都是一次完整的 读取 → 合并 → 保存，由 asyncio.Lock 串行化
- 文件读写放到工作线程执行，不阻塞事件循环
- 提交过程被 asyncio.shield 保护，调用方取消后已排队的写入仍会完成
- 读操作直接使用最近一次提交的快照，不加锁

写锁与已提交快照按文件（解析后的绝对路径）在进程内共享：同一文件上的多个存储实例
仍然只有一个写者。
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..common.exceptions import StoreIOError
from ..common.logger import get_logger
from ..common.utils.file_utils import load_json, save_json

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
ResultT = TypeVar("ResultT")


@dataclass
class DocumentState:
    """同一文件上所有存储实例共享的写锁与已提交快照"""

    snapshot: Any = None
    _lock: asyncio.Lock | None = None
    _loop: asyncio.AbstractEventLoop | None = None

    def lock(self) -> asyncio.Lock:
        """当前事件循环上的写锁（asyncio.Lock 不能跨事件循环使用）"""
        loop = asyncio.get_running_loop()
        if self._lock is None or self._loop is not loop:
            self._lock = asyncio.Lock()
            self._loop = loop
        return self._lock


_STATES: dict[Path, DocumentState] = {}
_STATES_GUARD = threading.Lock()


def document_state(path: str | Path) -> DocumentState:
    """返回该文件的共享状态（按解析后的绝对路径）"""
    key = Path(path).resolve()
    with _STATES_GUARD:
        state = _STATES.get(key)
        if state is None:
            state = _STATES[key] = DocumentState()
        return state


class JsonDocumentStore(Generic[ModelT]):
    """单个 JSON 文档的单写者存储"""

    model: type[ModelT]
    label: str = "Store"

    def __init__(self, path: str | Path, clock: Callable[[], float] | None = None):
        self.path = Path(path)
        self.clock = clock or time.time
        self._state = document_state(self.path)

    # ========== 读取 ==========

    @property
    def snapshot(self) -> ModelT:
        """最近一次提交的快照（未加载时为空文档）"""
        if self._state.snapshot is None:
            return self.model()
        return self._state.snapshot

    async def current(self) -> ModelT:
        """返回最近一次提交的快照，首次访问时从磁盘加载"""
        if self._state.snapshot is None:
            self._state.snapshot = await self._read()
        return self._state.snapshot

    async def load(self) -> ModelT:
        """从磁盘重新加载文档并返回副本"""
        self._state.snapshot = await self._read()
        return self._state.snapshot.model_copy(deep=True)

    async def save(self, document: ModelT) -> bool:
        """整体覆盖写入文档

        Returns:
            bool: 持久化是否成功（失败时内存快照仍会更新）
        """
        async with self._state.lock():
            snapshot = document.model_copy(deep=True)
            self._state.snapshot = snapshot
            try:
                await self._write(snapshot)
                return True
            except StoreIOError as e:
                logger.warning(f"[{self.label}] {e}，本次结果仅保留在内存中")
                return False

    # ========== 提交 ==========

    async def _commit(self, mutator: Callable[[ModelT], ResultT]) -> ResultT:
        """在写锁内执行 读取 → 合并 → 保存"""
        return await asyncio.shield(self._locked_commit(mutator))

    async def _locked_commit(self, mutator: Callable[[ModelT], ResultT]) -> ResultT:
        async with self._state.lock():
            document = await self._read()
            result = mutator(document)
            self._state.snapshot = document
            try:
                await self._write(document)
            except StoreIOError as e:
                logger.warning(f"[{self.label}] {e}，本次学习信号仅保留在内存中")
            return result

    # ========== 文件读写 ==========

    async def _read(self) -> ModelT:
        raw = await asyncio.to_thread(load_json, self.path)
        return self._parse(raw)

    async def _write(self, document: ModelT) -> None:
        data = self._dump(document)
        ok = await asyncio.to_thread(save_json, self.path, data)
        if not ok:
            raise StoreIOError(str(self.path))

    def _parse(self, raw: Any) -> ModelT:
        if not isinstance(raw, dict) or not raw:
            return self.model()
        try:
            return self.model.model_validate(raw)
        except PydanticValidationError as e:
            logger.warning(f"[{self.label}] 文档格式无效，按空文档处理: {self.path} ({e.error_count()} 个错误)")
            return self.model()

    def _dump(self, document: ModelT) -> dict[str, Any]:
        return document.model_dump(mode="json")
