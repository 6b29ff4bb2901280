"""
通用 JSON 文档读写工具

知识库与陷阱库都是"一个文件一个 JSON 文档"的形式：
- 读取：文件不存在或无法解析时返回 None，由调用方按空文档处理
- 写入：整体覆盖，先写临时文件再原子替换，避免写到一半的文件被读到
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Union

from loguru import logger


def ensure_directory(path: Union[str, Path]) -> bool:
    """
    确保目录存在，如果不存在则创建

    Args:
        path: 目录路径

    Returns:
        bool: 成功返回 True，失败返回 False
    """
    try:
        p = Path(path)
        if not p.exists():
            p.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Created directory: {p}")
        return True
    except OSError as e:
        logger.error(f"[FS_CREATE_ERROR] Failed to create directory {path}: {e}")
        return False


def file_exists(file_path: Union[str, Path]) -> bool:
    """检查文件是否存在"""
    return Path(file_path).exists()


def save_json(file_path: Union[str, Path], data: Union[dict, list], indent: int = 2) -> bool:
    """
    保存 JSON 数据到文件（原子替换）

    Args:
        file_path: 文件路径
        data: 要保存的数据（dict 或 list）
        indent: 缩进空格数

    Returns:
        bool: 成功返回 True，失败返回 False
    """
    path = Path(file_path)
    if not ensure_directory(path.parent):
        return False

    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=indent)
        os.replace(tmp_name, path)
        logger.debug(f"Saved file: {path}")
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"[FS_SAVE_ERROR] Failed to save {file_path}: {e}")
        if tmp_name and Path(tmp_name).exists():
            try:
                Path(tmp_name).unlink()
            except OSError:
                pass
        return False


def load_json(file_path: Union[str, Path]) -> Union[dict, list, None]:
    """
    从文件加载 JSON 数据

    Args:
        file_path: 文件路径

    Returns:
        dict/list: JSON 数据，文件不存在或解析失败返回 None
    """
    path = Path(file_path)
    if not path.exists():
        logger.debug(f"[FS_READ_WARN] File not found: {file_path}")
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"[FS_READ_ERROR] Failed to read {file_path}: {e}")
        return None
