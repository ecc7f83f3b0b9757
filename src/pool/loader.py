import json
import os
import threading
from typing import Optional

from pydantic import ValidationError

from ..errors import PoolFormatError
from ..models.pool import MessagePool

DEFAULT_POOL_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
    "assets",
    "pool",
    "pool.json",
)


def load_pool(path: str) -> MessagePool:
    """读取并校验消息池；任何缺失或格式错误都直接失败，不返回部分数据"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        raise PoolFormatError(f"Pool file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise PoolFormatError(f"Pool file is not valid JSON: {path}: {e}") from e

    return parse_pool(raw, source=path)


def parse_pool(raw, source: str = "<memory>") -> MessagePool:
    if not isinstance(raw, dict) or "messages" not in raw:
        raise PoolFormatError(f"Pool {source} has no 'messages' section")
    try:
        return MessagePool.model_validate(raw)
    except ValidationError as e:
        raise PoolFormatError(f"Pool {source} failed validation: {e}") from e


class PoolStore:
    """
    进程级的消息池持有者：首次使用时加载一次并缓存。
    选择器只接收加载好的 MessagePool，不直接访问 PoolStore。
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or DEFAULT_POOL_PATH
        self._pool: Optional[MessagePool] = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._pool is not None

    def get(self) -> MessagePool:
        if self._pool is None:
            with self._lock:
                if self._pool is None:
                    self._pool = load_pool(self.path)
        return self._pool

    def reload(self) -> MessagePool:
        """重新读取文件；失败时保留旧数据并抛出异常"""
        pool = load_pool(self.path)
        with self._lock:
            self._pool = pool
        return pool
