"""ProviderState 缓存实现

- MemoryStateCache: 进程内缓存，加锁保证并发写安全
- YamlStateCache: 持久化到 YAML 文件，跨会话复用默认分支等探测结果
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import yaml

from blockrepo.core.exceptions import ValidationError
from blockrepo.core.models import ProviderState
from blockrepo.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)


class MemoryStateCache:
    """内存缓存"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, ProviderState] = {}

    def get(self, locator: str) -> ProviderState | None:
        with self._lock:
            return self._data.get(locator)

    def set(self, locator: str, state: ProviderState) -> None:
        with self._lock:
            self._data[locator] = state

    def delete(self, locator: str) -> None:
        with self._lock:
            self._data.pop(locator, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class YamlStateCache(MemoryStateCache):
    """YAML 文件缓存

    构造时加载已有内容，每次写入后整体原子落盘。
    文件损坏时整体忽略，无法解析的条目会被丢弃（下次解析时重新探测）。
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        try:
            data = load_yaml(self.path)
        except (yaml.YAMLError, ValueError) as e:
            logger.warning("状态缓存文件损坏，忽略并重新探测: %s (%s)", self.path, e)
            return
        for locator, raw in data.items():
            if not isinstance(raw, dict):
                continue
            try:
                self._data[str(locator)] = ProviderState.from_dict(raw)
            except ValidationError as e:
                logger.warning("丢弃无效的缓存条目 %s: %s", locator, e)
        if self._data:
            logger.debug("已加载 %d 条注册表状态缓存: %s", len(self._data), self.path)

    def _flush(self) -> None:
        with self._lock:
            snapshot = {k: v.to_dict() for k, v in sorted(self._data.items())}
        save_yaml(self.path, snapshot)

    def set(self, locator: str, state: ProviderState) -> None:
        super().set(locator, state)
        self._flush()

    def delete(self, locator: str) -> None:
        super().delete(locator)
        self._flush()
