"""探针基类。"""

from __future__ import annotations

import abc
import logging
from typing import Optional

from notchwatch.core.probe import current_scope
from notchwatch.core.reading import Reading


class BaseProbe(abc.ABC):
    """所有内置探针的抽象基类。

    子类只负责判断“是否在忙”；调度、超时与去抖由采样执行器完成。
    """

    name = "probe"

    def __init__(self, name: Optional[str] = None) -> None:
        if name is not None:
            self.name = name
        self._log = logging.getLogger(f"{type(self).__module__}.{self.name}")

    @abc.abstractmethod
    def sample(self, timeout: Optional[float]) -> Reading:
        """执行一次采样。"""

    @staticmethod
    def cancelled() -> bool:
        """当前采样是否已被看门狗取消，供长时间遍历的探针提前退出。"""

        scope = current_scope()
        return scope is not None and scope.cancelled

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name})"
