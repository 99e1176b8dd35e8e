"""辅助功能（AX）树遍历。

在 macOS 上通过 ApplicationServices 读取元素属性；属性读取函数可替换，
测试时用普通字典模拟整棵树。
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

try:  # pragma: no cover - 平台判定
    import ApplicationServices
except ImportError:  # pragma: no cover - 非 macOS 环境
    ApplicationServices = None  # type: ignore

from notchwatch.core.probe import current_scope

logger = logging.getLogger(__name__)

AttributeGetter = Callable[[Any, str], Any]

TEXT_ATTRIBUTES = ("AXValue", "AXTitle", "AXDescription")
# 只有容器类元素才继续向下展开，避免遍历大型文本/表格内容
CONTAINER_ROLES = frozenset(
    {
        "AXWindow",
        "AXGroup",
        "AXToolbar",
        "AXSplitGroup",
        "AXScrollArea",
        "AXLayoutArea",
        "AXWebArea",
        "AXSheet",
        "AXTabGroup",
        "AXUnknown",
    }
)


def ax_get_attribute(element: Any, name: str) -> Any:
    """读取单个 AX 属性，失败（无权限、元素失效、属性不存在）时返回 ``None``。"""

    if ApplicationServices is None:
        return None
    err, value = ApplicationServices.AXUIElementCopyAttributeValue(element, name, None)
    if err != 0:
        return None
    return value


def is_trusted() -> bool:
    """当前进程是否已获得辅助功能授权。"""

    if ApplicationServices is None:
        return False
    return bool(ApplicationServices.AXIsProcessTrusted())


class AccessibilityTree:
    """以某个元素为根的有限深度遍历。"""

    def __init__(
        self,
        root: Any,
        get_attribute: Optional[AttributeGetter] = None,
        max_depth: int = 10,
        container_roles: Optional[frozenset[str]] = None,
    ) -> None:
        self._root = root
        self._get = get_attribute or ax_get_attribute
        self._max_depth = max_depth
        self._containers = CONTAINER_ROLES if container_roles is None else container_roles

    @classmethod
    def for_pid(cls, pid: int, max_depth: int = 10) -> "AccessibilityTree":
        if ApplicationServices is None:
            raise RuntimeError("当前环境缺少 ApplicationServices")
        return cls(ApplicationServices.AXUIElementCreateApplication(pid), max_depth=max_depth)

    def windows(self) -> List[Any]:
        return list(self._get(self._root, "AXWindows") or [])

    def window_titles(self) -> List[str]:
        titles: List[str] = []
        for window in self.windows():
            title = self._get(window, "AXTitle")
            if isinstance(title, str) and title:
                titles.append(title)
        return titles

    def has_window_subrole(self, subroles: Sequence[str]) -> bool:
        return any(self._get(window, "AXSubrole") in subroles for window in self.windows())

    def iter_texts(self, roles: Optional[Sequence[str]] = None) -> Iterator[Tuple[str, str]]:
        """深度优先产出 ``(role, text)``，可只保留指定角色的元素。

        当前采样被取消时立即停止遍历。
        """

        scope = current_scope()
        stack: List[Tuple[Any, int]] = [(window, 0) for window in reversed(self.windows())]
        while stack:
            if scope is not None and scope.cancelled:
                logger.debug("AX 遍历被取消")
                return
            element, depth = stack.pop()
            role = self._get(element, "AXRole") or ""
            if roles is None or role in roles:
                for attr in TEXT_ATTRIBUTES:
                    value = self._get(element, attr)
                    if isinstance(value, str) and value.strip():
                        yield role, value.strip()

            if depth >= self._max_depth:
                continue
            if depth > 0 and role not in self._containers:
                continue
            children = self._get(element, "AXChildren") or []
            for child in reversed(list(children)):
                stack.append((child, depth + 1))
