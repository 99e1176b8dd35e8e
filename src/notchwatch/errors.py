"""框架级异常定义。

探针执行失败与超时不会以异常形式抛出，只会被规整为不活跃读数；
这里的异常仅用于调用方误用框架的情形，需要尽早暴露。
"""

from __future__ import annotations


class NotchwatchError(Exception):
    """所有 notchwatch 异常的基类。"""


class FrameworkMisuseError(NotchwatchError):
    """调用方违反框架前置条件。"""


class DuplicateSourceError(FrameworkMisuseError):
    """同一来源被重复注册。"""

    def __init__(self, source: object) -> None:
        super().__init__(f"来源已注册: {source}")
        self.source = source


class UnknownSourceError(FrameworkMisuseError):
    """操作了未注册的来源。"""

    def __init__(self, source: object) -> None:
        super().__init__(f"来源未注册: {source}")
        self.source = source


class SourceClosedError(FrameworkMisuseError):
    """对已移除（关闭）的来源调用 poll。"""

    def __init__(self, source: object) -> None:
        super().__init__(f"来源已关闭: {source}")
        self.source = source
