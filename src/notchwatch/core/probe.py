"""探针协议与采样取消作用域。

探针运行在来源专属的执行通道线程中。需要启动子进程的探针应通过
:func:`current_scope` 把进程登记到当前作用域，以便看门狗在截止时间
到达时强制终止。
"""

from __future__ import annotations

import logging
import subprocess
import threading
from typing import Any, Callable, List, Optional, Protocol, runtime_checkable

from notchwatch.core.reading import Reading, normalize_reading

logger = logging.getLogger(__name__)


@runtime_checkable
class Probe(Protocol):
    """采样当前活动状态，并在给定时间内返回。"""

    def sample(self, timeout: Optional[float]) -> Any:
        """返回 :class:`Reading`、``bool`` 或 ``None``。"""


class FunctionProbe:
    """把普通可调用对象包装为探针。"""

    def __init__(self, func: Callable[[], Any], name: Optional[str] = None) -> None:
        self._func = func
        self.name = name or getattr(func, "__name__", "probe")

    def sample(self, timeout: Optional[float]) -> Reading:
        return normalize_reading(self._func())

    def __repr__(self) -> str:
        return f"FunctionProbe({self.name})"


class CancelScope:
    """一次采样的取消作用域，可由看门狗在其他线程中触发。"""

    def __init__(self, kill_grace: float = 0.5) -> None:
        self._kill_grace = kill_grace
        self._lock = threading.Lock()
        self._processes: List[subprocess.Popen] = []
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """阻塞直到作用域被取消或超时，供可协作的探针使用。"""

        return self._cancelled.wait(timeout)

    def attach(self, process: subprocess.Popen) -> None:
        """登记子进程；若作用域已取消则立即终止。"""

        with self._lock:
            self._processes.append(process)
            cancelled = self._cancelled.is_set()
        if cancelled:
            self._terminate(process)

    def detach(self, process: subprocess.Popen) -> None:
        with self._lock:
            if process in self._processes:
                self._processes.remove(process)

    def cancel(self) -> None:
        """终止所有登记的子进程，先 terminate，宽限期后 kill。"""

        with self._lock:
            self._cancelled.set()
            processes = list(self._processes)
        for process in processes:
            self._terminate(process)

    def _terminate(self, process: subprocess.Popen) -> None:
        if process.poll() is not None:
            return
        try:
            process.terminate()
            process.wait(timeout=self._kill_grace)
        except subprocess.TimeoutExpired:
            logger.warning("子进程未响应 terminate，强制 kill: pid=%s", process.pid)
            process.kill()
        except OSError:
            # 进程已退出
            pass


_local = threading.local()


def current_scope() -> Optional[CancelScope]:
    """返回当前线程正在执行的采样作用域。"""

    return getattr(_local, "scope", None)


def bind_scope(scope: Optional[CancelScope]) -> None:
    _local.scope = scope
