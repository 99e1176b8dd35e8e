"""固定间隔调度器。"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Hashable, List, Optional

from notchwatch.core.aggregator import ActivityAggregator
from notchwatch.core.debounce import DebounceConfig
from notchwatch.core.diagnostics import DiagnosticLog
from notchwatch.core.probe import Probe
from notchwatch.core.runner import Precheck, SourceRunner
from notchwatch.errors import DuplicateSourceError, UnknownSourceError

logger = logging.getLogger(__name__)

_DEFAULT = object()


class Scheduler:
    """每个 tick 对所有已启用来源调用一次 ``poll()``，从不等待探针完成。

    启动后所在的 asyncio 事件循环即为发布线程：探针结果经
    ``call_soon_threadsafe`` 回到该循环，再修改去抖状态与活跃集合。
    ``add_source`` / ``remove_source`` / ``reset_source`` 也应在该线程调用。
    """

    def __init__(
        self,
        aggregator: Optional[ActivityAggregator] = None,
        tick_interval: float = 1.0,
        default_timeout: Optional[float] = 2.0,
        diagnostics: Optional[DiagnosticLog] = None,
    ) -> None:
        if tick_interval <= 0:
            raise ValueError("tick_interval 必须为正数")
        self._aggregator = aggregator or ActivityAggregator()
        self._tick_interval = tick_interval
        self._default_timeout = default_timeout
        self._diagnostics = diagnostics
        self._runners: Dict[Hashable, SourceRunner] = {}
        # 已移除但采样仍在运行的来源，重新启用时交给新的执行器
        self._retired: Dict[Hashable, SourceRunner] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task[None]] = None
        self.tick_count = 0

    @property
    def aggregator(self) -> ActivityAggregator:
        return self._aggregator

    @property
    def identities(self) -> List[Hashable]:
        return list(self._runners)

    def __contains__(self, identity: Hashable) -> bool:
        return identity in self._runners

    def runner(self, identity: Hashable) -> SourceRunner:
        try:
            return self._runners[identity]
        except KeyError:
            raise UnknownSourceError(identity) from None

    def add_source(
        self,
        identity: Hashable,
        config: DebounceConfig,
        probe: Probe,
        *,
        timeout=_DEFAULT,
        precheck: Optional[Precheck] = None,
        interval_ticks: int = 1,
        idle_interval_ticks: int = 1,
        debug: bool = False,
    ) -> SourceRunner:
        """注册来源。``timeout=None`` 表示无需截止时间（仅查询进程内廉价状态的探针）。"""

        if identity in self._runners:
            raise DuplicateSourceError(identity)

        predecessor = self._retired.pop(identity, None)
        runner = SourceRunner(
            identity,
            config,
            probe,
            timeout=self._default_timeout if timeout is _DEFAULT else timeout,
            precheck=precheck,
            interval_ticks=interval_ticks,
            idle_interval_ticks=idle_interval_ticks,
            dispatcher=self._dispatch,
            on_transition=self._aggregator.handle_transition,
            diagnostics=self._diagnostics,
            debug=debug,
            predecessor=predecessor,
        )
        self._runners[identity] = runner
        self._aggregator.attach(runner)
        logger.info("已启用来源 %s", identity)
        return runner

    def remove_source(self, identity: Hashable) -> None:
        runner = self._runners.pop(identity, None)
        if runner is None:
            raise UnknownSourceError(identity)
        runner.close()
        if runner.in_flight:
            self._retired[identity] = runner
        self._aggregator.detach(identity)
        logger.info("已停用来源 %s", identity)

    def reset_source(self, identity: Hashable) -> None:
        self.runner(identity).reset()

    def tick(self) -> int:
        """执行一轮采样，返回实际派发的探针数量。"""

        self.tick_count += 1
        dispatched = 0
        for runner in list(self._runners.values()):
            if runner.poll() is not None:
                dispatched += 1
        return dispatched

    async def start(self) -> None:
        """在当前事件循环上启动周期 tick。"""

        if self._task is not None:
            return

        self._loop = asyncio.get_running_loop()
        loop = self._loop

        async def _tick_loop() -> None:
            while True:
                started = loop.time()
                self.tick()
                elapsed = loop.time() - started
                await asyncio.sleep(max(0.0, self._tick_interval - elapsed))

        self._task = asyncio.create_task(_tick_loop())
        self._task.add_done_callback(self._on_tick_loop_done)
        logger.info("调度器已启动，间隔 %.2fs", self._tick_interval)

    def _on_tick_loop_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("调度循环异常退出，已停止 tick", exc_info=exc)
        if self._task is task:
            self._task = None

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def close(self) -> None:
        """停止 tick 并移除全部来源。"""

        self.stop()
        for identity in list(self._runners):
            self.remove_source(identity)

    def _dispatch(self, func) -> None:
        loop = self._loop
        if loop is None:
            func()
            return
        try:
            loop.call_soon_threadsafe(func)
        except RuntimeError:
            # 事件循环已关闭
            logger.debug("事件循环已关闭，丢弃待发布的读数")
