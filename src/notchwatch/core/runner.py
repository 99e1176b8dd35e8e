"""单个来源的采样执行器。

每个来源独占一个单线程执行通道（不与其他来源共享线程池），
配合进行中保护与超时看门狗，保证：

- 同一来源任意时刻至多一个未完成的采样；
- 调度线程调用 :meth:`SourceRunner.poll` 永远立即返回；
- 某个探针挂起不会拖累其他来源。

探针结果通过 ``dispatcher`` 转交到发布线程，去抖状态只在那里修改。
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Hashable, Optional

from notchwatch.core.debounce import DebounceConfig, DebounceMachine, DebounceState
from notchwatch.core.diagnostics import DiagnosticKind, DiagnosticLog
from notchwatch.core.probe import CancelScope, Probe, bind_scope
from notchwatch.core.reading import Reading, normalize_reading
from notchwatch.errors import SourceClosedError

logger = logging.getLogger(__name__)

Dispatcher = Callable[[Callable[[], None]], None]
TransitionCallback = Callable[[Hashable, bool], None]
Precheck = Callable[[], bool]


def _call_now(func: Callable[[], None]) -> None:
    func()


def source_key(identity: Hashable) -> str:
    """来源标识的字符串形式，用于日志与诊断记录。"""

    value = getattr(identity, "value", identity)
    return str(value)


@dataclass
class SourceStatus:
    """供界面读取的来源状态快照。"""

    source: str
    is_active: bool
    consecutive_active: int
    consecutive_inactive: int
    in_flight: bool
    last_reading: Optional[Reading]

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "is_active": self.is_active,
            "consecutive_active": self.consecutive_active,
            "consecutive_inactive": self.consecutive_inactive,
            "in_flight": self.in_flight,
            "last_reading": self.last_reading.to_dict() if self.last_reading else None,
        }


class _Sample:
    """一次已派发的采样，结果只能被认领一次（正常返回或看门狗超时）。"""

    def __init__(self, generation: int, deadline: Optional[float]) -> None:
        self.generation = generation
        self.deadline = deadline
        self.scope = CancelScope()
        self.timer: Optional[threading.Timer] = None
        self._claimed = False
        self._lock = threading.Lock()

    def claim(self) -> bool:
        with self._lock:
            if self._claimed:
                return False
            self._claimed = True
            return True

    def overdue(self, now: float) -> bool:
        return self.deadline is not None and now >= self.deadline


class SourceRunner:
    """把调度 tick 转换为至多一次探针调用，并维护该来源的去抖状态。"""

    def __init__(
        self,
        identity: Hashable,
        config: DebounceConfig,
        probe: Probe,
        *,
        timeout: Optional[float] = 2.0,
        precheck: Optional[Precheck] = None,
        interval_ticks: int = 1,
        idle_interval_ticks: int = 1,
        dispatcher: Optional[Dispatcher] = None,
        on_transition: Optional[TransitionCallback] = None,
        diagnostics: Optional[DiagnosticLog] = None,
        debug: bool = False,
        clock: Callable[[], float] = time.monotonic,
        predecessor: Optional["SourceRunner"] = None,
    ) -> None:
        if interval_ticks < 1 or idle_interval_ticks < 1:
            raise ValueError("interval_ticks / idle_interval_ticks 必须 >= 1")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout 必须为正数或 None")

        self._identity = identity
        self._key = source_key(identity)
        self._machine = DebounceMachine(config)
        self._probe = probe
        self._timeout = timeout
        self._precheck = precheck
        self._interval_ticks = interval_ticks
        self._idle_interval_ticks = idle_interval_ticks
        self._dispatch = dispatcher or _call_now
        self._on_transition = on_transition
        self._diagnostics = diagnostics
        self._clock = clock
        # 同一来源被移除后立即重新启用时，旧通道上可能仍有采样在运行
        self._predecessor = predecessor

        self._lane = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"notchwatch-{self._key}")
        self._lock = threading.Lock()
        self._in_flight: Optional[_Sample] = None
        self._generation = 0
        self._ticks = 0
        self._closed = False
        self._last_reading: Optional[Reading] = None

        self._log = logging.getLogger(f"notchwatch.sources.{self._key}")
        if debug:
            self._log.setLevel(logging.DEBUG)

    @property
    def identity(self) -> Hashable:
        return self._identity

    @property
    def config(self) -> DebounceConfig:
        return self._machine.config

    @property
    def is_active(self) -> bool:
        return self._machine.is_active

    @property
    def state(self) -> DebounceState:
        return self._machine.state

    @property
    def last_reading(self) -> Optional[Reading]:
        return self._last_reading

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def status(self) -> SourceStatus:
        state = self._machine.state
        return SourceStatus(
            source=self._key,
            is_active=state.is_active,
            consecutive_active=state.consecutive_active,
            consecutive_inactive=state.consecutive_inactive,
            in_flight=self.in_flight,
            last_reading=self._last_reading,
        )

    def poll(self) -> Optional[Future]:
        """非阻塞：派发一次采样并返回其 Future；被丢弃时返回 ``None``。"""

        if self._closed:
            raise SourceClosedError(self._identity)

        if self._predecessor is not None:
            if self._predecessor.in_flight:
                self._log.debug("%s 旧执行通道的采样尚未结束，丢弃本次 tick", self._key)
                self._record(DiagnosticKind.DROPPED, predecessor=True)
                return None
            self._predecessor = None

        generation = self._generation
        with self._lock:
            pending = self._in_flight

        if pending is not None:
            if pending.overdue(self._clock()):
                # 探针卡死：每个被丢弃的 tick 都计为一次超时读数，保证隐藏阈值最终被满足
                if pending.claim():
                    # 抢在看门狗之前认领，迟到的结果与看门狗都不再计数
                    if pending.timer is not None:
                        pending.timer.cancel()
                    pending.scope.cancel()
                self._log.warning("%s 探针仍未返回，计为超时读数", self._key)
                self._record(DiagnosticKind.TIMEOUT, stuck=True)
                self._dispatch(partial(self._apply, Reading.timeout("probe stuck past deadline"), generation))
            else:
                self._log.debug("%s 上一次采样尚未完成，丢弃本次 tick", self._key)
                self._record(DiagnosticKind.DROPPED)
            return None

        self._ticks += 1
        interval = self._interval_ticks
        if not self._machine.is_active:
            interval = max(interval, self._idle_interval_ticks)
        if (self._ticks - 1) % interval != 0:
            return None

        if self._precheck is not None and not self._run_precheck():
            self._dispatch(partial(self._apply, Reading.inactive("precheck failed"), generation))
            return None

        deadline = None if self._timeout is None else self._clock() + self._timeout
        sample = _Sample(generation, deadline)
        if self._timeout is not None:
            sample.timer = threading.Timer(self._timeout, self._on_deadline, args=(sample,))
            sample.timer.daemon = True

        with self._lock:
            self._in_flight = sample
        if sample.timer is not None:
            sample.timer.start()
        try:
            return self._lane.submit(self._run_sample, sample)
        except RuntimeError:
            if sample.timer is not None:
                sample.timer.cancel()
            with self._lock:
                self._in_flight = None
            raise SourceClosedError(self._identity)

    def reset(self) -> None:
        """清零去抖状态；进行中的采样会继续完成，但其结果将被丢弃。"""

        self._generation += 1
        self._ticks = 0
        self._last_reading = None
        was_active = self._machine.reset()
        self._log.debug("%s 状态已重置", self._key)
        self._record(DiagnosticKind.RESET, was_active=was_active)
        if was_active:
            self._notify(False)

    def close(self) -> None:
        """移除来源：重置状态并关闭执行通道，不打断正在运行的采样。"""

        if self._closed:
            return
        self.reset()
        self._closed = True
        with self._lock:
            pending = self._in_flight
        if pending is not None and pending.timer is not None:
            pending.timer.cancel()
        self._lane.shutdown(wait=False, cancel_futures=True)

    def _run_precheck(self) -> bool:
        try:
            return bool(self._precheck())
        except Exception as exc:
            self._log.warning("%s 预检查失败: %s", self._key, exc, exc_info=True)
            self._record(DiagnosticKind.PROBE_ERROR, stage="precheck", error=str(exc))
            return False

    def _run_sample(self, sample: _Sample) -> Reading:
        bind_scope(sample.scope)
        try:
            reading = normalize_reading(self._probe.sample(self._timeout))
        except Exception as exc:
            self._log.warning("%s 探针执行失败: %s", self._key, exc, exc_info=True)
            self._record(DiagnosticKind.PROBE_ERROR, stage="sample", error=str(exc))
            reading = Reading.failure(f"{type(exc).__name__}: {exc}")
        finally:
            bind_scope(None)
            if sample.timer is not None:
                sample.timer.cancel()
            with self._lock:
                if self._in_flight is sample:
                    self._in_flight = None

        if sample.claim():
            self._dispatch(partial(self._apply, reading, sample.generation))
        else:
            self._log.debug("%s 采样在超时后才返回，结果丢弃", self._key)
            self._record(DiagnosticKind.DISCARDED, reason="late")
        return reading

    def _on_deadline(self, sample: _Sample) -> None:
        if not sample.claim():
            return
        sample.scope.cancel()
        self._log.warning("%s 探针超过 %.1fs 未返回，已强制终止", self._key, self._timeout)
        self._record(DiagnosticKind.TIMEOUT, timeout=self._timeout)
        self._dispatch(partial(self._apply, Reading.timeout(), sample.generation))

    def _apply(self, reading: Reading, generation: int) -> None:
        """在发布线程上把读数喂给去抖状态机。"""

        if self._closed or generation != self._generation:
            self._log.debug("%s 丢弃重置前的过期读数", self._key)
            self._record(DiagnosticKind.DISCARDED, reason="stale")
            return

        self._last_reading = reading
        changed = self._machine.update(reading)
        state = self._machine.state
        self._log.debug(
            "%s 读数=%s active=%s/%s inactive=%s/%s %s",
            self._key,
            reading.state.name,
            state.consecutive_active,
            self.config.required_to_activate,
            state.consecutive_inactive,
            self.config.required_to_deactivate,
            reading.detail,
        )
        self._record(
            DiagnosticKind.READING,
            state=reading.state.name,
            detail=reading.detail,
            progress=reading.progress,
            timed_out=reading.timed_out,
            failed=reading.failed,
        )
        if changed is None:
            return

        self._log.info("%s %s", self._key, "开始活动" if changed else "活动结束")
        self._record(DiagnosticKind.TRANSITION, active=changed)
        self._notify(changed)

    def _notify(self, is_active: bool) -> None:
        if self._on_transition is not None:
            self._on_transition(self._identity, is_active)

    def _record(self, kind: DiagnosticKind, **values: Any) -> None:
        if self._diagnostics is not None:
            self._diagnostics.record(self._key, kind, **values)

    def __repr__(self) -> str:
        return f"SourceRunner({self._key}, active={self.is_active})"
