"""活跃集合汇总器。"""

from __future__ import annotations

import logging
from typing import Callable, Dict, FrozenSet, Hashable, List, Optional

from notchwatch.core.reading import Reading
from notchwatch.core.runner import SourceRunner, SourceStatus

logger = logging.getLogger(__name__)

ActiveSet = FrozenSet[Hashable]
ActiveSetObserver = Callable[[ActiveSet], None]


class ActivityAggregator:
    """订阅各来源的状态切换，并发布当前活跃的来源集合。

    只响应真实的状态翻转（而不是每条原始读数）；集合不变时不通知观察者。
    集合本身无序，需要优先级的消费者自行排序。
    """

    def __init__(self) -> None:
        self._runners: Dict[Hashable, SourceRunner] = {}
        self._active: ActiveSet = frozenset()
        self._observers: List[ActiveSetObserver] = []
        self.recompute_count = 0

    @property
    def active_set(self) -> ActiveSet:
        return self._active

    def attach(self, runner: SourceRunner) -> None:
        self._runners[runner.identity] = runner
        if runner.is_active:
            self.recompute()

    def detach(self, identity: Hashable) -> None:
        runner = self._runners.pop(identity, None)
        if runner is not None and identity in self._active:
            self.recompute()

    def subscribe(self, observer: ActiveSetObserver, replay: bool = True) -> Callable[[], None]:
        """注册观察者，返回取消订阅函数。``replay`` 为真时立即推送当前集合。"""

        self._observers.append(observer)
        if replay:
            observer(self._active)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def handle_transition(self, identity: Hashable, is_active: bool) -> None:
        """来源状态翻转回调，在发布线程上执行。"""

        logger.debug("来源 %s 切换为 %s", identity, "活跃" if is_active else "空闲")
        self.recompute()

    def recompute(self) -> ActiveSet:
        self.recompute_count += 1
        active = frozenset(identity for identity, runner in self._runners.items() if runner.is_active)
        if active == self._active:
            return active

        self._active = active
        for observer in list(self._observers):
            try:
                observer(active)
            except Exception:
                logger.exception("活跃集合观察者执行失败")
        return active

    def reading(self, identity: Hashable) -> Optional[Reading]:
        """读取某个来源最近一次的读数（含进度等附加信息）。"""

        runner = self._runners.get(identity)
        return runner.last_reading if runner is not None else None

    def statuses(self) -> List[SourceStatus]:
        return [runner.status() for runner in self._runners.values()]
