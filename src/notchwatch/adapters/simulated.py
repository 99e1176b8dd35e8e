"""模拟探针，用于开发阶段与演示模式。"""

from __future__ import annotations

import math
import random
from typing import Optional

from notchwatch.adapters.base import BaseProbe
from notchwatch.core.reading import Reading, ReadingState, ThresholdClassifier


class SimulatedProbe(BaseProbe):
    """生成缓慢变化的“工作负载”信号，带随机噪声，用于观察去抖效果。

    负载经阈值分类：高于 ``activate_at`` 为活跃，低于 ``deactivate_at``
    为不活跃，中间为中性。进度随活跃时间递增。
    """

    name = "simulated"

    def __init__(
        self,
        period_ticks: float = 40.0,
        noise: float = 0.15,
        classifier: Optional[ThresholdClassifier] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__()
        self._step = 2 * math.pi / max(1.0, period_ticks)
        self._noise = noise
        self._classifier = classifier or ThresholdClassifier(activate_at=0.6, deactivate_at=0.4)
        self._rng = rng or random.Random()
        self._phase = 0.0
        self._progress = 0.0

    def sample(self, timeout: Optional[float]) -> Reading:
        # 模拟一个缓慢变化的负载信号
        load = 0.5 + 0.5 * math.sin(self._phase) + self._rng.gauss(0.0, self._noise)
        self._phase += self._step
        load = min(1.0, max(0.0, load))

        reading = self._classifier.classify(load, f"load={load:.2f}")
        if reading.is_active:
            self._progress = min(1.0, self._progress + 0.05)
            return Reading.active(reading.detail, progress=self._progress)
        if reading.state is ReadingState.INACTIVE:
            self._progress = 0.0
        return reading
