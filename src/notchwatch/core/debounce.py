"""去抖状态机：把原始读数转换为稳定的活跃/不活跃切换。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from notchwatch.core.reading import Reading, ReadingState


@dataclass(frozen=True)
class DebounceConfig:
    """单个来源的去抖阈值，在来源生命周期内保持不变。

    显示快、隐藏慢的非对称配置用于抑制闪烁，对称配置同样合法。
    """

    required_to_activate: int = 1
    required_to_deactivate: int = 3

    def __post_init__(self) -> None:
        if self.required_to_activate < 1:
            raise ValueError("required_to_activate 必须 >= 1")
        if self.required_to_deactivate < 1:
            raise ValueError("required_to_deactivate 必须 >= 1")


@dataclass
class DebounceState:
    """可变的去抖计数状态。两个计数器任意时刻至多一个非零。"""

    consecutive_active: int = 0
    consecutive_inactive: int = 0
    is_active: bool = False

    def as_tuple(self) -> tuple[int, int, bool]:
        return (self.consecutive_active, self.consecutive_inactive, self.is_active)


class DebounceMachine:
    """连续读数计数状态机，只应在发布线程上调用。"""

    def __init__(self, config: DebounceConfig) -> None:
        self._config = config
        self._state = DebounceState()

    @property
    def config(self) -> DebounceConfig:
        return self._config

    @property
    def state(self) -> DebounceState:
        return DebounceState(*self._state.as_tuple())

    @property
    def is_active(self) -> bool:
        return self._state.is_active

    def update(self, reading: Reading) -> Optional[bool]:
        """输入一条读数；若发生状态切换，返回新的活跃值，否则返回 ``None``。"""

        state = self._state
        if reading.state is ReadingState.NEUTRAL:
            return None

        if reading.state is ReadingState.ACTIVE:
            state.consecutive_active += 1
            state.consecutive_inactive = 0
            if state.consecutive_active >= self._config.required_to_activate and not state.is_active:
                state.is_active = True
                return True
            return None

        state.consecutive_inactive += 1
        state.consecutive_active = 0
        if state.consecutive_inactive >= self._config.required_to_deactivate and state.is_active:
            state.is_active = False
            return False
        return None

    def reset(self) -> bool:
        """无条件清零，返回重置前是否处于活跃状态。"""

        was_active = self._state.is_active
        self._state = DebounceState()
        return was_active
