"""探针读数模型与阈值分类。"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional


class ReadingState(Enum):
    """单次采样的分类结果。"""

    ACTIVE = auto()
    INACTIVE = auto()
    # 落在阈值之间的模糊读数，不推动任何计数器
    NEUTRAL = auto()


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass(frozen=True)
class Reading:
    """一次探针调用规整后的结果。"""

    state: ReadingState
    progress: Optional[float] = None
    detail: str = ""
    timed_out: bool = False
    failed: bool = False
    sampled_at: dt.datetime = field(default_factory=_utcnow)

    @property
    def is_active(self) -> bool:
        return self.state is ReadingState.ACTIVE

    @classmethod
    def active(cls, detail: str = "", progress: Optional[float] = None) -> "Reading":
        return cls(ReadingState.ACTIVE, progress=progress, detail=detail)

    @classmethod
    def inactive(cls, detail: str = "") -> "Reading":
        return cls(ReadingState.INACTIVE, detail=detail)

    @classmethod
    def neutral(cls, detail: str = "", progress: Optional[float] = None) -> "Reading":
        return cls(ReadingState.NEUTRAL, progress=progress, detail=detail)

    @classmethod
    def timeout(cls, detail: str = "probe timed out") -> "Reading":
        return cls(ReadingState.INACTIVE, detail=detail, timed_out=True)

    @classmethod
    def failure(cls, detail: str) -> "Reading":
        return cls(ReadingState.INACTIVE, detail=detail, failed=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.name,
            "progress": self.progress,
            "detail": self.detail,
            "timed_out": self.timed_out,
            "failed": self.failed,
            "sampled_at": self.sampled_at.isoformat(),
        }


def normalize_reading(value: Any) -> Reading:
    """把探针返回值统一转换为 :class:`Reading`。

    - ``Reading`` 原样返回；
    - ``bool`` 映射为活跃/不活跃；
    - ``None`` 视为无法判定，按不活跃处理（宁可不显示，也不误报活跃）。
    """

    if isinstance(value, Reading):
        return value
    if value is None:
        return Reading.inactive("no result")
    if isinstance(value, bool):
        return Reading.active() if value else Reading.inactive()
    raise TypeError(f"探针返回了无法识别的读数类型: {type(value).__name__}")


@dataclass(frozen=True)
class ThresholdClassifier:
    """将连续指标映射为三态读数，中间区间保持中性。

    ``value >= activate_at`` 为活跃，``value <= deactivate_at`` 为不活跃，
    两者之间为中性，使孤立的模糊样本无法翻转状态。
    """

    activate_at: float
    deactivate_at: float

    def __post_init__(self) -> None:
        if self.activate_at <= self.deactivate_at:
            raise ValueError(
                f"activate_at ({self.activate_at}) 必须大于 deactivate_at ({self.deactivate_at})"
            )

    def classify(self, value: float, detail: str = "") -> Reading:
        if value >= self.activate_at:
            return Reading.active(detail)
        if value <= self.deactivate_at:
            return Reading.inactive(detail)
        return Reading.neutral(detail)
