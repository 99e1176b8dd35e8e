"""诊断事件缓存：记录每条原始读数与状态切换。"""

from __future__ import annotations

import collections
import datetime as dt
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Union


class DiagnosticKind(str, Enum):
    """诊断事件类型。"""

    READING = "reading"
    TRANSITION = "transition"
    TIMEOUT = "timeout"
    PROBE_ERROR = "probe_error"
    DROPPED = "dropped"
    DISCARDED = "discarded"
    RESET = "reset"


@dataclass
class DiagnosticRecord:
    """单条诊断记录，按来源标识归类。"""

    source: str
    kind: DiagnosticKind
    values: Dict[str, Union[float, str, bool, None]] = field(default_factory=dict)
    timestamp: dt.datetime = field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
            "kind": self.kind.value,
            "values": dict(self.values),
        }


class DiagnosticLog:
    """环形缓冲区，支持多线程追加与快照。"""

    def __init__(self, maxlen: int = 1000) -> None:
        self._records: Deque[DiagnosticRecord] = collections.deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def append(self, record: DiagnosticRecord) -> None:
        with self._lock:
            self._records.append(record)

    def record(self, source: str, kind: DiagnosticKind, **values: Union[float, str, bool, None]) -> None:
        """构造并追加一条记录。"""

        self.append(DiagnosticRecord(source=source, kind=kind, values=values))

    def snapshot(self, source: Optional[str] = None, limit: Optional[int] = None) -> List[DiagnosticRecord]:
        """返回记录的浅拷贝，可按来源过滤并只取最近 ``limit`` 条。"""

        with self._lock:
            records = list(self._records)
        if source is not None:
            records = [r for r in records if r.source == source]
        if limit is not None:
            records = records[-limit:] if limit > 0 else []
        return records

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
