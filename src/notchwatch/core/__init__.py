"""核心框架：探针协议、去抖状态机、采样执行器、调度与汇总。"""

from .aggregator import ActivityAggregator
from .debounce import DebounceConfig, DebounceMachine, DebounceState
from .diagnostics import DiagnosticKind, DiagnosticLog, DiagnosticRecord
from .identity import SourceIdentity
from .probe import CancelScope, FunctionProbe, Probe, current_scope
from .reading import Reading, ReadingState, ThresholdClassifier, normalize_reading
from .runner import SourceRunner, SourceStatus
from .scheduler import Scheduler

__all__ = [
    "ActivityAggregator",
    "CancelScope",
    "DebounceConfig",
    "DebounceMachine",
    "DebounceState",
    "DiagnosticKind",
    "DiagnosticLog",
    "DiagnosticRecord",
    "FunctionProbe",
    "Probe",
    "Reading",
    "ReadingState",
    "Scheduler",
    "SourceIdentity",
    "SourceRunner",
    "SourceStatus",
    "ThresholdClassifier",
    "current_scope",
    "normalize_reading",
]
