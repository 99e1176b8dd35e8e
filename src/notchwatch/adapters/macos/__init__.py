"""macOS 平台适配器。"""

from .accessibility import AccessibilityTree, is_trusted
from .osascript import run_applescript
from .workspace import is_app_running, running_pid

__all__ = [
    "AccessibilityTree",
    "is_app_running",
    "is_trusted",
    "run_applescript",
    "running_pid",
]
