"""状态栏应用入口。"""

from .status_bar import StatusBarApp, run_status_bar_app

__all__ = [
    "StatusBarApp",
    "run_status_bar_app",
]
