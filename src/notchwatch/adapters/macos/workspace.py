"""通过 AppKit 查询正在运行的应用。"""

from __future__ import annotations

from typing import Optional

try:  # pragma: no cover - 平台判定
    import AppKit
except ImportError:  # pragma: no cover - 非 macOS 环境
    AppKit = None  # type: ignore


def running_pid(bundle_id: str) -> Optional[int]:
    """返回指定 bundle id 的首个运行实例 PID，未运行时为 ``None``。"""

    if AppKit is None:
        return None
    apps = AppKit.NSRunningApplication.runningApplicationsWithBundleIdentifier_(bundle_id)
    if not apps:
        return None
    return int(apps[0].processIdentifier())


def is_app_running(bundle_id: str) -> bool:
    """廉价的预检查：只查询进程内的 AppKit 状态，不启动子进程。"""

    return running_pid(bundle_id) is not None
