"""AppleScript 调用封装。"""

from __future__ import annotations

import logging
from typing import Optional

from notchwatch.adapters.command import run_command

logger = logging.getLogger(__name__)

NOT_RUNNING = "NOT_RUNNING"
NO_WINDOWS = "NO_WINDOWS"
_SENTINELS = {NOT_RUNNING, NO_WINDOWS, ""}


def run_applescript(script: str, timeout: Optional[float] = 2.0) -> Optional[str]:
    """执行脚本并返回去除首尾空白的输出。

    执行失败、超时，或脚本返回 ``NOT_RUNNING`` / ``NO_WINDOWS`` 时返回 ``None``，
    调用方把它当作“不活跃”处理。
    """

    result = run_command(["osascript", "-e", script], timeout=timeout)
    if not result.ok:
        if result.timed_out:
            logger.debug("osascript 超时")
        else:
            logger.debug("osascript 执行失败: %s", (result.error or result.stderr).strip()[:200])
        return None

    output = result.stdout.strip()
    if output in _SENTINELS:
        return None
    return output
