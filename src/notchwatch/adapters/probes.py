"""通用探针：命令输出、进程 CPU、菜单栏状态、辅助功能文本、应用是否运行。

具体来源（Xcode、Dropbox、iCloud……）只是这些探针的参数组合，见 ``catalog``。
"""

from __future__ import annotations

import re
from typing import Callable, Optional, Pattern, Sequence, Union

from notchwatch.adapters.base import BaseProbe
from notchwatch.adapters.command import CommandResult, pgrep, process_cpu, run_command
from notchwatch.adapters.macos import accessibility, workspace
from notchwatch.adapters.macos.accessibility import AccessibilityTree
from notchwatch.adapters.macos.osascript import run_applescript
from notchwatch.core.reading import Reading, ThresholdClassifier

TextPattern = Union[str, Pattern[str]]


def _compile(patterns: Sequence[TextPattern]) -> list[Pattern[str]]:
    return [re.compile(re.escape(p)) if isinstance(p, str) else p for p in patterns]


def _first_match(text: str, patterns: Sequence[Pattern[str]]) -> Optional[str]:
    for pattern in patterns:
        if pattern.search(text):
            return pattern.pattern
    return None


class CommandOutputProbe(BaseProbe):
    """运行命令，根据输出中的关键字判断忙/闲。

    ``busy`` 命中为活跃，``idle`` 命中为不活跃，都不命中同样按不活跃处理。
    命令不存在或执行失败也只是不活跃。
    """

    def __init__(
        self,
        args: Union[Sequence[str], Callable[[], Optional[Sequence[str]]]],
        busy: Sequence[TextPattern],
        idle: Sequence[TextPattern] = (),
        name: Optional[str] = None,
        runner: Callable[[Sequence[str], Optional[float]], CommandResult] = run_command,
    ) -> None:
        super().__init__(name)
        self._args = args
        self._busy = _compile(busy)
        self._idle = _compile(idle)
        self._run = runner

    def _resolve_args(self) -> Optional[Sequence[str]]:
        return self._args() if callable(self._args) else self._args

    def sample(self, timeout: Optional[float]) -> Reading:
        args = self._resolve_args()
        if not args:
            return Reading.inactive("command not available")

        result = self._run(args, timeout)
        if result.timed_out:
            return Reading.timeout("command timed out")
        if result.error is not None:
            return Reading.inactive(f"launch failed: {result.error}")

        output = result.output
        matched = _first_match(output, self._busy)
        if matched is not None:
            return Reading.active(matched)
        matched = _first_match(output, self._idle)
        if matched is not None:
            return Reading.inactive(matched)
        return Reading.inactive("no status" if output.strip() else "no output")


class ProcessCpuProbe(BaseProbe):
    """按进程名取最大 CPU 占用，交给阈值分类器得到三态读数。"""

    def __init__(
        self,
        process_name: str,
        classifier: ThresholdClassifier,
        name: Optional[str] = None,
        find_pids: Callable[[str], list[int]] = pgrep,
        read_cpu: Callable[[int], Optional[float]] = process_cpu,
    ) -> None:
        super().__init__(name or process_name)
        self._process_name = process_name
        self._classifier = classifier
        self._find_pids = find_pids
        self._read_cpu = read_cpu

    def sample(self, timeout: Optional[float]) -> Reading:
        pids = self._find_pids(self._process_name)
        if not pids:
            return Reading.inactive(f"{self._process_name} not running")

        values = [cpu for cpu in (self._read_cpu(pid) for pid in pids) if cpu is not None]
        if not values:
            return Reading.inactive("cpu unavailable")
        peak = max(values)
        return self._classifier.classify(peak, f"cpu={peak:.1f}%")


MENU_STATUS_SCRIPT = """
tell application "System Events"
    if exists process "{process}" then
        tell process "{process}"
            try
                return help of menu bar item 1 of menu bar 2
            on error
                return ""
            end try
        end tell
    else
        return "NOT_RUNNING"
    end if
end tell
"""


class MenuStatusProbe(BaseProbe):
    """读取同步客户端菜单栏图标的提示文字，匹配同步中的关键字。"""

    def __init__(
        self,
        process: str,
        syncing: Sequence[TextPattern],
        name: Optional[str] = None,
        runner: Callable[[str, Optional[float]], Optional[str]] = run_applescript,
    ) -> None:
        super().__init__(name or process)
        self._script = MENU_STATUS_SCRIPT.format(process=process)
        self._syncing = _compile(syncing)
        self._run = runner

    def sample(self, timeout: Optional[float]) -> Reading:
        status = self._run(self._script, timeout)
        if status is None:
            return Reading.inactive("no status")
        matched = _first_match(status, self._syncing)
        if matched is not None:
            return Reading.active(status[:200])
        return Reading.inactive(status[:200])


class AccessibilityTextProbe(BaseProbe):
    """在应用窗口的 AX 树中查找匹配文本。

    ``titles_only`` 时只看窗口标题；``dialog_subroles`` 中的窗口存在时
    视为确认对话框而不是进度窗口，直接判为不活跃。
    """

    def __init__(
        self,
        bundle_id: str,
        patterns: Sequence[TextPattern],
        *,
        name: Optional[str] = None,
        roles: Optional[Sequence[str]] = None,
        titles_only: bool = False,
        dialog_subroles: Sequence[str] = (),
        max_depth: int = 10,
        pid_lookup: Callable[[str], Optional[int]] = workspace.running_pid,
        trusted: Callable[[], bool] = accessibility.is_trusted,
        tree_factory: Optional[Callable[[int], AccessibilityTree]] = None,
    ) -> None:
        super().__init__(name or bundle_id)
        self._bundle_id = bundle_id
        self._patterns = _compile(patterns)
        self._roles = roles
        self._titles_only = titles_only
        self._dialog_subroles = tuple(dialog_subroles)
        self._pid_lookup = pid_lookup
        self._trusted = trusted
        self._tree_factory = tree_factory or (lambda pid: AccessibilityTree.for_pid(pid, max_depth=max_depth))

    def sample(self, timeout: Optional[float]) -> Reading:
        pid = self._pid_lookup(self._bundle_id)
        if pid is None:
            return Reading.inactive("not running")
        if not self._trusted():
            return Reading.inactive("accessibility not trusted")

        tree = self._tree_factory(pid)
        if self._dialog_subroles and tree.has_window_subrole(self._dialog_subroles):
            return Reading.inactive("dialog open")

        if self._titles_only:
            texts = tree.window_titles()
        else:
            texts = (text for _, text in tree.iter_texts(self._roles))

        for text in texts:
            if _first_match(text, self._patterns) is not None:
                return Reading.active(text[:200])
        if self.cancelled():
            return Reading.timeout("cancelled")
        return Reading.inactive("no matching text")


class AppRunningProbe(BaseProbe):
    """应用在运行即为活跃，只查询进程内状态。"""

    def __init__(
        self,
        bundle_id: str,
        name: Optional[str] = None,
        is_running: Callable[[str], bool] = workspace.is_app_running,
    ) -> None:
        super().__init__(name or bundle_id)
        self._bundle_id = bundle_id
        self._is_running = is_running

    def sample(self, timeout: Optional[float]) -> Reading:
        if self._is_running(self._bundle_id):
            return Reading.active("running")
        return Reading.inactive("not running")
