"""终端内容扫描（iTerm2 与 Terminal.app），用于识别命令行 AI 助手是否在工作。"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Union

from notchwatch.adapters.base import BaseProbe
from notchwatch.adapters.macos.osascript import run_applescript
from notchwatch.core.reading import Reading

logger = logging.getLogger(__name__)

SESSION_SEPARATOR = "---SESSION---"
TAB_SEPARATOR = "---TAB---"

_TRIM_LINES = """
                set lineList to paragraphs of {var}
                set lineCount to count of lineList
                if lineCount > {n} then
                    set lineList to items (lineCount - {n_minus_one}) thru lineCount of lineList
                end if
                set AppleScript's text item delimiters to linefeed
                set {var} to lineList as text
                set AppleScript's text item delimiters to ""
"""


@dataclass
class TerminalSession:
    content: str
    last_lines: List[str]


def parse_sessions(output: str, line_count: int = 20) -> List[TerminalSession]:
    """按会话/标签分隔符拆分扫描结果，每个会话保留最后若干个非空行。"""

    if SESSION_SEPARATOR in output or TAB_SEPARATOR in output:
        parts = re.split(f"{re.escape(SESSION_SEPARATOR)}|{re.escape(TAB_SEPARATOR)}", output)
    else:
        parts = [output]

    sessions: List[TerminalSession] = []
    for part in parts:
        trimmed = part.strip()
        if not trimmed:
            continue
        lines = [line.strip() for line in trimmed.splitlines()]
        lines = [line for line in lines if line]
        sessions.append(TerminalSession(content=trimmed, last_lines=lines[-line_count:]))
    return sessions


class TerminalScanner:
    """通过 AppleScript 读取终端最后 N 行。"""

    def __init__(
        self,
        line_count: int = 20,
        scan_all_sessions: bool = False,
        use_iterm_contents: bool = True,
        runner: Callable[[str, Optional[float]], Optional[str]] = run_applescript,
    ) -> None:
        if line_count < 1:
            raise ValueError("line_count 必须 >= 1")
        self.line_count = line_count
        self.scan_all_sessions = scan_all_sessions
        self.use_iterm_contents = use_iterm_contents
        self._run = runner

    def scan(self, timeout: Optional[float] = 2.0) -> Optional[str]:
        """依次扫描 iTerm2 与 Terminal.app，两者都没有输出时返回 ``None``。"""

        results = [out for out in (self.scan_iterm(timeout), self.scan_terminal(timeout)) if out]
        return "\n".join(results) if results else None

    def sessions(self, timeout: Optional[float] = 2.0) -> List[TerminalSession]:
        output = self.scan(timeout)
        if output is None:
            return []
        return parse_sessions(output, self.line_count)

    def scan_iterm(self, timeout: Optional[float] = 2.0) -> Optional[str]:
        return self._run(self.iterm_script(), timeout)

    def scan_terminal(self, timeout: Optional[float] = 2.0) -> Optional[str]:
        return self._run(self.terminal_script(), timeout)

    def _trim(self, var: str) -> str:
        return _TRIM_LINES.format(var=var, n=self.line_count, n_minus_one=self.line_count - 1)

    def iterm_script(self) -> str:
        prop = "contents" if self.use_iterm_contents else "text"
        if self.scan_all_sessions:
            return f"""
            tell application "iTerm2"
                if not running then return "NOT_RUNNING"
                set allContent to ""
                repeat with w in windows
                    repeat with t in tabs of w
                        repeat with s in sessions of t
                            set sessionText to {prop} of s
                            {self._trim("sessionText")}
                            set allContent to allContent & "{SESSION_SEPARATOR}" & sessionText
                        end repeat
                    end repeat
                end repeat
                return allContent
            end tell
            """
        return f"""
            tell application "iTerm2"
                if not running then return "NOT_RUNNING"
                if (count of windows) = 0 then return "NO_WINDOWS"
                set sessionText to {prop} of current session of current window
                {self._trim("sessionText")}
                return "{SESSION_SEPARATOR}" & sessionText
            end tell
            """

    def terminal_script(self) -> str:
        if self.scan_all_sessions:
            return f"""
            tell application "Terminal"
                if not running then return "NOT_RUNNING"
                set allContent to ""
                repeat with w in windows
                    repeat with t in tabs of w
                        set tabText to history of t
                        {self._trim("tabText")}
                        set allContent to allContent & "{TAB_SEPARATOR}" & tabText
                    end repeat
                end repeat
                return allContent
            end tell
            """
        return f"""
            tell application "Terminal"
                if not running then return "NOT_RUNNING"
                if (count of windows) = 0 then return "NO_WINDOWS"
                set tabText to history of selected tab of front window
                {self._trim("tabText")}
                return "{TAB_SEPARATOR}" & tabText
            end tell
            """


SessionMatcher = Callable[[TerminalSession], Optional[str]]

# Claude Code 的加载动画字符
CLAUDE_SPINNERS = frozenset(
    "✶✸✹✺✻✼✽✾✿❀❁❂❃❄❅❆❇✦✧✱✲✳✴✵✷✢✣✤✥"
    "◐◓◑◒"
    "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏⣾⣽⣻⢿⡿⣟⣯⣷"
    "·•∙‧⋅․"
)
_CODEX_TIMING = re.compile(r"\(\d+s\s*•")


def claude_code_busy(session: TerminalSession, check_lines: int = 7) -> Optional[str]:
    """最后几行中出现“加载动画 + 中断提示”即认为在工作。

    Codex 的行同样以圆点开头，但带有 ``(5s •`` 形式的计时，需排除。
    """

    for line in session.last_lines[-check_lines:]:
        if "esc" not in line and "ctrl" not in line:
            continue
        if line.startswith("•") and _CODEX_TIMING.search(line):
            continue
        if line[0] in CLAUDE_SPINNERS:
            return line
    return None


def codex_busy(session: TerminalSession) -> Optional[str]:
    for line in session.last_lines:
        if "Working" in line and "esc to interrupt" in line:
            return line
    if "Working" in session.content and "esc to interrupt" in session.content:
        return "Working"
    return None


def pattern_matcher(pattern: Union[str, Pattern[str]]) -> SessionMatcher:
    """把正则包装为逐行匹配函数。"""

    regex = re.compile(pattern) if isinstance(pattern, str) else pattern

    def _match(session: TerminalSession) -> Optional[str]:
        for line in session.last_lines:
            if regex.search(line):
                return line
        return None

    return _match


class TerminalPatternProbe(BaseProbe):
    """任一终端会话命中匹配函数即为活跃。"""

    def __init__(self, scanner: TerminalScanner, matcher: SessionMatcher, name: Optional[str] = None) -> None:
        super().__init__(name)
        self._scanner = scanner
        self._matcher = matcher

    def sample(self, timeout: Optional[float]) -> Reading:
        sessions = self._scanner.sessions(timeout)
        if not sessions:
            return Reading.inactive("no terminal sessions")

        for index, session in enumerate(sessions):
            if self.cancelled():
                return Reading.timeout("cancelled")
            matched = self._matcher(session)
            if matched is not None:
                self._log.debug("会话 %d 命中: %s", index, matched[:100])
                return Reading.active(matched[:200])
        return Reading.inactive(f"{len(sessions)} session(s), no match")
