"""子进程调用辅助函数。

启动的进程会登记到当前采样的取消作用域，截止时间到达时由看门狗终止。
启动失败、超时、被取消都只体现在返回结果上，不抛异常。
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from notchwatch.core.probe import current_scope

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    args: tuple[str, ...]
    returncode: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out and self.error is None

    @property
    def output(self) -> str:
        """stdout 与 stderr 合并，相当于 ``2>&1``。"""

        if self.stderr:
            return f"{self.stdout}\n{self.stderr}" if self.stdout else self.stderr
        return self.stdout


def run_command(args: Sequence[str], timeout: Optional[float] = 2.0) -> CommandResult:
    """运行命令并收集输出。"""

    argv = tuple(str(arg) for arg in args)
    try:
        process = subprocess.Popen(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            text=True,
        )
    except OSError as exc:
        logger.debug("无法启动 %s: %s", argv[0], exc)
        return CommandResult(argv, error=str(exc))

    scope = current_scope()
    if scope is not None:
        scope.attach(process)
    try:
        stdout, stderr = process.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        process.kill()
        stdout, stderr = process.communicate()
        logger.debug("%s 超过 %.1fs 未退出，已终止", argv[0], timeout)
        return CommandResult(argv, process.returncode, stdout or "", stderr or "", timed_out=True)
    finally:
        if scope is not None:
            scope.detach(process)

    cancelled = scope is not None and scope.cancelled
    return CommandResult(argv, process.returncode, stdout or "", stderr or "", timed_out=cancelled)


def find_executable(name: str, candidates: Iterable[str | Path] = ()) -> Optional[str]:
    """优先在 PATH 中查找，其次尝试给定的候选路径。"""

    found = shutil.which(name)
    if found:
        return found
    for candidate in candidates:
        path = Path(candidate).expanduser()
        if path.is_file():
            return str(path)
    return None


def pgrep(name: str, exact: bool = True, timeout: Optional[float] = 2.0) -> List[int]:
    """返回匹配进程名的 PID 列表；没有匹配时为空。"""

    args = ["pgrep", "-x", name] if exact else ["pgrep", name]
    result = run_command(args, timeout=timeout)
    if not result.ok:
        return []
    pids: List[int] = []
    for line in result.stdout.splitlines():
        line = line.strip()
        if line.isdigit():
            pids.append(int(line))
    return pids


def process_cpu(pid: int, timeout: Optional[float] = 2.0) -> Optional[float]:
    """读取进程当前 CPU 占用百分比，失败时返回 ``None``。"""

    result = run_command(["ps", "-o", "%cpu=", "-p", str(pid)], timeout=timeout)
    if not result.ok:
        return None
    try:
        return float(result.stdout.strip())
    except ValueError:
        return None
