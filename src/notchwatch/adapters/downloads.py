"""浏览器下载检测：观察下载目录中未完成文件是否在增长。"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Sequence, Union

from notchwatch.adapters.base import BaseProbe
from notchwatch.core.reading import Reading

# Chrome/Brave、Safari、Firefox 的未完成下载后缀
PARTIAL_SUFFIXES = (".crdownload", ".download", ".part")


class PartialDownloadProbe(BaseProbe):
    """比较相邻两次采样的文件大小。

    - 没有未完成文件：不活跃；
    - 有文件变大：活跃；
    - 只有首次出现的文件：中性，等下一次采样确认；
    - 文件都没有变化（暂停或残留）：不活跃。
    """

    name = "downloads"

    def __init__(self, directory: Union[str, Path], suffixes: Sequence[str] = PARTIAL_SUFFIXES) -> None:
        super().__init__()
        self._directory = Path(directory).expanduser()
        self._suffixes = tuple(s.lower() for s in suffixes)
        self._sizes: Dict[str, int] = {}

    def _partial_files(self) -> Optional[Dict[str, int]]:
        try:
            entries = list(self._directory.iterdir())
        except OSError:
            return None

        sizes: Dict[str, int] = {}
        for entry in entries:
            if not entry.name.lower().endswith(self._suffixes):
                continue
            try:
                sizes[entry.name] = entry.stat().st_size
            except OSError:
                # 下载完成时文件会被重命名
                continue
        return sizes

    def sample(self, timeout: Optional[float]) -> Reading:
        current = self._partial_files()
        if current is None:
            self._sizes = {}
            return Reading.inactive("downloads directory unreadable")
        if not current:
            self._sizes = {}
            return Reading.inactive("no partial files")

        previous = self._sizes
        self._sizes = current

        growing = [name for name, size in current.items() if name in previous and size > previous[name]]
        if growing:
            return Reading.active(", ".join(sorted(growing)))
        fresh = [name for name in current if name not in previous]
        if fresh:
            return Reading.neutral(f"new partial file: {', '.join(sorted(fresh))}")
        return Reading.inactive("partial files not growing")
