"""内置来源目录：每个来源对应的探针组合与预检查。"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Callable, Dict, List, Optional

from notchwatch.adapters.command import find_executable
from notchwatch.adapters.downloads import PartialDownloadProbe
from notchwatch.adapters.macos.workspace import is_app_running
from notchwatch.adapters.probes import (
    AccessibilityTextProbe,
    AppRunningProbe,
    CommandOutputProbe,
    MenuStatusProbe,
    ProcessCpuProbe,
)
from notchwatch.adapters.simulated import SimulatedProbe
from notchwatch.adapters.terminal import (
    TerminalPatternProbe,
    TerminalScanner,
    claude_code_busy,
    codex_busy,
)
from notchwatch.config import AppConfig
from notchwatch.core.identity import SourceIdentity
from notchwatch.core.probe import Probe
from notchwatch.core.reading import ThresholdClassifier

ProbeFactory = Callable[[], Probe]
Precheck = Callable[[], bool]

ITERM_BUNDLE = "com.googlecode.iterm2"
TERMINAL_BUNDLE = "com.apple.Terminal"

GRADLE_CANDIDATES = ("/opt/homebrew/bin/gradle", "/usr/local/bin/gradle")

XCODE_STATUS = re.compile(r"^(Building|Compiling|Linking|Copying|Processing|Analyzing)\b")
OPENCODE_STATUS = re.compile(
    r"(Making edits|Running commands?|Planning next steps|Considering next steps|"
    r"Gathering thoughts|Gathering context|Generating|Writing).*\d+\.?\d*s\s*$"
)
FINDER_OPERATIONS = ("Copy", "Move", "Delete", "Preparing", "Emptying", "Trash")

# iCloud 的 cloudd 进程 CPU 阈值（百分比），中间区间保持当前状态
ICLOUD_CPU = ThresholdClassifier(activate_at=1.5, deactivate_at=0.5)


@dataclass
class SourceSpec:
    identity: SourceIdentity
    probe_factory: ProbeFactory
    precheck: Optional[Precheck] = None

    def build_probe(self) -> Probe:
        return self.probe_factory()


def _any_running(*bundle_ids: str) -> Precheck:
    def _check() -> bool:
        return any(is_app_running(bundle_id) for bundle_id in bundle_ids)

    return _check


def _terminal_running() -> Precheck:
    return _any_running(ITERM_BUNDLE, TERMINAL_BUNDLE)


class _GradleStatusArgs:
    """延迟查找 gradle 可执行文件，找到后缓存。"""

    def __init__(self) -> None:
        self._path: Optional[str] = None

    def __call__(self) -> Optional[List[str]]:
        if self._path is None:
            self._path = find_executable("gradle", GRADLE_CANDIDATES)
        if self._path is None:
            return None
        return [self._path, "--status"]


def _terminal_probe(config: AppConfig, matcher, name: str) -> Probe:
    scanner = TerminalScanner(
        line_count=config.terminal_line_count,
        scan_all_sessions=config.terminal_scan_all_sessions,
    )
    return TerminalPatternProbe(scanner, matcher, name=name)


def build_catalog(config: AppConfig) -> Dict[SourceIdentity, SourceSpec]:
    """按 ``SourceIdentity`` 的声明顺序返回全部内置来源。"""

    S = SourceIdentity
    specs = [
        SourceSpec(
            S.CLAUDE_CODE,
            partial(_terminal_probe, config, claude_code_busy, "claude_code"),
            _terminal_running(),
        ),
        SourceSpec(
            S.CODEX,
            partial(_terminal_probe, config, codex_busy, "codex"),
            _terminal_running(),
        ),
        SourceSpec(
            S.OPENCODE,
            partial(
                AccessibilityTextProbe,
                "ai.opencode.desktop",
                [OPENCODE_STATUS],
                name="opencode",
                max_depth=15,
            ),
            _any_running("ai.opencode.desktop"),
        ),
        SourceSpec(
            S.XCODE,
            partial(
                AccessibilityTextProbe,
                "com.apple.dt.Xcode",
                [XCODE_STATUS],
                name="xcode",
                roles=("AXStaticText",),
            ),
            _any_running("com.apple.dt.Xcode"),
        ),
        SourceSpec(
            S.ANDROID_STUDIO,
            partial(CommandOutputProbe, _GradleStatusArgs(), busy=["BUSY"], idle=["IDLE"], name="gradle"),
            _any_running("com.google.android.studio"),
        ),
        SourceSpec(
            S.FINDER,
            partial(
                AccessibilityTextProbe,
                "com.apple.finder",
                FINDER_OPERATIONS,
                name="finder",
                titles_only=True,
                dialog_subroles=("AXDialog", "AXSystemDialog"),
            ),
        ),
        SourceSpec(
            S.DOWNLOADS,
            partial(PartialDownloadProbe, Path(config.downloads_directory)),
        ),
        SourceSpec(
            S.DROPBOX,
            partial(MenuStatusProbe, "Dropbox", ["Syncing", "Uploading", "Downloading", "Indexing"]),
            _any_running("com.getdropbox.dropbox"),
        ),
        SourceSpec(
            S.GOOGLE_DRIVE,
            partial(MenuStatusProbe, "Google Drive", ["Syncing", "Uploading", "Downloading", "Preparing"]),
            _any_running("com.google.drivefs"),
        ),
        SourceSpec(
            S.ONEDRIVE,
            partial(MenuStatusProbe, "OneDrive", ["Syncing", "Processing", "Uploading", "Downloading"]),
            _any_running("com.microsoft.OneDrive"),
        ),
        SourceSpec(
            S.ICLOUD,
            partial(ProcessCpuProbe, "cloudd", ICLOUD_CPU, name="icloud"),
        ),
        SourceSpec(
            S.DAVINCI_RESOLVE,
            partial(
                AccessibilityTextProbe,
                "com.blackmagic-design.DaVinciResolve",
                ["Rendering in Progress"],
                name="davinci_resolve",
            ),
            _any_running("com.blackmagic-design.DaVinciResolve"),
        ),
        SourceSpec(
            S.INSTALLER,
            partial(AppRunningProbe, "com.apple.installer", name="installer"),
        ),
        SourceSpec(S.DEMO, SimulatedProbe),
    ]
    return {spec.identity: spec for spec in specs}
