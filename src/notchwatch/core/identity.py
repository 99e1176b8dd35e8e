"""被监控来源的标识。"""

from __future__ import annotations

from enum import Enum


class SourceIdentity(str, Enum):
    """监控来源枚举，取值在运行期间保持稳定且唯一。"""

    CLAUDE_CODE = "claude_code"
    CODEX = "codex"
    OPENCODE = "opencode"
    XCODE = "xcode"
    ANDROID_STUDIO = "android_studio"
    FINDER = "finder"
    DOWNLOADS = "downloads"
    DROPBOX = "dropbox"
    GOOGLE_DRIVE = "google_drive"
    ONEDRIVE = "onedrive"
    ICLOUD = "icloud"
    DAVINCI_RESOLVE = "davinci_resolve"
    INSTALLER = "installer"
    DEMO = "demo"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES.get(self, self.value)


_DISPLAY_NAMES = {
    SourceIdentity.CLAUDE_CODE: "Claude Code",
    SourceIdentity.CODEX: "Codex",
    SourceIdentity.OPENCODE: "Opencode",
    SourceIdentity.XCODE: "Xcode",
    SourceIdentity.ANDROID_STUDIO: "Android Studio",
    SourceIdentity.FINDER: "Finder",
    SourceIdentity.DOWNLOADS: "Downloads",
    SourceIdentity.DROPBOX: "Dropbox",
    SourceIdentity.GOOGLE_DRIVE: "Google Drive",
    SourceIdentity.ONEDRIVE: "OneDrive",
    SourceIdentity.ICLOUD: "iCloud",
    SourceIdentity.DAVINCI_RESOLVE: "DaVinci Resolve",
    SourceIdentity.INSTALLER: "Installer",
    SourceIdentity.DEMO: "Demo",
}
