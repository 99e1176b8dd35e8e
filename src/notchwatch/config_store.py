"""简易配置存储，保存用户对各来源的启用/调试开关。"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from notchwatch.config import AppConfig
from notchwatch.core.identity import SourceIdentity

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".notchwatch" / "config.json"


@dataclass
class UserSettings:
    enabled: dict[SourceIdentity, bool] = field(default_factory=dict)
    debug: dict[SourceIdentity, bool] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: AppConfig) -> "UserSettings":
        return cls(
            enabled={item.source: item.enabled for item in config.sources},
            debug={item.source: item.debug for item in config.sources},
        )

    def apply(self, config: AppConfig) -> AppConfig:
        return config.with_overrides(enabled=self.enabled, debug=self.debug)

    def set_enabled(self, identity: SourceIdentity, enabled: bool) -> None:
        self.enabled[identity] = enabled

    def set_debug(self, identity: SourceIdentity, debug: bool) -> None:
        self.debug[identity] = debug

    def to_dict(self) -> dict:
        return {
            "enabled": {identity.value: value for identity, value in self.enabled.items()},
            "debug": {identity.value: value for identity, value in self.debug.items()},
        }


def _parse_flags(raw: object) -> dict[SourceIdentity, bool]:
    flags: dict[SourceIdentity, bool] = {}
    if not isinstance(raw, dict):
        return flags
    for key, value in raw.items():
        try:
            identity = SourceIdentity(key)
        except ValueError:
            # 旧版本遗留或已移除的来源
            logger.debug("忽略未知来源配置: %s", key)
            continue
        flags[identity] = bool(value)
    return flags


def load_user_settings(path: Optional[Path] = None) -> Optional[UserSettings]:
    cfg_path = path or DEFAULT_CONFIG_PATH
    try:
        if not cfg_path.exists():
            return None
        data = json.loads(cfg_path.read_text(encoding="utf-8"))
        return UserSettings(
            enabled=_parse_flags(data.get("enabled")),
            debug=_parse_flags(data.get("debug")),
        )
    except Exception:
        logger.warning("无法读取用户设置 %s", cfg_path, exc_info=True)
        return None


def save_user_settings(settings: UserSettings, path: Optional[Path] = None) -> None:
    cfg_path = path or DEFAULT_CONFIG_PATH
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    cfg_path.write_text(json.dumps(settings.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
