"""应用配置模型。"""

from __future__ import annotations

import importlib.util
import logging
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, PositiveFloat, field_validator

from notchwatch.core.debounce import DebounceConfig
from notchwatch.core.identity import SourceIdentity

logger = logging.getLogger(__name__)

INHERIT_TIMEOUT = "default"


class SourceSettings(BaseModel):
    """单个来源的启用状态与去抖参数。"""

    source: SourceIdentity
    enabled: bool = True
    required_to_show: int = Field(1, ge=1)
    required_to_hide: int = Field(3, ge=1)
    # "default" 沿用 AppConfig.default_probe_timeout_seconds；None 表示不设截止时间
    timeout_seconds: Union[Literal["default"], PositiveFloat, None] = INHERIT_TIMEOUT
    interval_ticks: int = Field(1, ge=1)
    idle_interval_ticks: int = Field(1, ge=1)
    debug: bool = False

    def resolve_timeout(self, default: float) -> Optional[float]:
        if self.timeout_seconds == INHERIT_TIMEOUT:
            return default
        return self.timeout_seconds

    def debounce(self) -> DebounceConfig:
        return DebounceConfig(
            required_to_activate=self.required_to_show,
            required_to_deactivate=self.required_to_hide,
        )


def default_sources() -> list[SourceSettings]:
    """各来源的默认阈值：显示快、隐藏慢；同步类客户端使用对称阈值。"""

    S = SourceIdentity
    return [
        SourceSettings(source=S.CLAUDE_CODE, required_to_show=1, required_to_hide=1, idle_interval_ticks=3),
        SourceSettings(source=S.CODEX, required_to_show=1, required_to_hide=3),
        SourceSettings(source=S.OPENCODE, required_to_show=1, required_to_hide=3),
        SourceSettings(source=S.XCODE, required_to_show=1, required_to_hide=3, idle_interval_ticks=3),
        SourceSettings(source=S.ANDROID_STUDIO, required_to_show=1, required_to_hide=3),
        SourceSettings(source=S.FINDER, required_to_show=1, required_to_hide=3),
        SourceSettings(source=S.DOWNLOADS, required_to_show=1, required_to_hide=2),
        SourceSettings(source=S.DROPBOX, required_to_show=2, required_to_hide=2),
        SourceSettings(source=S.GOOGLE_DRIVE, required_to_show=2, required_to_hide=2),
        SourceSettings(source=S.ONEDRIVE, required_to_show=2, required_to_hide=2),
        SourceSettings(source=S.ICLOUD, required_to_show=3, required_to_hide=4),
        SourceSettings(source=S.DAVINCI_RESOLVE, required_to_show=1, required_to_hide=2),
        SourceSettings(source=S.INSTALLER, required_to_show=1, required_to_hide=2, timeout_seconds=None),
        SourceSettings(source=S.DEMO, enabled=False, required_to_show=1, required_to_hide=3, timeout_seconds=None),
    ]


class AppConfig(BaseModel):
    """总配置。"""

    tick_interval_seconds: float = Field(1.0, gt=0.0)
    default_probe_timeout_seconds: float = Field(2.0, gt=0.0)
    terminal_line_count: int = Field(20, ge=1)
    terminal_scan_all_sessions: bool = False
    downloads_directory: str = str(Path.home() / "Downloads")
    api_enabled: bool = True
    api_host: str = "127.0.0.1"
    api_port: int = Field(8765, ge=1, le=65535)
    log_level: str = "INFO"
    diagnostics_capacity: int = Field(1000, ge=10)
    sources: list[SourceSettings] = Field(default_factory=default_sources)

    @field_validator("sources")
    @classmethod
    def _unique_sources(cls, value: list[SourceSettings]) -> list[SourceSettings]:
        seen: set[SourceIdentity] = set()
        for item in value:
            if item.source in seen:
                raise ValueError(f"来源重复配置: {item.source.value}")
            seen.add(item.source)
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    def source(self, identity: SourceIdentity) -> Optional[SourceSettings]:
        for item in self.sources:
            if item.source is identity:
                return item
        return None

    def enabled_sources(self) -> list[SourceSettings]:
        return [item for item in self.sources if item.enabled]

    def with_overrides(
        self,
        enabled: Optional[dict[SourceIdentity, bool]] = None,
        debug: Optional[dict[SourceIdentity, bool]] = None,
    ) -> "AppConfig":
        """返回应用了用户启用/调试开关后的新配置。"""

        enabled = enabled or {}
        debug = debug or {}
        sources = [
            item.model_copy(
                update={
                    "enabled": enabled.get(item.source, item.enabled),
                    "debug": debug.get(item.source, item.debug),
                }
            )
            for item in self.sources
        ]
        return self.model_copy(update={"sources": sources})

    @classmethod
    def load_default(cls) -> "AppConfig":
        return cls()

    @classmethod
    def load(cls) -> "AppConfig":
        """优先尝试加载项目根目录的 `config.local.py`，否则返回默认配置。"""

        root_dir = Path(__file__).resolve().parents[2]
        local_path = root_dir / "config.local.py"
        if not local_path.exists():
            return cls.load_default()

        spec = importlib.util.spec_from_file_location("config_local", local_path)
        if spec is None or spec.loader is None:
            return cls.load_default()

        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)  # type: ignore[arg-type]
        except Exception:
            logger.warning("加载 %s 失败，使用默认配置", local_path, exc_info=True)
            return cls.load_default()

        load_fn = getattr(module, "load_config", None)
        if callable(load_fn):
            try:
                return load_fn()
            except Exception:
                logger.warning("config.local.py 中的 load_config() 执行失败，使用默认配置", exc_info=True)
                return cls.load_default()
        return cls.load_default()
