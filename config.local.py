"""本地配置覆盖示例（存在时由 AppConfig.load() 自动加载）。"""

from notchwatch.config import AppConfig, SourceSettings, default_sources
from notchwatch.core.identity import SourceIdentity


def load_config() -> AppConfig:
    sources = [item for item in default_sources() if item.source is not SourceIdentity.DEMO]
    sources.append(
        SourceSettings(
            source=SourceIdentity.DEMO,
            enabled=True,
            required_to_show=2,
            required_to_hide=4,
            timeout_seconds=None,
            debug=True,
        )
    )
    return AppConfig(
        tick_interval_seconds=1.0,
        default_probe_timeout_seconds=2.0,
        terminal_line_count=20,
        terminal_scan_all_sessions=False,
        api_enabled=True,
        api_port=8765,
        log_level="DEBUG",
        sources=sources,
    )
