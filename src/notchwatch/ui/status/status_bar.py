"""基于 rumps 的 macOS 状态栏应用。"""

from __future__ import annotations

import logging
from typing import Callable, Dict, FrozenSet, Optional

import rumps

from notchwatch.core.identity import SourceIdentity
from notchwatch.core.runner import SourceStatus
from notchwatch.ui.labels import menu_label, title_for

logger = logging.getLogger(__name__)

ActiveProvider = Callable[[], FrozenSet[SourceIdentity]]
EnabledProvider = Callable[[], Dict[SourceIdentity, bool]]
StatusProvider = Callable[[SourceIdentity], Optional[SourceStatus]]


class StatusBarApp(rumps.App):
    """状态栏应用，周期性读取后台的活跃集合。"""

    def __init__(
        self,
        active_provider: ActiveProvider,
        enabled_provider: EnabledProvider,
        status_provider: Optional[StatusProvider] = None,
        toggle_source: Optional[Callable[[SourceIdentity, bool], None]] = None,
        reset_source: Optional[Callable[[SourceIdentity], None]] = None,
        dashboard_url: Optional[str] = None,
        refresh_interval: float = 1.0,
    ) -> None:
        super().__init__(name="notchwatch", title=title_for(()), quit_button=None)
        self._active_provider = active_provider
        self._enabled_provider = enabled_provider
        self._status_provider = status_provider
        self._toggle_source = toggle_source
        self._reset_source = reset_source
        self._dashboard_url = dashboard_url

        self._source_items: Dict[SourceIdentity, rumps.MenuItem] = {}
        sources_menu = rumps.MenuItem("来源")
        for identity in SourceIdentity:
            item = rumps.MenuItem(identity.display_name, callback=self._make_toggle(identity))
            self._source_items[identity] = item
            sources_menu.add(item)

        self.menu = [
            rumps.MenuItem(title="当前活动", callback=None),
            sources_menu,
            rumps.MenuItem("重置全部来源", callback=self._handle_reset_all),
            None,
            rumps.MenuItem("打开状态接口", callback=self._open_dashboard),
            rumps.MenuItem("退出", callback=self._quit_app),
        ]
        self._poll_timer = rumps.Timer(self._refresh, refresh_interval)

    def run(self, *args, **kwargs):  # type: ignore[override]
        self._poll_timer.start()
        super().run(*args, **kwargs)

    def _refresh(self, _timer: rumps.Timer) -> None:
        active = self._active_provider()
        enabled = self._enabled_provider()
        self.title = title_for(active)
        self.menu["当前活动"].title = f"进行中：{len(active)} 项" if active else "当前没有进行中的任务"

        for identity, item in self._source_items.items():
            status = self._status_provider(identity) if self._status_provider is not None else None
            reading = status.last_reading if status is not None else None
            item.title = menu_label(identity, enabled.get(identity, False), identity in active, reading)
            item.state = 1 if enabled.get(identity, False) else 0

    def _make_toggle(self, identity: SourceIdentity) -> Callable[[rumps.MenuItem], None]:
        def _toggle(sender: rumps.MenuItem) -> None:
            if self._toggle_source is None:
                rumps.alert("未配置", "当前版本不支持切换来源。")
                return
            enable = not bool(sender.state)
            try:
                self._toggle_source(identity, enable)
            except Exception:
                logger.exception("切换来源 %s 失败", identity.value)
                rumps.alert("操作失败", "无法切换来源，请查看日志。")
                return
            sender.state = 1 if enable else 0

        return _toggle

    def _handle_reset_all(self, _sender: rumps.MenuItem) -> None:
        if self._reset_source is None:
            return
        for identity, enabled in self._enabled_provider().items():
            if enabled:
                self._reset_source(identity)

    def _open_dashboard(self, _sender: rumps.MenuItem) -> None:
        if self._dashboard_url is None:
            rumps.alert("未启用接口", "本地 HTTP 接口已关闭。")
            return
        import webbrowser

        webbrowser.open(self._dashboard_url)

    def _quit_app(self, _sender: rumps.MenuItem) -> None:
        rumps.quit_application()


def run_status_bar_app(
    active_provider: ActiveProvider,
    enabled_provider: EnabledProvider,
    status_provider: Optional[StatusProvider] = None,
    toggle_source: Optional[Callable[[SourceIdentity, bool], None]] = None,
    reset_source: Optional[Callable[[SourceIdentity], None]] = None,
    dashboard_url: Optional[str] = None,
) -> None:
    app = StatusBarApp(
        active_provider,
        enabled_provider,
        status_provider=status_provider,
        toggle_source=toggle_source,
        reset_source=reset_source,
        dashboard_url=dashboard_url,
    )
    app.run()
