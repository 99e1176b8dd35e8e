"""后台轮询服务与状态栏/HTTP 接口之间的通信桥接。"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from notchwatch.adapters.catalog import SourceSpec, build_catalog
from notchwatch.config import AppConfig, SourceSettings
from notchwatch.config_store import UserSettings, load_user_settings, save_user_settings
from notchwatch.core.diagnostics import DiagnosticLog
from notchwatch.core.identity import SourceIdentity
from notchwatch.core.runner import SourceStatus
from notchwatch.core.scheduler import Scheduler

logger = logging.getLogger(__name__)

ENABLE = "enable"
DISABLE = "disable"
RESET = "reset"
_ACTIONS = (ENABLE, DISABLE, RESET)

Request = Tuple[str, SourceIdentity]


@dataclass
class SharedState:
    """共享状态：后台线程写入，状态栏与 HTTP 线程读取。"""

    active: FrozenSet[SourceIdentity] = frozenset()
    statuses: Dict[str, SourceStatus] = field(default_factory=dict)
    enabled: Dict[SourceIdentity, bool] = field(default_factory=dict)
    diagnostics: Optional[DiagnosticLog] = None
    _requests: List[Request] = field(default_factory=list, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def set_active(self, active: FrozenSet[SourceIdentity]) -> None:
        with self._lock:
            self.active = active

    def get_active(self) -> FrozenSet[SourceIdentity]:
        with self._lock:
            return self.active

    def set_statuses(self, statuses: List[SourceStatus]) -> None:
        with self._lock:
            self.statuses = {status.source: status for status in statuses}

    def get_statuses(self) -> Dict[str, SourceStatus]:
        with self._lock:
            return dict(self.statuses)

    def get_status(self, identity: SourceIdentity) -> Optional[SourceStatus]:
        with self._lock:
            return self.statuses.get(identity.value)

    def set_enabled(self, enabled: Mapping[SourceIdentity, bool]) -> None:
        with self._lock:
            self.enabled = dict(enabled)

    def get_enabled(self) -> Dict[SourceIdentity, bool]:
        with self._lock:
            return dict(self.enabled)

    def set_diagnostics(self, diagnostics: DiagnosticLog) -> None:
        with self._lock:
            self.diagnostics = diagnostics

    def get_diagnostics(self) -> Optional[DiagnosticLog]:
        with self._lock:
            return self.diagnostics

    def request(self, action: str, identity: SourceIdentity) -> None:
        """排队一个启用/停用/重置请求，由后台线程在下一轮处理。"""

        if action not in _ACTIONS:
            raise ValueError(f"未知操作: {action}")
        with self._lock:
            self._requests.append((action, identity))

    def pop_requests(self) -> List[Request]:
        with self._lock:
            requests = self._requests
            self._requests = []
            return requests


class SourceController:
    """根据配置与用户开关，把目录中的来源注册到调度器。"""

    def __init__(
        self,
        scheduler: Scheduler,
        config: AppConfig,
        catalog: Mapping[SourceIdentity, SourceSpec],
        settings: UserSettings,
        settings_path: Optional[Path] = None,
        persist: bool = True,
    ) -> None:
        self._scheduler = scheduler
        self._config = config
        self._catalog = catalog
        self._settings = settings
        self._settings_path = settings_path
        self._persist = persist

    @property
    def settings(self) -> UserSettings:
        return self._settings

    def enabled_map(self) -> Dict[SourceIdentity, bool]:
        return {identity: identity in self._scheduler for identity in self._catalog}

    def start_enabled(self) -> None:
        for item in self._config.enabled_sources():
            self._add(item)

    def enable(self, identity: SourceIdentity) -> bool:
        if identity in self._scheduler:
            return False
        item = self._config.source(identity) or SourceSettings(source=identity)
        if not self._add(item):
            return False
        self._remember(identity, True)
        return True

    def disable(self, identity: SourceIdentity) -> bool:
        if identity not in self._scheduler:
            return False
        self._scheduler.remove_source(identity)
        self._remember(identity, False)
        return True

    def reset(self, identity: SourceIdentity) -> bool:
        if identity not in self._scheduler:
            return False
        self._scheduler.reset_source(identity)
        return True

    def apply(self, action: str, identity: SourceIdentity) -> bool:
        handler = {ENABLE: self.enable, DISABLE: self.disable, RESET: self.reset}[action]
        return handler(identity)

    def _add(self, item: SourceSettings) -> bool:
        spec = self._catalog.get(item.source)
        if spec is None:
            logger.warning("来源 %s 没有可用的探针，跳过", item.source.value)
            return False
        self._scheduler.add_source(
            item.source,
            item.debounce(),
            spec.build_probe(),
            timeout=item.resolve_timeout(self._config.default_probe_timeout_seconds),
            precheck=spec.precheck,
            interval_ticks=item.interval_ticks,
            idle_interval_ticks=item.idle_interval_ticks,
            debug=item.debug,
        )
        return True

    def _remember(self, identity: SourceIdentity, enabled: bool) -> None:
        self._settings.set_enabled(identity, enabled)
        if not self._persist:
            return
        try:
            save_user_settings(self._settings, self._settings_path)
        except Exception:
            logger.warning("无法写入用户设置", exc_info=True)


async def run_backend(
    shared: SharedState,
    config: Optional[AppConfig] = None,
    settings_path: Optional[Path] = None,
    catalog: Optional[Mapping[SourceIdentity, SourceSpec]] = None,
) -> None:
    """运行调度器，并周期性把状态同步到共享状态。

    所在的事件循环即为发布线程。
    """

    config = config or AppConfig.load()
    user_settings = load_user_settings(settings_path)
    if user_settings is not None:
        config = user_settings.apply(config)
    else:
        user_settings = UserSettings.from_config(config)

    diagnostics = DiagnosticLog(maxlen=config.diagnostics_capacity)
    shared.set_diagnostics(diagnostics)

    scheduler = Scheduler(
        tick_interval=config.tick_interval_seconds,
        default_timeout=config.default_probe_timeout_seconds,
        diagnostics=diagnostics,
    )
    scheduler.aggregator.subscribe(shared.set_active)
    controller = SourceController(
        scheduler,
        config,
        catalog if catalog is not None else build_catalog(config),
        user_settings,
        settings_path=settings_path,
    )
    controller.start_enabled()
    shared.set_enabled(controller.enabled_map())
    await scheduler.start()

    try:
        while True:
            requests = shared.pop_requests()
            for action, identity in requests:
                if controller.apply(action, identity):
                    logger.info("已处理请求 %s %s", action, identity.value)
            if requests:
                shared.set_enabled(controller.enabled_map())
            shared.set_statuses(scheduler.aggregator.statuses())
            await asyncio.sleep(config.tick_interval_seconds)
    finally:
        scheduler.close()


def start_backend_in_thread(shared: SharedState) -> threading.Thread:
    """在独立线程运行 asyncio 后台服务。"""

    loop = asyncio.new_event_loop()

    def _run() -> None:
        asyncio.set_event_loop(loop)
        loop.run_until_complete(run_backend(shared))

    thread = threading.Thread(target=_run, name="notchwatch-backend", daemon=True)
    thread.start()
    return thread
