import asyncio
import json

import pytest

from notchwatch.adapters.catalog import SourceSpec
from notchwatch.config import AppConfig, SourceSettings
from notchwatch.config_store import UserSettings
from notchwatch.core.identity import SourceIdentity
from notchwatch.core.probe import FunctionProbe
from notchwatch.core.scheduler import Scheduler
from notchwatch.service import DISABLE, ENABLE, RESET, SharedState, SourceController, run_backend

WAIT = 5.0


def _catalog(*identities: SourceIdentity, value: bool = True) -> dict:
    return {identity: SourceSpec(identity, lambda: FunctionProbe(lambda: value)) for identity in identities}


def _config(*identities: SourceIdentity, **kwargs) -> AppConfig:
    sources = [
        SourceSettings(source=identity, required_to_show=1, required_to_hide=1, timeout_seconds=None)
        for identity in identities
    ]
    return AppConfig(sources=sources, **kwargs)


def test_shared_state_queues_requests() -> None:
    shared = SharedState()
    shared.request(ENABLE, SourceIdentity.DEMO)
    shared.request(RESET, SourceIdentity.XCODE)

    assert shared.pop_requests() == [(ENABLE, SourceIdentity.DEMO), (RESET, SourceIdentity.XCODE)]
    assert shared.pop_requests() == []
    with pytest.raises(ValueError):
        shared.request("restart", SourceIdentity.DEMO)


def test_shared_state_returns_copies() -> None:
    shared = SharedState()
    shared.set_enabled({SourceIdentity.DEMO: True})

    shared.get_enabled()[SourceIdentity.DEMO] = False

    assert shared.get_enabled() == {SourceIdentity.DEMO: True}


def test_controller_enable_disable_persist(tmp_path) -> None:
    path = tmp_path / "config.json"
    config = _config(SourceIdentity.XCODE, SourceIdentity.DEMO)
    config = config.with_overrides(enabled={SourceIdentity.DEMO: False})
    scheduler = Scheduler()
    controller = SourceController(
        scheduler,
        config,
        _catalog(SourceIdentity.XCODE, SourceIdentity.DEMO),
        UserSettings.from_config(config),
        settings_path=path,
    )

    controller.start_enabled()
    assert controller.enabled_map() == {SourceIdentity.XCODE: True, SourceIdentity.DEMO: False}

    assert controller.apply(ENABLE, SourceIdentity.DEMO)
    assert not controller.enable(SourceIdentity.DEMO)
    assert controller.disable(SourceIdentity.XCODE)
    assert not controller.disable(SourceIdentity.XCODE)

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["enabled"] == {"xcode": False, "demo": True}
    scheduler.close()


def test_controller_reset_and_missing_probe() -> None:
    config = _config(SourceIdentity.FINDER)
    scheduler = Scheduler()
    controller = SourceController(scheduler, config, _catalog(SourceIdentity.FINDER), UserSettings(), persist=False)
    controller.start_enabled()

    scheduler.tick()
    scheduler.runner(SourceIdentity.FINDER)._lane.submit(lambda: None).result(timeout=WAIT)
    assert SourceIdentity.FINDER in scheduler.aggregator.active_set

    assert controller.reset(SourceIdentity.FINDER)
    assert SourceIdentity.FINDER not in scheduler.aggregator.active_set
    assert not controller.reset(SourceIdentity.XCODE)
    # 目录中没有该来源的探针
    assert not controller.enable(SourceIdentity.XCODE)
    scheduler.close()


def test_controller_uses_default_probe_timeout() -> None:
    config = AppConfig(
        default_probe_timeout_seconds=7.0,
        sources=[
            SourceSettings(source=SourceIdentity.CODEX, enabled=False),
            SourceSettings(source=SourceIdentity.XCODE, enabled=False, timeout_seconds=3.0),
            SourceSettings(source=SourceIdentity.INSTALLER, enabled=False, timeout_seconds=None),
        ],
    )
    scheduler = Scheduler()
    controller = SourceController(
        scheduler,
        config,
        _catalog(SourceIdentity.CODEX, SourceIdentity.XCODE, SourceIdentity.INSTALLER),
        UserSettings(),
        persist=False,
    )

    for identity in (SourceIdentity.CODEX, SourceIdentity.XCODE, SourceIdentity.INSTALLER):
        assert controller.enable(identity)

    assert scheduler.runner(SourceIdentity.CODEX)._timeout == 7.0
    assert scheduler.runner(SourceIdentity.XCODE)._timeout == 3.0
    assert scheduler.runner(SourceIdentity.INSTALLER)._timeout is None
    scheduler.close()


def test_run_backend_publishes_and_applies_requests(tmp_path) -> None:
    path = tmp_path / "config.json"
    shared = SharedState()
    config = _config(SourceIdentity.DEMO, tick_interval_seconds=0.05)

    async def _wait_for(predicate) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + WAIT
        while not predicate():
            assert loop.time() < deadline
            await asyncio.sleep(0.02)

    async def _run() -> None:
        task = asyncio.create_task(
            run_backend(shared, config=config, settings_path=path, catalog=_catalog(SourceIdentity.DEMO))
        )
        try:
            await _wait_for(lambda: SourceIdentity.DEMO in shared.get_active())
            await _wait_for(lambda: SourceIdentity.DEMO.value in shared.get_statuses())
            assert shared.get_enabled() == {SourceIdentity.DEMO: True}
            assert shared.get_diagnostics() is not None

            shared.request(DISABLE, SourceIdentity.DEMO)
            await _wait_for(lambda: shared.get_enabled() == {SourceIdentity.DEMO: False})
            assert shared.get_active() == frozenset()
        finally:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

    asyncio.run(_run())

    assert json.loads(path.read_text(encoding="utf-8"))["enabled"]["demo"] is False
