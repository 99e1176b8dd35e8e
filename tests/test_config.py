import json

import pytest
from pydantic import ValidationError

from notchwatch.config import INHERIT_TIMEOUT, AppConfig, SourceSettings
from notchwatch.config_store import UserSettings, load_user_settings, save_user_settings
from notchwatch.core.identity import SourceIdentity


def test_defaults_cover_every_source_once() -> None:
    config = AppConfig()

    assert [item.source for item in config.sources] == list(SourceIdentity)
    assert config.source(SourceIdentity.DEMO).enabled is False
    assert SourceIdentity.DEMO not in [item.source for item in config.enabled_sources()]


def test_sync_clients_use_symmetric_thresholds() -> None:
    dropbox = AppConfig().source(SourceIdentity.DROPBOX).debounce()
    xcode = AppConfig().source(SourceIdentity.XCODE).debounce()

    assert dropbox.required_to_activate == dropbox.required_to_deactivate
    assert xcode.required_to_activate < xcode.required_to_deactivate


def test_duplicate_sources_rejected() -> None:
    with pytest.raises(ValidationError):
        AppConfig(
            sources=[
                SourceSettings(source=SourceIdentity.XCODE),
                SourceSettings(source=SourceIdentity.XCODE),
            ]
        )


def test_invalid_thresholds_rejected() -> None:
    with pytest.raises(ValidationError):
        SourceSettings(source=SourceIdentity.FINDER, required_to_hide=0)
    with pytest.raises(ValidationError):
        SourceSettings(source=SourceIdentity.FINDER, timeout_seconds=0)


def test_log_level_normalised() -> None:
    assert AppConfig(log_level="debug").log_level == "DEBUG"


def test_with_overrides_returns_copy() -> None:
    config = AppConfig()

    updated = config.with_overrides(
        enabled={SourceIdentity.DEMO: True, SourceIdentity.ICLOUD: False},
        debug={SourceIdentity.DEMO: True},
    )

    assert updated.source(SourceIdentity.DEMO).enabled is True
    assert updated.source(SourceIdentity.DEMO).debug is True
    assert updated.source(SourceIdentity.ICLOUD).enabled is False
    assert config.source(SourceIdentity.DEMO).enabled is False


def test_user_settings_round_trip(tmp_path) -> None:
    path = tmp_path / "nested" / "config.json"
    settings = UserSettings.from_config(AppConfig())
    settings.set_enabled(SourceIdentity.DEMO, True)
    settings.set_debug(SourceIdentity.XCODE, True)

    save_user_settings(settings, path)
    loaded = load_user_settings(path)

    assert loaded is not None
    assert loaded.enabled[SourceIdentity.DEMO] is True
    assert loaded.debug[SourceIdentity.XCODE] is True
    assert json.loads(path.read_text(encoding="utf-8"))["enabled"]["demo"] is True


def test_missing_or_corrupt_settings(tmp_path) -> None:
    assert load_user_settings(tmp_path / "absent.json") is None

    corrupt = tmp_path / "config.json"
    corrupt.write_text("{not json", encoding="utf-8")
    assert load_user_settings(corrupt) is None


def test_unknown_sources_ignored(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"enabled": {"xcode": False, "posture": True}, "debug": []}), encoding="utf-8")

    loaded = load_user_settings(path)

    assert loaded is not None
    assert loaded.enabled == {SourceIdentity.XCODE: False}
    assert loaded.debug == {}


def test_apply_user_settings() -> None:
    settings = UserSettings(enabled={SourceIdentity.XCODE: False})

    config = settings.apply(AppConfig())

    assert config.source(SourceIdentity.XCODE).enabled is False
    assert config.source(SourceIdentity.FINDER).enabled is True


def test_source_timeout_inherits_default_unless_set() -> None:
    inherited = SourceSettings(source=SourceIdentity.CODEX)
    explicit = SourceSettings(source=SourceIdentity.CODEX, timeout_seconds=5.0)
    no_deadline = SourceSettings(source=SourceIdentity.INSTALLER, timeout_seconds=None)

    assert inherited.timeout_seconds == INHERIT_TIMEOUT
    assert inherited.resolve_timeout(7.0) == 7.0
    assert explicit.resolve_timeout(7.0) == 5.0
    assert no_deadline.resolve_timeout(7.0) is None
    with pytest.raises(ValidationError):
        SourceSettings(source=SourceIdentity.CODEX, timeout_seconds="forever")
