from fastapi.testclient import TestClient

from notchwatch.core.diagnostics import DiagnosticKind, DiagnosticLog
from notchwatch.core.identity import SourceIdentity
from notchwatch.core.reading import Reading
from notchwatch.core.runner import SourceStatus
from notchwatch.service import DISABLE, ENABLE, RESET, SharedState
from notchwatch.ui.server import create_app


def _shared_state() -> SharedState:
    shared = SharedState()
    shared.set_enabled({SourceIdentity.XCODE: True, SourceIdentity.DROPBOX: True})
    shared.set_active(frozenset({SourceIdentity.DROPBOX, SourceIdentity.XCODE}))
    shared.set_statuses(
        [
            SourceStatus(
                source="xcode",
                is_active=True,
                consecutive_active=2,
                consecutive_inactive=0,
                in_flight=False,
                last_reading=Reading.active("Compiling 3 of 10"),
            )
        ]
    )
    log = DiagnosticLog()
    log.record("xcode", DiagnosticKind.READING, state="ACTIVE")
    log.record("dropbox", DiagnosticKind.TIMEOUT, timeout=2.0)
    shared.set_diagnostics(log)
    return shared


def test_health() -> None:
    client = TestClient(create_app())

    assert client.get("/health").json() == {"status": "ok"}


def test_sources_lists_active_in_declaration_order() -> None:
    client = TestClient(create_app(_shared_state()))

    payload = client.get("/sources").json()

    assert payload["active"] == ["xcode", "dropbox"]
    assert [item["source"] for item in payload["sources"]] == [identity.value for identity in SourceIdentity]


def test_single_source() -> None:
    client = TestClient(create_app(_shared_state()))

    xcode = client.get("/sources/xcode").json()
    finder = client.get("/sources/finder").json()

    assert xcode["is_active"] is True
    assert xcode["display_name"] == "Xcode"
    assert xcode["last_reading"]["detail"] == "Compiling 3 of 10"
    assert finder["enabled"] is False
    assert finder["last_reading"] is None
    assert client.get("/sources/posture").status_code == 404


def test_diagnostics_filters() -> None:
    client = TestClient(create_app(_shared_state()))

    everything = client.get("/diagnostics").json()["records"]
    dropbox = client.get("/diagnostics", params={"source": "dropbox"}).json()["records"]
    latest = client.get("/diagnostics", params={"limit": 1}).json()["records"]

    assert len(everything) == 2
    assert [r["kind"] for r in dropbox] == ["timeout"]
    assert latest[0]["source"] == "dropbox"
    assert client.get("/diagnostics", params={"limit": 0}).status_code == 422
    assert client.get("/diagnostics", params={"source": "posture"}).status_code == 404


def test_diagnostics_without_backend() -> None:
    client = TestClient(create_app())

    assert client.get("/diagnostics").json() == {"records": []}


def test_control_endpoints_queue_requests() -> None:
    shared = _shared_state()
    client = TestClient(create_app(shared))

    responses = [
        client.post("/sources/demo/enable"),
        client.post("/sources/xcode/disable"),
        client.post("/sources/dropbox/reset"),
    ]

    assert [r.status_code for r in responses] == [202, 202, 202]
    assert responses[0].json() == {"source": "demo", "action": "enable", "queued": True}
    assert shared.pop_requests() == [
        (ENABLE, SourceIdentity.DEMO),
        (DISABLE, SourceIdentity.XCODE),
        (RESET, SourceIdentity.DROPBOX),
    ]
    assert client.post("/sources/posture/enable").status_code == 404
