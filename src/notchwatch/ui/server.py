"""FastAPI 应用：只读的活跃状态接口与来源控制接口。"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query

from notchwatch.core.identity import SourceIdentity
from notchwatch.service import DISABLE, ENABLE, RESET, SharedState


def _parse_identity(source_id: str) -> SourceIdentity:
    try:
        return SourceIdentity(source_id)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"未知来源: {source_id}") from None


def _source_payload(shared_state: SharedState, identity: SourceIdentity) -> dict[str, Any]:
    status = shared_state.get_status(identity)
    payload: dict[str, Any] = {
        "source": identity.value,
        "display_name": identity.display_name,
        "enabled": shared_state.get_enabled().get(identity, False),
        "is_active": identity in shared_state.get_active(),
    }
    if status is not None:
        payload.update(status.to_dict())
    else:
        payload.update(
            {
                "consecutive_active": 0,
                "consecutive_inactive": 0,
                "in_flight": False,
                "last_reading": None,
            }
        )
    return payload


def create_app(shared_state: Optional[SharedState] = None) -> FastAPI:
    """构建 FastAPI 应用并注册路由。"""

    app = FastAPI(title="notchwatch")
    state = shared_state if shared_state is not None else SharedState()

    @app.get("/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/sources", tags=["sources"])
    async def sources() -> dict:
        active = state.get_active()
        return {
            # 集合本身无序，这里按来源声明顺序输出
            "active": [identity.value for identity in SourceIdentity if identity in active],
            "sources": [_source_payload(state, identity) for identity in SourceIdentity],
        }

    @app.get("/sources/{source_id}", tags=["sources"])
    async def source(source_id: str) -> dict:
        return _source_payload(state, _parse_identity(source_id))

    @app.get("/diagnostics", tags=["diagnostics"])
    async def diagnostics(
        source: Optional[str] = None,
        limit: Optional[int] = Query(default=100, ge=1, le=10000),
    ) -> dict:
        log = state.get_diagnostics()
        if log is None:
            return {"records": []}
        if source is not None:
            _parse_identity(source)
        return {"records": [record.to_dict() for record in log.snapshot(source=source, limit=limit)]}

    def _queue(action: str, source_id: str) -> dict[str, Any]:
        identity = _parse_identity(source_id)
        state.request(action, identity)
        return {"source": identity.value, "action": action, "queued": True}

    @app.post("/sources/{source_id}/enable", tags=["sources"], status_code=202)
    async def enable(source_id: str) -> dict:
        return _queue(ENABLE, source_id)

    @app.post("/sources/{source_id}/disable", tags=["sources"], status_code=202)
    async def disable(source_id: str) -> dict:
        return _queue(DISABLE, source_id)

    @app.post("/sources/{source_id}/reset", tags=["sources"], status_code=202)
    async def reset(source_id: str) -> dict:
        return _queue(RESET, source_id)

    return app
