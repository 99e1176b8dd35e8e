"""开发环境启动 FastAPI 服务。"""

from __future__ import annotations

import asyncio
import logging
import signal
import threading
from contextlib import suppress

import uvicorn

from notchwatch.config import AppConfig
from notchwatch.service import SharedState, run_backend
from notchwatch.ui import create_app

logger = logging.getLogger(__name__)


async def main(shared_state=None) -> None:
    config_model = AppConfig.load()

    backend_task = None
    if shared_state is None:
        # 独立运行时在同一个事件循环中启动后台轮询
        shared_state = SharedState()
        backend_task = asyncio.create_task(run_backend(shared_state, config=config_model))

    app = create_app(shared_state=shared_state)

    uvicorn_config = uvicorn.Config(app, host=config_model.api_host, port=config_model.api_port, reload=False)
    server = uvicorn.Server(uvicorn_config)

    if threading.current_thread() is threading.main_thread():
        stop_event = asyncio.Event()

        def _handle_stop(*_: object) -> None:
            logger.info("收到终止信号，准备关闭服务器…")
            stop_event.set()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _handle_stop)

        async def _serve() -> None:
            await server.serve()
            stop_event.set()

        serve_task = asyncio.create_task(_serve())

        await stop_event.wait()
        serve_task.cancel()
        with suppress(asyncio.CancelledError):
            await serve_task
    else:
        await server.serve()

    if backend_task is not None:
        backend_task.cancel()
        with suppress(asyncio.CancelledError):
            await backend_task


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="[%(asctime)s][%(levelname)s] %(name)s: %(message)s")
    asyncio.run(main())
