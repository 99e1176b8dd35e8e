"""状态栏应用启动入口。"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from pathlib import Path
from typing import Optional

# 确保 src 加入路径
PROJECT_ROOT = Path(__file__).resolve().parent
SRC_DIR = PROJECT_ROOT / "src"
if SRC_DIR.exists() and str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from scripts.dev_server import main as run_dev_server
from notchwatch.adapters.macos import is_trusted
from notchwatch.config import AppConfig
from notchwatch.core.identity import SourceIdentity
from notchwatch.core.runner import SourceStatus
from notchwatch.service import DISABLE, ENABLE, RESET, SharedState, start_backend_in_thread
from notchwatch.ui.status import run_status_bar_app


def main() -> None:
    config = AppConfig.load()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="[%(asctime)s][%(levelname)s] %(name)s: %(message)s",
    )
    logger = logging.getLogger(__name__)

    if not is_trusted():
        logger.warning("未获辅助功能授权，依赖界面文本的来源将始终显示为空闲")

    shared_state = SharedState()

    start_backend_in_thread(shared_state)

    dashboard_url: Optional[str] = None
    if config.api_enabled:

        def _serve_api() -> None:
            asyncio.run(run_dev_server(shared_state=shared_state))

        server_thread = threading.Thread(target=_serve_api, name="notchwatch-api", daemon=True)
        server_thread.start()
        dashboard_url = f"http://{config.api_host}:{config.api_port}/sources"

    def status_provider(identity: SourceIdentity) -> Optional[SourceStatus]:
        return shared_state.get_status(identity)

    def toggle_source(identity: SourceIdentity, enabled: bool) -> None:
        logger.info("%s来源 %s", "启用" if enabled else "停用", identity.display_name)
        shared_state.request(ENABLE if enabled else DISABLE, identity)

    def reset_source(identity: SourceIdentity) -> None:
        shared_state.request(RESET, identity)

    run_status_bar_app(
        shared_state.get_active,
        shared_state.get_enabled,
        status_provider=status_provider,
        toggle_source=toggle_source,
        reset_source=reset_source,
        dashboard_url=dashboard_url,
    )


if __name__ == "__main__":
    main()
