"""用户界面：本地 HTTP 接口与状态栏。"""

from .server import create_app

__all__ = ["create_app"]
