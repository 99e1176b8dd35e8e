"""setuptools / py2app 打包配置。"""

from __future__ import annotations

import sys
from pathlib import Path

from setuptools import find_packages, setup


sys.setrecursionlimit(10000)


ROOT = Path(__file__).resolve().parent
SRC_DIR = ROOT / "src"
VERSION = "0.1.0"

APP = [str(ROOT / "main.py")]
DATA_FILES: list[str] = []

PLIST = {
    "CFBundleName": "notchwatch",
    "CFBundleDisplayName": "notchwatch",
    "CFBundleIdentifier": "com.notchwatch.agent",
    "CFBundleShortVersionString": VERSION,
    "CFBundleVersion": VERSION,
    "LSUIElement": True,
    "NSAppleEventsUsageDescription": "notchwatch 需要读取终端与同步客户端的状态文本以判断任务是否在进行中。",
    "NSHumanReadableCopyright": "© 2026 notchwatch contributors",
}

OPTIONS = {
    "argv_emulation": False,
    "packages": ["notchwatch", "anyio"],
    "includes": [
        "rumps",
        "AppKit",
        "ApplicationServices",
        "Cocoa",
        "pydantic",
        "fastapi",
        "uvicorn",
        "starlette",
        "anyio",
        "h11",
        "sniffio",
        "uvicorn.lifespan.on",
        "uvicorn.protocols",
        "uvicorn.protocols.http",
        "uvicorn.protocols.http.auto",
        "uvicorn.protocols.http.h11_impl",
        "anyio._backends",
        "anyio._backends._asyncio",
    ],
    "plist": PLIST,
    "optimize": 0,
}

INSTALL_REQUIRES = [
    "pydantic>=2.0",
    "fastapi>=0.100",
    "uvicorn>=0.23",
    "rumps>=0.4; sys_platform == 'darwin'",
    "pyobjc-framework-Cocoa>=9.0; sys_platform == 'darwin'",
    "pyobjc-framework-ApplicationServices>=9.0; sys_platform == 'darwin'",
]

# 仅在构建 .app 时才需要 py2app
APP_OPTIONS: dict = {}
if "py2app" in sys.argv:
    APP_OPTIONS = {
        "app": APP,
        "data_files": DATA_FILES,
        "options": {"py2app": OPTIONS},
        "setup_requires": ["py2app"],
    }


setup(
    name="notchwatch-app",
    version=VERSION,
    description="Debounced activity polling for slow external probes on macOS.",
    python_requires=">=3.10",
    **APP_OPTIONS,
    install_requires=INSTALL_REQUIRES,
    extras_require={
        "test": ["pytest>=7.0", "httpx>=0.24"],
    },
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    include_package_data=True,
)
