"""探针工具集：子进程、AppleScript、辅助功能树、终端扫描与内置来源目录。"""
