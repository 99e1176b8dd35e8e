"""notchwatch：对多个外部探针做去抖轮询并汇总活跃来源。"""

__version__ = "0.1.0"
