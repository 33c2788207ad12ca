"""feedinbox - 稍后阅读应用的订阅源摄取服务."""

__version__ = "0.1.0"
