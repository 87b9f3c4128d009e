"""put.io RSS 订阅的 Kubernetes operator."""

__version__ = "0.1.0"
