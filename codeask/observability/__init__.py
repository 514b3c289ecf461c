from codeask.observability.metrics import MetricsRegistry
from codeask.observability.middleware import RequestLoggingMiddleware

__all__ = ["MetricsRegistry", "RequestLoggingMiddleware"]
