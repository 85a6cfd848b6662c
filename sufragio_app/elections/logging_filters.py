import logging

_HEALTH_PATHS = ("/healthz", "/readyz")


class SkipHealthzFilter(logging.Filter):
    """Drop log records produced by liveness and readiness checks."""

    def filter(self, record: logging.LogRecord) -> bool:
        request = getattr(record, "request", None)
        path = str(getattr(request, "path", "") or "")
        if path.startswith(_HEALTH_PATHS):
            return False

        message = record.getMessage()
        return not any(path in message for path in _HEALTH_PATHS)
