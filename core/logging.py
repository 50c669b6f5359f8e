import logging

from apps.context import request_log_context

LOG_FORMAT = (
    "%(asctime)s %(levelname)s [%(name)s] [tenant=%(tenant)s user=%(user_id)s] "
    "%(message)s"
)


class RequestContextFilter(logging.Filter):
    """Stamps the tenant and staff user bound to the running request onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in request_log_context().items():
            setattr(record, key, value)
        return True


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())
