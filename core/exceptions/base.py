from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base class for errors surfaced to API callers.

    Every subclass carries a machine-readable ``error_code`` and the HTTP
    status it maps to, so handlers can render a structured body without
    knowing the concrete type.
    """

    status_code: int = 400
    default_error_code: str = "APP_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "errorCode": self.error_code, **self.extra}
