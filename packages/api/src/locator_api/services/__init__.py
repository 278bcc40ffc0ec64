"""Data services behind the v1 routers."""

from __future__ import annotations


class ServiceError(Exception):
    """A database or upstream step failed; rendered with the error envelope."""

    def __init__(self, message: str, *, code: str = "database_error", status_code: int = 502) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
