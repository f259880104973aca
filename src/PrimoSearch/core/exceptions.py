from __future__ import annotations


class PrimoError(Exception):
    """Failure talking to Primo or reading its response.

    Attributes:
        status_code: HTTP status of the failed response, when there was one.
        body: Raw response body, when there was one.
    """

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class BackendException(Exception):
    """Search backend failure raised to callers of `Backend`.

    Attributes:
        code: Status code carried over from the wrapped error, 0 if none.
    """

    def __init__(self, message: str, code: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    @classmethod
    def wrap(cls, error: Exception) -> BackendException:
        """Build a backend exception for ``error``; raise it ``from error``."""
        code = getattr(error, "status_code", None) or getattr(error, "code", None) or 0
        if not isinstance(code, int):
            code = 0
        return cls(str(error), code)
