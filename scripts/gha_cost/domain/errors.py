from __future__ import annotations


class ConfigError(Exception):
    """Invalid input detected before any fetch begins. Always fatal."""
    pass


class UpstreamError(Exception):
    """A call to the Actions API failed (network error or non-2xx response)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def transient(self) -> bool:
        """Network errors and 5xx responses are worth retrying; other 4xx are not."""
        return self.status_code is None or self.status_code >= 500


class RateLimitError(UpstreamError):
    """Raised when GitHub rejects a request because the quota is exhausted."""

    def __init__(self, message: str, status_code: int | None = None, retry_after: float | None = None) -> None:
        super().__init__(message, status_code)
        self.retry_after = retry_after

    @property
    def transient(self) -> bool:
        return True
