"""Exceptions raised by the iaptic client."""


class IapticError(Exception):
    """Base class for everything the library raises."""


class ConfigurationError(IapticError, ValueError):
    """Adapter constructed with an unsupported type or missing identity."""


class MissingAccessTokenError(IapticError):
    def __init__(self, message: str = "No access token available"):
        super().__init__(message)


class StorageError(IapticError):
    """Raised by key-value stores; never escapes the Storage facade."""


class ApiError(IapticError):
    """Backend call failed: transport error, non-2xx status or ``ok: false``."""

    def __init__(self, message: str, status: int | None = None, payload: dict | None = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.message} (HTTP {self.status})"
