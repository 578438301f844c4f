"""Custom exceptions for curvectl."""


class CurveCtlError(Exception):
    """Base exception for all curvectl errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class IdentityLoadError(CurveCtlError):
    """Raised when signing material is missing, unreadable or malformed."""

    def __init__(self, path: str, reason: str):
        message = f"Failed to load keypair from {path}: {reason}"
        super().__init__(message, {"path": path, "reason": reason})
        self.path = path
        self.reason = reason


class ValidationError(CurveCtlError):
    """Raised when a required command option is missing or malformed.

    The message is shown to the operator verbatim, so it names the
    offending field (e.g. ``Error token address``).
    """

    def __init__(self, field: str, message: str, value: str | None = None):
        super().__init__(message, {"field": field, "value": value})
        self.field = field
        self.value = value


class TransientNetworkError(CurveCtlError):
    """Raised for faucet, broadcast or confirmation failures in the funding loop."""

    def __init__(self, stage: str, message: str):
        full_message = f"[{stage}] {message}"
        super().__init__(full_message, {"stage": stage})
        self.stage = stage


class OperationError(CurveCtlError):
    """Raised when a lifecycle operation fails."""

    def __init__(self, operation: str, message: str):
        full_message = f"{operation} failed: {message}"
        super().__init__(full_message, {"operation": operation})
        self.operation = operation


class ConfigurationError(CurveCtlError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, config_key: str, message: str):
        full_message = f"Configuration error [{config_key}]: {message}"
        super().__init__(full_message, {"config_key": config_key})
        self.config_key = config_key
