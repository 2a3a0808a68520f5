"""Core custom exceptions for the application."""


class IntakeError(Exception):
    """Base exception for intake-related errors."""


class ConfigurationError(IntakeError):
    """Exception for configuration-related errors (e.g., non-positive limits, inverted ranges)."""


class IntakeDisabledError(IntakeError):
    """Raised by the HTTP layer when files are submitted to a disabled intake."""


class PreviewError(IntakeError):
    """Raised when an image payload cannot be decoded into a thumbnail."""
