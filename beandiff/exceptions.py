"""Custom exceptions for BeanDiff engine."""


class BeanDiffError(Exception):
    """Base exception for BeanDiff errors."""
    pass


class ConfigurationError(BeanDiffError):
    """Raised when a comparison configuration is invalid."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TypeOverrideError(BeanDiffError):
    """Raised when a registered type adapter fails or is missing."""
    def __init__(self, type_name: str, message: str):
        super().__init__(f"Type adapter for '{type_name}' failed: {message}")
        self.type_name = type_name
        self.message = message
