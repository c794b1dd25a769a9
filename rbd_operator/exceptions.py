"""Exceptions related to rbd-operator."""

__all__ = [
    "OperatorException",
    "InputException",
    "ConfigResolutionError",
    "ObjectNotFoundError",
    "HandlerNotReadyError",
    "UnknownComponentError",
]


class OperatorException(Exception):
    """Generic base exception used for this library."""


class InputException(OperatorException):
    """Raised when the input documents or values are not formatted as expected."""


class ObjectNotFoundError(OperatorException):
    """Raised when an object is not found in the store."""


class ConfigResolutionError(OperatorException):
    """Raised when a handler fails to resolve cluster facts before rendering."""

    def __init__(self, resource: str, cause: Exception) -> None:
        super().__init__(f"Failed to resolve {resource}: {cause}")
        self.resource = resource
        self.cause = cause


class HandlerNotReadyError(OperatorException):
    """Raised when resources are requested from a handler that was not prepared."""


class UnknownComponentError(InputException):
    """Raised when no handler is registered for a component name."""
