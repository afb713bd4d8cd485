"""
Core domain exceptions.

These exceptions are transport-agnostic and should be caught by the server
layer to convert into appropriate HTTP responses.

Errors that happen inside a model stream are not raised out of a chat turn;
they are converted into ``NamedError`` objects and stored on the assistant
message as data.
"""

from typing import Any


class CoreError(Exception):
    """Base exception for all core errors."""

    pass


class NotFoundError(CoreError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class InvalidOperationError(CoreError):
    """Raised when an operation cannot be performed in the current state."""

    pass


class BusyError(CoreError):
    """Raised when a session already has a generation in flight."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is busy")


# =============================================================================
# Errors carried as data
# =============================================================================


class NamedError(CoreError):
    """An error that can be serialized onto a message as ``{name, data}``."""

    name = "NamedError"

    def __init__(self, data: dict[str, Any]):
        self.data = data
        super().__init__(data.get("message", self.name))

    def to_object(self) -> dict[str, Any]:
        return {"name": self.name, "data": dict(self.data)}


class ProviderAuthError(NamedError):
    """The provider rejected or could not find credentials."""

    name = "ProviderAuthError"

    def __init__(self, provider_id: str, message: str):
        super().__init__({"providerID": provider_id, "message": message})


class UnknownError(NamedError):
    """Any other failure surfaced from the model stream."""

    name = "UnknownError"

    def __init__(self, message: str):
        super().__init__({"message": message})
