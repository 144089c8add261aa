"""Error taxonomy shared by the secret store, record store and generation flow."""
from typing import Optional


class DescriberError(Exception):
    """Base class for recoverable product-describer errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(DescriberError):
    """The remote store reported no matching object.

    This is an expected outcome (e.g. the user never stored a credential),
    not a crash.
    """


class RemoteError(DescriberError):
    """Transport or auth failure against the secret store or record store."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class GenerationFailure(DescriberError):
    """Non-2xx or malformed response from the generation endpoint."""


class InputMissing(DescriberError):
    """A required local field was absent before an action."""
