"""Exception hierarchy for the parkcam agent.

Every error carries a ``fatal`` flag. Fatal errors end the process; the poll
loop abandons the current cycle on non-fatal ones and waits for the next tick.
"""


class ParkcamError(Exception):
    """Base class for all agent errors."""

    fatal = True


class NetworkError(ParkcamError):
    """Raised when the coordinator cannot be reached.

    The cycle is skipped and the loop retries after the poll interval.
    """

    fatal = False


class ProtocolError(ParkcamError):
    """Raised when the coordinator answers with an unexpected payload."""


class CaptureError(ParkcamError):
    """Raised when the camera command fails or produces no usable image."""


class StorageError(ParkcamError):
    """Raised when a Cloud Storage call fails."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class AuthorizationRequired(ParkcamError):
    """Raised when no cached token exists and no authorization code was given.

    The operator must visit ``auth_url`` and rerun with the returned code.
    """

    def __init__(self, auth_url: str) -> None:
        super().__init__(
            "Authorization required. Visit the URL to get a code, "
            "then run again with --code=YOUR_CODE"
        )
        self.auth_url = auth_url


class CredentialExchangeError(ParkcamError):
    """Raised when an authorization code or refresh token cannot be exchanged."""
