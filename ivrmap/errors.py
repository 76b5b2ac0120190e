"""Error kinds raised by the discovery engine.

Every error carries a stable ``code`` so a failed run can be reported to
callers as a structured reason instead of a bare message.
"""

from typing import Any, Optional


class DiscoveryError(Exception):
    """Base class for all discovery engine failures."""

    code = "discovery_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class InvalidIdentity(DiscoveryError):
    """The target phone number cannot be normalized to E.164."""

    code = "invalid_identity"


class ProviderCallFailed(DiscoveryError):
    """The calling provider rejected a request or could not be reached."""

    code = "provider_call_failed"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.status_code is not None:
            data["status_code"] = self.status_code
        return data


class PollTimeout(DiscoveryError):
    """No terminal call status was observed before the poll timeout."""

    code = "poll_timeout"


class TranscriptUnavailable(DiscoveryError):
    """Neither a structured nor a concatenated transcript was available."""

    code = "transcript_unavailable"


class ValidationError(DiscoveryError):
    """Malformed input to a public entry point."""

    code = "validation_error"


class SessionNotFound(DiscoveryError):
    """No persisted session exists for the requested session id."""

    code = "session_not_found"


class SessionStoreError(DiscoveryError):
    """A persisted session could not be read or written."""

    code = "session_store_error"
