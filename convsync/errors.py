"""Error taxonomy for the conversation sync engine.

Every error carries a human-readable ``message``, a machine-readable ``code``
and the HTTP status the API layer answers with. Remote errors additionally
carry the upstream HTTP ``status`` when one was received.
"""

from typing import Any


class SyncError(Exception):
    """Base exception for all sync failures."""

    code = "sync_error"
    http_status = 500

    def __init__(
        self,
        message: str,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status = status
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API error responses."""
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class TransportError(SyncError):
    """Upstream unreachable (DNS, connect, timeout)."""

    code = "transport_error"
    http_status = 502


class RemoteError(SyncError):
    """Upstream answered with a non-2xx status."""

    code = "remote_error"
    http_status = 502


class RemoteAuthError(RemoteError):
    """Upstream rejected the credential (401) or its permissions (403)."""

    http_status = 502

    @property
    def code(self) -> str:  # type: ignore[override]
        return "remote_forbidden" if self.status == 403 else "remote_unauthorized"


class RemoteNotFound(RemoteError):
    code = "remote_not_found"
    http_status = 404


class RemoteRateLimited(RemoteError):
    code = "remote_rate_limited"
    http_status = 429


class RemoteGenericError(RemoteError):
    code = "remote_error"
    http_status = 502


class StorageError(SyncError):
    """Checkpoint read, row upsert or marker update failed."""

    code = "storage_error"
    http_status = 500


class SyncInProgressError(SyncError):
    """Another run for the same agent holds the sync lock."""

    code = "sync_in_progress"
    http_status = 409
