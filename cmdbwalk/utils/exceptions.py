"""Custom exception hierarchy for the CMDB relationship walker."""

from __future__ import annotations


class CMDBWalkError(Exception):
    """Base exception for all cmdbwalk errors."""


class ValidationError(CMDBWalkError):
    """Request is malformed (e.g. neither or both of sys_id / CI name given)."""


class NotFoundError(CMDBWalkError):
    """A requested record does not exist in the remote store."""


class RemoteQueryError(CMDBWalkError):
    """ServiceNow Table API call failed (HTTP error or transport failure)."""

    def __init__(
        self,
        message: str,
        detail: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.status = status

    def __str__(self) -> str:
        msg = self.message
        if self.detail:
            msg += f"\nDetail: {self.detail}"
        if self.status:
            msg += f" (HTTP {self.status})"
        return msg


class TraversalCancelledError(CMDBWalkError):
    """Traversal was aborted by its cancellation signal."""
