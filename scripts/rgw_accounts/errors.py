"""Error taxonomy: binding errors, store errors, reconciliation diagnostics."""

from __future__ import annotations

from typing import Optional

NOT_FOUND = "not_found"
TRANSPORT = "transport"
VALIDATION = "validation"
CANCELLED = "cancelled"


class BindingError(ValueError):
    """A desired or persisted record could not be decoded."""


class StoreError(Exception):
    """Failure returned by a RemoteEntityStore operation."""

    kind: str = TRANSPORT

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(StoreError):
    kind = NOT_FOUND


class TransportError(StoreError):
    kind = TRANSPORT


class ValidationError(StoreError):
    kind = VALIDATION


class ReconcileError(Exception):
    """User-visible diagnostic for a failed lifecycle operation.

    Carries the operation name, the account identifier and the underlying
    store message. ``kind`` tags the cause so the host can tell a vanished
    account apart from a transport failure.
    """

    def __init__(
        self,
        operation: str,
        user_id: str,
        summary: str,
        detail: str,
        kind: str = TRANSPORT,
    ) -> None:
        super().__init__(f"{summary}: {detail}")
        self.operation = operation
        self.user_id = user_id
        self.summary = summary
        self.detail = detail
        self.kind = kind

    @classmethod
    def from_store_error(
        cls,
        operation: str,
        user_id: str,
        summary: str,
        exc: StoreError,
    ) -> "ReconcileError":
        detail = f"Could not {operation} user {user_id}: {exc.message}"
        if isinstance(exc, NotFoundError):
            return AccountNotFoundError(operation, user_id, summary, detail)
        return cls(operation, user_id, summary, detail, kind=exc.kind)


class AccountNotFoundError(ReconcileError):
    """The remote account no longer exists."""

    def __init__(self, operation: str, user_id: str, summary: str, detail: str) -> None:
        super().__init__(operation, user_id, summary, detail, kind=NOT_FOUND)


class OperationCancelled(ReconcileError):
    """The call context was cancelled or ran past its deadline."""

    def __init__(self, operation: str, user_id: str) -> None:
        super().__init__(
            operation,
            user_id,
            f"Cancelled {operation}",
            f"Operation {operation} on user {user_id} was cancelled before completion",
            kind=CANCELLED,
        )


class StateError(Exception):
    """The host's persisted state does not allow the requested action."""


class UnmanagedAccountError(StateError):
    pass


class AlreadyManagedError(StateError):
    pass
