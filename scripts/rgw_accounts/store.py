"""Abstract remote account store consumed by the reconciler."""

from __future__ import annotations

from abc import ABC, abstractmethod

from scripts.rgw_accounts.context import CallContext
from scripts.rgw_accounts.models import Account


class RemoteEntityStore(ABC):
    """Authoritative store of accounts keyed by identifier.

    Implementations raise ``NotFoundError``, ``ValidationError`` or
    ``TransportError`` from ``scripts.rgw_accounts.errors``. Every call is a
    single attempt.
    """

    @abstractmethod
    def create(self, account: Account, ctx: CallContext) -> Account:
        """Create the account. Fails if the identifier exists or is invalid."""

    @abstractmethod
    def fetch(self, identifier: str, ctx: CallContext) -> Account:
        """Return the current remote account."""

    @abstractmethod
    def modify(self, account: Account, ctx: CallContext) -> Account:
        """Overwrite remote fields with the non-None fields of ``account``."""

    @abstractmethod
    def remove(self, identifier: str, ctx: CallContext) -> None:
        """Delete the account."""
