"""Account entity and the declarative state record."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from scripts.rgw_accounts.errors import BindingError


@dataclass(frozen=True)
class Account:
    """Remote account as exchanged with a RemoteEntityStore.

    ``max_buckets`` is None when the field is left unset on a request; the
    gateway always reports a concrete integer back.
    """

    identifier: str
    display_name: str = ""
    max_buckets: Optional[int] = None


@dataclass(frozen=True)
class AccountRecord:
    """Desired or persisted state of one account.

    ``max_buckets`` is None when the quota is not explicitly configured.
    An import seed carries only ``user_id``.
    """

    user_id: str
    display_name: Optional[str] = None
    max_buckets: Optional[int] = None

    @classmethod
    def from_desired(cls, data: Mapping[str, Any]) -> "AccountRecord":
        """Decode a desired-state mapping; every schema constraint is enforced."""
        record = cls.from_dict(data)
        if record.display_name is None:
            raise BindingError("display_name is required")
        return record

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AccountRecord":
        if not isinstance(data, Mapping):
            raise BindingError(f"expected a mapping, got {type(data).__name__}")
        unknown = set(data) - {"user_id", "display_name", "max_buckets"}
        if unknown:
            raise BindingError(f"unknown attributes: {', '.join(sorted(unknown))}")

        user_id = data.get("user_id")
        if not isinstance(user_id, str) or not user_id:
            raise BindingError("user_id must be a non-empty string")

        display_name = data.get("display_name")
        if display_name is not None and not isinstance(display_name, str):
            raise BindingError("display_name must be a string")

        max_buckets = data.get("max_buckets")
        if max_buckets is not None:
            # bool is an int subclass
            if isinstance(max_buckets, bool) or not isinstance(max_buckets, int):
                raise BindingError("max_buckets must be an integer")
            if max_buckets < 0:
                raise BindingError("max_buckets must be >= 0")

        return cls(user_id=user_id, display_name=display_name, max_buckets=max_buckets)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "max_buckets": self.max_buckets,
        }
