import pytest

from scripts.rgw_accounts.errors import BindingError
from scripts.rgw_accounts.models import AccountRecord


def test_from_desired_decodes_full_record():
    record = AccountRecord.from_desired(
        {"user_id": "alice", "display_name": "Alice A", "max_buckets": 50}
    )
    assert record == AccountRecord("alice", "Alice A", 50)


def test_from_desired_allows_missing_quota():
    record = AccountRecord.from_desired({"user_id": "alice", "display_name": "Alice A"})
    assert record.max_buckets is None


def test_from_desired_requires_display_name():
    with pytest.raises(BindingError, match="display_name"):
        AccountRecord.from_desired({"user_id": "alice"})


@pytest.mark.parametrize(
    "data, message",
    [
        ({"display_name": "x"}, "user_id"),
        ({"user_id": "", "display_name": "x"}, "user_id"),
        ({"user_id": 5, "display_name": "x"}, "user_id"),
        ({"user_id": "a", "display_name": 3}, "display_name"),
        ({"user_id": "a", "display_name": "x", "max_buckets": "10"}, "integer"),
        ({"user_id": "a", "display_name": "x", "max_buckets": True}, "integer"),
        ({"user_id": "a", "display_name": "x", "max_buckets": -1}, ">= 0"),
        ({"user_id": "a", "display_name": "x", "email": "a@b"}, "unknown"),
    ],
)
def test_from_dict_rejects_bad_input(data, message):
    with pytest.raises(BindingError, match=message):
        AccountRecord.from_desired(data)


def test_from_dict_rejects_non_mapping():
    with pytest.raises(BindingError):
        AccountRecord.from_dict(["alice"])


def test_to_dict_uses_schema_names():
    record = AccountRecord("alice", "Alice A", None)
    assert record.to_dict() == {"user_id": "alice", "display_name": "Alice A", "max_buckets": None}
