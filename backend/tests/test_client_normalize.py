import pytest

from nivalus.client.normalize import (
    ApiError,
    error_message,
    normalize_settings,
    normalize_transaction,
    normalize_transactions,
    normalize_user,
    normalize_users,
)

RAW_USER = {"id": 7, "username": "alice", "email": "alice@nivalus.io", "full_name": "Alice", "is_admin": False}


@pytest.mark.parametrize("payload", [
    {"data": RAW_USER},
    {"data": {"user": RAW_USER}},
    {"user": RAW_USER},
    RAW_USER,
])
def test_user_envelope_variants(payload):
    user = normalize_user(payload)

    assert user.id == "7"
    assert user.username == "alice"
    assert user.full_name == "Alice"


def test_user_camel_case_fields():
    user = normalize_user({"data": {
        "id": "u1", "username": "root", "email": "root@nivalus.io",
        "fullName": "Root", "isAdmin": True, "createdAt": "2026-01-01T00:00:00Z", "balance": "12.5",
    }})

    assert user.is_admin is True
    assert user.full_name == "Root"
    assert user.created_at == "2026-01-01T00:00:00Z"
    assert user.balance == 12.5


@pytest.mark.parametrize("payload", [{"data": {}}, {}, None])
def test_missing_user_raises(payload):
    with pytest.raises(ApiError, match="User data missing in response"):
        normalize_user(payload)


def test_user_lists():
    users = normalize_users({"data": {"users": [RAW_USER, {**RAW_USER, "id": 8, "username": "bob"}]}})

    assert [user.username for user in users] == ["alice", "bob"]
    assert normalize_users({"data": [RAW_USER]})[0].id == "7"


def test_transaction_list_accepts_camel_case():
    transactions = normalize_transactions([
        {"id": 1, "userId": 7, "type": "Deposit", "amount": "10", "dateTime": "2026-10-01T00:00:00"},
    ])

    assert transactions[0].user_id == "7"
    assert transactions[0].amount == 10.0
    assert transactions[0].date_time == "2026-10-01T00:00:00"


def test_list_without_data_raises():
    with pytest.raises(ApiError):
        normalize_transactions({"data": {"unexpected": True}})


def test_settings_camel_case():
    settings = normalize_settings({"settings": {"systemName": "Nivalus", "allowNewUsers": False}})

    assert settings.system_name == "Nivalus"
    assert settings.allow_new_users is False
    assert settings.maintenance is False


def test_error_message():
    assert error_message({"message": "Invalid token."}, "fallback") == "Invalid token."
    assert error_message({"detail": "Not found"}, "fallback") == "Not found"
    assert error_message("<html>", "fallback") == "fallback"


def test_transaction_without_date_time_stays_none():
    transaction = normalize_transaction({"data": {"user_id": 1, "type": "Deposit", "amount": 5}})

    assert transaction.date_time is None
    assert transaction.user_id == "1"


@pytest.mark.parametrize("missing", ["user_id", "type", "amount"])
def test_transaction_missing_required_field_raises(missing):
    raw = {"user_id": 1, "type": "Deposit", "amount": 5, "date_time": "2026-10-01T00:00:00"}
    del raw[missing]

    with pytest.raises(ApiError, match="Transaction data missing in response"):
        normalize_transaction({"data": raw})


def test_transaction_with_non_numeric_amount_raises():
    with pytest.raises(ApiError):
        normalize_transaction({"user_id": 1, "type": "Deposit", "amount": "lots"})
