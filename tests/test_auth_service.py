import uuid
from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import PASSWORD, token_from_mail
from spotlight.exceptions import (
    AccountDisabled,
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidCurrentPassword,
    InvalidRefreshToken,
    InvalidResetToken,
    PasswordsDoNotMatch,
    RefreshTokenExpired,
    UserNotFound,
)
from spotlight.models import storage
from spotlight.models.account import Account, HashAlgorithm
from spotlight.models.base_model import utcnow
from spotlight.models.password_reset_token import PasswordResetToken
from spotlight.models.preferences import UserPreferences
from spotlight.models.refresh_token import RefreshToken
from spotlight.models.schemas.auth import AuthenticationResponseSchema
from spotlight.services import Principal
from spotlight.services.auth_service import FORGOT_PASSWORD_MESSAGE, detect_platform
from spotlight.services.passwords import legacy_bcrypt_hash


def refresh_rows(account_id):
    return storage.get_session().query(RefreshToken).filter(RefreshToken.account_id == account_id).count()


def expire(row):
    row.expires_at = utcnow() - timedelta(seconds=1)
    storage.save()


# ---------- register ----------

def test_register_normalizes_email_and_creates_preferences(auth_service):
    result = auth_service.register("  Alice ", "  Alice@Example.COM ", PASSWORD, area_activity="Photography")

    assert result.user.email == "alice@example.com"
    assert result.user.name == "Alice"
    assert result.user.area_activity == "Photography"
    assert result.user.role == "USER"
    assert result.account.first_login is True
    assert result.account.status == "ACTIVE"
    assert result.account.plan is None

    prefs = storage.get_session().query(UserPreferences).filter_by(account_id=result.user.id).one()
    assert prefs.profile_visibility == "PUBLIC"
    assert refresh_rows(result.user.id) == 1


def test_register_rejects_case_variant_of_existing_email(auth_service):
    auth_service.register("Alice", "alice@example.com", PASSWORD)
    with pytest.raises(EmailAlreadyRegistered):
        auth_service.register("Alice Again", "ALICE@example.com", PASSWORD)


def test_register_translates_unique_violation(auth_service, monkeypatch):
    """A concurrent insert that slips past the pre-check still maps to the domain error."""
    def failing_save():
        storage.rollback()
        raise IntegrityError("INSERT INTO accounts", {}, Exception("UNIQUE constraint failed: accounts.email"))

    monkeypatch.setattr(storage, "save", failing_save)
    with pytest.raises(EmailAlreadyRegistered):
        auth_service.register("Alice", "alice@example.com", PASSWORD)


def test_register_stores_argon2_hash(auth_service):
    result = auth_service.register("Alice", "alice@example.com", PASSWORD)
    account = storage.get(Account, result.user.id)
    assert account.password_algorithm == HashAlgorithm.ARGON2ID
    assert account.password_hash.startswith("$argon2id$")


# ---------- login ----------

def test_first_login_is_true_exactly_once(auth_service, make_account):
    make_account("carol@example.com")
    assert auth_service.login("carol@example.com", PASSWORD).account.first_login is True
    assert auth_service.login("carol@example.com", PASSWORD).account.first_login is False
    assert auth_service.login("CAROL@example.com", PASSWORD).account.first_login is False


def test_login_after_register_is_not_first(auth_service):
    auth_service.register("Alice", "alice@example.com", PASSWORD)
    assert auth_service.login("alice@example.com", PASSWORD).account.first_login is False


def test_unknown_email_and_wrong_password_are_indistinguishable(auth_service):
    auth_service.register("Alice", "alice@example.com", PASSWORD)
    with pytest.raises(InvalidCredentials) as unknown:
        auth_service.login("nobody@example.com", PASSWORD)
    with pytest.raises(InvalidCredentials) as wrong:
        auth_service.login("alice@example.com", "WrongPass123")
    assert (unknown.value.code, unknown.value.message) == (wrong.value.code, wrong.value.message)


def test_disabled_account_cannot_login(auth_service, make_account):
    make_account("carol@example.com", enabled=False)
    with pytest.raises(AccountDisabled):
        auth_service.login("carol@example.com", PASSWORD)


def test_disabled_account_is_reported_before_password_check(auth_service, make_account):
    make_account("carol@example.com", enabled=False)
    with pytest.raises(AccountDisabled):
        auth_service.login("carol@example.com", "WrongPass123")


def test_unknown_email_still_runs_a_verify(auth_service, monkeypatch):
    calls = []
    real_verify = auth_service.passwords.verify

    def counting_verify(password_hash, password):
        calls.append(password)
        return real_verify(password_hash, password)

    monkeypatch.setattr(auth_service.passwords, "verify", counting_verify)
    with pytest.raises(InvalidCredentials):
        auth_service.login("nobody@example.com", "Whatever123")
    assert calls == ["Whatever123"]


def test_login_upgrades_legacy_bcrypt_hash(auth_service, make_account):
    account_id = make_account("legacy@example.com", password_hash=legacy_bcrypt_hash(PASSWORD, rounds=4))

    auth_service.login("legacy@example.com", PASSWORD)

    account = storage.get(Account, account_id)
    assert account.password_algorithm == HashAlgorithm.ARGON2ID
    assert account.password_hash.startswith("$argon2id$")
    # still works under the new hash
    auth_service.login("legacy@example.com", PASSWORD)


def test_failed_rehash_does_not_fail_login(auth_service, make_account, monkeypatch):
    from argon2.exceptions import HashingError

    make_account("legacy@example.com", password_hash=legacy_bcrypt_hash(PASSWORD, rounds=4))

    def broken_hash(password):
        raise HashingError("out of memory")

    monkeypatch.setattr(auth_service.passwords, "hash", broken_hash)
    result = auth_service.login("legacy@example.com", PASSWORD)
    assert result.tokens.access_token


def test_session_metadata(auth_service):
    result = auth_service.register(
        "Alice", "alice@example.com", PASSWORD, ip_address="203.0.113.7", user_agent="Mozilla/5.0 (iPhone) Mobile"
    )
    assert result.session.ip_address == "203.0.113.7"
    assert result.session.requires_password_change is False
    assert result.session.device_info.platform == "mobile"

    bare = auth_service.login("alice@example.com", PASSWORD)
    assert bare.session.device_info is None
    assert "deviceInfo" not in AuthenticationResponseSchema().dump(bare)["session"]


@pytest.mark.parametrize(
    "agent,platform",
    [
        ("Mozilla/5.0 (Linux; Android 14) Mobile Safari", "mobile"),
        ("Mozilla/5.0 (Linux; Android 13; Tablet)", "tablet"),
        ("Mozilla/5.0 (Windows NT 10.0; Win64; x64)", "web"),
    ],
)
def test_detect_platform(agent, platform):
    assert detect_platform(agent) == platform


# ---------- refresh ----------

def test_refresh_rotates_the_token(auth_service):
    first = auth_service.register("Alice", "alice@example.com", PASSWORD)
    second = auth_service.refresh_token(first.tokens.refresh_token, ip_address="10.0.0.1")

    assert second.tokens.refresh_token != first.tokens.refresh_token
    assert second.account.first_login is False
    assert second.session.ip_address == "10.0.0.1"
    assert refresh_rows(first.user.id) == 1

    with pytest.raises(InvalidRefreshToken):
        auth_service.refresh_token(first.tokens.refresh_token)


def test_unknown_refresh_token(auth_service):
    with pytest.raises(InvalidRefreshToken):
        auth_service.refresh_token("definitely-not-issued")


def test_expired_refresh_token_then_invalid(auth_service):
    result = auth_service.register("Alice", "alice@example.com", PASSWORD)
    expire(auth_service.tokens.find_refresh_token(result.tokens.refresh_token))

    with pytest.raises(RefreshTokenExpired):
        auth_service.refresh_token(result.tokens.refresh_token)
    assert refresh_rows(result.user.id) == 0

    with pytest.raises(InvalidRefreshToken):
        auth_service.refresh_token(result.tokens.refresh_token)


def test_refresh_loses_rotation_race(auth_service, monkeypatch):
    """The row disappears between lookup and consume: another refresh won."""
    result = auth_service.register("Alice", "alice@example.com", PASSWORD)
    issuer = auth_service.tokens
    real_consume = issuer.consume

    def consume_after_competitor(token):
        storage.get_session().query(RefreshToken).filter(RefreshToken.id == token.id).delete(
            synchronize_session=False
        )
        storage.save()
        return real_consume(token)

    monkeypatch.setattr(issuer, "consume", consume_after_competitor)
    with pytest.raises(InvalidRefreshToken):
        auth_service.refresh_token(result.tokens.refresh_token)
    assert refresh_rows(result.user.id) == 0


def test_refresh_for_disabled_account(auth_service):
    result = auth_service.register("Alice", "alice@example.com", PASSWORD)
    account = storage.get(Account, result.user.id)
    account.enabled = False
    storage.save()

    with pytest.raises(AccountDisabled):
        auth_service.refresh_token(result.tokens.refresh_token)


# ---------- update password / logout ----------

def test_update_password_revokes_every_session(auth_service):
    registered = auth_service.register("Alice", "alice@example.com", PASSWORD)
    auth_service.login("alice@example.com", PASSWORD)
    principal = Principal(registered.user.id)

    result = auth_service.update_password(principal, PASSWORD, "BrandNew456", "BrandNew456")

    assert "successfully" in result["message"]
    assert refresh_rows(registered.user.id) == 0
    with pytest.raises(InvalidRefreshToken):
        auth_service.refresh_token(registered.tokens.refresh_token)
    with pytest.raises(InvalidCredentials):
        auth_service.login("alice@example.com", PASSWORD)
    auth_service.login("alice@example.com", "BrandNew456")


def test_update_password_mismatch(auth_service):
    registered = auth_service.register("Alice", "alice@example.com", PASSWORD)
    with pytest.raises(PasswordsDoNotMatch):
        auth_service.update_password(Principal(registered.user.id), PASSWORD, "BrandNew456", "BrandNew457")


def test_update_password_wrong_current(auth_service):
    registered = auth_service.register("Alice", "alice@example.com", PASSWORD)
    with pytest.raises(InvalidCurrentPassword):
        auth_service.update_password(Principal(registered.user.id), "WrongPass123", "BrandNew456", "BrandNew456")
    assert refresh_rows(registered.user.id) == 1


def test_update_password_unknown_account(auth_service):
    with pytest.raises(UserNotFound):
        auth_service.update_password(Principal(str(uuid.uuid4())), PASSWORD, "BrandNew456", "BrandNew456")


def test_logout_is_idempotent(auth_service):
    registered = auth_service.register("Alice", "alice@example.com", PASSWORD)
    auth_service.login("alice@example.com", PASSWORD)
    principal = Principal(registered.user.id)

    assert auth_service.logout(principal) == {"message": "Logged out successfully"}
    assert refresh_rows(registered.user.id) == 0
    assert auth_service.logout(principal) == {"message": "Logged out successfully"}


# ---------- forgot / reset ----------

def test_forgot_password_same_answer_for_unknown_email(auth_service, outbox):
    assert auth_service.forgot_password("nobody@example.com", "https://app/reset") == {
        "message": FORGOT_PASSWORD_MESSAGE
    }
    assert outbox == []


def test_forgot_password_mails_a_single_use_link(auth_service, outbox):
    registered = auth_service.register("Alice", "alice@example.com", PASSWORD)

    answer = auth_service.forgot_password("Alice@Example.com", "https://app.example/reset")
    assert answer == {"message": FORGOT_PASSWORD_MESSAGE}
    assert len(outbox) == 1
    assert outbox[0]["to"] == "alice@example.com"
    assert "https://app.example/reset?token=" in outbox[0]["body"]

    raw = token_from_mail(outbox[0])
    stored = storage.get_session().query(PasswordResetToken).filter_by(account_id=registered.user.id).one()
    assert stored.token_digest != raw

    auth_service.reset_password(raw, "BrandNew456")
    auth_service.login("alice@example.com", "BrandNew456")
    with pytest.raises(InvalidRefreshToken):
        auth_service.refresh_token(registered.tokens.refresh_token)
    with pytest.raises(InvalidResetToken):
        auth_service.reset_password(raw, "Another789A")


def test_callback_with_query_string_keeps_it(auth_service, outbox):
    auth_service.register("Alice", "alice@example.com", PASSWORD)
    auth_service.forgot_password("alice@example.com", "https://app.example/reset?lang=en")
    assert "https://app.example/reset?lang=en&token=" in outbox[0]["body"]


def test_newer_reset_request_supersedes_older(auth_service, outbox):
    auth_service.register("Alice", "alice@example.com", PASSWORD)
    auth_service.forgot_password("alice@example.com", "https://app/reset")
    auth_service.forgot_password("alice@example.com", "https://app/reset")
    first, second = (token_from_mail(m) for m in outbox)

    with pytest.raises(InvalidResetToken):
        auth_service.reset_password(first, "BrandNew456")
    auth_service.reset_password(second, "BrandNew456")


def test_expired_reset_token(auth_service, outbox):
    auth_service.register("Alice", "alice@example.com", PASSWORD)
    auth_service.forgot_password("alice@example.com", "https://app/reset")
    raw = token_from_mail(outbox[0])
    row = storage.get_session().query(PasswordResetToken).one()
    expire(row)

    with pytest.raises(InvalidResetToken):
        auth_service.reset_password(raw, "BrandNew456")
    assert storage.get_session().query(PasswordResetToken).count() == 0


def test_unknown_reset_token(auth_service):
    with pytest.raises(InvalidResetToken):
        auth_service.reset_password("never-issued", "BrandNew456")


def test_mail_failure_does_not_change_the_answer(auth_service):
    auth_service.register("Alice", "alice@example.com", PASSWORD)
    # SMTP is not configured in the testing config
    assert auth_service.forgot_password("alice@example.com", "https://app/reset") == {
        "message": FORGOT_PASSWORD_MESSAGE
    }
