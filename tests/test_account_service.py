from __future__ import annotations

import re
from datetime import timedelta

import pytest

from trajet_api.core.security import decode_access_token, hash_token, verify_password
from trajet_api.core.utils import utcnow
from trajet_api.db.models import Driver, User
from trajet_api.repositories.sql_repository import SQLRepository
from trajet_api.services.account_service import DRIVER, RIDER, AccountService
from trajet_api.services.errors import (
    AlreadyVerifiedError,
    ConflictError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    NotificationFailure,
    UnverifiedError,
    ValidationError,
)

RESET_LINK = re.compile(r"/reset-password/([0-9a-f]{40})")


def _signup(svc: AccountService, name: str = "alice", password: str = "s3cret-pass"):
    return svc.signup(name, f"{name}@example.com", password, phone_number="+212600000000")


def _signup_verified(svc: AccountService, name: str = "alice", password: str = "s3cret-pass") -> str:
    result = _signup(svc, name, password)
    code = svc.repository.find_by_id(svc.kind.model, result.principal_id).verification_code
    svc.verify_email(result.principal_id, code)
    return result.principal_id


def _reset_token_from(outbox) -> str:
    match = RESET_LINK.search(outbox.last["text"])
    assert match, outbox.last["text"]
    return match.group(1)


# -------------------------------------- signup --------------------------------------
def test_signup_stores_unverified_principal_and_emails_code(db_env, outbox):
    svc = AccountService(RIDER)
    result = _signup(svc)

    assert result.email_sent is True
    user = SQLRepository().find_by_id(User, result.principal_id)
    assert user.is_verified is False
    assert user.roles == ["user"]
    assert user.phone_number == "+212600000000"
    assert re.fullmatch(r"\d{6}", user.verification_code)
    assert user.verification_code_expires is not None
    assert user.password_hash != "s3cret-pass"
    assert verify_password("s3cret-pass", user.password_hash)

    assert outbox.last["to"] == "alice@example.com"
    assert outbox.last["subject"] == "Email Verification"
    assert user.verification_code in outbox.last["text"]


@pytest.mark.parametrize("username,email,password", [("", "a@b.c", "pw"), ("bob", "", "pw"), ("bob", "a@b.c", "")])
def test_signup_requires_all_fields(db_env, outbox, username, email, password):
    with pytest.raises(ValidationError):
        AccountService(RIDER).signup(username, email, password)
    assert outbox.sent == []


def test_signup_rejects_taken_username_or_email(db_env, outbox):
    svc = AccountService(RIDER)
    _signup(svc)

    with pytest.raises(ConflictError):
        svc.signup("alice", "other@example.com", "pw")
    with pytest.raises(ConflictError):
        svc.signup("someone", "ALICE@example.com", "pw")


def test_racing_signups_resolve_through_unique_index(db_env, outbox, monkeypatch):
    svc = AccountService(RIDER)
    # both requests pass the early existence check before either has written
    monkeypatch.setattr(svc.repository, "find_one", lambda kind, filters: None)

    first = svc.signup("alice", "alice@example.com", "pw")
    with pytest.raises(ConflictError):
        svc.signup("alice2", "alice@example.com", "pw")

    users = SQLRepository().find(User, {"email": "alice@example.com"})
    assert [u.id for u in users] == [first.principal_id]


def test_signup_reports_undelivered_email_without_losing_the_account(db_env, outbox):
    outbox.fail = True
    svc = AccountService(RIDER)
    result = _signup(svc)

    assert result.email_sent is False
    assert SQLRepository().find_by_id(User, result.principal_id).is_verified is False


def test_custom_roles_are_kept_once(db_env, outbox):
    result = AccountService(DRIVER).signup("dan", "dan@example.com", "pw", roles=["driver", "admin", "driver"])
    assert SQLRepository().find_by_id(Driver, result.principal_id).roles == ["driver", "admin"]


# -------------------------------------- verification --------------------------------------
def test_verify_email_wrong_code_then_right_code_once(db_env, outbox):
    svc = AccountService(RIDER)
    result = _signup(svc)
    code = SQLRepository().find_by_id(User, result.principal_id).verification_code
    wrong = "0" * 6 if code != "000000" else "111111"

    with pytest.raises(InvalidCodeError):
        svc.verify_email(result.principal_id, wrong)

    svc.verify_email(result.principal_id, code)
    user = SQLRepository().find_by_id(User, result.principal_id)
    assert user.is_verified is True
    assert user.verification_code is None
    assert user.verification_code_expires is None

    with pytest.raises(AlreadyVerifiedError):
        svc.verify_email(result.principal_id, code)


def test_verify_email_rejects_expired_code(db_env, outbox):
    svc = AccountService(RIDER)
    result = _signup(svc)
    repo = SQLRepository()
    code = repo.find_by_id(User, result.principal_id).verification_code
    repo.update_by_id(User, result.principal_id, {"verification_code_expires": utcnow() - timedelta(seconds=1)})

    with pytest.raises(InvalidCodeError):
        svc.verify_email(result.principal_id, code)


def test_verify_email_unknown_principal(db_env, outbox):
    with pytest.raises(NotFoundError):
        AccountService(RIDER).verify_email("does-not-exist", "123456")
    with pytest.raises(ValidationError):
        AccountService(RIDER).verify_email("", "123456")


def test_resend_verification_replaces_previous_code(db_env, outbox):
    svc = AccountService(RIDER)
    result = _signup(svc)
    repo = SQLRepository()
    first_code = repo.find_by_id(User, result.principal_id).verification_code

    assert svc.resend_verification("alice@example.com") == result.principal_id
    second_code = repo.find_by_id(User, result.principal_id).verification_code
    assert outbox.last["subject"] == "Email Verification Code (Resent)"
    assert second_code in outbox.last["text"]

    if first_code != second_code:
        with pytest.raises(InvalidCodeError):
            svc.verify_email(result.principal_id, first_code)
    svc.verify_email(result.principal_id, second_code)


def test_resend_verification_errors(db_env, outbox):
    svc = AccountService(RIDER)
    with pytest.raises(NotFoundError):
        svc.resend_verification("ghost@example.com")

    _signup_verified(svc)
    with pytest.raises(AlreadyVerifiedError):
        svc.resend_verification("alice@example.com")

    _signup(svc, "bob")
    outbox.fail = True
    with pytest.raises(NotificationFailure):
        svc.resend_verification("bob@example.com")


# -------------------------------------- sign-in --------------------------------------
@pytest.mark.parametrize("password", ["s3cret-pass", "wrong-pass"])
def test_sign_in_refused_before_verification(db_env, outbox, password):
    svc = AccountService(RIDER)
    result = _signup(svc)

    with pytest.raises(UnverifiedError) as excinfo:
        svc.sign_in("alice@example.com", password)
    if password == "s3cret-pass":
        assert excinfo.value.principal_id == result.principal_id
    else:
        assert excinfo.value.principal_id is None


def test_sign_in_issues_token_and_stores_push_token(db_env, outbox):
    svc = AccountService(RIDER)
    principal_id = _signup_verified(svc)

    result = svc.sign_in("Alice@Example.com", "s3cret-pass", push_token="fcm-123")

    assert result.id == principal_id
    assert result.username == "alice"
    assert result.roles == ["user"]
    claims = decode_access_token(result.access_token)
    assert claims["id"] == principal_id
    assert claims["kind"] == "user"
    assert SQLRepository().find_by_id(User, principal_id).fcm_token == "fcm-123"


def test_driver_sign_in_ignores_push_token(db_env, outbox):
    svc = AccountService(DRIVER)
    _signup_verified(svc, "dan")

    result = svc.sign_in("dan@example.com", "s3cret-pass", push_token="fcm-123")
    assert decode_access_token(result.access_token)["kind"] == "driver"
    assert not hasattr(SQLRepository().find_by_id(Driver, result.id), "fcm_token")


def test_sign_in_failures(db_env, outbox):
    svc = AccountService(RIDER)
    _signup_verified(svc)

    with pytest.raises(NotFoundError):
        svc.sign_in("ghost@example.com", "s3cret-pass")
    with pytest.raises(InvalidCredentialsError):
        svc.sign_in("alice@example.com", "nope")
    with pytest.raises(ValidationError):
        svc.sign_in("alice@example.com", "")


def test_rider_and_driver_accounts_are_independent(db_env, outbox):
    rider_id = _signup_verified(AccountService(RIDER), "sam")
    driver = AccountService(DRIVER)
    driver_signup = _signup(driver, "sam")

    assert driver_signup.principal_id != rider_id
    with pytest.raises(UnverifiedError):
        driver.sign_in("sam@example.com", "s3cret-pass")
    AccountService(RIDER).sign_in("sam@example.com", "s3cret-pass")


# -------------------------------------- password reset --------------------------------------
def test_forgot_then_reset_password_with_emailed_token(db_env, outbox):
    svc = AccountService(RIDER)
    principal_id = _signup_verified(svc)

    svc.forgot_password("alice@example.com")
    raw = _reset_token_from(outbox)
    assert outbox.last["subject"] == "Password Reset Request"
    assert "https://trajet.test/api/auth/reset-password/" in outbox.last["text"]

    user = SQLRepository().find_by_id(User, principal_id)
    assert user.reset_password_token == hash_token(raw)
    assert user.reset_password_token != raw

    assert svc.validate_reset_token(raw) == principal_id
    svc.reset_password(raw, "brand-new-pass")

    user = SQLRepository().find_by_id(User, principal_id)
    assert user.reset_password_token is None
    assert user.reset_password_expires is None
    svc.sign_in("alice@example.com", "brand-new-pass")
    with pytest.raises(InvalidCredentialsError):
        svc.sign_in("alice@example.com", "s3cret-pass")

    with pytest.raises(InvalidOrExpiredTokenError):
        svc.reset_password(raw, "another-pass")
    with pytest.raises(InvalidOrExpiredTokenError):
        svc.validate_reset_token(raw)


def test_reset_token_past_expiry_is_rejected(db_env, outbox):
    svc = AccountService(RIDER)
    principal_id = _signup_verified(svc)
    svc.forgot_password("alice@example.com")
    raw = _reset_token_from(outbox)

    SQLRepository().update_by_id(User, principal_id, {"reset_password_expires": utcnow() - timedelta(seconds=5)})

    with pytest.raises(InvalidOrExpiredTokenError):
        svc.validate_reset_token(raw)
    with pytest.raises(InvalidOrExpiredTokenError):
        svc.reset_password(raw, "brand-new-pass")


def test_new_reset_request_invalidates_previous_token(db_env, outbox):
    svc = AccountService(RIDER)
    _signup_verified(svc)

    svc.forgot_password("alice@example.com")
    first = _reset_token_from(outbox)
    svc.forgot_password("alice@example.com")
    second = _reset_token_from(outbox)

    with pytest.raises(InvalidOrExpiredTokenError):
        svc.validate_reset_token(first)
    svc.validate_reset_token(second)


def test_forgot_password_clears_token_when_email_fails(db_env, outbox):
    svc = AccountService(DRIVER)
    principal_id = _signup_verified(svc, "dan")
    outbox.fail = True

    with pytest.raises(NotificationFailure):
        svc.forgot_password("dan@example.com")

    driver = SQLRepository().find_by_id(Driver, principal_id)
    assert driver.reset_password_token is None
    assert driver.reset_password_expires is None


def test_forgot_password_unknown_email_and_blank_inputs(db_env, outbox):
    svc = AccountService(RIDER)
    with pytest.raises(NotFoundError):
        svc.forgot_password("ghost@example.com")
    with pytest.raises(ValidationError):
        svc.forgot_password("  ")
    with pytest.raises(InvalidOrExpiredTokenError):
        svc.validate_reset_token("")
    with pytest.raises(ValidationError):
        svc.reset_password("whatever", "")
