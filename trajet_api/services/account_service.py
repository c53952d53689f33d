"""
Account lifecycle use cases: signup, email verification, sign-in and
password reset.

Riders and drivers follow exactly the same rules, so the state machine is
written once and parameterised by a :class:`PrincipalKind`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional

from trajet_api.core.config import Settings, get_settings
from trajet_api.core.logger import get_logger
from trajet_api.core.mailer import send_email
from trajet_api.core.security import (
    codes_match,
    generate_reset_token,
    generate_verification_code,
    hash_password,
    hash_token,
    issue_access_token,
    password_needs_rehash,
    verify_password,
)
from trajet_api.core.utils import absolute_url, as_utc, utcnow
from trajet_api.db.models import Driver, User
from trajet_api.repositories.sql_repository import SQLRepository
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

logger = get_logger(__name__)

DEFAULT_ROLES = ("user",)


@dataclass(frozen=True)
class PrincipalKind:
    """What differs between account kinds: storage model, URLs and optional fields."""

    name: str
    model: type
    reset_path: str
    supports_push_token: bool = False


RIDER = PrincipalKind(name="user", model=User, reset_path="/api/auth/reset-password", supports_push_token=True)
DRIVER = PrincipalKind(name="driver", model=Driver, reset_path="/api/auth/driver/reset-password")


@dataclass
class SignupResult:
    principal_id: str
    email: str
    email_sent: bool


@dataclass
class SignInResult:
    id: str
    username: str
    email: str
    roles: list[str] = field(default_factory=list)
    access_token: str = ""


def _normalize_email(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def _normalize_roles(roles: Optional[Iterable[str]]) -> list[str]:
    if roles is None:
        return list(DEFAULT_ROLES)
    if isinstance(roles, str):
        roles = [roles]
    cleaned: list[str] = []
    for role in roles:
        if not isinstance(role, str) or not role.strip():
            raise ValidationError("Roles must be non-empty strings")
        if role.strip() not in cleaned:
            cleaned.append(role.strip())
    return cleaned or list(DEFAULT_ROLES)


@dataclass
class AccountService:
    """Handles registration, verification, sign-in and password reset for one principal kind."""

    kind: PrincipalKind
    repository: SQLRepository = field(default_factory=SQLRepository)

    @property
    def settings(self) -> Settings:
        return get_settings()

    # -------------------------------------- helpers --------------------------------------
    def _now(self) -> datetime:
        return utcnow()

    def _expired(self, expires_at: datetime | None) -> bool:
        expires = as_utc(expires_at)
        return expires is None or expires < self._now()

    def _code_expiry(self) -> datetime:
        return self._now() + timedelta(seconds=self.settings.verification_code_ttl_seconds)

    def _new_code(self) -> str:
        return generate_verification_code(self.settings.verification_code_length)

    def _get_by_email(self, email: str):
        principal = self.repository.find_one(self.kind.model, {"email": email})
        if not principal:
            raise NotFoundError("User not found")
        return principal

    def _verification_email(self, code: str) -> tuple[str, str]:
        minutes = max(1, self.settings.verification_code_ttl_seconds // 60)
        text = f"Your verification code is: {code}. It will expire in {minutes} minutes."
        html = f"""
        <h1>Email Verification</h1>
        <p>Your verification code is: <strong>{code}</strong></p>
        <p>It will expire in {minutes} minutes.</p>
        """
        return html, text

    def _send_verification(self, email: str, code: str, subject: str) -> bool:
        html, text = self._verification_email(code)
        return send_email(subject, email, html, text)

    def get_principal(self, principal_id: str):
        principal = self.repository.find_by_id(self.kind.model, principal_id)
        if not principal:
            raise NotFoundError("User not found")
        return principal

    # -------------------------------------- signup --------------------------------------
    def signup(
        self,
        username: str,
        email: str,
        password: str,
        phone_number: Optional[str] = None,
        roles: Optional[Iterable[str]] = None,
    ) -> SignupResult:
        username = (username or "").strip()
        email = _normalize_email(email)
        if not username or not email or not password:
            raise ValidationError("All fields are required")
        model = self.kind.model
        # friendly early answer; the unique indexes stay the authority under races
        if self.repository.find_one(model, {"email": email}) or self.repository.find_one(model, {"username": username}):
            raise ConflictError("Username or email already in use")

        code = self._new_code()
        try:
            principal = self.repository.insert(
                model,
                {
                    "username": username,
                    "email": email,
                    "password_hash": hash_password(password),
                    "phone_number": (phone_number or "").strip() or None,
                    "roles": _normalize_roles(roles),
                    "is_verified": False,
                    "verification_code": code,
                    "verification_code_expires": self._code_expiry(),
                },
            )
        except ConflictError:
            raise ConflictError("Username or email already in use") from None
        logger.info("%s %s signed up", self.kind.name, principal.id)

        email_sent = self._send_verification(principal.email, code, "Email Verification")
        if not email_sent:
            logger.warning("Verification email not delivered to %s %s; resend required", self.kind.name, principal.id)
        return SignupResult(principal_id=principal.id, email=principal.email, email_sent=email_sent)

    # -------------------------------------- verification --------------------------------------
    def verify_email(self, principal_id: str, code: str) -> None:
        principal_id = (principal_id or "").strip()
        code = str(code or "").strip()
        if not principal_id or not code:
            raise ValidationError("User ID and verification code are required")
        principal = self.get_principal(principal_id)
        if principal.is_verified:
            raise AlreadyVerifiedError("Email is already verified")
        if not codes_match(principal.verification_code, code) or self._expired(principal.verification_code_expires):
            raise InvalidCodeError("Invalid or expired verification code")
        self.repository.update_by_id(
            self.kind.model,
            principal.id,
            {"is_verified": True, "verification_code": None, "verification_code_expires": None},
        )
        logger.info("%s %s verified", self.kind.name, principal.id)

    def resend_verification(self, email: str) -> str:
        email = _normalize_email(email)
        if not email:
            raise ValidationError("Email is required")
        principal = self._get_by_email(email)
        if principal.is_verified:
            raise AlreadyVerifiedError("Email is already verified")
        code = self._new_code()
        self.repository.update_by_id(
            self.kind.model,
            principal.id,
            {"verification_code": code, "verification_code_expires": self._code_expiry()},
        )
        if not self._send_verification(principal.email, code, "Email Verification Code (Resent)"):
            raise NotificationFailure("Could not send verification email")
        return principal.id

    # -------------------------------------- sign-in --------------------------------------
    def sign_in(self, email: str, password: str, push_token: Optional[str] = None) -> SignInResult:
        email = _normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required")
        principal = self._get_by_email(email)
        password_ok = verify_password(password, principal.password_hash)
        if not principal.is_verified:
            # the id is only disclosed to someone who knows the password
            raise UnverifiedError(
                "Email not verified. Please verify your email first.",
                principal.id if password_ok else None,
            )
        if not password_ok:
            raise InvalidCredentialsError("Invalid password")

        patch = {}
        if push_token and self.kind.supports_push_token:
            patch["fcm_token"] = push_token
        if password_needs_rehash(principal.password_hash):
            patch["password_hash"] = hash_password(password)
        if patch:
            self.repository.update_by_id(self.kind.model, principal.id, patch)

        token = issue_access_token(principal.id, self.kind.name)
        return SignInResult(
            id=principal.id,
            username=principal.username,
            email=principal.email,
            roles=list(principal.roles or []),
            access_token=token,
        )

    # -------------------------------------- password reset --------------------------------------
    def forgot_password(self, email: str) -> None:
        email = _normalize_email(email)
        if not email:
            raise ValidationError("Email is required")
        principal = self.repository.find_one(self.kind.model, {"email": email})
        if not principal:
            raise NotFoundError("User with this email does not exist")

        raw_token = generate_reset_token()
        expires = self._now() + timedelta(seconds=self.settings.reset_password_ttl_seconds)
        self.repository.update_by_id(
            self.kind.model,
            principal.id,
            {"reset_password_token": hash_token(raw_token), "reset_password_expires": expires},
        )
        reset_url = absolute_url(f"{self.kind.reset_path}/{raw_token}")
        text = (
            "You requested a password reset. Please click on the following link to reset your password: "
            f"\n\n {reset_url} \n\n If you didn't request this, please ignore this email."
        )
        html = f"""
        <p>You requested a password reset.</p>
        <p><a href="{reset_url}">Reset my password</a></p>
        <p>If you didn't request this, please ignore this email.</p>
        """
        sent = False
        try:
            sent = send_email("Password Reset Request", principal.email, html, text)
        finally:
            if not sent:
                self.repository.update_by_id(
                    self.kind.model,
                    principal.id,
                    {"reset_password_token": None, "reset_password_expires": None},
                )
                logger.warning("Reset email not delivered to %s %s; reset token cleared", self.kind.name, principal.id)
        if not sent:
            raise NotificationFailure("Could not send reset email")
        logger.info("Password reset issued for %s %s", self.kind.name, principal.id)

    def _find_by_reset_token(self, raw_token: str):
        raw = (raw_token or "").strip()
        if not raw:
            raise InvalidOrExpiredTokenError("Invalid or expired token")
        principal = self.repository.find_one(
            self.kind.model,
            {"reset_password_token": hash_token(raw), "reset_password_expires__gt": self._now()},
        )
        if not principal or self._expired(principal.reset_password_expires):
            raise InvalidOrExpiredTokenError("Invalid or expired token")
        return principal

    def validate_reset_token(self, raw_token: str) -> str:
        return self._find_by_reset_token(raw_token).id

    def reset_password(self, raw_token: str, new_password: str) -> None:
        if not new_password:
            raise ValidationError("Password is required")
        principal = self._find_by_reset_token(raw_token)
        self.repository.update_by_id(
            self.kind.model,
            principal.id,
            {
                "password_hash": hash_password(new_password),
                "reset_password_token": None,
                "reset_password_expires": None,
            },
        )
        logger.info("Password reset completed for %s %s", self.kind.name, principal.id)
