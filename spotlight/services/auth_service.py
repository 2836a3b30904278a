"""
Auth service: account registration, login, refresh-token rotation,
password reset/update and logout.

Per refresh token the lifecycle is Issued -> Active -> one of
Consumed (rotated away), Expired (detected lazily and deleted) or
Revoked (bulk-deleted by logout or a password change). Nothing returns to Active.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from argon2.exceptions import HashingError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

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
from spotlight.models.account import Account, Role
from spotlight.models.base_model import as_utc, utcnow
from spotlight.models.password_reset_token import PasswordResetToken
from spotlight.models.preferences import UserPreferences
from spotlight.models.schemas.common import norm_email
from spotlight.services.passwords import PasswordHash, PasswordService
from spotlight.services.principal import Principal
from spotlight.services.tokens import TokenInfo, TokenIssuer
from spotlight.utils.mailer import Mailer
from spotlight.utils.security import generate_opaque_token

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If the email exists, a password reset link has been sent"

_MOBILE = re.compile(r"mobile", re.IGNORECASE)
_TABLET = re.compile(r"tablet", re.IGNORECASE)


def detect_platform(user_agent: str) -> str:
    if _MOBILE.search(user_agent):
        return "mobile"
    if _TABLET.search(user_agent):
        return "tablet"
    return "web"


@dataclass
class UserInfo:
    id: str
    name: str
    email: str
    area_activity: str | None
    avatar: str | None
    cover_image: str | None
    role: str


@dataclass
class AccountInfo:
    status: str
    enabled: bool
    first_login: bool
    is_pro: bool
    is_verified: bool
    created_at: datetime
    plan: str | None = None


@dataclass
class DeviceInfo:
    user_agent: str
    platform: str


@dataclass
class SessionInfo:
    authenticated_at: datetime
    ip_address: str | None
    requires_password_change: bool = False
    device_info: DeviceInfo | None = None


@dataclass
class AuthResult:
    tokens: TokenInfo
    user: UserInfo
    account: AccountInfo
    session: SessionInfo


class AuthService:
    def __init__(
        self,
        passwords: PasswordService,
        tokens: TokenIssuer,
        mailer: Mailer,
        reset_ttl: timedelta = timedelta(hours=1),
    ):
        self.passwords = passwords
        self.tokens = tokens
        self.mailer = mailer
        self.reset_ttl = reset_ttl

    # ---------- register / login / refresh ----------

    def register(
        self,
        name: str,
        email: str,
        password: str,
        area_activity: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthResult:
        email = norm_email(email)
        logger.info("Registration attempt for email: %s", email)

        session = storage.get_session()
        if session.query(Account).filter(Account.email == email).first():
            logger.warning("Registration failed: email already exists - %s", email)
            raise EmailAlreadyRegistered()

        password_hash = self.passwords.hash(password)
        account = Account(
            email=email,
            name=name.strip(),
            password_hash=password_hash.encoded,
            password_algorithm=password_hash.algorithm,
            area_activity=(area_activity or "").strip() or None,
            role=Role.USER,
            enabled=True,
            is_pro=False,
            is_verified=False,
        )
        storage.new(account)
        storage.new(UserPreferences(account_id=account.id))

        # account, preferences and the first refresh token commit together
        tokens = self.tokens.issue_tokens(account.id, commit=False)
        try:
            storage.save()
        except IntegrityError:
            # a concurrent registration won the unique constraint on email
            logger.warning("Registration failed: email already exists - %s", email)
            raise EmailAlreadyRegistered()

        logger.info("User registered and authenticated: %s", account.id)
        return self._build_result(account, tokens, ip_address, user_agent, first_login=True)

    def login(
        self,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthResult:
        email = norm_email(email)
        logger.info("Login attempt for email: %s", email)

        session = storage.get_session()
        account = session.query(Account).filter(Account.email == email).first()
        if account is None:
            self.passwords.verify_dummy(password)
            logger.warning("Login failed: unknown email - %s", email)
            raise InvalidCredentials()

        if not account.enabled:
            logger.warning("Login failed: account disabled - %s", account.id)
            raise AccountDisabled()

        stored = PasswordHash(account.password_algorithm, account.password_hash)
        if not self.passwords.verify(stored, password):
            logger.warning("Login failed: invalid password - %s", account.id)
            raise InvalidCredentials()

        if self.passwords.needs_rehash(stored):
            self._upgrade_hash(account, password)

        first_login = self.tokens.count_for_account(account.id) == 0
        tokens = self.tokens.issue_tokens(account.id)

        logger.info("User authenticated: %s", account.id)
        return self._build_result(account, tokens, ip_address, user_agent, first_login=first_login)

    def refresh_token(self, raw_token: str, ip_address: str | None = None) -> AuthResult:
        logger.info("Refresh token attempt")

        token = self.tokens.find_refresh_token(raw_token)
        if token is None:
            logger.warning("Refresh failed: token not found")
            raise InvalidRefreshToken()

        if as_utc(token.expires_at) < utcnow():
            logger.warning("Refresh failed: token expired - %s", token.id)
            self._discard(token)
            raise RefreshTokenExpired()

        account = token.account
        if account is None or not account.enabled:
            logger.warning("Refresh failed: account disabled - %s", token.account_id)
            raise AccountDisabled()

        if not self.tokens.consume(token):
            storage.rollback()
            logger.warning("Refresh failed: token already consumed - %s", token.id)
            raise InvalidRefreshToken()

        tokens = self.tokens.issue_tokens(account.id, commit=False)
        storage.save()

        logger.info("Token refreshed: %s", account.id)
        return self._build_result(account, tokens, ip_address, None, first_login=False)

    # ---------- password reset ----------

    def forgot_password(self, email: str, callback_url: str) -> dict:
        email = norm_email(email)
        logger.info("Password reset request for email: %s", email)

        session = storage.get_session()
        account = session.query(Account).filter(Account.email == email).first()
        if account is None or not account.enabled:
            logger.warning("Password reset request ignored: no active account - %s", email)
            return {"message": FORGOT_PASSWORD_MESSAGE}

        raw_token = generate_opaque_token()
        session.query(PasswordResetToken).filter(
            PasswordResetToken.account_id == account.id
        ).delete(synchronize_session=False)
        storage.new(
            PasswordResetToken(
                token_digest=self.tokens.digest(raw_token),
                account_id=account.id,
                expires_at=utcnow() + self.reset_ttl,
            )
        )
        storage.save()

        separator = "&" if "?" in callback_url else "?"
        link = f"{callback_url}{separator}token={raw_token}"
        minutes = int(self.reset_ttl.total_seconds() // 60)
        ok, info = self.mailer.send(
            to_email=account.email,
            subject="Reset your Spotlight password",
            body_text=(
                f"Hello {account.name},\n\n"
                f"Use the link below to choose a new password. It expires in {minutes} minutes.\n\n"
                f"{link}\n\n"
                "If you did not request this, you can ignore this email.\n"
            ),
        )
        if not ok:
            logger.warning("Password reset email not sent for %s: %s", account.id, info)
        else:
            logger.info("Password reset token issued for user: %s", account.id)
        return {"message": FORGOT_PASSWORD_MESSAGE}

    def reset_password(self, raw_token: str, new_password: str) -> dict:
        logger.info("Password reset attempt")

        session = storage.get_session()
        reset = (
            session.query(PasswordResetToken)
            .filter(PasswordResetToken.token_digest == self.tokens.digest(raw_token))
            .first()
        )
        if reset is None:
            logger.warning("Password reset failed: token not found")
            raise InvalidResetToken()

        if as_utc(reset.expires_at) < utcnow():
            logger.warning("Password reset failed: token expired - %s", reset.id)
            self._discard(reset)
            raise InvalidResetToken()

        account = storage.get(Account, reset.account_id)
        if account is None or not account.enabled:
            logger.warning("Password reset failed: account unavailable - %s", reset.account_id)
            raise InvalidResetToken()

        self._set_password(account, new_password)
        session.query(PasswordResetToken).filter(
            PasswordResetToken.account_id == account.id
        ).delete(synchronize_session=False)
        self.tokens.revoke_all(account.id)
        storage.save()

        logger.info("Password reset completed: %s", account.id)
        return {"message": "Password reset successfully. Please login with your new password."}

    # ---------- signed-in operations ----------

    def update_password(
        self,
        principal: Principal,
        current_password: str,
        new_password: str,
        confirm_new_password: str,
    ) -> dict:
        logger.info("Password update request for user: %s", principal.account_id)

        if new_password != confirm_new_password:
            raise PasswordsDoNotMatch()

        account = storage.get(Account, principal.account_id)
        if account is None:
            logger.warning("Password update failed: user not found - %s", principal.account_id)
            raise UserNotFound()

        stored = PasswordHash(account.password_algorithm, account.password_hash)
        if not self.passwords.verify(stored, current_password):
            logger.warning("Password update failed: invalid current password - %s", account.id)
            raise InvalidCurrentPassword()

        self._set_password(account, new_password)
        revoked = self.tokens.revoke_all(account.id)
        storage.save()

        logger.info("Password updated: %s (%d sessions revoked)", account.id, revoked)
        return {"message": "Password updated successfully. Please login again."}

    def logout(self, principal: Principal) -> dict:
        logger.info("Logout request for user: %s", principal.account_id)
        revoked = self.tokens.revoke_all(principal.account_id)
        storage.save()
        logger.info("User logged out: %s (%d tokens invalidated)", principal.account_id, revoked)
        return {"message": "Logged out successfully"}

    # ---------- helpers ----------

    def _set_password(self, account: Account, password: str) -> None:
        password_hash = self.passwords.hash(password)
        account.password_hash = password_hash.encoded
        account.password_algorithm = password_hash.algorithm

    def _upgrade_hash(self, account: Account, password: str) -> None:
        """Re-encode under the current algorithm/cost; never fails the login."""
        previous = account.password_algorithm
        try:
            self._set_password(account, password)
            storage.save()
            logger.info("Password hash upgraded for user: %s (was %s)", account.id, previous.value)
        except (HashingError, SQLAlchemyError) as exc:
            storage.rollback()
            logger.warning("Password hash upgrade failed for user %s: %s", account.id, exc)

    def _discard(self, row) -> None:
        """Best-effort delete of a stale token row."""
        try:
            storage.delete(row)
            storage.save()
        except SQLAlchemyError as exc:
            logger.warning("Could not delete expired token %s: %s", row.id, exc)

    def _build_result(
        self,
        account: Account,
        tokens: TokenInfo,
        ip_address: str | None,
        user_agent: str | None,
        first_login: bool,
    ) -> AuthResult:
        device = DeviceInfo(user_agent=user_agent, platform=detect_platform(user_agent)) if user_agent else None
        return AuthResult(
            tokens=tokens,
            user=UserInfo(
                id=account.id,
                name=account.name,
                email=account.email,
                area_activity=account.area_activity,
                avatar=account.avatar,
                cover_image=account.cover_image,
                role=account.role.value,
            ),
            account=AccountInfo(
                status="ACTIVE" if account.enabled else "INACTIVE",
                enabled=account.enabled,
                first_login=first_login,
                is_pro=account.is_pro,
                is_verified=account.is_verified,
                created_at=account.created_at,
            ),
            session=SessionInfo(
                authenticated_at=utcnow(),
                ip_address=ip_address,
                device_info=device,
            ),
        )
