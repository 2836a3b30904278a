"""
Token issuer: short-lived signed access tokens and opaque, persisted refresh tokens.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from spotlight.models import storage
from spotlight.models.base_model import utcnow
from spotlight.models.refresh_token import RefreshToken
from spotlight.utils.security import (
    create_access_token,
    decode_access_token,
    digest_token,
    generate_opaque_token,
    parse_expires_in,
)

logger = logging.getLogger(__name__)


@dataclass
class TokenInfo:
    access_token: str
    refresh_token: str
    expires_in: int
    expires_at: datetime
    token_type: str = "Bearer"


class TokenIssuer:
    def __init__(
        self,
        secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        expires_in: str = "1h",
        refresh_ttl: timedelta = timedelta(days=7),
    ):
        self.secret = secret
        self.refresh_secret = refresh_secret
        self.algorithm = algorithm
        self.expires_in_seconds = parse_expires_in(expires_in)
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_config(cls, config) -> "TokenIssuer":
        return cls(
            secret=config["JWT_SECRET"],
            refresh_secret=config["JWT_REFRESH_SECRET"],
            algorithm=config["JWT_ALGORITHM"],
            expires_in=config["JWT_EXPIRES_IN"],
            refresh_ttl=config["REFRESH_TOKEN_TTL"],
        )

    def digest(self, raw_token: str) -> str:
        return digest_token(raw_token, self.refresh_secret)

    def issue_tokens(self, account_id: str, commit: bool = True) -> TokenInfo:
        """Mint an access token and persist one new refresh token row."""
        now = utcnow()
        expires_at = now + timedelta(seconds=self.expires_in_seconds)
        access_token = create_access_token(account_id, now, expires_at, self.secret, self.algorithm)

        raw_refresh = generate_opaque_token()
        storage.new(
            RefreshToken(
                token_digest=self.digest(raw_refresh),
                account_id=account_id,
                expires_at=now + self.refresh_ttl,
            )
        )
        if commit:
            storage.save()
        logger.debug("Issued token pair for account %s", account_id)

        return TokenInfo(
            access_token=access_token,
            refresh_token=raw_refresh,
            expires_in=self.expires_in_seconds,
            expires_at=expires_at,
        )

    def decode_access_token(self, token: str) -> dict:
        return decode_access_token(token, self.secret, self.algorithm)

    def find_refresh_token(self, raw_token: str) -> RefreshToken | None:
        session = storage.get_session()
        return session.query(RefreshToken).filter(RefreshToken.token_digest == self.digest(raw_token)).first()

    def consume(self, token: RefreshToken) -> bool:
        """
        Delete one refresh token row; the caller commits.
        False when a concurrent request already consumed it.
        """
        session = storage.get_session()
        deleted = (
            session.query(RefreshToken)
            .filter(RefreshToken.id == token.id)
            .delete(synchronize_session=False)
        )
        return deleted == 1

    def revoke_all(self, account_id: str) -> int:
        """Delete every refresh token of an account; the caller commits."""
        session = storage.get_session()
        return (
            session.query(RefreshToken)
            .filter(RefreshToken.account_id == account_id)
            .delete(synchronize_session=False)
        )

    def count_for_account(self, account_id: str) -> int:
        session = storage.get_session()
        return session.query(RefreshToken).filter(RefreshToken.account_id == account_id).count()
