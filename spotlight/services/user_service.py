"""Profile, preferences, follow graph and account-disable operations."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from spotlight.exceptions import (
    AlreadyFollowing,
    CannotFollowSelf,
    FollowNotFound,
    Forbidden,
    InvalidAvailability,
    UserNotFound,
)
from spotlight.models import storage
from spotlight.models.account import Account, Availability
from spotlight.models.follow import Follow
from spotlight.models.preferences import UserPreferences
from spotlight.services.principal import Principal
from spotlight.services.tokens import TokenIssuer

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "area_activity", "avatar", "cover_image")
PREFERENCE_FIELDS = ("email_notifications", "push_notifications", "profile_visibility", "language")


@dataclass
class PublicProfile:
    """An enabled account as seen by another user."""
    account: Account
    followers: int = 0
    following: int = 0
    is_following: bool = False
    is_followed: bool = False


class UserService:
    def __init__(self, tokens: TokenIssuer):
        self.tokens = tokens

    def _account(self, account_id: str) -> Account:
        account = storage.get(Account, account_id)
        if account is None:
            raise UserNotFound()
        return account

    def get_me(self, principal: Principal) -> Account:
        account = self._account(principal.account_id)
        if account.preferences is None:
            self.get_preferences(principal)
        return account

    def update_profile(self, principal: Principal, changes: dict) -> Account:
        account = self._account(principal.account_id)
        for key in PROFILE_FIELDS:
            if key in changes:
                value = changes[key]
                setattr(account, key, value.strip() if isinstance(value, str) else value)
        storage.save()
        logger.info("Profile updated: %s", account.id)
        return account

    def get_preferences(self, principal: Principal) -> UserPreferences:
        """Return the account's preferences, creating the defaults if missing."""
        account = self._account(principal.account_id)
        if account.preferences is None:
            account.preferences = UserPreferences(account_id=account.id)
            storage.save()
        return account.preferences

    def update_preferences(self, principal: Principal, changes: dict) -> UserPreferences:
        preferences = self.get_preferences(principal)
        for key in PREFERENCE_FIELDS:
            if key in changes:
                setattr(preferences, key, changes[key])
        storage.save()
        return preferences

    def disable_account(self, principal: Principal, account_id: str) -> Account:
        """Admins may disable anyone; users only themselves. Revokes every session."""
        if not principal.is_admin and principal.account_id != account_id:
            logger.warning("Disable denied: %s tried to disable %s", principal.account_id, account_id)
            raise Forbidden("Not authorized to disable this user")

        account = self._account(account_id)
        account.enabled = False
        revoked = self.tokens.revoke_all(account.id)
        storage.save()
        logger.info("Account disabled: %s by %s (%d tokens revoked)", account.id, principal.account_id, revoked)
        return account

    def change_availability(self, principal: Principal, availability: str) -> Account:
        try:
            status = Availability(availability.upper())
        except ValueError:
            raise InvalidAvailability() from None
        account = self._account(principal.account_id)
        account.chat_availability = status
        storage.save()
        return self.get_me(principal)

    def _enabled_account(self, account_id: str) -> Account:
        account = storage.get(Account, account_id)
        if account is None or not account.enabled:
            raise UserNotFound()
        return account

    def _profiles(self, accounts: list[Account], viewer_id: str | None) -> list[PublicProfile]:
        """Attach follower counts and the viewer's follow relations in four queries."""
        ids = [account.id for account in accounts]
        if not ids:
            return []
        session = storage.get_session()
        followers = dict(
            session.query(Follow.following_id, func.count(Follow.id))
            .filter(Follow.following_id.in_(ids))
            .group_by(Follow.following_id)
            .all()
        )
        following = dict(
            session.query(Follow.follower_id, func.count(Follow.id))
            .filter(Follow.follower_id.in_(ids))
            .group_by(Follow.follower_id)
            .all()
        )
        i_follow, follows_me = set(), set()
        if viewer_id is not None:
            i_follow = {
                row[0] for row in session.query(Follow.following_id)
                .filter(Follow.follower_id == viewer_id, Follow.following_id.in_(ids))
            }
            follows_me = {
                row[0] for row in session.query(Follow.follower_id)
                .filter(Follow.following_id == viewer_id, Follow.follower_id.in_(ids))
            }
        return [
            PublicProfile(
                account=account,
                followers=followers.get(account.id, 0),
                following=following.get(account.id, 0),
                is_following=account.id in i_follow,
                is_followed=account.id in follows_me,
            )
            for account in accounts
        ]

    def search_users(self, principal: Principal | None, search: str | None,
                     page: int = 0, size: int = 20) -> tuple[list[PublicProfile], int]:
        """Enabled accounts whose name, email or area of activity contains `search` (case-insensitive)."""
        session = storage.get_session()
        query = session.query(Account).filter(Account.enabled.is_(True))
        term = (search or "").strip()
        if term:
            query = query.filter(or_(
                Account.name.icontains(term, autoescape=True),
                Account.email.icontains(term, autoescape=True),
                Account.area_activity.icontains(term, autoescape=True),
            ))
        total = query.count()
        accounts = query.order_by(Account.name, Account.id).offset(page * size).limit(size).all()
        viewer_id = principal.account_id if principal else None
        return self._profiles(accounts, viewer_id), total

    def get_public(self, principal: Principal | None, account_id: str) -> PublicProfile:
        account = self._enabled_account(account_id)
        viewer_id = principal.account_id if principal else None
        return self._profiles([account], viewer_id)[0]

    def _find_follow(self, follower_id: str, following_id: str) -> Follow | None:
        session = storage.get_session()
        return (
            session.query(Follow)
            .filter(Follow.follower_id == follower_id, Follow.following_id == following_id)
            .first()
        )

    def follow(self, principal: Principal, account_id: str) -> PublicProfile:
        if principal.account_id == account_id:
            raise CannotFollowSelf()
        self._enabled_account(account_id)
        if self._find_follow(principal.account_id, account_id) is not None:
            raise AlreadyFollowing()

        storage.new(Follow(follower_id=principal.account_id, following_id=account_id))
        try:
            storage.save()
        except IntegrityError:
            raise AlreadyFollowing() from None
        logger.info("%s now follows %s", principal.account_id, account_id)
        return self.get_public(principal, account_id)

    def unfollow(self, principal: Principal, account_id: str) -> None:
        follow = self._find_follow(principal.account_id, account_id)
        if follow is None:
            raise FollowNotFound()
        storage.delete(follow)
        storage.save()
        logger.info("%s unfollowed %s", principal.account_id, account_id)

    def followed(self, account_id: str) -> list[Account]:
        """Accounts `account_id` follows, most recent first."""
        self._account(account_id)
        session = storage.get_session()
        return (
            session.query(Account)
            .join(Follow, Follow.following_id == Account.id)
            .filter(Follow.follower_id == account_id, Account.enabled.is_(True))
            .order_by(Follow.created_at.desc())
            .all()
        )

    def followers(self, account_id: str) -> list[Account]:
        """Accounts following `account_id`, most recent first."""
        self._account(account_id)
        session = storage.get_session()
        return (
            session.query(Account)
            .join(Follow, Follow.follower_id == Account.id)
            .filter(Follow.following_id == account_id, Account.enabled.is_(True))
            .order_by(Follow.created_at.desc())
            .all()
        )
