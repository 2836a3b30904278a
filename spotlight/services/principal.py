from __future__ import annotations

from dataclasses import dataclass

from spotlight.models.account import Account, Role


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, handed explicitly to every service call."""
    account_id: str
    role: Role = Role.USER

    @classmethod
    def from_account(cls, account: Account) -> "Principal":
        return cls(account_id=account.id, role=account.role)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
