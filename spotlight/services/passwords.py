"""
Password hashing service.

Hashes are Argon2id (argon2-cffi). Hashes carried over from the legacy
system are bcrypt and are still accepted for verification; callers upgrade
them with `needs_rehash` after the next successful verify.

The stored form is a tagged value, `PasswordHash(algorithm, encoded)`: the
tag lives in its own column on the account, so dispatch never depends on
sniffing the encoded string.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import bcrypt
from argon2 import PasswordHasher, Type, extract_parameters
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from spotlight.models.account import HashAlgorithm

logger = logging.getLogger(__name__)

HASH_LENGTH = 32


@dataclass(frozen=True)
class PasswordHash:
    algorithm: HashAlgorithm
    encoded: str


class PasswordService:
    """Argon2id hashing with configurable cost (memory KiB, iterations, lanes)."""

    def __init__(self, memory_cost: int = 65536, time_cost: int = 3, parallelism: int = 4):
        self.memory_cost = memory_cost
        self.time_cost = time_cost
        self.parallelism = parallelism
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=HASH_LENGTH,
            type=Type.ID,
        )
        self._dummy: PasswordHash | None = None

    @classmethod
    def from_config(cls, config) -> "PasswordService":
        return cls(
            memory_cost=config["ARGON2_MEMORY_COST"],
            time_cost=config["ARGON2_TIME_COST"],
            parallelism=config["ARGON2_PARALLELISM"],
        )

    def hash(self, password: str) -> PasswordHash:
        """Hash a plaintext password. Deliberately expensive."""
        return PasswordHash(HashAlgorithm.ARGON2ID, self._hasher.hash(password))

    def verify(self, password_hash: PasswordHash, password: str) -> bool:
        """Return True on a match; every failure mode collapses to False."""
        try:
            if password_hash.algorithm == HashAlgorithm.BCRYPT:
                return bcrypt.checkpw(password.encode("utf-8"), password_hash.encoded.encode("utf-8"))
            return self._hasher.verify(password_hash.encoded, password)
        except VerifyMismatchError:
            return False
        except (VerificationError, InvalidHashError, ValueError, TypeError) as exc:
            logger.warning("Password verification error (%s): %s", password_hash.algorithm, exc)
            return False

    def verify_dummy(self, password: str) -> None:
        """Run one verify against a throwaway hash; the result is discarded."""
        if self._dummy is None:
            self._dummy = self.hash("spotlight-dummy-password")
        self.verify(self._dummy, password)

    def needs_rehash(self, password_hash: PasswordHash) -> bool:
        """True for legacy algorithms or Argon2 hashes weaker than the current cost."""
        if password_hash.algorithm != HashAlgorithm.ARGON2ID:
            return True
        try:
            params = extract_parameters(password_hash.encoded)
        except InvalidHashError:
            logger.warning("Could not parse stored Argon2 hash; scheduling rehash")
            return True
        if params.type is not Type.ID:
            return True
        return (
            params.memory_cost < self.memory_cost
            or params.time_cost < self.time_cost
            or params.parallelism < self.parallelism
        )


def legacy_bcrypt_hash(password: str, rounds: int = 10) -> PasswordHash:
    """Produce a bcrypt hash the way the legacy system stored them (imports, tests)."""
    encoded = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")
    return PasswordHash(HashAlgorithm.BCRYPT, encoded)
