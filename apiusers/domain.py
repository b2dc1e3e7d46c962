"""Defines account, credential and token concepts for the API users service."""

from typing import NamedTuple, Optional
from datetime import datetime
from enum import IntEnum


class Role(IntEnum):
    """
    Privilege tier of an :class:`.Account`.

    Tiers are ordered: a role satisfies a requirement if it is at least as
    privileged as the required role.
    """

    USER = 1
    ADMIN = 2
    ROOT = 3

    def satisfies(self, required: 'Role') -> bool:
        """Check whether this role is sufficient for ``required``."""
        return self >= required

    @classmethod
    def from_name(cls, name: str) -> 'Role':
        """Get a :class:`.Role` from its lowercase name, e.g. ``'admin'``."""
        try:
            return cls[name.upper()]
        except KeyError as e:
            raise ValueError(f'No such role: {name}') from e

    def __str__(self) -> str:
        """Return the lowercase name of the role."""
        return self.name.lower()


class Credential(NamedTuple):
    """A salted password hash."""

    salt: bytes
    """Random salt, generated when the credential is created."""

    hash: bytes
    """Raw Argon2 output for the password and :attr:`salt`."""

    version: str
    """
    Name of the hashing parameter set that produced :attr:`hash`.

    See :data:`apiusers.passwords.HASHING_CONFIGS`.
    """


class Token(NamedTuple):
    """An opaque bearer token issued to an :class:`.Account`."""

    token: str
    """The token string. Only ever held by the client after issuance."""

    account_id: str
    """The account to which this token is bound."""

    issued: datetime
    """When the token was issued."""


class Account(NamedTuple):
    """An API principal."""

    account_id: str
    username: str
    role: Role
    credential: Credential
    created: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Public representation, without the credential."""
        return {
            'account_id': self.account_id,
            'username': self.username,
            'role': str(self.role),
            'created': self.created.isoformat() if self.created else None
        }
