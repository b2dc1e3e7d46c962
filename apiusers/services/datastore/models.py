"""SQLAlchemy models for the user-record store."""

from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Column, DateTime, Integer, LargeBinary, String
from pytz import UTC

db: SQLAlchemy = SQLAlchemy()


def _now() -> datetime:
    return datetime.now(tz=UTC)


class DBAccount(db.Model):
    """Persistence for :class:`domain.Account` and its credential."""

    __tablename__ = 'account'

    account_id = Column(String(36), primary_key=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(String(16), nullable=False, index=True)
    created = Column(DateTime, default=_now)

    salt = Column(LargeBinary, nullable=False)
    password_hash = Column(LargeBinary, nullable=False)
    hash_version = Column(String(32), nullable=False)


class DBToken(db.Model):
    """
    An issued bearer token.

    Only the SHA-256 digest of the token is stored. Rows are not deleted when
    a token is revoked or its account is deleted; ``revoked`` is set instead,
    so that a digest can never be issued twice.
    """

    __tablename__ = 'token'

    token_id = Column(Integer, primary_key=True, autoincrement=True)
    digest = Column(String(64), nullable=False, unique=True, index=True)
    account_id = Column(String(36), nullable=False, index=True)
    issued = Column(DateTime, default=_now)
    revoked = Column(DateTime, nullable=True)
