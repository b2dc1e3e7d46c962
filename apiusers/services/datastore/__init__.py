"""
The user-record store.

Persists accounts, their credentials and the digests of their issued tokens.
Each function runs in its own transaction, so that every mutation of an
account's token set is atomic. Database errors are raised as
:class:`.Unavailable`.
"""

from typing import Optional
from datetime import datetime
import logging
import uuid

from pytz import UTC
from sqlalchemy.exc import IntegrityError

from . import util, models
from ...domain import Account, Credential, Role
from ...exceptions import NoSuchAccount, AccountExists, TokenCollision

logger = logging.getLogger(__name__)

init_app = util.init_app
create_all = util.create_all
drop_all = util.drop_all
is_available = util.is_available


def find_account(account_id: str) -> Optional[Account]:
    """Load an :class:`.Account` by ID, or ``None``."""
    with util.transaction() as dbsession:
        db_account = _load_dbaccount(account_id, dbsession)
        return _to_domain(db_account) if db_account else None


def find_account_by_username(username: str) -> Optional[Account]:
    """Load an :class:`.Account` by username, or ``None``."""
    with util.transaction() as dbsession:
        db_account: models.DBAccount = dbsession.query(models.DBAccount) \
            .filter(models.DBAccount.username == username) \
            .first()
        return _to_domain(db_account) if db_account else None


def find_account_by_token(digest: str) -> Optional[Account]:
    """
    Load the :class:`.Account` holding an active token with ``digest``.

    Returns ``None`` if no such token exists, if it has been revoked, or if
    its account no longer exists.
    """
    with util.transaction() as dbsession:
        db_token: models.DBToken = dbsession.query(models.DBToken) \
            .filter(models.DBToken.digest == digest) \
            .filter(models.DBToken.revoked.is_(None)) \
            .first()
        if db_token is None:
            return None
        db_account = _load_dbaccount(db_token.account_id, dbsession)
        return _to_domain(db_account) if db_account else None


def has_root_account() -> bool:
    """Check whether a ``root`` account exists."""
    with util.transaction() as dbsession:
        return dbsession.query(models.DBAccount) \
            .filter(models.DBAccount.role == str(Role.ROOT)) \
            .first() is not None


def save_account(username: str, role: Role,
                 credential: Credential) -> Account:
    """
    Create a new account.

    Raises
    ------
    :class:`.AccountExists`
        Raised if the username is already taken.

    """
    with util.transaction() as dbsession:
        existing = dbsession.query(models.DBAccount) \
            .filter(models.DBAccount.username == username) \
            .first()
        if existing is not None:
            raise AccountExists(f'Account {username} already exists')
        db_account = models.DBAccount(
            account_id=str(uuid.uuid4()),
            username=username,
            role=str(role),
            created=datetime.now(tz=UTC),
            salt=credential.salt,
            password_hash=credential.hash,
            hash_version=credential.version
        )
        dbsession.add(db_account)
        try:
            dbsession.flush()
        except IntegrityError as e:
            raise AccountExists(f'Account {username} already exists') from e
        return _to_domain(db_account)


def save_credential(account_id: str, credential: Credential) -> None:
    """Replace the credential of an account."""
    with util.transaction() as dbsession:
        db_account = _load_dbaccount(account_id, dbsession)
        if db_account is None:
            raise NoSuchAccount(f'Account {account_id} does not exist')
        db_account.salt = credential.salt
        db_account.password_hash = credential.hash
        db_account.hash_version = credential.version
        dbsession.add(db_account)


def append_token(account_id: str, digest: str, issued: datetime) -> None:
    """
    Add a token digest to the active token set of an account.

    Raises
    ------
    :class:`.NoSuchAccount`
    :class:`.TokenCollision`
        Raised if the digest has been issued before, to any account.

    """
    with util.transaction() as dbsession:
        if _load_dbaccount(account_id, dbsession) is None:
            raise NoSuchAccount(f'Account {account_id} does not exist')
        dbsession.add(models.DBToken(
            digest=digest,
            account_id=account_id,
            issued=issued
        ))
        try:
            dbsession.flush()
        except IntegrityError as e:
            raise TokenCollision('Token digest already issued') from e


def remove_token(account_id: str, digest: str) -> bool:
    """
    Revoke one token of an account.

    Returns ``False`` if the token was not active, which is not an error.
    """
    with util.transaction() as dbsession:
        count = dbsession.query(models.DBToken) \
            .filter(models.DBToken.account_id == account_id) \
            .filter(models.DBToken.digest == digest) \
            .filter(models.DBToken.revoked.is_(None)) \
            .update({models.DBToken.revoked: datetime.now(tz=UTC)},
                    synchronize_session=False)
    return count > 0


def clear_tokens(account_id: str) -> int:
    """Revoke every active token of an account. Returns the number revoked."""
    with util.transaction() as dbsession:
        count: int = dbsession.query(models.DBToken) \
            .filter(models.DBToken.account_id == account_id) \
            .filter(models.DBToken.revoked.is_(None)) \
            .update({models.DBToken.revoked: datetime.now(tz=UTC)},
                    synchronize_session=False)
    logger.debug('Revoked %i tokens for %s', count, account_id)
    return count


def count_tokens(account_id: str) -> int:
    """Get the number of active tokens of an account."""
    with util.transaction() as dbsession:
        return dbsession.query(models.DBToken) \
            .filter(models.DBToken.account_id == account_id) \
            .filter(models.DBToken.revoked.is_(None)) \
            .count()


def delete_account(account_id: str) -> None:
    """
    Delete an account and its credential.

    Token digests are kept (see :class:`.models.DBToken`).

    Raises
    ------
    :class:`.NoSuchAccount`

    """
    with util.transaction() as dbsession:
        db_account = _load_dbaccount(account_id, dbsession)
        if db_account is None:
            raise NoSuchAccount(f'Account {account_id} does not exist')
        dbsession.delete(db_account)


def _load_dbaccount(account_id: str, dbsession: util.Session) \
        -> Optional[models.DBAccount]:
    db_account: Optional[models.DBAccount] = \
        dbsession.query(models.DBAccount) \
        .filter(models.DBAccount.account_id == account_id) \
        .first()
    return db_account


def _to_domain(db_account: models.DBAccount) -> Account:
    return Account(
        account_id=str(db_account.account_id),
        username=db_account.username,
        role=Role.from_name(db_account.role),
        credential=Credential(
            salt=bytes(db_account.salt),
            hash=bytes(db_account.password_hash),
            version=db_account.hash_version
        ),
        created=db_account.created
    )
