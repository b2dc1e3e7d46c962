"""
Issue, validate and revoke opaque bearer tokens.

A token is a random URL-safe string bound to exactly one account. The store
only ever sees the SHA-256 digest of a token, and looks accounts up by that
digest. A token is active from the moment it is issued until it is revoked
(individually, all at once, or by deleting its account); a revoked token
never becomes active again.

Every failure to authenticate a token (malformed, never issued, revoked,
bound to a deleted account, or bound to an account with insufficient role)
raises the same :class:`.Unauthorized` exception with the same message, so
that callers cannot distinguish between them.
"""

from typing import Any, Optional, Tuple
from datetime import datetime
from functools import wraps
import hashlib
import logging
import secrets

from pytz import UTC

from . import passwords
from .domain import Account, Role, Token
from .exceptions import AuthenticationFailed, Unauthorized, TokenCollision, \
    AccountExists
from .globals import get_application_config
from .services import datastore

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_BYTES = 32
MIN_TOKEN_BYTES = 16
"""Tokens carry at least 128 bits of randomness."""

ISSUE_ATTEMPTS = 3

INVALID_TOKEN = 'Invalid token'
INVALID_LOGIN = 'Invalid username or password'


def hash_token(token: str) -> str:
    """Get the digest under which ``token`` is stored."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


class TokenAuthenticator(object):
    """
    Authenticates accounts by password or bearer token.

    Parameters
    ----------
    store : object
        The user-record store; see :mod:`apiusers.services.datastore`.
    hasher : :class:`.passwords.CredentialHasher`
    token_bytes : int
        Number of random bytes in each issued token.

    """

    def __init__(self, store: Any = datastore,
                 hasher: Optional[passwords.CredentialHasher] = None,
                 token_bytes: int = DEFAULT_TOKEN_BYTES) -> None:
        if token_bytes < MIN_TOKEN_BYTES:
            raise ValueError(f'Tokens must have at least {MIN_TOKEN_BYTES}'
                             ' random bytes')
        self.store = store
        self.hasher = hasher if hasher is not None \
            else passwords.CredentialHasher()
        self.token_bytes = token_bytes

    def issue(self, account_id: str) -> Token:
        """
        Issue a new token for an account.

        Parameters
        ----------
        account_id : str

        Returns
        -------
        :class:`.Token`

        Raises
        ------
        :class:`.NoSuchAccount`
        :class:`.TokenCollision`
            Raised if no unused token could be generated. This should never
            happen with a working random number generator.

        """
        for _ in range(ISSUE_ATTEMPTS):
            token = secrets.token_urlsafe(self.token_bytes)
            issued = datetime.now(tz=UTC)
            try:
                self.store.append_token(account_id, hash_token(token), issued)
            except TokenCollision:
                logger.error('Generated a token that was already issued')
                continue
            logger.debug('Issued token for %s', account_id)
            return Token(token=token, account_id=account_id, issued=issued)
        raise TokenCollision('Could not generate an unused token')

    def validate(self, token: Optional[str],
                 required_role: Role = Role.USER) -> Account:
        """
        Resolve a token to the account it is bound to.

        Parameters
        ----------
        token : str
        required_role : :class:`.Role`
            The least privileged role that may use the token.

        Returns
        -------
        :class:`.Account`

        Raises
        ------
        :class:`.Unauthorized`
            Raised if the token is not active, or if its account does not
            have ``required_role``.

        """
        if not token or not isinstance(token, str):
            raise Unauthorized(INVALID_TOKEN)
        try:
            digest = hash_token(token)
        except UnicodeEncodeError as e:
            raise Unauthorized(INVALID_TOKEN) from e
        account = self.store.find_account_by_token(digest)
        if account is None:
            raise Unauthorized(INVALID_TOKEN)
        if not account.role.satisfies(required_role):
            logger.debug('Account %s lacks role %s', account.account_id,
                         required_role)
            raise Unauthorized(INVALID_TOKEN)
        return account

    def revoke_one(self, account_id: str, token: str) -> None:
        """Revoke a single token. Revoking an inactive token does nothing."""
        try:
            digest = hash_token(token)
        except UnicodeEncodeError:
            return
        if self.store.remove_token(account_id, digest):
            logger.debug('Revoked a token for %s', account_id)

    def revoke_all(self, account_id: str) -> None:
        """Revoke every token of an account. Idempotent."""
        self.store.clear_tokens(account_id)

    def on_account_deleted(self, account_id: str) -> None:
        """Invalidate the tokens of an account that is being deleted."""
        self.revoke_all(account_id)

    def delete_account(self, account_id: str) -> None:
        """Revoke all tokens of an account, then delete it."""
        self.on_account_deleted(account_id)
        self.store.delete_account(account_id)
        logger.info('Deleted account %s', account_id)

    def create_account(self, username: str, password: bytes,
                       role: Role = Role.USER) -> Account:
        """
        Create an account with a new credential.

        Raises
        ------
        :class:`.AccountExists`

        """
        if not username:
            raise ValueError('Username is required')
        if not password:
            raise ValueError('Password is required')
        credential = self.hasher.hash_new(password)
        account: Account = self.store.save_account(username, role, credential)
        logger.info('Created %s account %s', role, account.account_id)
        return account

    def signup(self, username: str, password: bytes, role: Role = Role.USER,
               caller_token: Optional[str] = None) -> Account:
        """
        Create an account on behalf of a caller.

        Anyone may create a ``user`` account. Creating an ``admin`` account
        requires an admin or root ``caller_token``, which is checked before
        anything else. ``root`` accounts cannot be created this way; see
        :meth:`ensure_root_account`.

        Raises
        ------
        :class:`.Unauthorized`
        :class:`.AccountExists`

        """
        if role is Role.ROOT:
            raise Unauthorized(INVALID_TOKEN)
        if role.satisfies(Role.ADMIN):
            self.validate(caller_token, Role.ADMIN)
        return self.create_account(username, password, role)

    def login(self, username: str, password: bytes,
              role: Optional[Role] = None) -> Tuple[Account, Token]:
        """
        Verify a username and password, and issue a token.

        If the account's credential was hashed with outdated parameters, it
        is replaced by a new credential for the same password.

        Parameters
        ----------
        username : str
        password : bytes
        role : :class:`.Role`
            If given, only accounts with exactly this role may log in.

        Returns
        -------
        :class:`.Account`
        :class:`.Token`

        Raises
        ------
        :class:`.AuthenticationFailed`
            Raised if the account does not exist, the password is wrong, or
            the account does not have ``role``. Nothing is issued.

        """
        account = self.authenticate(username, password, role)
        return account, self.issue(account.account_id)

    def authenticate(self, username: str, password: bytes,
                     role: Optional[Role] = None) -> Account:
        """
        Verify a username and password without issuing a token.

        An account without ``role`` fails after the same password check as
        any other, and its credential is left as it is.

        Raises
        ------
        :class:`.AuthenticationFailed`

        """
        account = self.store.find_account_by_username(username) \
            if username else None
        if account is None:
            self.hasher.verify_dummy(password or b'')
            raise AuthenticationFailed(INVALID_LOGIN)
        if not self.hasher.verify(account.credential, password):
            logger.debug('Wrong password for %s', account.account_id)
            raise AuthenticationFailed(INVALID_LOGIN)
        if role is not None and account.role is not role:
            logger.debug('Account %s is not %s', account.account_id, role)
            raise AuthenticationFailed(INVALID_LOGIN)
        if self.hasher.needs_rehash(account.credential):
            logger.info('Upgrading credential for %s from %s',
                        account.account_id, account.credential.version)
            self.store.save_credential(account.account_id,
                                       self.hasher.hash_new(password))
        return account

    def ensure_root_account(self, username: str,
                            secret: bytes) -> Optional[Account]:
        """
        Create the root account, unless one already exists.

        Returns the new account, or ``None`` if there was nothing to do.
        """
        if self.store.has_root_account():
            logger.debug('Root account already exists')
            return None
        try:
            return self.create_account(username, secret, Role.ROOT)
        except AccountExists:
            # Another process may have created it in the meantime.
            if self.store.has_root_account():
                return None
            raise


def init_app(app: object = None) -> None:
    """Set default configuration parameters for an application instance."""
    config = get_application_config(app)
    config.setdefault('TOKEN_BYTES', str(DEFAULT_TOKEN_BYTES))


def current_authenticator() -> TokenAuthenticator:
    """Get a :class:`.TokenAuthenticator` for the current application."""
    config = get_application_config()
    token_bytes = int(config.get('TOKEN_BYTES', DEFAULT_TOKEN_BYTES))
    return TokenAuthenticator(datastore, passwords.get_hasher(), token_bytes)


@wraps(TokenAuthenticator.issue)
def issue(account_id: str) -> Token:
    """Issue a new token for an account."""
    return current_authenticator().issue(account_id)


@wraps(TokenAuthenticator.validate)
def validate(token: Optional[str], required_role: Role = Role.USER) -> Account:
    """Resolve a token to its account."""
    return current_authenticator().validate(token, required_role)


@wraps(TokenAuthenticator.revoke_one)
def revoke_one(account_id: str, token: str) -> None:
    """Revoke a single token."""
    return current_authenticator().revoke_one(account_id, token)


@wraps(TokenAuthenticator.revoke_all)
def revoke_all(account_id: str) -> None:
    """Revoke every token of an account."""
    return current_authenticator().revoke_all(account_id)


@wraps(TokenAuthenticator.on_account_deleted)
def on_account_deleted(account_id: str) -> None:
    """Invalidate the tokens of an account that is being deleted."""
    return current_authenticator().on_account_deleted(account_id)


@wraps(TokenAuthenticator.delete_account)
def delete_account(account_id: str) -> None:
    """Revoke all tokens of an account, then delete it."""
    return current_authenticator().delete_account(account_id)


@wraps(TokenAuthenticator.signup)
def signup(username: str, password: bytes, role: Role = Role.USER,
           caller_token: Optional[str] = None) -> Account:
    """Create an account on behalf of a caller."""
    return current_authenticator().signup(username, password, role,
                                          caller_token)


@wraps(TokenAuthenticator.login)
def login(username: str, password: bytes,
          role: Optional[Role] = None) -> Tuple[Account, Token]:
    """Verify a username and password, and issue a token."""
    return current_authenticator().login(username, password, role)


@wraps(TokenAuthenticator.authenticate)
def authenticate(username: str, password: bytes,
                 role: Optional[Role] = None) -> Account:
    """Verify a username and password without issuing a token."""
    return current_authenticator().authenticate(username, password, role)


@wraps(TokenAuthenticator.ensure_root_account)
def ensure_root_account(username: str, secret: bytes) -> Optional[Account]:
    """Create the root account, unless one already exists."""
    return current_authenticator().ensure_root_account(username, secret)
