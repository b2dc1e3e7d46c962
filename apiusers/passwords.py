"""
Salted password hashing and verification.

Passwords are hashed with Argon2 using a per-credential random salt. The
parameters used to derive a hash are named by a version string that is stored
on the :class:`.domain.Credential` alongside the salt and hash, so that the
default parameters can be raised later without breaking verification of
credentials hashed under older parameters.

.. code-block:: python

   from apiusers import passwords

   credential = passwords.hash_new(b'anypassword')
   passwords.verify(credential, b'anypassword')      # True
   passwords.verify(credential, b'anotherpassword')  # False

"""

from typing import Dict, NamedTuple, Optional
from functools import wraps
import hmac
import logging
import secrets

from argon2.exceptions import HashingError
from argon2.low_level import ARGON2_VERSION, Type, hash_secret_raw

from .domain import Credential
from .exceptions import HashingFailure
from .globals import get_application_config

logger = logging.getLogger(__name__)

DEFAULT_SALT_SIZE = 256
"""Salt size in bytes."""


class HashingConfig(NamedTuple):
    """A named, fixed set of Argon2 parameters."""

    version: str
    variant: Type
    time_cost: int
    memory_cost: int
    """Memory cost in KiB."""
    parallelism: int
    hash_len: int = 32
    salt_len: int = DEFAULT_SALT_SIZE


ARGON2I_V1 = HashingConfig(
    version='argon2i-v1',
    variant=Type.I,
    time_cost=3,
    memory_cost=4096,
    parallelism=1
)
"""Parameters used by the first generation of stored credentials."""

ARGON2ID_V2 = HashingConfig(
    version='argon2id-v2',
    variant=Type.ID,
    time_cost=2,
    memory_cost=19456,
    parallelism=1
)
"""Current default parameters."""

HASHING_CONFIGS: Dict[str, HashingConfig] = {
    ARGON2I_V1.version: ARGON2I_V1,
    ARGON2ID_V2.version: ARGON2ID_V2,
}
DEFAULT_VERSION = ARGON2ID_V2.version


def generate_salt(size: int = DEFAULT_SALT_SIZE) -> bytes:
    """Generate ``size`` cryptographically random bytes."""
    return secrets.token_bytes(size)


class CredentialHasher(object):
    """
    Hashes and verifies passwords with a fixed :class:`.HashingConfig`.

    New credentials are always produced with ``config``. Verification uses the
    parameters named by the credential's own version, looked up in ``known``.
    """

    def __init__(self, config: Optional[HashingConfig] = None,
                 known: Optional[Dict[str, HashingConfig]] = None) -> None:
        self.config = config if config is not None \
            else HASHING_CONFIGS[DEFAULT_VERSION]
        self.known = dict(known if known is not None else HASHING_CONFIGS)
        self.known.setdefault(self.config.version, self.config)
        self._dummy = Credential(
            salt=bytes(self.config.salt_len),
            hash=bytes(self.config.hash_len),
            version=self.config.version
        )

    def hash_new(self, password: bytes) -> Credential:
        """
        Hash a password with a freshly generated salt.

        A new random salt is generated on every call, so hashing the same
        password twice yields two different credentials.

        Parameters
        ----------
        password : bytes

        Returns
        -------
        :class:`.Credential`

        """
        return self.hash_with_salt(generate_salt(self.config.salt_len),
                                   password)

    def hash_with_salt(self, salt: bytes, password: bytes) -> Credential:
        """
        Hash a password with a known salt.

        The same salt and password always produce the same hash. This is for
        re-deriving a hash to compare it against a stored one; new credentials
        must be created with :meth:`hash_new`.

        Parameters
        ----------
        salt : bytes
        password : bytes

        Returns
        -------
        :class:`.Credential`

        Raises
        ------
        :class:`.HashingFailure`
            Raised if Argon2 rejects the inputs, e.g. a salt that is too short.

        """
        return Credential(
            salt=bytes(salt),
            hash=self._derive(self.config, salt, password),
            version=self.config.version
        )

    def verify(self, credential: Credential, password: bytes) -> bool:
        """
        Check a plaintext password against a stored :class:`.Credential`.

        The comparison runs in constant time with respect to the hash. Any
        failure to re-derive the hash (unknown parameter version, malformed
        salt) is reported as ``False``.
        """
        config = self.known.get(credential.version)
        if config is None:
            logger.error('Unknown hashing version: %s', credential.version)
            return False
        try:
            derived = self._derive(config, credential.salt, password)
        except HashingFailure as e:
            logger.debug('Could not derive hash for verification: %s', e)
            return False
        return hmac.compare_digest(derived, bytes(credential.hash))

    def verify_dummy(self, password: bytes) -> bool:
        """
        Spend the same effort as :meth:`verify`, and fail.

        Used when there is no credential to check against, so that a missing
        account costs as much time as a wrong password for an account hashed
        with the current parameters. Accounts still on older parameters
        verify at their own cost until their next login upgrades them.
        """
        self.verify(self._dummy, password)
        return False

    def needs_rehash(self, credential: Credential) -> bool:
        """Check whether ``credential`` was hashed with other parameters."""
        return credential.version != self.config.version

    def _derive(self, config: HashingConfig, salt: bytes,
                password: bytes) -> bytes:
        try:
            return hash_secret_raw(
                secret=password,
                salt=salt,
                time_cost=config.time_cost,
                memory_cost=config.memory_cost,
                parallelism=config.parallelism,
                hash_len=config.hash_len,
                type=config.variant,
                version=ARGON2_VERSION
            )
        except (HashingError, TypeError) as e:
            raise HashingFailure(f'Argon2 rejected input: {e}') from e


def init_app(app: object = None) -> None:
    """Set default configuration parameters for an application instance."""
    config = get_application_config(app)
    config.setdefault('PASSWORD_HASH_VERSION', DEFAULT_VERSION)
    config.setdefault('PASSWORD_SALT_SIZE', str(DEFAULT_SALT_SIZE))


def get_hasher(app: object = None) -> CredentialHasher:
    """Get a :class:`.CredentialHasher` for the application configuration."""
    config = get_application_config(app)
    version = config.get('PASSWORD_HASH_VERSION', DEFAULT_VERSION)
    salt_size = int(config.get('PASSWORD_SALT_SIZE', DEFAULT_SALT_SIZE))
    try:
        hashing_config = HASHING_CONFIGS[version]
    except KeyError as e:
        raise RuntimeError(f'Configuration error: no such hashing version'
                           f' {version}') from e
    return CredentialHasher(hashing_config._replace(salt_len=salt_size))


@wraps(CredentialHasher.hash_new)
def hash_new(password: bytes) -> Credential:
    """Hash a password with a fresh salt."""
    return get_hasher().hash_new(password)


@wraps(CredentialHasher.hash_with_salt)
def hash_with_salt(salt: bytes, password: bytes) -> Credential:
    """Hash a password with a known salt."""
    return get_hasher().hash_with_salt(salt, password)


@wraps(CredentialHasher.verify)
def verify(credential: Credential, password: bytes) -> bool:
    """Check a password against a stored credential."""
    return get_hasher().verify(credential, password)
