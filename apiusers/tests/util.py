"""Testing helpers."""

from contextlib import contextmanager
from typing import Generator

from argon2.low_level import Type
from flask import Flask

from .. import passwords, tokens
from ..services import datastore

FAST = passwords.HashingConfig(
    version='test-fast',
    variant=Type.ID,
    time_cost=1,
    memory_cost=8,
    parallelism=1,
    salt_len=16
)
"""Parameters that are quick to compute. Never use these outside tests."""


def fast_hasher() -> passwords.CredentialHasher:
    """Get a hasher that uses :data:`FAST` for new credentials."""
    return passwords.CredentialHasher(FAST)


@contextmanager
def temporary_db(database_url: str = 'sqlite://',
                 create: bool = True,
                 drop: bool = True) -> Generator[Flask, None, None]:
    """Provide an in-memory sqlite database for testing purposes."""
    app = Flask('foo')
    app.config['SQLALCHEMY_DATABASE_URI'] = database_url
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['PASSWORD_HASH_VERSION'] = passwords.ARGON2I_V1.version
    datastore.init_app(app)
    passwords.init_app(app)
    tokens.init_app(app)
    with app.app_context():
        if create:
            datastore.create_all()
        try:
            yield app
        finally:
            if drop:
                datastore.drop_all()
