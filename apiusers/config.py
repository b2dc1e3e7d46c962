"""Flask configuration."""

import os

SECRET_KEY = os.environ.get('SECRET_KEY', 'asdf1234')

LOGLEVEL = os.environ.get('LOGLEVEL', 20)
JSON_LOGS = bool(int(os.environ.get('JSON_LOGS', '1')))
"""If 1, log records are written as JSON objects."""

SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI',
                                         'sqlite://')
SQLALCHEMY_TRACK_MODIFICATIONS = False
CREATE_DB = bool(int(os.environ.get('CREATE_DB', 0)))

PASSWORD_HASH_VERSION = os.environ.get('PASSWORD_HASH_VERSION', 'argon2id-v2')
"""Parameters used to hash new passwords. See :mod:`apiusers.passwords`."""
PASSWORD_SALT_SIZE = os.environ.get('PASSWORD_SALT_SIZE', '256')

TOKEN_BYTES = os.environ.get('TOKEN_BYTES', '32')
"""Number of random bytes in an issued token."""

ROOT_USERNAME = os.environ.get('ROOT_USERNAME', 'root')
ROOT_SECRET = os.environ.get('ROOT_SECRET')
"""
Password of the root account, created at startup if no root account exists.

If unset, no root account is created.
"""
