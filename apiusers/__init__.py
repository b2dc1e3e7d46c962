"""
API user accounts service.

The API user accounts service is a Flask application that manages API
principals in three privilege tiers: ``root``, ``admin`` and ``user``. Each
account owns a salted password credential and a set of opaque bearer tokens.
Every non-public route is gated by one of those tokens.

Context
-------
A client logs in with a username and password. The password is checked
against the stored :class:`.domain.Credential` (see :mod:`.passwords`) and, if
it matches, a new bearer token is issued and registered on the account (see
:mod:`.tokens`). On subsequent requests the client presents that token in the
``Authorization`` header; the token is resolved to its account, and the
account's role is compared against the role required by the route.

A single ``root`` account is seeded at startup from an operator-provided
secret (``ROOT_SECRET``). Admin accounts can only be created by a caller who
presents an admin or root token; anyone may sign up for a ``user`` account.

All persisted state lives in the user-record store (see
:mod:`.services.datastore`). Nothing about credentials or tokens is cached in
process memory between requests.
"""

from .domain import Role, Credential, Token, Account
