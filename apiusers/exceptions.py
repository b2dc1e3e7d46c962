"""Exceptions."""


class HashingFailure(RuntimeError):
    """The key derivation function rejected its inputs."""


class AuthenticationFailed(RuntimeError):
    """Failed to authenticate with the provided username and password."""


class Unauthorized(RuntimeError):
    """Token is not valid for the requested action."""


class Unavailable(RuntimeError):
    """The user-record store is not available."""


class NoSuchAccount(RuntimeError):
    """Account does not exist."""


class AccountExists(RuntimeError):
    """An account with the requested username already exists."""


class TokenCollision(RuntimeError):
    """A token with the same digest has already been issued."""
