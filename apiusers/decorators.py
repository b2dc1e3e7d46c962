"""
Role-based authorization of API requests.

This module provides :func:`authorized`, a decorator factory used to protect
Flask routes that require a bearer token. The token is read from the
``Authorization`` header and resolved to an :class:`.Account`; the route is
only called if that account has at least the required :class:`.Role`.

.. code-block:: python

   from apiusers.decorators import authorized
   from apiusers.domain import Role


   @blueprint.route('/account/signup', methods=['POST'])
   @authorized(Role.ADMIN)
   def signup() -> Response:
       '''Only admin and root accounts get this far.'''
       caller = request.auth
       ...

When the decorated route function is called...

- If no bearer token is present, or the token is not active, or its account
  has an insufficient role, :class:`werkzeug.exceptions.Unauthorized` is
  raised. All of these look the same to the client.
- If the store cannot be reached, :class:`.ServiceUnavailable` is raised.
- Otherwise the account is attached to the request as ``request.auth`` and
  the presented token as ``request.auth_token``, and the route is called.

"""

from typing import Any, Callable, Optional
from functools import wraps
import logging

from flask import request
from retry import retry
from werkzeug.exceptions import Unauthorized, ServiceUnavailable

from . import tokens, exceptions
from .domain import Account, Role

logger = logging.getLogger(__name__)

INVALID_TOKEN = 'Invalid authorization token'


def get_bearer_token() -> Optional[str]:
    """Get the bearer token from the ``Authorization`` header, if any."""
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def authorized(required_role: Role = Role.USER) -> Callable:
    """
    Generate a decorator to enforce a minimum role.

    Parameters
    ----------
    required_role : :class:`.Role`
        The least privileged role allowed to use the decorated route.

    Returns
    -------
    function

    """
    def protector(func: Callable) -> Callable:
        """Decorator that provides role enforcement."""
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            token = get_bearer_token()
            if token is None:
                logger.debug('No bearer token; aborting')
                raise Unauthorized(INVALID_TOKEN)
            try:
                account = _do_validate(token, required_role)
            except exceptions.Unauthorized as e:
                raise Unauthorized(INVALID_TOKEN) from e
            except exceptions.Unavailable as e:
                logger.error('Could not validate token: %s', e)
                raise ServiceUnavailable('Try again later') from e
            request.auth = account
            request.auth_token = token
            return func(*args, **kwargs)
        return wrapper
    return protector


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _do_validate(token: str, required_role: Role) -> Account:
    return tokens.validate(token, required_role)
