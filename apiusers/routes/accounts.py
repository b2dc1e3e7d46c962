"""Provides the JSON account API."""

from typing import Tuple

from flask import Blueprint, Response, jsonify, make_response, request
from werkzeug.datastructures import MultiDict

from ..controllers import accounts
from ..decorators import authorized
from ..domain import Role

api = Blueprint('api', __name__, url_prefix='/api')
"""Public operations; some require a password in the body."""

root = Blueprint('root', __name__, url_prefix='/root')
user = Blueprint('user', __name__, url_prefix='/user')
admin = Blueprint('admin', __name__, url_prefix='/admin')


def _payload() -> MultiDict:
    """Get request data from a JSON body, or from form data."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return MultiDict({key: value for key, value in data.items()
                          if isinstance(value, str)})
    return request.form


def _render(result: Tuple[dict, int, dict]) -> Response:
    data, code, headers = result
    response: Response = make_response(jsonify(data), code, headers)
    return response


@api.route('/account/signup', methods=['POST'])
def signup() -> Response:
    """Create a user account, and return a token for it."""
    return _render(accounts.signup(_payload()))


@api.route('/account/login', methods=['POST'])
def login() -> Response:
    """Exchange a username and password for a token."""
    return _render(accounts.login(_payload()))


@api.route('/account/clear_tokens', methods=['POST'])
def clear_tokens_with_password() -> Response:
    """Revoke every token of an account, given its password."""
    return _render(accounts.clear_tokens_with_password(_payload()))


@api.route('/account/delete', methods=['POST'])
def delete_with_password() -> Response:
    """Delete an account, given its password."""
    return _render(accounts.delete_with_password(_payload()))


@api.route('/account/check_token', methods=['POST'])
def check_token() -> Response:
    """Report whether a token is active."""
    return _render(accounts.check_token(_payload()))


@root.route('/account/login', methods=['POST'])
def root_login() -> Response:
    """Log in to a root account."""
    return _render(accounts.login(_payload(), role=Role.ROOT))


@user.route('/account/check_token', methods=['GET'])
@authorized(Role.USER)
def describe() -> Response:
    """Describe the account of the presented token."""
    return _render(accounts.describe(request.auth))


@user.route('/account/clear_tokens', methods=['POST'])
@authorized(Role.USER)
def clear_tokens() -> Response:
    """Revoke every token of the authenticated account."""
    return _render(accounts.clear_tokens(request.auth))


@user.route('/account/logout', methods=['POST'])
@authorized(Role.USER)
def logout() -> Response:
    """Revoke the presented token."""
    return _render(accounts.logout(request.auth, request.auth_token))


@user.route('/account', methods=['DELETE'])
@authorized(Role.USER)
def delete_account() -> Response:
    """Delete the authenticated account."""
    return _render(accounts.delete_account(request.auth))


@admin.route('/account/signup', methods=['POST'])
@authorized(Role.ADMIN)
def admin_signup() -> Response:
    """Create a user or admin account."""
    return _render(accounts.admin_signup(_payload(), request.auth,
                                         request.auth_token))
