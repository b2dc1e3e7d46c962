"""
Controllers for account and token requests.

Each controller accepts already-parsed request data and returns a
``(data, status code, headers)`` tuple for the route to render. Failed
password checks and failed token checks each produce a single, uniform
response regardless of the cause.
"""

from typing import Any, Dict, Optional, Tuple
from http import HTTPStatus
import logging

from retry import retry
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import BadRequest, Unauthorized, \
    ServiceUnavailable, InternalServerError
from wtforms import Form, StringField, PasswordField, SelectField
from wtforms.validators import DataRequired, Length, ValidationError

from .. import tokens, exceptions
from ..domain import Account, Role, Token

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]

INVALID_LOGIN = 'Invalid username or password'
UNAVAILABLE = 'Try again later'


def encodable(form: Form, field: StringField) -> None:
    """Reject text that cannot be encoded as UTF-8, e.g. lone surrogates."""
    try:
        field.data.encode('utf-8')
    except UnicodeEncodeError as e:
        raise ValidationError('Not valid UTF-8 text') from e


class LoginForm(Form):
    """Username and password."""

    username = StringField('Username', validators=[DataRequired(),
                                                   Length(max=255),
                                                   encodable])
    password = PasswordField('Password', validators=[DataRequired(),
                                                       encodable])


class SignupForm(LoginForm):
    """Create a ``user`` account."""


class AdminSignupForm(LoginForm):
    """Create a ``user`` or ``admin`` account."""

    role = SelectField('Role', default=str(Role.USER),
                       choices=[(str(Role.USER), 'User'),
                                (str(Role.ADMIN), 'Administrator')])


class TokenForm(Form):
    """A bearer token presented in the request body."""

    token = StringField('Token', validators=[DataRequired(), encodable])


def signup(form_data: MultiDict) -> ResponseData:
    """Create a ``user`` account, and log it in."""
    form = SignupForm(form_data)
    _validate(form)
    password = _password(form)
    try:
        account = _do_signup(form.username.data, password, Role.USER)
    except exceptions.AccountExists as e:
        raise BadRequest('Username is not available') from e
    except exceptions.Unavailable as e:
        raise ServiceUnavailable(UNAVAILABLE) from e
    except exceptions.HashingFailure as e:
        logger.error('Could not hash password: %s', e)
        raise InternalServerError('Could not create account') from e
    try:
        token = _do_issue(account.account_id)
    except exceptions.Unavailable as e:
        # The account exists; its owner can log in once the store recovers.
        logger.error('Could not issue token for new account %s: %s',
                     account.account_id, e)
        return {'account': account.to_dict()}, HTTPStatus.CREATED, {}
    return _login_data(account, token), HTTPStatus.CREATED, {}


def admin_signup(form_data: MultiDict, caller: Account,
                 caller_token: str) -> ResponseData:
    """Create a ``user`` or ``admin`` account on behalf of an admin."""
    form = AdminSignupForm(form_data)
    _validate(form)
    role = Role.from_name(form.role.data)
    try:
        account = _do_signup(form.username.data, _password(form), role,
                             caller_token)
    except exceptions.Unauthorized as e:
        raise Unauthorized('Invalid authorization token') from e
    except exceptions.AccountExists as e:
        raise BadRequest('Username is not available') from e
    except exceptions.Unavailable as e:
        raise ServiceUnavailable(UNAVAILABLE) from e
    except exceptions.HashingFailure as e:
        logger.error('Could not hash password: %s', e)
        raise InternalServerError('Could not create account') from e
    logger.info('%s created %s account %s', caller.account_id, role,
                account.account_id)
    return {'account': account.to_dict()}, HTTPStatus.CREATED, {}


def login(form_data: MultiDict, role: Optional[Role] = None) -> ResponseData:
    """
    Log in with a username and password.

    Parameters
    ----------
    form_data : MultiDict
        Should include ``username`` and ``password``.
    role : :class:`.Role`
        If given, only accounts with this exact role may log in.

    Returns
    -------
    dict
        The account and the newly issued token.
    int
        Status code.
    dict
        Headers to add to the response.

    """
    form = LoginForm(form_data)
    _validate(form)
    try:
        account, token = _do_login(form.username.data, _password(form), role)
    except exceptions.AuthenticationFailed as e:
        logger.debug('Authentication failed: %s', e)
        raise Unauthorized(INVALID_LOGIN) from e
    except exceptions.Unavailable as e:
        raise ServiceUnavailable(UNAVAILABLE) from e
    return _login_data(account, token), HTTPStatus.OK, {}


def clear_tokens_with_password(form_data: MultiDict) -> ResponseData:
    """Revoke every token of an account, given its password."""
    account = _authenticate(form_data)
    return clear_tokens(account)


def delete_with_password(form_data: MultiDict) -> ResponseData:
    """Delete an account, given its password."""
    account = _authenticate(form_data)
    return delete_account(account)


def check_token(form_data: MultiDict) -> ResponseData:
    """Report whether the token in the request body is active."""
    form = TokenForm(form_data)
    if not form.validate():
        return {'valid': False}, HTTPStatus.OK, {}
    try:
        account = _do_validate(form.token.data)
    except exceptions.Unauthorized:
        return {'valid': False}, HTTPStatus.OK, {}
    except exceptions.Unavailable as e:
        raise ServiceUnavailable(UNAVAILABLE) from e
    return {'valid': True, 'account': account.to_dict()}, HTTPStatus.OK, {}


def describe(account: Account) -> ResponseData:
    """Describe the account that presented a valid token."""
    return {'valid': True, 'account': account.to_dict()}, HTTPStatus.OK, {}


def clear_tokens(account: Account) -> ResponseData:
    """Revoke every token of an authenticated account."""
    try:
        _do_revoke_all(account.account_id)
    except exceptions.Unavailable as e:
        raise ServiceUnavailable(UNAVAILABLE) from e
    logger.info('Cleared tokens of %s', account.account_id)
    return {'account_id': account.account_id}, HTTPStatus.OK, {}


def logout(account: Account, token: str) -> ResponseData:
    """Revoke the token that was presented."""
    try:
        _do_revoke_one(account.account_id, token)
    except exceptions.Unavailable as e:
        raise ServiceUnavailable(UNAVAILABLE) from e
    return {'account_id': account.account_id}, HTTPStatus.OK, {}


def delete_account(account: Account) -> ResponseData:
    """Delete an authenticated account and revoke its tokens."""
    try:
        _do_delete(account.account_id)
    except exceptions.NoSuchAccount as e:
        raise Unauthorized(INVALID_LOGIN) from e
    except exceptions.Unavailable as e:
        raise ServiceUnavailable(UNAVAILABLE) from e
    return {'account_id': account.account_id}, HTTPStatus.OK, {}


def _authenticate(form_data: MultiDict) -> Account:
    form = LoginForm(form_data)
    _validate(form)
    try:
        return _do_authn(form.username.data, _password(form))
    except exceptions.AuthenticationFailed as e:
        logger.debug('Authentication failed: %s', e)
        raise Unauthorized(INVALID_LOGIN) from e
    except exceptions.Unavailable as e:
        raise ServiceUnavailable(UNAVAILABLE) from e


def _validate(form: Form) -> None:
    if not form.validate():
        logger.debug('Invalid form data: %s', list(form.errors))
        raise BadRequest(_first_error(form.errors))


def _first_error(errors: Dict[str, Any]) -> str:
    for field, messages in errors.items():
        return f'{field}: {messages[0]}'
    return 'Invalid request'


def _password(form: LoginForm) -> bytes:
    password: bytes = form.password.data.encode('utf-8')
    return password


def _login_data(account: Account, token: Token) -> dict:
    return {
        'account': account.to_dict(),
        'token': token.token,
        'issued': token.issued.isoformat()
    }


# These are broken out to add retry logic.
@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _do_signup(username: str, password: bytes, role: Role,
               caller_token: Optional[str] = None) -> Account:
    return tokens.signup(username, password, role, caller_token)


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _do_issue(account_id: str) -> Token:
    return tokens.issue(account_id)


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _do_login(username: str, password: bytes,
              role: Optional[Role]) -> Tuple[Account, Token]:
    return tokens.login(username, password, role)


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _do_authn(username: str, password: bytes) -> Account:
    return tokens.authenticate(username, password)


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _do_validate(token: str) -> Account:
    return tokens.validate(token)


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _do_revoke_all(account_id: str) -> None:
    tokens.revoke_all(account_id)


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _do_revoke_one(account_id: str, token: str) -> None:
    tokens.revoke_one(account_id, token)


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _do_delete(account_id: str) -> None:
    tokens.delete_account(account_id)
