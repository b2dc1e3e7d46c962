"""Tests for :mod:`apiusers.controllers.accounts`."""

from datetime import datetime
from http import HTTPStatus
from unittest import TestCase, mock

from pytz import UTC
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import BadRequest, Unauthorized, ServiceUnavailable

from .. import accounts
from ...domain import Account, Credential, Role, Token
from ... import exceptions

ACCOUNT = Account(
    account_id='1234',
    username='u1',
    role=Role.USER,
    credential=Credential(b'salt', b'hash', 'argon2id-v2'),
    created=datetime(2020, 1, 1, tzinfo=UTC)
)
TOKEN = Token('sometoken', '1234', datetime(2020, 1, 2, tzinfo=UTC))


def raise_unavailable(*args, **kwargs):
    """Simulate a store that cannot be reached."""
    raise exceptions.Unavailable('Nope')


@mock.patch(f'{accounts.__name__}.tokens')
class TestLogin(TestCase):
    """Tests for :func:`.accounts.login`."""

    def test_login(self, mock_tokens):
        """A correct username and password yield a token."""
        mock_tokens.login.return_value = (ACCOUNT, TOKEN)
        data, code, headers = accounts.login(
            MultiDict({'username': 'u1', 'password': 'anypassword'})
        )
        self.assertEqual(code, HTTPStatus.OK)
        self.assertEqual(data['token'], 'sometoken')
        self.assertEqual(data['account']['username'], 'u1')
        mock_tokens.login.assert_called_once_with('u1', b'anypassword', None)

    def test_missing_fields(self, mock_tokens):
        """Username and password are required."""
        for payload in [{}, {'username': 'u1'}, {'password': 'pw'}]:
            with self.assertRaises(BadRequest):
                accounts.login(MultiDict(payload))

    def test_unencodable(self, mock_tokens):
        """Text that is not valid UTF-8 is a bad request."""
        for payload in [{'username': 'u1', 'password': '\ud800'},
                        {'username': '\ud800', 'password': 'pw'}]:
            with self.assertRaises(BadRequest):
                accounts.login(MultiDict(payload))
        mock_tokens.login.assert_not_called()

    def test_failed(self, mock_tokens):
        """A failed login is a 401 with a generic reason."""
        mock_tokens.login.side_effect = \
            exceptions.AuthenticationFailed('no such account')
        with self.assertRaises(Unauthorized) as ctx:
            accounts.login(MultiDict({'username': 'u1', 'password': 'pw'}))
        self.assertEqual(ctx.exception.description, accounts.INVALID_LOGIN)

    @mock.patch('retry.api.time.sleep')
    def test_unavailable(self, mock_sleep, mock_tokens):
        """A store failure is retried, then reported as unavailable."""
        mock_tokens.login.side_effect = raise_unavailable
        with self.assertRaises(ServiceUnavailable):
            accounts.login(MultiDict({'username': 'u1', 'password': 'pw'}))
        self.assertEqual(mock_tokens.login.call_count, 3)

    def test_root_login(self, mock_tokens):
        """The required role is passed on."""
        mock_tokens.login.return_value = (ACCOUNT, TOKEN)
        accounts.login(MultiDict({'username': 'u1', 'password': 'pw'}),
                       role=Role.ROOT)
        mock_tokens.login.assert_called_once_with('u1', b'pw', Role.ROOT)


@mock.patch(f'{accounts.__name__}.tokens')
class TestSignup(TestCase):
    """Tests for :func:`.accounts.signup` and :func:`.admin_signup`."""

    def test_signup(self, mock_tokens):
        """A new user account is created and logged in."""
        mock_tokens.signup.return_value = ACCOUNT
        mock_tokens.issue.return_value = TOKEN
        data, code, _ = accounts.signup(
            MultiDict({'username': 'u1', 'password': 'anypassword'})
        )
        self.assertEqual(code, HTTPStatus.CREATED)
        self.assertEqual(data['token'], 'sometoken')
        mock_tokens.signup.assert_called_once_with('u1', b'anypassword',
                                                   Role.USER, None)

    @mock.patch('retry.api.time.sleep')
    def test_token_unavailable(self, mock_sleep, mock_tokens):
        """The account is reported even if no token could be issued."""
        mock_tokens.signup.return_value = ACCOUNT
        mock_tokens.issue.side_effect = raise_unavailable
        data, code, _ = accounts.signup(
            MultiDict({'username': 'u1', 'password': 'anypassword'})
        )
        self.assertEqual(code, HTTPStatus.CREATED)
        self.assertEqual(data['account']['account_id'], '1234')
        self.assertNotIn('token', data)

    def test_username_taken(self, mock_tokens):
        """Signing up with a taken username is a bad request."""
        mock_tokens.signup.side_effect = exceptions.AccountExists('u1')
        with self.assertRaises(BadRequest):
            accounts.signup(MultiDict({'username': 'u1', 'password': 'pw'}))
        mock_tokens.issue.assert_not_called()

    def test_admin_signup(self, mock_tokens):
        """An admin can create an admin account."""
        mock_tokens.signup.return_value = ACCOUNT._replace(role=Role.ADMIN)
        data, code, _ = accounts.admin_signup(
            MultiDict({'username': 'a2', 'password': 'pw', 'role': 'admin'}),
            ACCOUNT._replace(role=Role.ADMIN), 'admintoken'
        )
        self.assertEqual(code, HTTPStatus.CREATED)
        self.assertEqual(data['account']['role'], 'admin')
        self.assertNotIn('token', data)
        mock_tokens.signup.assert_called_once_with('a2', b'pw', Role.ADMIN,
                                                   'admintoken')

    def test_admin_signup_root(self, mock_tokens):
        """Root is not a valid choice."""
        with self.assertRaises(BadRequest):
            accounts.admin_signup(
                MultiDict({'username': 'r2', 'password': 'pw',
                           'role': 'root'}),
                ACCOUNT._replace(role=Role.ROOT), 'roottoken'
            )
        mock_tokens.signup.assert_not_called()


@mock.patch(f'{accounts.__name__}.tokens')
class TestCheckToken(TestCase):
    """Tests for :func:`.accounts.check_token`."""

    def test_valid(self, mock_tokens):
        """An active token is reported with its account."""
        mock_tokens.validate.return_value = ACCOUNT
        data, code, _ = accounts.check_token(MultiDict({'token': 'foo'}))
        self.assertEqual(code, HTTPStatus.OK)
        self.assertTrue(data['valid'])
        self.assertEqual(data['account']['account_id'], '1234')

    def test_invalid(self, mock_tokens):
        """An inactive or missing token is reported as not valid."""
        mock_tokens.validate.side_effect = exceptions.Unauthorized('nope')
        for payload in [{'token': 'foo'}, {}, {'token': '\ud800abc'}]:
            data, code, _ = accounts.check_token(MultiDict(payload))
            self.assertEqual(code, HTTPStatus.OK)
            self.assertEqual(data, {'valid': False})


@mock.patch(f'{accounts.__name__}.tokens')
class TestPasswordOperations(TestCase):
    """Operations that require the account password."""

    def test_clear_tokens(self, mock_tokens):
        """All tokens of the account are revoked."""
        mock_tokens.authenticate.return_value = ACCOUNT
        _, code, _ = accounts.clear_tokens_with_password(
            MultiDict({'username': 'u1', 'password': 'pw'})
        )
        self.assertEqual(code, HTTPStatus.OK)
        mock_tokens.revoke_all.assert_called_once_with('1234')

    def test_clear_tokens_wrong_password(self, mock_tokens):
        """Nothing is revoked with a wrong password."""
        mock_tokens.authenticate.side_effect = \
            exceptions.AuthenticationFailed('nope')
        with self.assertRaises(Unauthorized):
            accounts.clear_tokens_with_password(
                MultiDict({'username': 'u1', 'password': 'pw'})
            )
        mock_tokens.revoke_all.assert_not_called()

    def test_delete(self, mock_tokens):
        """The account is deleted."""
        mock_tokens.authenticate.return_value = ACCOUNT
        accounts.delete_with_password(
            MultiDict({'username': 'u1', 'password': 'pw'})
        )
        mock_tokens.delete_account.assert_called_once_with('1234')


@mock.patch(f'{accounts.__name__}.tokens')
class TestTokenOperations(TestCase):
    """Operations on behalf of an authenticated account."""

    def test_logout(self, mock_tokens):
        """The presented token is revoked."""
        accounts.logout(ACCOUNT, 'sometoken')
        mock_tokens.revoke_one.assert_called_once_with('1234', 'sometoken')

    def test_clear_tokens(self, mock_tokens):
        """All tokens are revoked."""
        accounts.clear_tokens(ACCOUNT)
        mock_tokens.revoke_all.assert_called_once_with('1234')

    def test_delete_account(self, mock_tokens):
        """The account is deleted."""
        accounts.delete_account(ACCOUNT)
        mock_tokens.delete_account.assert_called_once_with('1234')
