"""
Script for creating a new account.

Creates the database tables if they do not exist yet. Intended for operators
and development setups; ``root`` accounts are normally created at startup
from ``ROOT_SECRET``.
"""

import click

from apiusers import tokens
from apiusers.domain import Role
from apiusers.exceptions import AccountExists
from apiusers.factory import create_web_app
from apiusers.services import datastore


@click.command()
@click.option('--username', prompt='Username')
@click.option('--password', prompt='Password', hide_input=True,
              confirmation_prompt=True)
@click.option('--role', type=click.Choice(['user', 'admin', 'root']),
              default='user', show_default=True)
def create_account(username: str, password: str, role: str) -> None:
    """Create a new account with the given role."""
    app = create_web_app()
    with app.app_context():
        datastore.create_all()
        try:
            account = tokens.current_authenticator().create_account(
                username, password.encode('utf-8'), Role.from_name(role)
            )
        except AccountExists as e:
            raise click.ClickException(str(e)) from e
    click.echo(f'Created {role} account {account.account_id}')


if __name__ == '__main__':
    create_account()
