"""Helpers and Flask application integration."""

from typing import Generator, Optional
from contextlib import contextmanager
import logging

from flask import Flask
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.session import Session

from ...exceptions import Unavailable
from .models import db

logger = logging.getLogger(__name__)


@contextmanager
def transaction() -> Generator[Session, None, None]:
    """
    Context manager for database transaction.

    Commits on success. Any database error is rolled back and surfaced as
    :class:`.Unavailable`; other exceptions are rolled back and re-raised.
    """
    try:
        yield db.session
        db.session.commit()
    except SQLAlchemyError as e:
        logger.error('Commit failed, rolling back: %s', str(e))
        db.session.rollback()
        raise Unavailable(f'Store call failed: {e}') from e
    except Exception:
        db.session.rollback()
        raise


def init_app(app: Optional[Flask]) -> None:
    """Set configuration defaults and attach the database to ``app``."""
    app.config.setdefault('SQLALCHEMY_DATABASE_URI', 'sqlite://')
    app.config.setdefault('SQLALCHEMY_TRACK_MODIFICATIONS', False)
    db.init_app(app)


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()


def is_available() -> bool:
    """Check our connection to the database."""
    try:
        db.session.execute(text('SELECT 1'))
    except SQLAlchemyError as e:
        logger.error('Encountered an error talking to database: %s', e)
        return False
    return True
