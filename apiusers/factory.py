"""Application factory for the account API."""

import logging

from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException, Unauthorized, BadRequest, \
    MethodNotAllowed, InternalServerError, NotFound, ServiceUnavailable

from . import app_logging, passwords, tokens
from .routes import blueprints
from .services import datastore

logger = logging.getLogger(__name__)


def create_web_app() -> Flask:
    """Initialize and configure the account API application."""
    app = Flask('apiusers')
    app.config.from_pyfile('config.py')

    app_logging.setup_logger(app.config['LOGLEVEL'], app.config['JSON_LOGS'])

    datastore.init_app(app)
    passwords.init_app(app)
    tokens.init_app(app)
    for blueprint in blueprints:
        app.register_blueprint(blueprint)

    if app.config['CREATE_DB']:
        with app.app_context():
            datastore.create_all()

    if app.config.get('ROOT_SECRET'):
        with app.app_context():
            bootstrap_root(app)

    register_error_handlers(app)
    return app


def bootstrap_root(app: Flask) -> None:
    """Create the root account from configuration, if there is none yet."""
    username = app.config['ROOT_USERNAME']
    secret = app.config['ROOT_SECRET'].encode('utf-8')
    if tokens.ensure_root_account(username, secret) is not None:
        logger.info('Created root account %s', username)


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for the Flask app."""
    app.errorhandler(Unauthorized)(jsonify_exception)
    app.errorhandler(BadRequest)(jsonify_exception)
    app.errorhandler(InternalServerError)(jsonify_exception)
    app.errorhandler(NotFound)(jsonify_exception)
    app.errorhandler(MethodNotAllowed)(jsonify_exception)
    app.errorhandler(ServiceUnavailable)(jsonify_exception)


def jsonify_exception(error: HTTPException) -> Response:
    """Render exceptions as JSON."""
    exc_resp = error.get_response()
    response: Response = jsonify(reason=error.description)
    response.status_code = exc_resp.status_code
    return response
