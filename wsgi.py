"""Web Server Gateway Interface entry-point."""

import os
from typing import Optional

from flask import Flask

from apiusers.factory import create_web_app

__flask_app__: Optional[Flask] = None


def application(environ, start_response):
    """WSGI application factory."""
    global __flask_app__
    for key, value in environ.items():
        # Copy string WSGI environ to os.environ, so that the config module
        # picks it up.
        if type(value) is str:
            os.environ[key] = value
    if __flask_app__ is None:
        __flask_app__ = create_web_app()
    return __flask_app__(environ, start_response)
