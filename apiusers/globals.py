"""Access to application configuration, with or without an app context."""

from typing import Any, MutableMapping, Optional
import os

from flask import Flask, current_app, has_app_context


def get_application_config(app: Optional[Flask] = None) -> MutableMapping[str, Any]:
    """
    Get the configuration of ``app`` or of the current application.

    Falls back to ``os.environ`` when there is no application context, so that
    library code can be used from scripts.
    """
    if app is not None:
        return app.config
    if has_app_context():
        return current_app.config
    return os.environ
