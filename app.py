"""Provides application for development purposes."""

from apiusers.factory import create_web_app
from apiusers.services import datastore

app = create_web_app()
with app.app_context():
    datastore.create_all()
