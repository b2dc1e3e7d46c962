"""Flask blueprints, one per access tier."""

from .accounts import api, root, user, admin

blueprints = [api, root, user, admin]
