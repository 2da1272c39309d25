"""
api - REST API layer.

All route modules register on a single Flask Blueprint
with url_prefix /api/v1.
"""

from flask import Blueprint, current_app

api_bp = Blueprint("api", __name__, url_prefix="/api/v1")

STORE_KEY = "spooldb_store"


def current_store():
    """The Store opened by create_app for this application."""
    return current_app.extensions[STORE_KEY]


# Import route modules so their @api_bp decorators execute
from api import routes_parts      # noqa: F401, E402
from api import routes_inventory  # noqa: F401, E402
from api import errors            # noqa: F401, E402
