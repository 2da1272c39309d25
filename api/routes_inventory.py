"""
api.routes_inventory - /api/v1/inventory in-stock lot listing.
"""

from flask import jsonify

from api import api_bp, current_store
from api.auth import token_required
from api.routes_parts import search_filters
from services.search_service import SearchService


@api_bp.route("/inventory")
@token_required
def list_inventory():
    """
    GET /api/v1/inventory?category=&packageCode=&supplierCode=

    Lots with at least one piece, catalog name/category/package/unit
    flattened onto each row.
    """
    session = current_store().session()
    try:
        return jsonify(SearchService.search_inventory(session, search_filters()))
    finally:
        session.close()
