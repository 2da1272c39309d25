"""
api.routes_parts - /api/v1/parts catalog endpoints and the cut operation.
"""

from flask import current_app, jsonify, request

from api import api_bp, current_store
from api.auth import admin_required, token_required
from services.consumption_service import ConsumptionService
from services.exceptions import ValidationError
from services.parts_service import PartsService
from services.search_service import SearchService

# Query args that may be repeated (?category=IC&category=Resistor)
MULTI_VALUE_ARGS = ("category", "packageCode", "package_code")
SINGLE_VALUE_ARGS = ("name", "sku", "supplierCode", "supplier_code", "description", "q")


def search_filters() -> dict:
    """Collect facet inputs from the query string."""
    filters = {}
    for key in SINGLE_VALUE_ARGS:
        value = request.args.get(key, "").strip()
        if value:
            filters[key] = value
    for key in MULTI_VALUE_ARGS:
        values = [v for v in request.args.getlist(key) if v.strip()]
        if values:
            filters[key] = values
    return filters


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


@api_bp.route("/parts")
@token_required
def list_parts():
    """
    GET /api/v1/parts?name=&sku=&supplierCode=&packageCode=&category=&description=&q=

    Catalog search.  packageCode / category take csv or repeated values.
    A part with several suppliers yields one row per supplier.
    """
    limit = min(max(_int_arg("limit", current_app.config["API_DEFAULT_LIMIT"]), 1),
                current_app.config["API_MAX_LIMIT"])
    offset = max(_int_arg("offset", 0), 0)

    session = current_store().session()
    try:
        rows = SearchService.search_catalog(
            session, search_filters(), limit=limit, offset=offset,
        )
        return jsonify(rows)
    finally:
        session.close()


@api_bp.route("/parts/cut", methods=["POST"])
@token_required
def cut_inventory():
    """
    POST /api/v1/parts/cut   {inventoryId, useAmount}

    Take one piece off the lot; any remainder becomes a SCRAP lot.
    """
    data = json_body()
    with current_store().transaction() as session:
        result = ConsumptionService.cut(
            session, data.get("inventoryId"), data.get("useAmount"),
        )
    return jsonify({
        "success": True,
        "message": "Cut operation successful",
        "original_id": result.lot_id,
        "remaining_spec": result.remaining_spec,
        "scrap_id": result.scrap_lot_id,
    })


@api_bp.route("/parts/<sku>")
@token_required
def get_part(sku: str):
    """GET /api/v1/parts/{sku}  (spec document deserialized, suppliers inlined)"""
    session = current_store().session()
    try:
        return jsonify(PartsService.get_or_404(session, sku).to_dict())
    finally:
        session.close()


@api_bp.route("/parts/<sku>/lots")
@token_required
def get_part_lots(sku: str):
    """GET /api/v1/parts/{sku}/lots  (every lot row, empty ones included)"""
    session = current_store().session()
    try:
        return jsonify(PartsService.lots(session, sku))
    finally:
        session.close()


@api_bp.route("/parts", methods=["POST"])
@token_required
@admin_required
def create_part():
    """
    POST /api/v1/parts

    JSON body: {sku, category, name, mpn?, packageCode?, description?,
    specDefinition?, imageUrl?, defaultSpec?, unit?, suppliers?[]}
    """
    data = json_body()
    with current_store().transaction() as session:
        part = PartsService.create(session, data)
        body = part.to_dict()
    return jsonify({"message": "Part created successfully", "part": body}), 201


@api_bp.route("/parts/<sku>", methods=["PATCH"])
@token_required
@admin_required
def update_part(sku: str):
    """PATCH /api/v1/parts/{sku}  (only supplied fields change)"""
    data = json_body()
    with current_store().transaction() as session:
        part = PartsService.update(session, sku, data)
        body = part.to_dict()
    return jsonify({"message": "Part updated successfully", "part": body})


@api_bp.route("/parts/<sku>", methods=["DELETE"])
@token_required
@admin_required
def delete_part(sku: str):
    """DELETE /api/v1/parts/{sku}  (409 while lots still hold stock)"""
    with current_store().transaction() as session:
        PartsService.delete(session, sku)
    return "", 204
