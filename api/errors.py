"""
api.errors - JSON error handlers for the API blueprint.
"""

import logging

from flask import current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from api import api_bp
from services.exceptions import InternalError, InventoryError

logger = logging.getLogger(__name__)


@api_bp.errorhandler(404)
def api_not_found(_e):
    return jsonify({"error": "not found"}), 404


@api_bp.errorhandler(400)
def api_bad_request(_e):
    return jsonify({"error": "bad request"}), 400


@api_bp.errorhandler(InventoryError)
def api_inventory_error(e: InventoryError):
    if e.status_code >= 500:
        logger.exception(f"Service error: {e.message}")
        return _internal_error(e)
    return jsonify(e.to_dict()), e.status_code


@api_bp.errorhandler(HTTPException)
def api_http_error(e: HTTPException):
    return jsonify({"error": e.description}), e.code


@api_bp.errorhandler(SQLAlchemyError)
def api_store_error(e: SQLAlchemyError):
    logger.exception("Store failure")
    return _internal_error(InternalError(str(e)))


@api_bp.errorhandler(Exception)
def api_server_error(e: Exception):
    logger.exception("Unhandled error")
    return _internal_error(e)


def _internal_error(e: Exception):
    body = {"error": "Internal Server Error"}
    if current_app.config["DEV_MODE"]:
        body["message"] = getattr(e, "message", None) or str(e)
    return jsonify(body), 500
