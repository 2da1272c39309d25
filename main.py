#!/usr/bin/env python3
"""
SPOOLDB - Electronics inventory with lot splitting
==================================================

Single-command run:  python main.py

See config.py for all environment-variable tunables.
"""

import logging
from datetime import datetime, timezone

from flask import Flask, jsonify

import config
from api import STORE_KEY, api_bp
from db import Store


def create_app(overrides: dict | None = None) -> Flask:
    """Flask application factory.  *overrides* replace config.py values."""

    app = Flask(__name__)
    app.config.update(
        DB_URL=config.DB_URL,
        STORE_TIMEOUT=config.STORE_TIMEOUT,
        DEV_MODE=config.DEV_MODE,
        JWT_SECRET=config.JWT_SECRET,
        JWT_ALGORITHM=config.JWT_ALGORITHM,
        ADMIN_ROLE=config.ADMIN_ROLE,
        API_MAX_LIMIT=config.API_MAX_LIMIT,
        API_DEFAULT_LIMIT=config.API_DEFAULT_LIMIT,
    )
    if overrides:
        app.config.update(overrides)

    # ── Open the store ──────────────────────────────────────────────
    store = Store(app.config["DB_URL"], timeout=app.config["STORE_TIMEOUT"]).open()
    app.extensions[STORE_KEY] = store

    # ── Register blueprints ─────────────────────────────────────────
    app.register_blueprint(api_bp)

    @app.route("/")
    def health():
        return jsonify({
            "status": "ok",
            "message": "Electronics Inventory Management API",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    # ── Error handlers ──────────────────────────────────────────────
    @app.errorhandler(404)
    def _404(e):
        return jsonify({"error": "Not Found"}), 404

    @app.errorhandler(405)
    def _405(e):
        return jsonify({"error": "Method Not Allowed"}), 405

    @app.errorhandler(500)
    def _500(e):
        return jsonify({"error": "Internal Server Error"}), 500

    return app


def main():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    print("=" * 56)
    print("  SPOOLDB - Electronics Inventory")
    print("=" * 56)

    app = create_app()
    store = app.extensions[STORE_KEY]

    print(f"  Database: {config.DB_URL}")
    print(f"  Environment: {'Development' if config.DEV_MODE else 'Production'}")
    print(f"\n  http://{config.HOST}:{config.PORT}")
    print("=" * 56)

    try:
        app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG)
    finally:
        store.close()


if __name__ == "__main__":
    main()
