"""
HTTP Service
============
Flask-based HTTP API in front of the sign-off pipeline.

Endpoints:
    GET    /               → Plain-text health probe
    GET    /api/health     → JSON health check
    POST   /api/signoff    → Render and e-mail a sign-off submission
"""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import BadRequest, RequestEntityTooLarge

from . import __version__
from .config_loader import config
from .errors import MalformedPayload, SignoffError
from .pipeline import SignoffPipeline, create_pipeline

logger = logging.getLogger(__name__)


def create_app(pipeline: Optional[SignoffPipeline] = None, dry_run: bool = False) -> Flask:
    """
    Create and configure the Flask app.

    Args:
        pipeline: Pipeline to serve (built from config when None)
        dry_run: Passed to create_pipeline when building one

    Returns:
        Flask application
    """
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.get('server.max_content_length', 20 * 1024 * 1024)

    # Allow the frontend origin (set FRONTEND_ORIGIN in the deployment environment)
    cors_origin = config.get_env(
        'server.cors_origin_env',
        config.get('server.cors_origin_default', '*')
    )
    CORS(app, origins=cors_origin)

    pipeline = pipeline or create_pipeline(dry_run=dry_run)
    app.extensions["signoff_pipeline"] = pipeline

    # ─── Health ──────────────────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        """Health probe for the hosting platform."""
        return "OSD backend is up"

    @app.route("/api/health", methods=["GET"])
    def health():
        """Health check endpoint."""
        return jsonify({
            "status": "healthy",
            "service": "osd-signoff",
            "version": __version__,
            "transport": getattr(pipeline.mailer, "name", "unknown"),
        })

    # ─── Sign-off ────────────────────────────────────────────────────────────

    @app.route("/api/signoff", methods=["POST"])
    def signoff():
        """
        Receive a sign-off form, render the PDF and e-mail it.

        Returns {"ok": true, "id", "message"} on success,
        {"ok": false, "error"} otherwise.
        """
        try:
            payload = request.get_json(force=True)
        except BadRequest:
            payload = None

        try:
            if payload is None:
                raise MalformedPayload("Request body must be a JSON object")

            result = pipeline.process(payload)

        except SignoffError as e:
            if e.status_code >= 500:
                logger.error(f"Sign-off failed: {e}")
            else:
                logger.info(f"Sign-off rejected: {e}")
            return jsonify({"ok": False, "error": e.public_message}), e.status_code

        except Exception as e:
            logger.error(f"Unexpected sign-off error: {e}", exc_info=True)
            return jsonify({"ok": False, "error": "Server error"}), 500

        return jsonify({"ok": True, "id": result.id, "message": result.message})

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(e):
        limit_mb = app.config["MAX_CONTENT_LENGTH"] / (1024 * 1024)
        return jsonify({"ok": False, "error": f"Request exceeds {limit_mb:.0f}MB limit"}), 413

    return app


def run_server(
    host: Optional[str] = None,
    port: Optional[int] = None,
    debug: bool = False,
    dry_run: bool = False
):
    """Start the HTTP server ($PORT wins over the configured port)."""
    host = host or config.get('server.host', '0.0.0.0')
    port = port or int(config.get_env('server.port_env') or config.get('server.port', 8080))

    app = create_app(dry_run=dry_run)
    logger.info(f"Server running on port {port}")
    app.run(host=host, port=port, debug=debug)
