#!/usr/bin/env python3
"""
EXECUTION GATEWAY HTTP SERVICE
==============================

Responsibilities:
- /set_target ingestion (target position requests)
- Liveness & health endpoints

STRICT RULES:
- NO trading decisions here (GatewayService owns them)
- NO HTML rendering
- Response body is always {success, message} for /set_target
"""

import logging
from datetime import datetime
from flask import Flask, request, jsonify

from position_gateway.execution.gateway_service import GatewayService
from position_gateway.utils.utils import (
    parse_json_safely,
    create_response_dict,
    log_exception,
)

logger = logging.getLogger(__name__)

LIVENESS_TEXT = "Position gateway is running."


class ExecutionApp:
    """
    Execution-only Flask application.
    """

    def __init__(self, gateway: GatewayService):
        self.gateway = gateway
        self.app = Flask(__name__)
        self._register_routes()

    # ------------------------------------------------------------------
    # ROUTES
    # ------------------------------------------------------------------

    def _register_routes(self):

        # -------------------------------
        # Target position
        # -------------------------------
        @self.app.route("/set_target", methods=["POST"])
        def set_target():
            try:
                payload = request.get_data(as_text=True)

                data, parse_error = parse_json_safely(payload)
                if parse_error:
                    return jsonify(create_response_dict(False, "Invalid JSON format")), 400

                if not isinstance(data, dict):
                    return jsonify(
                        create_response_dict(False, "Failed to parse order request")
                    ), 400

                result = self.gateway.process_target(data)
                return jsonify(result.to_dict()), result.status_code

            except Exception as e:
                log_exception("set_target", e)
                return jsonify(create_response_dict(False, "Internal server error")), 500

        # -------------------------------
        # Liveness
        # -------------------------------
        @self.app.route("/", methods=["GET"])
        def index():
            return LIVENESS_TEXT, 200, {"Content-Type": "text/plain; charset=utf-8"}

        # -------------------------------
        # Health Check
        # -------------------------------
        @self.app.route("/health", methods=["GET"])
        def health():
            try:
                connected = self.gateway.is_healthy()
                stats = self.gateway.get_stats()

                return jsonify(
                    {
                        "status": "healthy" if connected else "unhealthy",
                        "backend_connected": connected,
                        "account": self.gateway.account,
                        **stats.to_dict(),
                        "timestamp": datetime.now().isoformat(),
                    }
                ), 200 if connected else 503

            except Exception as e:
                log_exception("health", e)
                return jsonify({"status": "unhealthy", "message": str(e)}), 500

    def get_app(self):
        return self.app
