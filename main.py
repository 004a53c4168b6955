#!/usr/bin/env python3
"""
POSITION GATEWAY ENTRY POINT
============================

Purpose:
- Run the /set_target HTTP service (Flask + Waitress)
- Own the single execution backend handle (connect at startup,
  disconnect at shutdown)
- Expose liveness & health endpoints

STRICT RULES:
- SINGLE GatewayService instance
- NO trading logic here
- Fail fast if the backend cannot be connected
"""

import sys
import os
import signal
import logging
import argparse
from pathlib import Path
from typing import Optional

from waitress import serve

from position_gateway.core.config import Config
from position_gateway.brokers.backend_factory import BackendFactory
from position_gateway.execution.gateway_service import GatewayService
from position_gateway.api.http.execution_app import ExecutionApp
from position_gateway.logging.logger_config import setup_application_logging, get_component_logger
from position_gateway.utils.utils import log_exception

# ---------------------------------------------------------------------
# GLOBALS (FOR SIGNAL HANDLING ONLY)
# ---------------------------------------------------------------------
gateway_instance: Optional[GatewayService] = None
logger: Optional[logging.Logger] = None


# ---------------------------------------------------------------------
# GRACEFUL SHUTDOWN HANDLER (SYSTEMD SAFE)
# ---------------------------------------------------------------------
def signal_handler(signum, frame):
    if logger:
        logger.warning(f"🛑 Received shutdown signal: {signum}")

    # In-flight commands already sent to the backend are NOT retracted
    if gateway_instance:
        gateway_instance.shutdown()

    if logger:
        logger.info("✅ Graceful shutdown complete")

    sys.exit(0)


# ---------------------------------------------------------------------
# MAIN
# ---------------------------------------------------------------------
def main():
    global gateway_instance, logger

    parser = argparse.ArgumentParser(description="Position Target Gateway")
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Path to .env file (default: config_env/primary.env)"
    )
    args = parser.parse_args()

    env_path = None
    if args.env:
        env_path = Path(args.env)
        if not env_path.is_absolute():
            env_path = Path.cwd() / env_path

    try:
        # -------------------------------------------------
        # CONFIG LOADING (FIRST)
        # -------------------------------------------------
        config = Config(env_path=env_path)

        # -------------------------------------------------
        # LOGGING SETUP
        # -------------------------------------------------
        setup_application_logging(
            log_dir=config.log_dir,
            level=config.log_level,
        )
        logger = get_component_logger('gateway')

        logger.info("=" * 70)
        logger.info("🚀 STARTING POSITION GATEWAY")
        logger.info("=" * 70)
        logger.info(f"PID: {os.getpid()}")
        logger.info(f"Python: {sys.version}")

        server_cfg = config.get_server_config()

        # -------------------------------------------------
        # BACKEND + SERVICE (SINGLE INSTANCE)
        # -------------------------------------------------
        backend = BackendFactory.create(config.get_backend_config())
        gateway_instance = GatewayService(config, backend)

        if gateway_instance.telegram_enabled:
            gateway_instance.telegram.send_startup_message(
                host=server_cfg["host"],
                port=server_cfg["port"],
                account=config.account,
                backend=config.backend,
            )

        gateway_instance.start()

        # -------------------------------------------------
        # SIGNAL HANDLERS (MUST BE IN MAIN THREAD)
        # -------------------------------------------------
        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)
        logger.info("Signal handlers installed")

        # -------------------------------------------------
        # HTTP SERVICE (FLASK + WAITRESS)
        # -------------------------------------------------
        flask_app = ExecutionApp(gateway_instance).get_app()

        logger.info("Gateway configuration:")
        logger.info(f"  Host       : {server_cfg['host']}")
        logger.info(f"  Port       : {server_cfg['port']}")
        logger.info(f"  Threads    : {server_cfg['threads']}")
        logger.info(f"  Account    : {config.account}")
        logger.info(f"  Backend    : {config.backend}")
        logger.info(f"  Telegram   : {'ENABLED' if gateway_instance.telegram_enabled else 'DISABLED'}")

        if gateway_instance.telegram_enabled:
            gateway_instance.telegram.send_ready_message(
                host=server_cfg["host"],
                port=server_cfg["port"],
            )

        logger.info("=" * 70)
        logger.info("✅ GATEWAY READY - ACCEPTING TARGETS")
        logger.info("=" * 70)

        serve(
            flask_app,
            host=server_cfg["host"],
            port=server_cfg["port"],
            threads=server_cfg["threads"],
            connection_limit=100,
            channel_timeout=120,
            max_request_body_size=1048576,  # 1 MB (bars/indicators ride along)
            expose_tracebacks=False,
            ident="Position-Gateway/1.0",
        )

    except KeyboardInterrupt:
        if logger:
            logger.info("Received keyboard interrupt")

    except Exception as exc:
        if logger:
            log_exception("gateway.main", exc)
            logger.critical(f"FATAL ERROR: {exc}", exc_info=True)
        else:
            print(f"CRITICAL ERROR: {exc}")

        if gateway_instance and gateway_instance.telegram_enabled:
            gateway_instance.telegram.send_error_message("🚨 POSITION GATEWAY CRASHED", str(exc))

        sys.exit(1)

    finally:
        if gateway_instance:
            gateway_instance.shutdown()
        if logger:
            logger.info("🏁 Position gateway stopped")


# ---------------------------------------------------------------------
# ENTRY POINT
# ---------------------------------------------------------------------
if __name__ == "__main__":
    main()
