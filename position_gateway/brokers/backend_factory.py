#!/usr/bin/env python3
"""
Backend Factory
===============

Selects and builds the execution backend from config (latch pattern):

- "ninjatrader" -> NinjaTraderOIFClient (ATI order instruction files)
- "paper"       -> PaperBackend (in-memory dry run)

The returned backend is always wrapped in BackendProxy so the single
handle can be shared by every worker thread. It is NOT connected yet;
GatewayService.start() owns the connect call.
"""

import logging
from typing import Any, Dict

from position_gateway.brokers.base import ExecutionBackend
from position_gateway.brokers.proxy import BackendProxy

logger = logging.getLogger(__name__)


class BackendFactory:

    @staticmethod
    def create(backend_config: Dict[str, Any]) -> BackendProxy:
        """
        Args:
            backend_config: Config.get_backend_config()

        Raises:
            ValueError: If the backend name is unknown
        """
        name = backend_config.get("backend")

        if name == "ninjatrader":
            from position_gateway.brokers.ninjatrader.oif_client import NinjaTraderOIFClient

            logger.info(f"🔄 Selecting: NINJATRADER ATI at {backend_config['nt_data_dir']}")
            backend: ExecutionBackend = NinjaTraderOIFClient(
                backend_config["nt_data_dir"],
                position_file_template=backend_config["position_file_template"],
                time_in_force=backend_config["time_in_force"],
                strategy_tag=backend_config["strategy_tag"],
            )

        elif name == "paper":
            from position_gateway.brokers.paper.client import PaperBackend

            logger.info("🔄 Selecting: PAPER backend")
            backend = PaperBackend()

        else:
            raise ValueError(f"Unknown backend: {name}")

        return BackendProxy(backend)
