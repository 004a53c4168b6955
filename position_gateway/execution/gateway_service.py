#!/usr/bin/env python3
"""
GATEWAY SERVICE
===============

Owns the single backend handle and routes /set_target payloads:

    raw payload -> validate() -> ReconciliationEngine.reconcile() -> GatewayResponse

Status mapping:
    NoActionNeeded / Executed   -> 200
    RequestValidationError      -> 400 (specific message)
    Failed                      -> 500 (generic message, cause logged)
    Failed with partial actions -> 500 (distinct message + operator alert)

Backend lifecycle is explicit: start() connects, shutdown() disconnects.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from notifications.telegram import TelegramNotifier
from position_gateway.brokers.base import BackendError, ExecutionBackend
from position_gateway.domain.models import (
    Executed,
    Failed,
    NoActionNeeded,
    OrderIntent,
    ReconciliationResult,
)
from position_gateway.execution.reconciliation import ReconciliationEngine
from position_gateway.execution.symbol_guard import SymbolGuard
from position_gateway.execution.validation import RequestValidationError, validate
from position_gateway.utils.utils import create_response_dict, log_exception

logger = logging.getLogger(__name__)


@dataclass
class GatewayResponse:
    status_code: int
    success: bool
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return create_response_dict(self.success, self.message)


@dataclass
class GatewayStats:
    """Request counters since process start (not persisted)"""
    total_requests: int = 0
    rejected: int = 0
    no_action: int = 0
    executed: int = 0
    failed: int = 0
    partial: int = 0
    last_activity: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_requests': self.total_requests,
            'rejected': self.rejected,
            'no_action': self.no_action,
            'executed': self.executed,
            'failed': self.failed,
            'partial': self.partial,
            'last_activity': self.last_activity,
        }


class GatewayService:

    def __init__(
        self,
        config,
        backend: ExecutionBackend,
        *,
        engine: Optional[ReconciliationEngine] = None,
        telegram: Optional[TelegramNotifier] = None,
    ):
        self.config = config
        self.account: str = config.account
        self.backend = backend
        self.engine = engine or ReconciliationEngine(backend, SymbolGuard())

        self._stats = GatewayStats()
        self._stats_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()

        # -------------------------------------------------
        # 📢 TELEGRAM (OPTIONAL, NON-BLOCKING)
        # -------------------------------------------------
        self.telegram = telegram
        if self.telegram is None and config.is_telegram_enabled():
            telegram_config = config.get_telegram_config()
            self.telegram = TelegramNotifier(
                telegram_config["bot_token"], telegram_config["chat_id"]
            )
            logger.info("Telegram integration enabled")
        self.telegram_enabled = self.telegram is not None

    # -------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------
    def start(self) -> None:
        """Connect the backend. Raises BackendError on failure (fail fast)."""
        with self._lifecycle_lock:
            if self.backend.is_connected:
                return
            logger.info(f"🔌 Connecting backend for account {self.account}...")
            self.backend.connect()
            logger.info("✅ Backend connected")

    def shutdown(self) -> None:
        with self._lifecycle_lock:
            if not self.backend.is_connected:
                return
            logger.info("🔌 Disconnecting backend...")
            try:
                self.backend.disconnect()
            except BackendError as e:
                logger.error(f"❌ Error disconnecting backend: {e}")

    def is_healthy(self) -> bool:
        return self.backend.is_connected

    # -------------------------------------------------
    # /set_target
    # -------------------------------------------------
    def process_target(self, raw: Any) -> GatewayResponse:
        self._touch()

        try:
            intent = validate(raw)
        except RequestValidationError as e:
            logger.warning(f"Target rejected [{e.code.value}]: {e.message}")
            self._count("rejected")
            return GatewayResponse(400, False, e.message)

        logger.info(
            f"Order received: Symbol={intent.symbol}, Direction={intent.direction.value}, "
            f"Qty={intent.quantity}, StopLoss={intent.stop_loss}"
        )

        try:
            result = self.engine.reconcile(intent, self.account)
        except Exception as e:
            log_exception("process_target", e)
            self._count("failed")
            return GatewayResponse(500, False, "Internal server error")

        return self._to_response(intent, result)

    def _to_response(self, intent: OrderIntent, result: ReconciliationResult) -> GatewayResponse:
        if isinstance(result, NoActionNeeded):
            self._count("no_action")
            return GatewayResponse(200, True, result.summary(intent.symbol))

        if isinstance(result, Executed):
            self._count("executed")
            return GatewayResponse(200, True, result.summary(intent.symbol, intent.direction))

        if isinstance(result, Failed):
            self._count("failed")
            logger.error(
                f"Reconciliation failed | {intent.symbol} | step={result.step.value} | "
                f"cause={result.reason}"
            )

            if result.partial:
                self._count("partial")
                completed = [s.value for s in result.actions]
                self._notify_partial(intent, result)
                return GatewayResponse(
                    500,
                    False,
                    f"Partial execution on {intent.symbol}: completed "
                    f"{', '.join(completed)}; {result.step.value} failed. "
                    f"Manual reconciliation required.",
                )

            return GatewayResponse(
                500, False, f"Backend error during {result.step.value} for {intent.symbol}"
            )

        raise TypeError(f"Unknown reconciliation result: {result!r}")

    # -------------------------------------------------
    # NOTIFICATIONS
    # -------------------------------------------------
    def _notify_partial(self, intent: OrderIntent, result: Failed) -> None:
        if not (self.telegram_enabled and self.telegram):
            return
        sent = self.telegram.send_partial_execution(
            symbol=intent.symbol,
            account=self.account,
            completed=[s.value for s in result.actions],
            failed_step=result.step.value,
            reason=result.reason,
        )
        if not sent:
            logger.warning("Failed to send partial execution alert")

    # -------------------------------------------------
    # STATS
    # -------------------------------------------------
    def _touch(self) -> None:
        with self._stats_lock:
            self._stats.total_requests += 1
            self._stats.last_activity = datetime.now().isoformat()

    def _count(self, field_name: str) -> None:
        with self._stats_lock:
            setattr(self._stats, field_name, getattr(self._stats, field_name) + 1)

    def get_stats(self) -> GatewayStats:
        with self._stats_lock:
            return GatewayStats(**self._stats.to_dict())
