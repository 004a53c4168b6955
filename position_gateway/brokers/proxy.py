"""
BACKEND PROXY (THREAD-SAFE SHARED HANDLE)
=========================================

One backend handle is shared by every waitress worker thread.
The proxy serializes ALL backend calls behind a single RLock so adapter
implementations do not have to be thread-safe themselves.

Per-symbol ordering is NOT handled here (see SymbolGuard); this lock only
keeps two calls from touching the backend handle at the same time.
"""

import logging
from threading import RLock

from position_gateway.brokers.base import ExecutionBackend
from position_gateway.domain.models import CommandResult, OrderSide, PositionState

logger = logging.getLogger(__name__)


class BackendProxy(ExecutionBackend):

    def __init__(self, backend: ExecutionBackend):
        self._backend = backend
        self._api_lock = RLock()

    @property
    def backend(self) -> ExecutionBackend:
        return self._backend

    # -------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------
    def connect(self) -> None:
        with self._api_lock:
            self._backend.connect()

    def disconnect(self) -> None:
        with self._api_lock:
            self._backend.disconnect()

    @property
    def is_connected(self) -> bool:
        # lock-free read
        return self._backend.is_connected

    # -------------------------------------------------
    # DELEGATION
    # -------------------------------------------------
    def get_position(self, symbol: str, account: str) -> PositionState:
        with self._api_lock:
            return self._backend.get_position(symbol, account)

    def close_position(self, symbol: str, account: str) -> CommandResult:
        with self._api_lock:
            return self._backend.close_position(symbol, account)

    def place_market_order(
        self, symbol: str, account: str, side: OrderSide, qty: int
    ) -> CommandResult:
        with self._api_lock:
            return self._backend.place_market_order(symbol, account, side, qty)

    def place_protective_stop(
        self, symbol: str, account: str, side: OrderSide, qty: int, price: float
    ) -> CommandResult:
        with self._api_lock:
            return self._backend.place_protective_stop(symbol, account, side, qty, price)
