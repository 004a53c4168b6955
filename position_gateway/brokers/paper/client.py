"""
PAPER BACKEND (IN-MEMORY)
=========================

Dry-run execution backend:
• Net signed position per (symbol, account)
• Market orders fill immediately at quantity
• Protective stops are recorded as working orders, never triggered
• CLOSEPOSITION flattens and cancels working stops for the symbol
• Non-positive quantities are rejected (CommandRejected)

Selected with BACKEND=paper. Nothing is persisted across restarts.
"""

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Dict, Iterable, List, Optional, Tuple

from position_gateway.brokers.base import (
    BackendUnavailable,
    CommandRejected,
    ExecutionBackend,
    UnknownSymbol,
)
from position_gateway.domain.models import CommandResult, OrderSide, PositionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaperOrder:
    order_id: str
    symbol: str
    account: str
    side: OrderSide
    qty: int
    order_type: str            # MARKET / STOP
    stop_price: Optional[float] = None


class PaperBackend(ExecutionBackend):

    def __init__(self, known_symbols: Optional[Iterable[str]] = None):
        self._lock = Lock()
        self._connected = False
        self._known_symbols = (
            {s.upper() for s in known_symbols} if known_symbols else None
        )
        self._positions: Dict[Tuple[str, str], int] = {}
        self._working_stops: List[PaperOrder] = []
        self._orders: List[PaperOrder] = []

    # -------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------
    def connect(self) -> None:
        self._connected = True
        logger.info("📄 Paper backend connected")

    def disconnect(self) -> None:
        self._connected = False
        logger.info("Paper backend disconnected")

    @property
    def is_connected(self) -> bool:
        return self._connected

    # -------------------------------------------------
    # INSPECTION
    # -------------------------------------------------
    def net_quantity(self, symbol: str, account: str) -> int:
        with self._lock:
            return self._positions.get((symbol, account), 0)

    def set_net_quantity(self, symbol: str, account: str, qty: int) -> None:
        with self._lock:
            self._positions[(symbol, account)] = qty

    @property
    def orders(self) -> List[PaperOrder]:
        with self._lock:
            return list(self._orders)

    @property
    def working_stops(self) -> List[PaperOrder]:
        with self._lock:
            return list(self._working_stops)

    # -------------------------------------------------
    # EXECUTION BACKEND
    # -------------------------------------------------
    def get_position(self, symbol: str, account: str) -> PositionState:
        self._check(symbol)
        return PositionState.from_net_quantity(self.net_quantity(symbol, account))

    def close_position(self, symbol: str, account: str) -> CommandResult:
        self._check(symbol)
        with self._lock:
            self._positions[(symbol, account)] = 0
            self._working_stops = [
                o for o in self._working_stops
                if not (o.symbol == symbol and o.account == account)
            ]
        logger.info(f"PAPER CLOSEPOSITION | {account} {symbol}")
        return CommandResult.ack(message="position closed")

    def place_market_order(
        self, symbol: str, account: str, side: OrderSide, qty: int
    ) -> CommandResult:
        self._check(symbol)
        self._check_qty(qty)
        signed = qty if side is OrderSide.BUY else -qty
        with self._lock:
            order = self._record(symbol, account, side, qty, "MARKET")
            key = (symbol, account)
            self._positions[key] = self._positions.get(key, 0) + signed
        logger.info(f"PAPER PLACE | {account} {side.value} {qty} {symbol} MARKET")
        return CommandResult.ack(order_id=order.order_id)

    def place_protective_stop(
        self, symbol: str, account: str, side: OrderSide, qty: int, price: float
    ) -> CommandResult:
        self._check(symbol)
        self._check_qty(qty)
        with self._lock:
            order = self._record(symbol, account, side, qty, "STOP", price)
            self._working_stops.append(order)
        logger.info(
            f"PAPER PLACE | {account} {side.value} {qty} {symbol} STOP @ {price}"
        )
        return CommandResult.ack(order_id=order.order_id)

    # -------------------------------------------------
    # INTERNAL
    # -------------------------------------------------
    def _check(self, symbol: str) -> None:
        if not self._connected:
            raise BackendUnavailable("Paper backend is not connected")
        if self._known_symbols is not None and symbol.upper() not in self._known_symbols:
            raise UnknownSymbol(f"Unknown symbol: {symbol}")

    @staticmethod
    def _check_qty(qty: int) -> None:
        if qty <= 0:
            raise CommandRejected(f"Order quantity must be positive, got {qty}")

    def _record(
        self,
        symbol: str,
        account: str,
        side: OrderSide,
        qty: int,
        order_type: str,
        stop_price: Optional[float] = None,
    ) -> PaperOrder:
        order = PaperOrder(
            order_id=f"PAPER{len(self._orders) + 1}",
            symbol=symbol,
            account=account,
            side=side,
            qty=qty,
            order_type=order_type,
            stop_price=stop_price,
        )
        self._orders.append(order)
        return order
