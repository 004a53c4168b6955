"""
NINJATRADER ATI CLIENT (ORDER INSTRUCTION FILES)
================================================

Talks to NinjaTrader's Automated Trading Interface through its file drop:

    <NT_DATA_DIR>/incoming/oif*.txt     <- one command per file, consumed by NT
    <NT_DATA_DIR>/outgoing/<position file>  -> MarketPosition;Quantity;AveragePrice

Command layout (13 fields, ';' separated):

    COMMAND;ACCOUNT;INSTRUMENT;ACTION;QTY;ORDER TYPE;LIMIT PRICE;STOP PRICE;
    TIF;OCO ID;ORDER ID;STRATEGY;STRATEGY ID

An acknowledged command means "file accepted by the drop folder". Fills are
NOT confirmed here; the position file is the only source of truth.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import List

from position_gateway.brokers.base import (
    BackendError,
    BackendUnavailable,
    CommandRejected,
    ExecutionBackend,
    UnknownSymbol,
)
from position_gateway.domain.models import CommandResult, OrderSide, PositionState

logger = logging.getLogger(__name__)

DEFAULT_POSITION_FILE_TEMPLATE = "{symbol}_{account}_position.txt"

# never allowed inside an instruction field or a position file name
RESERVED_CHARS = frozenset(";\r\n\x00")


def has_reserved_chars(value: str) -> bool:
    return any(c in RESERVED_CHARS for c in value)


class NinjaTraderOIFClient(ExecutionBackend):

    FIELD_COUNT = 13

    def __init__(
        self,
        data_dir: Path,
        *,
        position_file_template: str = DEFAULT_POSITION_FILE_TEMPLATE,
        time_in_force: str = "DAY",
        strategy_tag: str = "AlgoTrade",
    ):
        self.data_dir = Path(data_dir)
        self.incoming_dir = self.data_dir / "incoming"
        self.outgoing_dir = self.data_dir / "outgoing"
        self.position_file_template = position_file_template
        self.time_in_force = time_in_force
        self.strategy_tag = strategy_tag
        self._connected = False

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    def connect(self) -> None:
        for folder in (self.incoming_dir, self.outgoing_dir):
            if not folder.is_dir():
                raise BackendUnavailable(f"ATI folder missing: {folder}")

        if not os.access(self.incoming_dir, os.W_OK):
            raise BackendUnavailable(f"ATI incoming folder not writable: {self.incoming_dir}")

        self._connected = True
        logger.info(f"✅ NinjaTrader ATI connected | data_dir={self.data_dir}")

    def disconnect(self) -> None:
        self._connected = False
        logger.info("NinjaTrader ATI disconnected")

    @property
    def is_connected(self) -> bool:
        return self._connected

    # ------------------------------------------------------------------
    # POSITION QUERY
    # ------------------------------------------------------------------

    def position_file(self, symbol: str, account: str) -> Path:
        """
        Raises:
            UnknownSymbol: If the name resolves outside the outgoing folder
        """
        path = self.outgoing_dir / self.position_file_template.format(
            symbol=symbol, account=account
        )
        if path.resolve().parent != self.outgoing_dir.resolve():
            raise UnknownSymbol(f"Invalid symbol for position file: {symbol!r}")
        return path

    def get_position(self, symbol: str, account: str) -> PositionState:
        self._ensure_connected()

        if has_reserved_chars(symbol) or has_reserved_chars(account):
            raise UnknownSymbol(f"Invalid symbol: {symbol!r}")

        if not self.outgoing_dir.is_dir():
            raise BackendUnavailable(f"ATI outgoing folder missing: {self.outgoing_dir}")

        path = self.position_file(symbol, account)
        if not path.exists():
            # NT only writes a position file once the instrument has traded
            return PositionState.FLAT

        try:
            raw = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise BackendUnavailable(f"Cannot read position file {path.name}: {exc}")

        return self._parse_position(raw, path.name)

    @staticmethod
    def _parse_position(raw: str, source: str) -> PositionState:
        line = raw.splitlines()[0] if raw else ""
        parts = [p.strip() for p in line.split(";")]

        try:
            state = PositionState(parts[0].upper())
            qty = int(float(parts[1])) if len(parts) > 1 and parts[1] else None
        except ValueError:
            raise BackendError(f"Malformed position file {source}: {line!r}")

        if qty == 0:
            return PositionState.FLAT
        return state

    # ------------------------------------------------------------------
    # ORDER COMMANDS
    # ------------------------------------------------------------------

    def close_position(self, symbol: str, account: str) -> CommandResult:
        return self._submit(["CLOSEPOSITION", account, symbol])

    def place_market_order(
        self, symbol: str, account: str, side: OrderSide, qty: int
    ) -> CommandResult:
        return self._submit([
            "PLACE",
            account,
            symbol,
            side.value,
            str(int(qty)),
            "MARKET",
            "0",
            "0",
            self.time_in_force,
            "",
            "",
            self.strategy_tag,
        ])

    def place_protective_stop(
        self, symbol: str, account: str, side: OrderSide, qty: int, price: float
    ) -> CommandResult:
        return self._submit([
            "PLACE",
            account,
            symbol,
            side.value,        # opposite side of the entry
            str(int(qty)),
            "STOPMARKET",
            "0",               # limit price (unused)
            str(float(price)), # stop price
            self.time_in_force,
            "",
            "",
            self.strategy_tag,
        ])

    # ------------------------------------------------------------------
    # INTERNAL
    # ------------------------------------------------------------------

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise BackendUnavailable("NinjaTrader ATI not connected")

    @classmethod
    def format_command(cls, fields: List[str]) -> str:
        padded = list(fields) + [""] * (cls.FIELD_COUNT - len(fields))
        return ";".join(padded[:cls.FIELD_COUNT])

    def _submit(self, fields: List[str]) -> CommandResult:
        self._ensure_connected()

        bad = [f for f in fields if has_reserved_chars(f)]
        if bad:
            raise CommandRejected(f"ATI field contains a reserved character: {bad[0]!r}")

        line = self.format_command(fields)
        name = f"oif{uuid.uuid4().hex}.txt"
        target = self.incoming_dir / name
        staging = self.incoming_dir / f".{name}.tmp"

        try:
            staging.write_text(line + "\n", encoding="utf-8")
            # NT picks up the file as soon as it appears; rename is atomic
            os.replace(staging, target)
        except OSError as exc:
            logger.error(f"ATI command write failed | {line} | {exc}")
            staging.unlink(missing_ok=True)
            return CommandResult.failure(f"ATI write failed: {exc}")

        logger.info(f"📤 ATI {name} | {line}")
        return CommandResult.ack(order_id=name)
