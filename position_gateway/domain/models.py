#!/usr/bin/env python3
"""
Data Models Module
Domain types shared by the validator, the reconciliation engine and the backends.

OrderIntent        : validated, canonical target-position request
PositionState      : FLAT / LONG / SHORT snapshot from the backend
ReconciliationPlan : ordered [FLATTEN?, ENTER, STOP?] for one request
ReconciliationResult
    NoActionNeeded : already positioned as requested
    Executed       : every planned action was acknowledged
    Failed         : a step failed; actions that already ran are listed
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


class Direction(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class PositionState(str, Enum):
    FLAT = "FLAT"
    LONG = "LONG"
    SHORT = "SHORT"

    @classmethod
    def from_net_quantity(cls, net_qty: int) -> "PositionState":
        """0 => FLAT, >0 => LONG, <0 => SHORT"""
        if net_qty > 0:
            return cls.LONG
        if net_qty < 0:
            return cls.SHORT
        return cls.FLAT


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"

    def opposite(self) -> "OrderSide":
        return OrderSide.SELL if self is OrderSide.BUY else OrderSide.BUY


class Step(str, Enum):
    QUERY = "query"
    FLATTEN = "flatten"
    ENTER = "enter"
    STOP = "stop"


# =========================
# ORDER INTENT
# =========================

@dataclass(frozen=True)
class OrderIntent:
    """
    Single immutable target-position request.

    Built only by position_gateway.execution.validation.validate().
    """

    symbol: str
    direction: Direction
    quantity: int
    stop_loss: Optional[float] = None

    @property
    def entry_side(self) -> OrderSide:
        # "LONG" => "BUY"  |  "SHORT" => "SELL"
        return OrderSide.BUY if self.direction is Direction.LONG else OrderSide.SELL

    @property
    def requested_state(self) -> PositionState:
        return PositionState(self.direction.value)


# =========================
# PLAN
# =========================

@dataclass(frozen=True)
class PlannedAction:
    step: Step
    side: Optional[OrderSide] = None
    quantity: int = 0
    stop_price: Optional[float] = None


@dataclass(frozen=True)
class ReconciliationPlan:
    symbol: str
    account: str
    current: PositionState
    actions: Tuple[PlannedAction, ...] = ()

    @property
    def steps(self) -> Tuple[Step, ...]:
        return tuple(a.step for a in self.actions)


# =========================
# BACKEND COMMAND RESULT
# =========================

@dataclass
class CommandResult:
    """Ack / Failure for a single backend command"""
    success: bool
    message: str = ''
    order_id: str = ''

    @classmethod
    def ack(cls, order_id: str = '', message: str = '') -> 'CommandResult':
        return cls(success=True, order_id=order_id, message=message)

    @classmethod
    def failure(cls, message: str) -> 'CommandResult':
        return cls(success=False, message=message)


# =========================
# RECONCILIATION RESULT
# =========================

@dataclass(frozen=True)
class NoActionNeeded:
    current: PositionState

    def summary(self, symbol: str) -> str:
        return f"No trade needed. Already {self.current.value} on {symbol}."


@dataclass(frozen=True)
class Executed:
    actions: Tuple[Step, ...]
    flattened: Optional[PositionState] = None

    def summary(self, symbol: str, direction: Direction) -> str:
        if self.flattened is not None:
            return (
                f"Flattened {self.flattened.value} and placed new "
                f"{direction.value} order for {symbol}"
            )
        return f"Placed new {direction.value} order for {symbol}"


@dataclass(frozen=True)
class Failed:
    step: Step
    reason: str
    actions: Tuple[Step, ...] = field(default_factory=tuple)

    @property
    def partial(self) -> bool:
        """True when the backend state was already changed before the failure."""
        return bool(self.actions)


ReconciliationResult = Union[NoActionNeeded, Executed, Failed]
