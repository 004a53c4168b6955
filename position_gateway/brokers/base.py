"""
EXECUTION BACKEND CONTRACT
==========================

Everything the reconciliation engine needs from an order-execution backend:

• get_position            -> PositionState  (raises BackendUnavailable / UnknownSymbol)
• close_position          -> CommandResult
• place_market_order      -> CommandResult
• place_protective_stop   -> CommandResult

Commands are synchronous and NOT idempotent: calling place_market_order twice
places two orders. Implementations may report a rejected command either as
CommandResult(success=False) or by raising a BackendError subclass.
"""

from abc import ABC, abstractmethod

from position_gateway.domain.models import CommandResult, OrderSide, PositionState


class BackendError(Exception):
    """Base class for adapter-level failures."""


class BackendUnavailable(BackendError):
    """Backend cannot be reached or is not connected."""


class UnknownSymbol(BackendError):
    """Backend does not know the requested instrument."""


class CommandRejected(BackendError):
    """Backend refused a command."""


class ExecutionBackend(ABC):

    # -------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------
    @abstractmethod
    def connect(self) -> None:
        ...

    @abstractmethod
    def disconnect(self) -> None:
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    # -------------------------------------------------
    # POSITION QUERY
    # -------------------------------------------------
    @abstractmethod
    def get_position(self, symbol: str, account: str) -> PositionState:
        ...

    # -------------------------------------------------
    # ORDER COMMANDS
    # -------------------------------------------------
    @abstractmethod
    def close_position(self, symbol: str, account: str) -> CommandResult:
        ...

    @abstractmethod
    def place_market_order(
        self, symbol: str, account: str, side: OrderSide, qty: int
    ) -> CommandResult:
        ...

    @abstractmethod
    def place_protective_stop(
        self, symbol: str, account: str, side: OrderSide, qty: int, price: float
    ) -> CommandResult:
        ...
