"""
REQUEST VALIDATION
==================

Turns a raw /set_target payload into a canonical OrderIntent.

Rules run in order; the FIRST failure rejects the request:

    1. symbol present and non-empty          -> MISSING_SYMBOL
    2. target direction present              -> MISSING_DIRECTION
    3. direction is LONG / SHORT             -> INVALID_DIRECTION
    4. quantity is a positive integer        -> INVALID_QUANTITY
    5. stop loss (if given) finite and >= 0  -> INVALID_STOP_LOSS

The target descriptor arrives in one of two shapes:

    "target": ["SHORT", 2]                        (array, optional 3rd = stop)
    "target": {"direction": "SHORT", "qty": 2, "sl": 15000.0}

Both are normalized here; nothing past this module sees the raw shape.
Extra fields (bars, indicators, ibkr_contract, ...) are ignored.
"""

import math
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from position_gateway.domain.models import Direction, OrderIntent


class ValidationCode(str, Enum):
    MISSING_SYMBOL = "MissingSymbol"
    MISSING_DIRECTION = "MissingDirection"
    INVALID_DIRECTION = "InvalidDirection"
    INVALID_QUANTITY = "InvalidQuantity"
    INVALID_STOP_LOSS = "InvalidStopLoss"


class RequestValidationError(ValueError):
    """Caller error. Never retried, backend never contacted."""

    def __init__(self, code: ValidationCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


_QTY_KEYS = ("qty", "quantity")
_STOP_KEYS = ("sl", "stop_loss", "stoploss")

_MISSING = object()


def validate(raw: Mapping[str, Any]) -> OrderIntent:
    """
    Hard validation layer.
    Returns an OrderIntent or raises RequestValidationError.
    """
    payload = _lower_keys(raw)

    # -----------------------
    # 1. Symbol
    # -----------------------
    symbol = payload.get("symbol")
    if not isinstance(symbol, str) or not symbol.strip():
        raise RequestValidationError(ValidationCode.MISSING_SYMBOL, "Symbol is required")
    symbol = symbol.strip()

    direction_raw, qty_raw, stop_raw = _unpack_target(payload.get("target"))

    # -----------------------
    # 2-3. Direction
    # -----------------------
    if direction_raw is None or (isinstance(direction_raw, str) and not direction_raw.strip()):
        raise RequestValidationError(
            ValidationCode.MISSING_DIRECTION, "Target direction is required"
        )

    direction_str = str(direction_raw).strip().upper()
    if direction_str not in (Direction.LONG.value, Direction.SHORT.value):
        raise RequestValidationError(
            ValidationCode.INVALID_DIRECTION, "Target direction must be LONG or SHORT"
        )

    # -----------------------
    # 4. Quantity
    # -----------------------
    quantity = parse_quantity(qty_raw)
    if quantity is None:
        raise RequestValidationError(
            ValidationCode.INVALID_QUANTITY, "Quantity must be a positive integer"
        )

    # -----------------------
    # 5. Stop loss (optional)
    # -----------------------
    stop_loss = None
    if stop_raw is not _MISSING and stop_raw is not None:
        stop_loss = parse_price(stop_raw)
        if stop_loss is None:
            raise RequestValidationError(
                ValidationCode.INVALID_STOP_LOSS,
                "Stop loss must be a finite, non-negative price",
            )

    return OrderIntent(
        symbol=symbol,
        direction=Direction(direction_str),
        quantity=quantity,
        stop_loss=stop_loss,
    )


# ----------------------------------------------------------------------
# TARGET DESCRIPTOR
# ----------------------------------------------------------------------

def _unpack_target(target: Any) -> Tuple[Any, Any, Any]:
    """(direction, qty, stop) from either target shape; stop is _MISSING when absent."""
    if isinstance(target, (list, tuple)):
        direction = target[0] if len(target) > 0 else None
        qty = target[1] if len(target) > 1 else None
        stop = target[2] if len(target) > 2 else _MISSING
        return direction, qty, stop

    if isinstance(target, Mapping):
        fields = _lower_keys(target)
        return (
            fields.get("direction"),
            _first_present(fields, _QTY_KEYS, None),
            _first_present(fields, _STOP_KEYS, _MISSING),
        )

    return None, None, _MISSING


def _first_present(fields: Dict[str, Any], keys: Tuple[str, ...], default: Any) -> Any:
    for key in keys:
        if key in fields:
            return fields[key]
    return default


def _lower_keys(data: Any) -> Dict[str, Any]:
    if not isinstance(data, Mapping):
        return {}
    return {str(k).lower(): v for k, v in data.items()}


# ----------------------------------------------------------------------
# SCALAR PARSING
# ----------------------------------------------------------------------

def parse_quantity(value: Any) -> Optional[int]:
    """Positive integer from int, integral float or numeric string; else None."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        qty = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        qty = int(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            qty = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return None
            if not math.isfinite(number) or not number.is_integer():
                return None
            qty = int(number)
    else:
        return None

    return qty if qty > 0 else None


def parse_price(value: Any) -> Optional[float]:
    """Finite, non-negative float from a number or numeric string; else None."""
    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        price = float(value)
    elif isinstance(value, str):
        try:
            price = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(price) or price < 0:
        return None
    return price
