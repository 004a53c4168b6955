"""
REQUEST VALIDATION TEST SUITE
=============================

Tests for:
- Both target descriptor shapes (array / object)
- Rule order and specific error codes
- Quantity and stop-loss parsing
- Ignored extra fields
"""

import pytest

from position_gateway.domain.models import Direction, OrderSide
from position_gateway.execution.validation import (
    RequestValidationError,
    ValidationCode,
    parse_price,
    parse_quantity,
    validate,
)


def rejected(raw):
    with pytest.raises(RequestValidationError) as exc:
        validate(raw)
    return exc.value.code


class TestTargetShapes:

    def test_array_target(self):
        """[direction, qty] normalizes to an intent without stop"""
        intent = validate({"symbol": "NQ", "target": ["SHORT", 2]})

        assert intent.symbol == "NQ"
        assert intent.direction is Direction.SHORT
        assert intent.quantity == 2
        assert intent.stop_loss is None

    def test_array_target_with_stop(self):
        intent = validate({"symbol": "NQ", "target": ["long", "3", "14950.5"]})

        assert intent.direction is Direction.LONG
        assert intent.quantity == 3
        assert intent.stop_loss == 14950.5

    def test_object_target(self):
        intent = validate(
            {"symbol": "NQ", "target": {"direction": "Short", "qty": 2, "sl": 15000.0}}
        )

        assert intent.direction is Direction.SHORT
        assert intent.quantity == 2
        assert intent.stop_loss == 15000.0

    def test_object_target_aliases(self):
        """quantity / stop_loss accepted as aliases of qty / sl"""
        intent = validate(
            {"symbol": "ES", "target": {"direction": "LONG", "quantity": 1, "stop_loss": 4800}}
        )

        assert intent.quantity == 1
        assert intent.stop_loss == 4800.0

    def test_keys_are_case_insensitive(self):
        intent = validate({"Symbol": "NQ", "TARGET": {"Direction": "LONG", "QTY": 4}})

        assert intent.symbol == "NQ"
        assert intent.quantity == 4

    def test_extra_fields_ignored(self):
        raw = {
            "symbol": "NQ",
            "target": ["LONG", 1],
            "bars": [{"timestamp": 1735247537, "open": 1, "high": 2, "low": 0.5, "close": 1.5}],
            "indicators": [{"name": "ema", "value": [[-1.0, 0], [21994.75, 1735247537]]}],
            "ibkr_contract": {"contract_id": 1},
        }

        assert validate(raw).direction is Direction.LONG

    def test_null_stop_loss_means_absent(self):
        intent = validate({"symbol": "NQ", "target": {"direction": "LONG", "qty": 1, "sl": None}})

        assert intent.stop_loss is None

    def test_symbol_is_trimmed(self):
        assert validate({"symbol": "  NQ ", "target": ["LONG", 1]}).symbol == "NQ"

    def test_direction_maps_to_entry_side(self):
        assert validate({"symbol": "NQ", "target": ["LONG", 1]}).entry_side is OrderSide.BUY
        assert validate({"symbol": "NQ", "target": ["SHORT", 1]}).entry_side is OrderSide.SELL


class TestRejections:

    @pytest.mark.parametrize("symbol", [None, "", "   ", 42])
    def test_missing_symbol(self, symbol):
        assert rejected({"symbol": symbol, "target": ["LONG", 1]}) is ValidationCode.MISSING_SYMBOL

    def test_symbol_key_absent(self):
        assert rejected({"target": ["LONG", 1]}) is ValidationCode.MISSING_SYMBOL

    @pytest.mark.parametrize("target", [None, [], {}, {"qty": 1}, ["", 1], "LONG"])
    def test_missing_direction(self, target):
        assert rejected({"symbol": "NQ", "target": target}) is ValidationCode.MISSING_DIRECTION

    @pytest.mark.parametrize("direction", ["UP", "BUY", "FLAT", 1])
    def test_invalid_direction(self, direction):
        assert rejected({"symbol": "NQ", "target": [direction, 1]}) is ValidationCode.INVALID_DIRECTION

    @pytest.mark.parametrize("qty", [0, -1, "abc", None, 2.5, True, "", [1]])
    def test_invalid_quantity(self, qty):
        assert rejected({"symbol": "NQ", "target": ["LONG", qty]}) is ValidationCode.INVALID_QUANTITY

    def test_quantity_missing_from_array(self):
        assert rejected({"symbol": "NQ", "target": ["LONG"]}) is ValidationCode.INVALID_QUANTITY

    @pytest.mark.parametrize("sl", ["NaN", -1, "-0.5", "inf", "abc", float("nan"), True])
    def test_invalid_stop_loss(self, sl):
        raw = {"symbol": "NQ", "target": {"direction": "LONG", "qty": 1, "sl": sl}}
        assert rejected(raw) is ValidationCode.INVALID_STOP_LOSS

    def test_first_failure_wins(self):
        """Empty symbol reported even when every other field is also bad"""
        raw = {"symbol": "", "target": ["UP", 0, "NaN"]}
        assert rejected(raw) is ValidationCode.MISSING_SYMBOL

    def test_direction_checked_before_quantity(self):
        assert rejected({"symbol": "NQ", "target": ["UP", 0]}) is ValidationCode.INVALID_DIRECTION

    def test_quantity_checked_before_stop(self):
        raw = {"symbol": "NQ", "target": {"direction": "LONG", "qty": 0, "sl": "NaN"}}
        assert rejected(raw) is ValidationCode.INVALID_QUANTITY

    def test_error_carries_message(self):
        with pytest.raises(RequestValidationError) as exc:
            validate({"symbol": "NQ", "target": ["UP", 1]})

        assert exc.value.message == "Target direction must be LONG or SHORT"
        assert isinstance(exc.value, ValueError)


class TestScalarParsing:

    @pytest.mark.parametrize("raw, expected", [(2, 2), ("2", 2), (" 7 ", 7), (3.0, 3), ("4.0", 4)])
    def test_quantity_accepts(self, raw, expected):
        assert parse_quantity(raw) == expected

    @pytest.mark.parametrize("raw", [0, -3, "1.5", "nan", "inf", False, {}])
    def test_quantity_rejects(self, raw):
        assert parse_quantity(raw) is None

    @pytest.mark.parametrize("raw, expected", [(0, 0.0), ("15000.25", 15000.25), (12, 12.0)])
    def test_price_accepts(self, raw, expected):
        assert parse_price(raw) == expected

    @pytest.mark.parametrize("raw", [None, "-inf", -0.01, [], "1e400"])
    def test_price_rejects(self, raw):
        assert parse_price(raw) is None
