"""
NINJATRADER ATI CLIENT TEST SUITE
=================================

Tests for:
- Folder checks on connect
- Position file parsing
- Order instruction file layout
"""

import pytest

from position_gateway.brokers.base import (
    BackendError,
    BackendUnavailable,
    CommandRejected,
    UnknownSymbol,
)
from position_gateway.brokers.ninjatrader.oif_client import NinjaTraderOIFClient
from position_gateway.domain.models import Failed, OrderSide, PositionState, Step
from position_gateway.execution.reconciliation import ReconciliationEngine
from position_gateway.execution.validation import validate

ACCOUNT = "Sim101"


@pytest.fixture
def nt_dir(tmp_path):
    (tmp_path / "incoming").mkdir()
    (tmp_path / "outgoing").mkdir()
    return tmp_path


@pytest.fixture
def client(nt_dir):
    c = NinjaTraderOIFClient(nt_dir, time_in_force="GTC", strategy_tag="Webhook")
    c.connect()
    return c


def written_commands(nt_dir):
    return [p.read_text().strip() for p in sorted((nt_dir / "incoming").glob("oif*.txt"))]


def write_position(nt_dir, symbol, text):
    (nt_dir / "outgoing" / f"{symbol}_{ACCOUNT}_position.txt").write_text(text)


class TestConnect:

    def test_connect(self, client):
        assert client.is_connected

    def test_missing_folders(self, tmp_path):
        c = NinjaTraderOIFClient(tmp_path)

        with pytest.raises(BackendUnavailable, match="incoming"):
            c.connect()
        assert not c.is_connected

    def test_disconnect(self, client):
        client.disconnect()

        assert not client.is_connected
        with pytest.raises(BackendUnavailable):
            client.get_position("NQ", ACCOUNT)

    def test_commands_require_connection(self, nt_dir):
        c = NinjaTraderOIFClient(nt_dir)

        with pytest.raises(BackendUnavailable):
            c.place_market_order("NQ", ACCOUNT, OrderSide.BUY, 1)
        assert written_commands(nt_dir) == []


class TestPositionFile:

    def test_missing_file_is_flat(self, client):
        assert client.get_position("NQ", ACCOUNT) is PositionState.FLAT

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("LONG;2;15010.25", PositionState.LONG),
            ("short;1;15000", PositionState.SHORT),
            ("FLAT;0;0", PositionState.FLAT),
            ("LONG;0;0", PositionState.FLAT),
            ("SHORT\n", PositionState.SHORT),
        ],
    )
    def test_parse(self, client, nt_dir, text, expected):
        write_position(nt_dir, "NQ", text)
        assert client.get_position("NQ", ACCOUNT) is expected

    @pytest.mark.parametrize("text", ["", "UP;1;0", "LONG;abc;0"])
    def test_malformed(self, client, nt_dir, text):
        write_position(nt_dir, "NQ", text)

        with pytest.raises(BackendError):
            client.get_position("NQ", ACCOUNT)

    def test_custom_template(self, nt_dir):
        c = NinjaTraderOIFClient(nt_dir, position_file_template="{account}-{symbol}.pos")
        c.connect()
        (nt_dir / "outgoing" / f"{ACCOUNT}-ES.pos").write_text("SHORT;3;4800")

        assert c.get_position("ES", ACCOUNT) is PositionState.SHORT


class TestCommands:

    def test_market_order(self, client, nt_dir):
        result = client.place_market_order("NQ", ACCOUNT, OrderSide.SELL, 2)

        assert result.success
        assert result.order_id.startswith("oif")
        assert written_commands(nt_dir) == [
            "PLACE;Sim101;NQ;SELL;2;MARKET;0;0;GTC;;;Webhook;"
        ]

    def test_protective_stop_uses_stop_price_field(self, client, nt_dir):
        client.place_protective_stop("NQ", ACCOUNT, OrderSide.BUY, 2, 15000.0)

        fields = written_commands(nt_dir)[0].split(";")

        assert len(fields) == NinjaTraderOIFClient.FIELD_COUNT
        assert fields[3] == "BUY"
        assert fields[5] == "STOPMARKET"
        assert fields[6] == "0"
        assert fields[7] == "15000.0"

    def test_close_position(self, client, nt_dir):
        assert client.close_position("NQ", ACCOUNT).success
        assert written_commands(nt_dir) == ["CLOSEPOSITION;Sim101;NQ;;;;;;;;;;"]

    def test_one_file_per_command_no_staging_left(self, client, nt_dir):
        client.close_position("NQ", ACCOUNT)
        client.place_market_order("NQ", ACCOUNT, OrderSide.BUY, 1)

        files = list((nt_dir / "incoming").iterdir())
        assert len(files) == 2
        assert not any(f.name.endswith(".tmp") for f in files)

    def test_write_failure_is_failed_result(self, client, nt_dir, monkeypatch):
        def refuse(src, dst):
            raise PermissionError("locked")

        monkeypatch.setattr("position_gateway.brokers.ninjatrader.oif_client.os.replace", refuse)

        result = client.place_market_order("NQ", ACCOUNT, OrderSide.BUY, 1)

        assert not result.success
        assert "locked" in result.message
        assert list((nt_dir / "incoming").iterdir()) == []

    def test_format_command_pads(self):
        assert NinjaTraderOIFClient.format_command(["A", "B"]) == "A;B" + ";" * 11


class TestReservedCharacters:

    @pytest.mark.parametrize(
        "symbol",
        ["NQ;ES", "NQ\nPLACE;Sim101;ES;BUY;500;MARKET;0;0;DAY;;;;", "NQ\r", "NQ\x00"],
    )
    def test_command_with_injected_symbol_rejected(self, client, nt_dir, symbol):
        with pytest.raises(CommandRejected):
            client.place_market_order(symbol, ACCOUNT, OrderSide.BUY, 1)

        assert list((nt_dir / "incoming").iterdir()) == []

    def test_close_with_injected_account_rejected(self, client, nt_dir):
        with pytest.raises(CommandRejected):
            client.close_position("NQ", "Sim101;Live")

        assert written_commands(nt_dir) == []

    @pytest.mark.parametrize("symbol", ["NQ;ES", "NQ\nES"])
    def test_position_query_with_injected_symbol(self, client, symbol):
        with pytest.raises(UnknownSymbol):
            client.get_position(symbol, ACCOUNT)

    def test_reconcile_injected_symbol_places_nothing(self, client, nt_dir):
        intent = validate(
            {"symbol": "NQ\nPLACE;Sim101;ES;BUY;500;MARKET;0;0;DAY;;;;", "target": ["LONG", 1]}
        )

        result = ReconciliationEngine(client).reconcile(intent, ACCOUNT)

        assert isinstance(result, Failed)
        assert result.step is Step.QUERY
        assert written_commands(nt_dir) == []


class TestPositionFilePath:

    def test_symbol_cannot_escape_outgoing_folder(self, client, nt_dir):
        (nt_dir / f"secret_{ACCOUNT}_position.txt").write_text("SHORT;9;1")

        with pytest.raises(UnknownSymbol):
            client.get_position("../secret", ACCOUNT)

    def test_symbol_with_subfolder_rejected(self, client, nt_dir):
        (nt_dir / "outgoing" / "sub").mkdir()

        with pytest.raises(UnknownSymbol):
            client.position_file("sub/NQ", ACCOUNT)

    def test_plain_symbol_stays_in_outgoing(self, client, nt_dir):
        path = client.position_file("NQ 03-25", ACCOUNT)

        assert path.parent == nt_dir / "outgoing"
