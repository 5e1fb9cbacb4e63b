"""Tests for CSV Export

Tests cover:
- Fixed spot and perp column orders
- Empty / missing value rendering and YES/NO liquidation
- Round-trip parsing of the rendered CSV
- Export filename and file writing
"""

import io
from datetime import datetime, timezone

import pandas as pd
import pytest

from tax_exporter.core.models import SELL, SHORT, SPOT, PERP
from tax_exporter.helpers.csv_export import (
    PERP_COLUMNS,
    SPOT_COLUMNS,
    export_filename,
    export_to_file,
    record_to_row,
    to_csv,
)

SPOT_HEADER = "timestamp,chain,asset,side,quantity,price,total,fees,hash"
PERP_HEADER = (
    "timestamp,asset,side,quantity,entry_price,exit_price,pnl,fees,funding,"
    "exchange,leverage,liquidation,chain,hash"
)


def parse_rows(text: str) -> list[list[str]]:
    df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
    return df.values.tolist()


class TestHeaders:
    """Test fixed column layouts."""

    def test_column_constants(self):
        assert ",".join(SPOT_COLUMNS) == SPOT_HEADER
        assert ",".join(PERP_COLUMNS) == PERP_HEADER

    def test_empty_perp_is_header_only(self):
        assert to_csv([], PERP) == PERP_HEADER + "\n"

    def test_empty_spot_is_header_only(self):
        assert to_csv([], SPOT) == SPOT_HEADER + "\n"


class TestRows:
    """Test row rendering."""

    def test_spot_row(self, make_spot):
        record = make_spot(
            timestamp=datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            quantity=10.0, price=0.1, total=1.0, fees=0.000005, hash="5xYz",
        )
        text = to_csv([record], SPOT)

        lines = text.split("\n")
        assert lines[0] == SPOT_HEADER
        assert lines[1] == "2025-01-02T03:04:05.000Z,solana,SOL,BUY,10,0.1,1,0.000005,5xYz"
        assert lines[2] == ""

    def test_unknown_price_is_empty(self, make_spot):
        row = record_to_row(make_spot(price=None, total=0.0))
        assert row[SPOT_COLUMNS.index("price")] == ""

    def test_open_perp_row(self, make_perp):
        row = record_to_row(make_perp())
        assert row[PERP_COLUMNS.index("exit_price")] == ""
        assert row[PERP_COLUMNS.index("pnl")] == ""
        assert row[PERP_COLUMNS.index("liquidation")] == "NO"
        assert row[PERP_COLUMNS.index("leverage")] == "5"

    def test_liquidated_perp_row(self, make_perp):
        record = make_perp(
            side=SHORT, position_size=-2.0, quantity=2.0,
            exit_price=55000.0, pnl=-10000.0, liquidation=True,
        )
        row = record_to_row(record)
        assert row[PERP_COLUMNS.index("liquidation")] == "YES"
        assert row[PERP_COLUMNS.index("pnl")] == "-10000"

    def test_small_values_are_plain_decimals(self, make_spot):
        record = make_spot(quantity=50000.0, price=0.00002, total=1.0, fees=0.000005)
        line = to_csv([record], SPOT).split("\n")[1]

        assert "e-" not in line
        row = record_to_row(record)
        assert row[SPOT_COLUMNS.index("price")] == "0.00002"
        assert row[SPOT_COLUMNS.index("fees")] == "0.000005"

    def test_large_values_are_not_exponents(self, make_perp):
        row = record_to_row(make_perp(entry_price=1e22, funding=-0.0000001))
        assert row[PERP_COLUMNS.index("entry_price")] == "10000000000000000000000"
        assert row[PERP_COLUMNS.index("funding")] == "-0.0000001"

    def test_comma_values_are_quoted(self, make_perp):
        text = to_csv([make_perp(exchange="Venue, Inc")], PERP)
        assert '"Venue, Inc"' in text
        assert parse_rows(text)[0][PERP_COLUMNS.index("exchange")] == "Venue, Inc"

    def test_mixed_kinds_rejected(self, make_spot, make_perp):
        with pytest.raises(ValueError):
            to_csv([make_spot(), make_perp()], SPOT)


class TestRoundTrip:
    """Parsing the CSV back yields the same field strings in order."""

    def test_spot_round_trip(self, make_spot):
        records = [
            make_spot(hash="a", quantity=1.23456789, price=98.7654321, total=121.932631112635269),
            make_spot(hash="b", side=SELL, asset="BONK", quantity=1e-7, price=None, total=0.0),
            make_spot(hash="c", quantity=123456789.0, price=2.5, total=308641972.5, fees=0.0),
        ]
        assert parse_rows(to_csv(records, SPOT)) == [record_to_row(r) for r in records]

    def test_perp_round_trip(self, make_perp):
        records = [
            make_perp(hash="x"),
            make_perp(hash="y", exit_price=49000.5, pnl=-999.5, leverage=12.5, funding=-0.3),
        ]
        assert parse_rows(to_csv(records, PERP)) == [record_to_row(r) for r in records]


class TestExportFile:
    """Test filename and file output."""

    def test_export_filename(self):
        assert export_filename("spot", "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU") == "spot-export-7xKXtg2C.csv"
        assert export_filename("perp", "0xabc") == "perp-export-0xabc.csv"

    def test_export_to_file(self, tmp_path, make_perp):
        records = [make_perp()]
        path = export_to_file(records, PERP, "0x1234567890abcdef", tmp_path / "exports")

        assert path == tmp_path / "exports" / "perp-export-0x123456.csv"
        with open(path, "r", encoding="utf-8", newline="") as f:
            content = f.read()
        assert content == to_csv(records, PERP)
        assert "\r" not in content
