from datetime import datetime, timezone

import pytest

from tax_exporter.core.models import BUY, LONG, PerpRecord, SpotRecord

NOW = datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_spot():
    def _make(**overrides):
        fields = dict(
            timestamp=NOW, chain="solana", asset="SOL", side=BUY,
            quantity=1.0, price=100.0, total=100.0, fees=0.01, hash="abc",
        )
        fields.update(overrides)
        return SpotRecord(**fields)
    return _make


@pytest.fixture
def make_perp():
    def _make(**overrides):
        fields = dict(
            timestamp=NOW, asset="BTC", side=LONG, quantity=1.0, position_size=1.0,
            entry_price=50000.0, exit_price=None, pnl=None, fees=1.0, funding=0.0,
            exchange="Hyperliquid", leverage=5, liquidation=False, hash="p1", chain="hyperliquid",
        )
        fields.update(overrides)
        return PerpRecord(**fields)
    return _make
