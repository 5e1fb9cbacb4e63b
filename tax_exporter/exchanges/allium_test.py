from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from tax_exporter.core.errors import ErrorKind, FetchError
from tax_exporter.core.models import SELL, TRANSFER_IN
from tax_exporter.exchanges.allium import AlliumAdapter

WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def make_adapter(payload=None):
    client = Mock()
    client.post_json.return_value = payload
    return AlliumAdapter(api_key="test-key", client=client), client


def swap_event(**overrides):
    event = {
        "tx_hash": "sigSwap",
        "block_timestamp": "2025-01-02T03:04:05Z",
        "token_address": USDC_MINT,
        "native_change": -1_000_000_000,
        "token_change_amount": 10,
        "fee": 5000,
    }
    event.update(overrides)
    return event


def test_fetch_posts_batched_request():
    adapter, client = make_adapter([{"result": []}])

    assert adapter.fetch(WALLET, "solana") == []
    client.post_json.assert_called_once_with(
        "https://api.allium.so/api/v1/developer/wallet/transactions",
        [{"address": WALLET, "chain": "solana"}],
        headers={"Content-Type": "application/json", "X-API-KEY": "test-key"},
    )


def test_fetch_unsupported_chain():
    adapter, client = make_adapter()

    with pytest.raises(FetchError) as exc_info:
        adapter.fetch(WALLET, "bittensor")

    assert exc_info.value.kind == ErrorKind.UNSUPPORTED_SOURCE
    client.post_json.assert_not_called()


def test_swap_event():
    adapter, _ = make_adapter([{"result": [swap_event()]}])

    [record] = adapter.fetch(WALLET, "solana")

    assert record.asset == "EPJFWDD5"
    assert record.side == SELL
    assert record.quantity == 10
    assert record.price == pytest.approx(0.1)
    assert record.total == pytest.approx(1.0)
    assert record.fees == pytest.approx(0.000005)
    assert record.timestamp == datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_native_only_event_is_transfer():
    event = swap_event(token_address=None, token_change_amount=0, native_change=2_000_000_000)

    [record] = make_adapter()[0].transform([{"result": [event]}], "solana")

    assert record.side == TRANSFER_IN
    assert record.asset == "SOL"
    assert record.price is None


def test_symbol_and_evm_decimals():
    event = swap_event(
        token_address=None, token_symbol="link", native_change=10 ** 18,
        token_change_amount=-50, native_decimals=18, block_timestamp=1_700_000_000_000,
    )

    [record] = make_adapter()[0].transform([{"result": [event]}], "ethereum")

    assert record.asset == "LINK"
    assert record.chain == "ethereum"
    assert record.price == pytest.approx(0.02)
    assert record.timestamp == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)


def test_malformed_events_are_skipped():
    events = [
        swap_event(tx_hash="newer", block_timestamp="2025-02-01T00:00:00Z"),
        swap_event(block_timestamp=None),
        swap_event(tx_hash=None),
        "garbage",
        swap_event(tx_hash="older"),
    ]

    records = make_adapter()[0].transform([{"result": events}], "solana")

    assert [r.hash for r in records] == ["newer", "older"]


@pytest.mark.parametrize("payload", [None, [], {}, [{"result": None}], ["x"]])
def test_empty_or_unexpected_payload(payload):
    assert make_adapter()[0].transform(payload, "solana") == []


def test_close_releases_client():
    adapter, client = make_adapter()
    adapter.close()
    client.close.assert_called_once()
