"""Tests for the transactions query handler."""

from unittest.mock import Mock

import pytest

from tax_exporter.core.errors import ErrorKind, FetchError
from tax_exporter.core.models import SPOT
from tax_exporter.data.dispatcher import DispatchResult
from tax_exporter.pipelines.query_handler import GENERIC_ERROR, handle_query, parse_bool

SOL_WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


@pytest.fixture
def dispatcher():
    return Mock()


class TestHandleQuery:
    """Test status codes and response bodies."""

    def test_missing_wallet(self, dispatcher):
        status, body = handle_query({"chain": "solana"}, dispatcher)
        assert status == 400
        assert body == {"error": "Wallet address required"}
        dispatcher.dispatch.assert_not_called()

    def test_defaults(self, dispatcher, make_spot):
        dispatcher.dispatch.return_value = DispatchResult([make_spot()], SPOT, "solana", "helius")

        status, body = handle_query({"wallet": SOL_WALLET}, dispatcher)

        dispatcher.dispatch.assert_called_once_with(SOL_WALLET, "solana", SPOT, force_mock=False)
        assert status == 200
        assert body["type"] == SPOT
        assert body["fallback"] is False
        assert body["transactions"][0]["hash"] == "abc"
        assert body["transactions"][0]["timestamp"].endswith("Z")

    def test_mock_flag(self, dispatcher):
        dispatcher.dispatch.return_value = DispatchResult([], SPOT, "solana", "synthetic", True, "mock requested")

        status, body = handle_query({"wallet": SOL_WALLET, "mock": "true"}, dispatcher)

        assert dispatcher.dispatch.call_args.kwargs["force_mock"] is True
        assert status == 200
        assert body["fallback"] is True
        assert body["fallback_reason"] == "mock requested"

    @pytest.mark.parametrize("kind,status", [
        (ErrorKind.INVALID_ACCOUNT, 400),
        (ErrorKind.UNSUPPORTED_SOURCE, 400),
        (ErrorKind.UNAUTHORIZED, 401),
    ])
    def test_client_errors_keep_message(self, dispatcher, kind, status):
        dispatcher.dispatch.side_effect = FetchError(kind, "Invalid Solana wallet address")

        code, body = handle_query({"wallet": "x"}, dispatcher)

        assert code == status
        assert body == {"error": "Invalid Solana wallet address", "kind": kind.value}

    def test_server_errors_are_generic(self, dispatcher):
        dispatcher.dispatch.side_effect = FetchError(ErrorKind.INTERNAL_ERROR, "upstream body with secrets")

        status, body = handle_query({"wallet": SOL_WALLET}, dispatcher)

        assert status == 500
        assert body["error"] == GENERIC_ERROR
        assert "secrets" not in str(body)

    def test_unexpected_exception(self, dispatcher):
        dispatcher.dispatch.side_effect = RuntimeError("boom")
        status, body = handle_query({"wallet": SOL_WALLET}, dispatcher)
        assert status == 500
        assert body["kind"] == ErrorKind.INTERNAL_ERROR.value


def test_parse_bool():
    assert parse_bool("true")
    assert parse_bool("1")
    assert parse_bool(True)
    assert not parse_bool("false")
    assert not parse_bool(None)
