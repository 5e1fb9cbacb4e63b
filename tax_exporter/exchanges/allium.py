"""
Allium wallet-transactions indexer.

    POST https://api.allium.so/api/v1/developer/wallet/transactions
    X-API-KEY: <key>
    [{"address": "<wallet>", "chain": "<chain>"}]

One batched request per (address, chain). The response is an array with one
entry per requested address; its ``result`` holds the events. Allium allows
one request per second, so calls are serialized through the client.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from tax_exporter.core.classification import (
    classify_spot_side,
    classify_transfer_side,
    derive_price,
    price_or_unknown,
)
from tax_exporter.core.models import SPOT, SpotRecord, sort_newest_first, from_unix
from tax_exporter.core.sources import ALLIUM, native_asset_for
from tax_exporter.exchanges.base import SourceAdapter
from tax_exporter.exchanges.http_client import HttpClient

_BASE_URL = "https://api.allium.so"
_TRANSACTIONS_ENDPOINT = "/api/v1/developer/wallet/transactions"
_MIN_INTERVAL_SEC = 1.1
_DEFAULT_NATIVE_DECIMALS = 9

SUPPORTED_CHAINS = ("solana", "ethereum", "base", "arbitrum", "polygon", "optimism", "avax")


class AlliumAdapter(SourceAdapter):
    name = ALLIUM
    record_type = SPOT

    def __init__(
        self,
        api_key: str,
        base_url: str = _BASE_URL,
        timeout: float = 10,
        min_interval_sec: float = _MIN_INTERVAL_SEC,
        client: Optional[HttpClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = client or HttpClient(
            ALLIUM, timeout=timeout, min_interval_sec=min_interval_sec, logger=self.logger
        )

    def close(self) -> None:
        self._client.close()

    def fetch(self, account_id: str, source_id: str) -> List[SpotRecord]:
        chain = source_id.lower()
        if chain not in SUPPORTED_CHAINS:
            raise self._unsupported(source_id)

        data = self._client.post_json(
            self._base_url + _TRANSACTIONS_ENDPOINT,
            [{"address": account_id, "chain": chain}],
            headers={"Content-Type": "application/json", "X-API-KEY": self._api_key},
        )
        return self.transform(data, chain)

    def transform(self, data, chain: str) -> List[SpotRecord]:
        if not isinstance(data, list) or not data:
            return []
        events = data[0].get("result") if isinstance(data[0], dict) else None
        if not isinstance(events, list):
            return []

        records = []
        for event in events:
            if not isinstance(event, dict):
                continue
            try:
                record = self._event_to_record(event, chain)
            except (KeyError, TypeError, ValueError) as exc:
                self.logger.debug(f"[allium] skipping malformed event: {exc}")
                continue
            if record is not None:
                records.append(record)
        return sort_newest_first(records)

    def _event_to_record(self, event: dict, chain: str) -> Optional[SpotRecord]:
        tx_hash = event.get("tx_hash") or event.get("signature") or ""
        asset = self._extract_asset(event, chain)
        if not tx_hash or asset == "UNKNOWN":
            return None

        native_delta = float(event.get("native_change") or event.get("native_transfer_amount") or 0)
        token_delta = float(event.get("token_change_amount") or event.get("quantity") or 0)
        decimals = int(event.get("native_decimals") or _DEFAULT_NATIVE_DECIMALS)

        if token_delta == 0 and native_delta != 0:
            side = classify_transfer_side(native_delta)
        else:
            side = classify_spot_side(native_delta, token_delta)

        native_amount = abs(float(event.get("native_transfer_amount") or event.get("native_change") or 0))
        price = price_or_unknown(derive_price(native_amount, token_delta, decimals))
        # Allium reports the native leg directly, so total is the native amount, not qty * price
        total = native_amount / 10 ** decimals if native_amount else float(event.get("total_value") or 0)

        return SpotRecord(
            timestamp=self._parse_timestamp(event.get("block_timestamp") or event.get("timestamp")),
            chain=chain,
            asset=asset,
            side=side,
            quantity=abs(token_delta),
            price=price,
            total=abs(total),
            fees=float(event.get("fee") or 0) / 10 ** decimals,
            hash=tx_hash,
        )

    @staticmethod
    def _extract_asset(event: dict, chain: str) -> str:
        token_address = event.get("token_address") or event.get("mint") or event.get("token_mint")
        if token_address:
            return token_address[:8].upper()
        symbol = event.get("token_symbol") or event.get("symbol")
        if symbol:
            return symbol.upper()
        return native_asset_for(event.get("chain") or chain)

    @staticmethod
    def _parse_timestamp(value) -> datetime:
        if value is None:
            raise ValueError("event has no timestamp")
        if isinstance(value, (int, float)):
            # Allium mixes seconds and milliseconds depending on the chain
            return from_unix(value, unit="ms" if value > 1e11 else "s")
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)
