"""
Helius enhanced-transactions indexer (Solana only).

    GET https://api.helius.xyz/v0/addresses/{wallet}/transactions?api-key=...&limit=100

Each enhanced transaction carries the wallet's native balance change in
``accountData`` (lamports) and token movements in ``tokenTransfers``.
"""

import logging
from typing import List, Optional

from tax_exporter.core.classification import (
    classify_spot_side,
    derive_price,
    price_or_unknown,
    spot_total,
)
from tax_exporter.core.models import SPOT, SpotRecord, sort_newest_first, from_unix
from tax_exporter.core.sources import HELIUS
from tax_exporter.exchanges.base import SourceAdapter
from tax_exporter.exchanges.http_client import HttpClient

_BASE_URL = "https://api.helius.xyz"
_PAGE_LIMIT = 100
_LAMPORTS_DECIMALS = 9


class HeliusAdapter(SourceAdapter):
    name = HELIUS
    record_type = SPOT

    def __init__(
        self,
        api_key: str,
        base_url: str = _BASE_URL,
        timeout: float = 10,
        client: Optional[HttpClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = client or HttpClient(HELIUS, timeout=timeout, logger=self.logger)

    def close(self) -> None:
        self._client.close()

    def fetch(self, account_id: str, source_id: str) -> List[SpotRecord]:
        if source_id.lower() != "solana":
            raise self._unsupported(source_id)
        data = self._client.get_json(
            f"{self._base_url}/v0/addresses/{account_id}/transactions",
            params={"api-key": self._api_key, "type": "ANY", "limit": _PAGE_LIMIT},
        )
        return self.transform(data, account_id)

    def transform(self, data, wallet: str) -> List[SpotRecord]:
        if not isinstance(data, list):
            return []
        records = []
        for tx in data:
            if not isinstance(tx, dict):
                continue
            try:
                record = self._tx_to_record(tx, wallet)
            except (KeyError, TypeError, ValueError) as exc:
                self.logger.debug(f"[helius] skipping malformed transaction: {exc}")
                continue
            if record is not None:
                records.append(record)
        return sort_newest_first(records)

    def _tx_to_record(self, tx: dict, wallet: str) -> Optional[SpotRecord]:
        signature = tx.get("signature")
        transfers = [t for t in tx.get("tokenTransfers") or [] if t.get("mint")]
        if not signature or not transfers:
            return None
        mint = transfers[0]["mint"]

        token_delta = 0.0
        for t in transfers:
            if t["mint"] != mint:
                continue
            amount = float(t.get("tokenAmount") or 0)
            if t.get("toUserAccount") == wallet:
                token_delta += amount
            if t.get("fromUserAccount") == wallet:
                token_delta -= amount

        native_lamports = 0
        for account in tx.get("accountData") or []:
            if account.get("account") == wallet:
                native_lamports = int(account.get("nativeBalanceChange") or 0)
                break
        fee_lamports = int(tx.get("fee") or 0)

        side = classify_spot_side(native_lamports, token_delta)
        price = price_or_unknown(derive_price(native_lamports, token_delta, _LAMPORTS_DECIMALS))
        quantity = abs(token_delta)

        return SpotRecord(
            timestamp=from_unix(tx["timestamp"]),
            chain="solana",
            asset=mint[:8].upper(),
            side=side,
            quantity=quantity,
            price=price,
            total=spot_total(quantity, price),
            fees=fee_lamports / 10 ** _LAMPORTS_DECIMALS,
            hash=signature,
        )
