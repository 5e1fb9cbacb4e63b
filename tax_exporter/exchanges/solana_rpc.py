"""
Solana JSON-RPC adapter.

Two-step fetch against any Solana RPC endpoint:
  1. getSignaturesForAddress  → recent signatures for the wallet
  2. getTransaction           → one call per signature, fanned out over a
                                bounded thread pool

A transaction yields one SpotRecord per SPL mint whose balance (owned by the
wallet) changed. If no mint moved but SOL did (balance delta or a parsed
System ``transfer`` touching the wallet) it yields a single SOL transfer
record. Everything else yields nothing.

Native SOL is the reference currency, so SOL transfers are priced at 1.0.
"""

import itertools
import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional

from tax_exporter.core.classification import (
    classify_spot_side,
    classify_transfer_side,
    derive_price,
    price_or_unknown,
    spot_total,
)
from tax_exporter.core.errors import ErrorKind, FetchError
from tax_exporter.core.models import SPOT, SpotRecord, sort_newest_first, from_unix
from tax_exporter.core.sources import SOLANA_RPC
from tax_exporter.exchanges.base import SourceAdapter
from tax_exporter.exchanges.http_client import HttpClient

_DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
_DEFAULT_SIGNATURE_LIMIT = 25
_DEFAULT_MAX_WORKERS = 8
_MAX_WORKERS_CAP = 20
_LAMPORTS_DECIMALS = 9
_LAMPORTS_PER_SOL = 10 ** _LAMPORTS_DECIMALS

# JSON-RPC error codes
_INVALID_PARAMS = -32602
_RATE_LIMITED = 429


class SolanaRpcAdapter(SourceAdapter):
    name = SOLANA_RPC
    record_type = SPOT

    def __init__(
        self,
        rpc_url: str = _DEFAULT_RPC_URL,
        signature_limit: int = _DEFAULT_SIGNATURE_LIMIT,
        max_workers: int = _DEFAULT_MAX_WORKERS,
        timeout: float = 10,
        client: Optional[HttpClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        self.rpc_url = rpc_url
        self.signature_limit = signature_limit
        self.max_workers = max(1, min(max_workers, _MAX_WORKERS_CAP))
        self._client = client or HttpClient(
            SOLANA_RPC, timeout=timeout, pool_size=self.max_workers, logger=self.logger
        )
        self._request_ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fetch(self, account_id: str, source_id: str) -> List[SpotRecord]:
        if source_id.lower() != "solana":
            raise self._unsupported(source_id)

        signatures = self.get_signatures(account_id)
        if not signatures:
            return []

        records: list[SpotRecord] = []
        skipped = 0
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            future_to_sig = {pool.submit(self.get_transaction, sig): sig for sig in signatures}
            for future in as_completed(future_to_sig):
                sig = future_to_sig[future]
                try:
                    tx = future.result()
                    if tx is not None:
                        records.extend(self.parse_transaction(tx, account_id))
                except FetchError as exc:
                    # Rate limits mid fan-out only cost the affected items
                    skipped += 1
                    self.logger.debug(f"[solana_rpc] failed to fetch {sig}: {exc}")
                except (KeyError, TypeError, ValueError, IndexError) as exc:
                    skipped += 1
                    self.logger.debug(f"[solana_rpc] failed to parse {sig}: {exc}")

        if skipped:
            self.logger.warning(f"[solana_rpc] skipped {skipped}/{len(signatures)} transactions")
        return sort_newest_first(records)

    def close(self) -> None:
        self._client.close()

    def get_signatures(self, account_id: str) -> list[str]:
        result = self._call("getSignaturesForAddress", [account_id, {"limit": self.signature_limit}])
        # Failed transactions still show up in the signature list
        return [s["signature"] for s in result or [] if s.get("signature") and s.get("err") is None]

    def get_transaction(self, signature: str) -> Optional[dict]:
        return self._call(
            "getTransaction",
            [signature, {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0}],
        )

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse_transaction(self, tx: dict, wallet: str) -> List[SpotRecord]:
        meta = tx.get("meta") or {}
        if meta.get("err") is not None:
            return []

        message = tx["transaction"]["message"]
        account_keys = [k["pubkey"] if isinstance(k, dict) else k for k in message["accountKeys"]]
        if wallet not in account_keys:
            return []
        idx = account_keys.index(wallet)

        fee = int(meta.get("fee") or 0)
        native_delta = int(meta["postBalances"][idx]) - int(meta["preBalances"][idx])
        paid_fee = fee if idx == 0 else 0
        # Fee is reported separately, so remove it from the trade leg
        native_delta += paid_fee

        timestamp = from_unix(tx["blockTime"])
        signature = tx["transaction"]["signatures"][0]
        fees = paid_fee / _LAMPORTS_PER_SOL

        records = []
        for mint, token_delta in self._token_deltas(meta, wallet).items():
            side = classify_spot_side(native_delta, token_delta)
            price = price_or_unknown(derive_price(native_delta, token_delta, _LAMPORTS_DECIMALS))
            quantity = abs(token_delta)
            records.append(SpotRecord(
                timestamp=timestamp,
                chain="solana",
                asset=mint[:8].upper(),
                side=side,
                quantity=quantity,
                price=price,
                total=spot_total(quantity, price),
                fees=fees,
                hash=signature,
            ))
        if records:
            return records

        if native_delta == 0:
            native_delta = self._system_transfer_delta(tx, wallet)
        if native_delta == 0:
            return []

        quantity = abs(native_delta) / _LAMPORTS_PER_SOL
        return [SpotRecord(
            timestamp=timestamp,
            chain="solana",
            asset="SOL",
            side=classify_transfer_side(native_delta),
            quantity=quantity,
            price=1.0,
            total=quantity,
            fees=fees,
            hash=signature,
        )]

    @staticmethod
    def _token_deltas(meta: dict, wallet: str) -> dict[str, float]:
        deltas: dict[str, float] = defaultdict(float)
        for sign, key in ((-1, "preTokenBalances"), (1, "postTokenBalances")):
            for balance in meta.get(key) or []:
                if balance.get("owner") != wallet:
                    continue
                ui = balance["uiTokenAmount"]
                amount = ui.get("uiAmountString") or ui.get("uiAmount") or 0
                deltas[balance["mint"]] += sign * float(amount)
        return {mint: delta for mint, delta in deltas.items() if delta != 0}

    @staticmethod
    def _system_transfer_delta(tx: dict, wallet: str) -> int:
        """Net lamports moved to the wallet by parsed System transfer instructions."""
        instructions = list(tx["transaction"]["message"].get("instructions") or [])
        for inner in (tx.get("meta") or {}).get("innerInstructions") or []:
            instructions.extend(inner.get("instructions") or [])

        delta = 0
        for ix in instructions:
            parsed = ix.get("parsed")
            if ix.get("program") != "system" or not isinstance(parsed, dict):
                continue
            if parsed.get("type") != "transfer":
                continue
            info = parsed.get("info") or {}
            lamports = int(info.get("lamports") or 0)
            if info.get("destination") == wallet:
                delta += lamports
            if info.get("source") == wallet:
                delta -= lamports
        return delta

    # ------------------------------------------------------------------
    # JSON-RPC
    # ------------------------------------------------------------------

    def _call(self, method: str, params: list):
        payload = {"jsonrpc": "2.0", "id": next(self._request_ids), "method": method, "params": params}
        body = self._client.post_json(self.rpc_url, payload)
        error = body.get("error") if isinstance(body, dict) else None
        if error:
            code = error.get("code")
            if code == _INVALID_PARAMS:
                kind = ErrorKind.INVALID_ACCOUNT
            elif code == _RATE_LIMITED or (isinstance(code, int) and -32099 <= code <= -32000):
                # -32000..-32099 are node-side conditions (behind, slot skipped, ...)
                kind = ErrorKind.UPSTREAM_UNAVAILABLE
            else:
                kind = ErrorKind.INTERNAL_ERROR
            raise FetchError(
                kind,
                f"{method} failed with RPC error {code}",
                source=SOLANA_RPC,
                rate_limited=code == _RATE_LIMITED,
            )
        if not isinstance(body, dict):
            raise FetchError(ErrorKind.UPSTREAM_UNAVAILABLE, f"{method} returned an invalid body", source=SOLANA_RPC)
        return body.get("result")
