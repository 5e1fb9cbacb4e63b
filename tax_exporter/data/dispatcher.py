"""
Dispatch and fallback policy.

Picks the adapter for a query and decides when synthetic data may stand in
for real data:

    SelectAdapter ──► Invoke ──► Success
         │               │
         │               └─ UpstreamUnavailable ──► Synthetic (fallback=True)
         │               └─ any other FetchError ──► raised to the caller
         └─ force_mock / no configured provider ──► Synthetic (fallback=True)

Input validation always runs first, so a malformed account or an unknown
source is never masked by mock data.

Usage::

    from tax_exporter.data.dispatcher import TransactionDispatcher

    dispatcher = TransactionDispatcher(config, logger=logger)
    result = dispatcher.dispatch("0xabc...", "hyperliquid", "perp")
    result.records, result.fallback
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from tax_exporter.core.errors import ErrorKind, FetchError
from tax_exporter.core.models import RECORD_TYPES, Record
from tax_exporter.core.sources import (
    ALLIUM, BYBIT, HELIUS, HYPERLIQUID, SOLANA_RPC, SOURCES, SYNTHETIC, SourceInfo, get_source,
)
from tax_exporter.exchanges.allium import AlliumAdapter
from tax_exporter.exchanges.base import SourceAdapter
from tax_exporter.exchanges.bybit import BybitAdapter
from tax_exporter.exchanges.helius import HeliusAdapter
from tax_exporter.exchanges.hyperliquid import HyperliquidAdapter
from tax_exporter.exchanges.solana_rpc import SolanaRpcAdapter
from tax_exporter.exchanges.synthetic import SyntheticAdapter
from tax_exporter.utils.config import ExporterConfig


@dataclass
class DispatchResult:
    records: list[Record]
    record_type: str
    source_id: str
    provider: str
    fallback: bool = False
    fallback_reason: Optional[str] = None


def build_adapter(provider: str, config: ExporterConfig, logger: logging.Logger) -> SourceAdapter:
    """Construct the real adapter for ``provider`` from configuration."""
    http = config.http
    if provider == ALLIUM:
        allium = config.section(ALLIUM)
        return AlliumAdapter(
            api_key=allium["api_key"],
            base_url=allium.get("base_url", "https://api.allium.so"),
            timeout=http.timeout_sec,
            min_interval_sec=float(allium.get("min_interval_sec", 1.1)),
            logger=logger,
        )
    if provider == HELIUS:
        helius = config.section(HELIUS)
        return HeliusAdapter(
            api_key=helius["api_key"],
            base_url=helius.get("base_url", "https://api.helius.xyz"),
            timeout=http.timeout_sec,
            logger=logger,
        )
    if provider == SOLANA_RPC:
        rpc = config.section(SOLANA_RPC)
        return SolanaRpcAdapter(
            rpc_url=rpc["url"],
            signature_limit=int(rpc.get("signature_limit", 25)),
            max_workers=http.max_workers,
            timeout=http.timeout_sec,
            logger=logger,
        )
    if provider == HYPERLIQUID:
        return HyperliquidAdapter(logger=logger)
    if provider == BYBIT:
        bybit = config.section(BYBIT)
        return BybitAdapter(api_key=bybit["api_key"], api_secret=bybit["api_secret"], logger=logger)
    raise FetchError(ErrorKind.UNSUPPORTED_SOURCE, f"Unknown provider '{provider}'", source=provider)


class TransactionDispatcher:
    """
    Parameters
    ----------
    config : ExporterConfig
        Provides the credential lookup (``has_credentials``).
    sources : Mapping[str, SourceInfo]
        Read-only source metadata. Defaults to the built-in table.
    adapter_factory : callable, optional
        ``(provider, config, logger) -> SourceAdapter``; defaults to
        ``build_adapter``.
    synthetic : SyntheticAdapter, optional
        Fallback generator.
    """

    def __init__(
        self,
        config: ExporterConfig,
        sources: Mapping[str, SourceInfo] = SOURCES,
        adapter_factory: Callable[[str, ExporterConfig, logging.Logger], SourceAdapter] = build_adapter,
        synthetic: Optional[SyntheticAdapter] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.sources = sources
        self.adapter_factory = adapter_factory
        self.logger = logger or logging.getLogger(__name__)
        self.synthetic = synthetic or SyntheticAdapter(logger=self.logger)

    def dispatch(
        self,
        account_id: str,
        source_id: str,
        record_type: str,
        force_mock: bool = False,
    ) -> DispatchResult:
        source = self._validate(account_id, source_id, record_type)

        if force_mock:
            return self._synthetic(account_id, source, record_type, "mock requested")

        provider = self.select_provider(source)
        if provider is None:
            return self._synthetic(account_id, source, record_type, "no configured provider")

        adapter = self.adapter_factory(provider, self.config, self.logger)
        self.logger.info(f"Fetching {record_type} records for {account_id[:8]}... from {provider} ({source.id})")
        try:
            records = adapter.fetch(account_id, source.id)
        except FetchError as exc:
            if exc.kind != ErrorKind.UPSTREAM_UNAVAILABLE:
                self.logger.error(f"{provider} failed: {exc}")
                raise
            reason = "rate limited" if exc.rate_limited else "upstream unavailable"
            self.logger.warning(f"{provider} {reason}, downgrading to synthetic data: {exc}")
            return self._synthetic(account_id, source, record_type, f"{provider} {reason}")
        finally:
            # Adapters are built per dispatch, so their pools go with them
            adapter.close()

        self.logger.info(f"{provider} returned {len(records)} records")
        return DispatchResult(records, record_type, source.id, provider)

    def select_provider(self, source: SourceInfo) -> Optional[str]:
        for provider in source.providers:
            if self.config.has_credentials(provider):
                return provider
        return None

    def _validate(self, account_id: str, source_id: str, record_type: str) -> SourceInfo:
        if record_type not in RECORD_TYPES:
            raise FetchError(ErrorKind.UNSUPPORTED_SOURCE, f"Unsupported record type '{record_type}'")
        source = get_source(source_id, self.sources)
        if source is None:
            raise FetchError(ErrorKind.UNSUPPORTED_SOURCE, f"Unsupported source '{source_id}'")
        if source.record_type != record_type:
            raise FetchError(
                ErrorKind.UNSUPPORTED_SOURCE,
                f"{source.name} does not provide {record_type} records",
                source=source.id,
            )
        if not source.is_valid_account(account_id):
            raise FetchError(
                ErrorKind.INVALID_ACCOUNT,
                f"Invalid {source.name} wallet address",
                source=source.id,
            )
        return source

    def _synthetic(self, account_id: str, source: SourceInfo, record_type: str, reason: str) -> DispatchResult:
        self.logger.warning(f"Using synthetic {record_type} data for {source.id}: {reason}")
        records = self.synthetic.fetch(account_id, source.id, record_type)
        return DispatchResult(records, record_type, source.id, SYNTHETIC, fallback=True, fallback_reason=reason)
