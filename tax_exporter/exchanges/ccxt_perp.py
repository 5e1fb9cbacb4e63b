"""
Shared plumbing for perp venues reached through ccxt.

Subclasses provide ``_build_exchange`` and ``_closed_positions``; open
positions come from ccxt's unified ``fetch_positions`` for every venue.
"""

import logging
from abc import abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

import ccxt

from tax_exporter.core.classification import classify_perp_side
from tax_exporter.core.errors import ErrorKind, FetchError
from tax_exporter.core.models import PERP, PerpRecord, sort_newest_first, from_unix
from tax_exporter.exchanges.base import SourceAdapter


def to_fetch_error(exc: Exception, source: str) -> FetchError:
    """Translate a ccxt exception into a FetchError."""
    if isinstance(exc, (ccxt.AuthenticationError, ccxt.PermissionDenied)):
        kind = ErrorKind.UNAUTHORIZED
    elif isinstance(exc, ccxt.NetworkError):
        # RateLimitExceeded, RequestTimeout and ExchangeNotAvailable all land here
        kind = ErrorKind.UPSTREAM_UNAVAILABLE
    elif isinstance(exc, (ccxt.BadSymbol, ccxt.NotSupported)):
        kind = ErrorKind.UNSUPPORTED_SOURCE
    elif isinstance(exc, ccxt.BadRequest):
        kind = ErrorKind.INVALID_ACCOUNT
    else:
        kind = ErrorKind.INTERNAL_ERROR
    return FetchError(
        kind,
        f"{source} request failed ({type(exc).__name__})",
        source=source,
        rate_limited=isinstance(exc, ccxt.RateLimitExceeded),
        original_error=exc,
    )


def base_asset(symbol: str) -> str:
    """'BTC/USDC:USDC' -> 'BTC'"""
    return symbol.split("/")[0].split(":")[0]


class CcxtPerpAdapter(SourceAdapter):
    record_type = PERP
    exchange_name = ""   # display name written to PerpRecord.exchange
    chain = ""           # settlement chain written to PerpRecord.chain

    def __init__(self, exchange=None, logger: Optional[logging.Logger] = None) -> None:
        super().__init__(logger)
        self._exchange = exchange

    @property
    def exchange(self):
        if self._exchange is None:
            self._exchange = self._build_exchange()
        return self._exchange

    @abstractmethod
    def _build_exchange(self):
        pass

    def _position_params(self, account_id: str) -> dict:
        return {}

    @abstractmethod
    def _closed_positions(self, account_id: str) -> List[PerpRecord]:
        pass

    def close(self) -> None:
        if self._exchange is None:
            return
        # Sync ccxt exchanges keep a requests session for their REST calls
        session = getattr(self._exchange, "session", None)
        if session is not None:
            session.close()
        self._exchange = None

    def fetch(self, account_id: str, source_id: str) -> List[PerpRecord]:
        if source_id.lower() != self.name:
            raise self._unsupported(source_id)
        try:
            open_positions = self.exchange.fetch_positions(None, self._position_params(account_id))
            records = [r for r in (self._safe(self.open_position_to_record, p) for p in open_positions or []) if r]
            records.extend(self._closed_positions(account_id))
        except ccxt.BaseError as exc:
            raise to_fetch_error(exc, self.name) from exc
        return sort_newest_first(records)

    def _safe(self, convert, item) -> Optional[PerpRecord]:
        try:
            return convert(item)
        except (KeyError, TypeError, ValueError) as exc:
            self.logger.debug(f"[{self.name}] skipping malformed item: {exc}")
            return None

    def open_position_to_record(self, position: dict) -> Optional[PerpRecord]:
        contracts = float(position.get("contracts") or 0)
        if contracts == 0:
            return None
        position_size = contracts if position.get("side") == "long" else -contracts
        ts = position.get("timestamp")
        return PerpRecord(
            # Venues that don't report open time get the observation time
            timestamp=from_unix(ts, unit="ms") if ts else datetime.now(timezone.utc),
            asset=base_asset(position["symbol"]),
            side=classify_perp_side(position_size),
            quantity=abs(position_size),
            position_size=position_size,
            entry_price=float(position["entryPrice"]),
            exit_price=None,
            pnl=None,
            fees=0.0,
            funding=self._open_funding(position),
            exchange=self.exchange_name,
            leverage=float(position.get("leverage") or 0),
            liquidation=False,
            hash=self._open_position_id(position),
            chain=self.chain,
        )

    def _open_funding(self, position: dict) -> float:
        return 0.0

    def _open_position_id(self, position: dict) -> str:
        return position.get("id") or f"{self.name}-{position['symbol']}-{position.get('side')}"
