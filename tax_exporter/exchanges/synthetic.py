"""
Synthetic record generator used for demos and as the universal fallback.

Records are seeded by (account_id, source_id), so repeated calls for the
same account look alike, while an explicit ``seed`` shifts the stream.
Every generated record satisfies the same invariants as real data.
"""

import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import numpy as np

from tax_exporter.core.classification import classify_perp_side, perp_pnl, spot_total
from tax_exporter.core.models import (
    BUY, SELL, SPOT, PERP, RECORD_TYPES, PerpRecord, Record, SpotRecord, sort_newest_first,
)
from tax_exporter.core.sources import SYNTHETIC, get_source

SPOT_ASSETS = {
    "solana": ["SOL", "USDC", "BONK", "JTO", "HNT"],
    "ethereum": ["ETH", "USDC", "USDT", "LINK", "UNI"],
    "base": ["ETH", "USDC", "cbBTC", "AERO"],
    "arbitrum": ["ETH", "USDC", "ARB", "GMX"],
    "polygon": ["MATIC", "USDC", "LINK", "AAVE"],
}
_SPOT_BASE_PRICES = {"SOL": 100.0, "ETH": 3000.0}

PERP_ASSETS = {"BTC": 60000.0, "ETH": 3000.0, "SOL": 150.0, "ARB": 1.2, "DOGE": 0.15}
_LEVERAGES = [1, 2, 3, 5, 10, 20]
_TAKER_FEE = 0.0005

_SPOT_COUNT = 25
_PERP_COUNT = 20
_MAX_AGE_DAYS = 30
_HASH_ALPHABET = list("0123456789abcdefghijklmnopqrstuvwxyz")


def _seed_for(account_id: str, source_id: str, salt: int = 0) -> int:
    digest = hashlib.sha256(f"{account_id}:{source_id}:{salt}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


class SyntheticAdapter:
    """Not a SourceAdapter subclass: it serves both record types for any source."""
    name = SYNTHETIC

    def __init__(self, seed: int = 0, logger: Optional[logging.Logger] = None) -> None:
        self.seed = seed
        self.logger = logger or logging.getLogger(__name__)

    def fetch(self, account_id: str, source_id: str, record_type: str = SPOT,
              now: Optional[datetime] = None) -> List[Record]:
        if record_type not in RECORD_TYPES:
            raise ValueError(f"Unknown record type: {record_type}")
        now = now or datetime.now(timezone.utc)
        rng = np.random.default_rng(_seed_for(account_id, source_id, self.seed))
        if record_type == PERP:
            return self.generate_perp(rng, account_id, source_id, now)
        return self.generate_spot(rng, account_id, source_id, now)

    def generate_spot(self, rng, account_id, chain, now) -> List[SpotRecord]:
        assets = SPOT_ASSETS.get(chain, SPOT_ASSETS["solana"])
        records = []
        for i in range(_SPOT_COUNT):
            asset = assets[int(rng.integers(len(assets)))]
            base_price = _SPOT_BASE_PRICES.get(asset, float(rng.uniform(0.5, 10.5)))
            price = round(float(base_price * (1 + rng.uniform(-0.05, 0.05))), 6)
            quantity = round(float(rng.uniform(0.01, 10)), 6)
            records.append(SpotRecord(
                timestamp=self._timestamp(rng, now, i),
                chain=chain,
                asset=asset,
                side=BUY if rng.random() < 0.5 else SELL,
                quantity=quantity,
                price=price,
                total=spot_total(quantity, price),
                fees=round(float(rng.uniform(0, 5)), 4),
                hash=self._hash(rng, account_id),
            ))
        return sort_newest_first(records)

    def generate_perp(self, rng, account_id, source_id, now) -> List[PerpRecord]:
        source = get_source(source_id)
        exchange = source.name if source is not None else source_id
        assets = list(PERP_ASSETS)
        records = []
        for i in range(_PERP_COUNT):
            asset = assets[int(rng.integers(len(assets)))]
            entry_price = round(float(PERP_ASSETS[asset] * (1 + rng.uniform(-0.1, 0.1))), 4)
            leverage = int(rng.choice(_LEVERAGES))
            notional = float(rng.uniform(100, 25000))
            size = round(notional / entry_price, 4) or 0.0001
            position_size = size if rng.random() < 0.5 else -size
            notional = size * entry_price

            exit_price = pnl = None
            liquidation = False
            fees = round(notional * _TAKER_FEE, 4)
            if rng.random() >= 0.3:
                move = float(rng.normal(0, 0.05))
                adverse = -move if position_size > 0 else move
                if leverage >= 10 and adverse >= 0.8 / leverage:
                    # Forced close at the maintenance threshold
                    liquidation = True
                    move = -0.8 / leverage if position_size > 0 else 0.8 / leverage
                exit_price = round(entry_price * (1 + move), 4)
                pnl = round(perp_pnl(entry_price, exit_price, position_size), 4)
                fees = round(fees * 2, 4)

            records.append(PerpRecord(
                timestamp=self._timestamp(rng, now, i),
                asset=asset,
                side=classify_perp_side(position_size),
                quantity=abs(position_size),
                position_size=position_size,
                entry_price=entry_price,
                exit_price=exit_price,
                pnl=pnl,
                fees=fees,
                funding=round(float(rng.normal(0, notional * 0.001)), 4),
                exchange=exchange,
                leverage=leverage,
                liquidation=liquidation,
                hash=self._hash(rng, account_id),
                chain=source_id,
            ))
        return sort_newest_first(records)

    @staticmethod
    def _timestamp(rng, now: datetime, i: int) -> datetime:
        # i keeps timestamps distinct so ordering is stable
        return now - timedelta(days=float(rng.uniform(0, _MAX_AGE_DAYS)), seconds=i)

    @staticmethod
    def _hash(rng, account_id: str) -> str:
        return account_id[:8] + "".join(rng.choice(_HASH_ALPHABET, size=8))
