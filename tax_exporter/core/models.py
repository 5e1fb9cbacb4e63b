from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

SPOT = "spot"
PERP = "perp"
RECORD_TYPES = (SPOT, PERP)

# Spot sides
BUY = "BUY"
SELL = "SELL"
TRANSFER = "TRANSFER"
TRANSFER_IN = "TRANSFER_IN"
TRANSFER_OUT = "TRANSFER_OUT"

# Perp sides
LONG = "LONG"
SHORT = "SHORT"

SPOT_SIDES = (BUY, SELL, TRANSFER, TRANSFER_IN, TRANSFER_OUT)
PERP_SIDES = (LONG, SHORT)

# Sentinel for "no oracle price available", distinct from a real 0.0 price
UNKNOWN_PRICE = None


@dataclass
class SpotRecord:
    timestamp: datetime   # UTC-aware
    chain: str            # e.g. "solana", "ethereum"
    asset: str            # symbol or shortened mint/contract address
    side: str             # one of SPOT_SIDES
    quantity: float
    price: Optional[float]  # None when unpriced
    total: float
    fees: float
    hash: str
    kind: str = field(default=SPOT, init=False)

    def __post_init__(self):
        if self.side not in SPOT_SIDES:
            raise ValueError(f"Invalid spot side: {self.side}")
        if self.quantity < 0:
            raise ValueError("quantity must be non-negative")
        if self.fees < 0:
            raise ValueError("fees must be non-negative")

    @property
    def is_priced(self) -> bool:
        return self.price is not UNKNOWN_PRICE


@dataclass
class PerpRecord:
    timestamp: datetime   # open time if open, close time if closed
    asset: str            # underlying, e.g. "BTC"
    side: str             # LONG or SHORT
    quantity: float       # abs(position_size)
    position_size: float  # signed, positive = long
    entry_price: float
    exit_price: Optional[float]
    pnl: Optional[float]
    fees: float
    funding: float
    exchange: str         # display name of the venue
    leverage: float       # 0 when not applicable
    liquidation: bool
    hash: str
    chain: str
    kind: str = field(default=PERP, init=False)

    def __post_init__(self):
        if self.side not in PERP_SIDES:
            raise ValueError(f"Invalid perp side: {self.side}")
        if (self.exit_price is None) != (self.pnl is None):
            raise ValueError("exit_price and pnl must both be set (closed) or both be None (open)")

    @property
    def is_open(self) -> bool:
        return self.exit_price is None


Record = Union[SpotRecord, PerpRecord]


def sort_newest_first(records: list[Record]) -> list[Record]:
    """Return a new list ordered by timestamp, most recent first."""
    return sorted(records, key=lambda r: r.timestamp, reverse=True)


def from_unix(ts: float, unit: str = "s") -> datetime:
    """Convert a unix timestamp in seconds or milliseconds to a UTC datetime."""
    if unit == "ms":
        ts = ts / 1000
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2025-01-31T12:00:00.000Z"""
    ts = ts.astimezone(timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


def record_to_dict(record: Record) -> dict:
    """JSON-friendly representation used by the query handler."""
    if record.kind == SPOT:
        return {
            "kind": SPOT,
            "timestamp": format_timestamp(record.timestamp),
            "chain": record.chain,
            "asset": record.asset,
            "side": record.side,
            "quantity": record.quantity,
            "price": record.price,
            "total": record.total,
            "fees": record.fees,
            "hash": record.hash,
        }
    elif record.kind == PERP:
        return {
            "kind": PERP,
            "timestamp": format_timestamp(record.timestamp),
            "asset": record.asset,
            "side": record.side,
            "quantity": record.quantity,
            "position_size": record.position_size,
            "entry_price": record.entry_price,
            "exit_price": record.exit_price,
            "pnl": record.pnl,
            "fees": record.fees,
            "funding": record.funding,
            "exchange": record.exchange,
            "leverage": record.leverage,
            "liquidation": record.liquidation,
            "hash": record.hash,
            "chain": record.chain,
        }
    raise ValueError(f"Unknown record kind: {record.kind}")
