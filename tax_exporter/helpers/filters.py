"""Record Filters and Summaries

Pure functions over an already-fetched, already-sorted list of records.
Nothing here mutates its input; every filter returns a new list so filters
can be chained freely. ``apply_filters`` fixes the chaining order
(date -> asset -> side -> search) for reproducible results.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from tax_exporter.core.models import BUY, SELL, SPOT, PERP, Record

ALL = "all"

# Date filter modes and their lookback in days
DATE_WINDOWS = {"week": 7, "month": 30}


def filter_by_date(records: Iterable[Record], mode: str = ALL, now: Optional[datetime] = None) -> list[Record]:
    """Keep records with timestamp >= now - N days (inclusive)."""
    if mode == ALL:
        return list(records)
    if mode not in DATE_WINDOWS:
        raise ValueError(f"Unknown date filter: {mode}")
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=DATE_WINDOWS[mode])
    return [r for r in records if r.timestamp >= cutoff]


def filter_by_asset(records: Iterable[Record], asset: str = ALL) -> list[Record]:
    if asset == ALL:
        return list(records)
    return [r for r in records if r.asset == asset]


def filter_by_side(records: Iterable[Record], side: str = ALL) -> list[Record]:
    if side == ALL:
        return list(records)
    return [r for r in records if r.side == side]


def filter_by_search(records: Iterable[Record], query: str = "") -> list[Record]:
    """Case-insensitive substring match on asset, hash or side."""
    if not query:
        return list(records)
    q = query.lower()
    return [
        r for r in records
        if q in r.asset.lower() or q in r.hash.lower() or q in r.side.lower()
    ]


def apply_filters(
    records: Iterable[Record],
    date: str = ALL,
    asset: str = ALL,
    side: str = ALL,
    search: str = "",
    now: Optional[datetime] = None,
) -> list[Record]:
    filtered = filter_by_date(records, date, now=now)
    filtered = filter_by_asset(filtered, asset)
    filtered = filter_by_side(filtered, side)
    return filter_by_search(filtered, search)


def unique_assets(records: Iterable[Record]) -> list[str]:
    return sorted({r.asset for r in records})


def summarize(records: list[Record], record_type: str) -> dict:
    """Summary statistics for the table header.

    spot: trade_count, total_buys, total_sells, total_fees, unique_asset_count
    perp: trade_count, total_pnl, total_fees, total_funding,
          open_position_count, unique_asset_count

    Open perp positions contribute 0 to total_pnl.
    """
    for r in records:
        if r.kind != record_type:
            raise ValueError(f"Cannot summarize {r.kind} record as {record_type}")

    if record_type == SPOT:
        return {
            "trade_count": len(records),
            "total_buys": sum(r.total for r in records if r.side == BUY),
            "total_sells": sum(r.total for r in records if r.side == SELL),
            "total_fees": sum(r.fees for r in records),
            "unique_asset_count": len(unique_assets(records)),
        }
    elif record_type == PERP:
        return {
            "trade_count": len(records),
            "total_pnl": sum(r.pnl for r in records if r.pnl is not None),
            "total_fees": sum(r.fees for r in records),
            "total_funding": sum(r.funding for r in records),
            "open_position_count": sum(1 for r in records if r.exit_price is None),
            "unique_asset_count": len(unique_assets(records)),
        }
    raise ValueError(f"Unknown record type: {record_type}")
