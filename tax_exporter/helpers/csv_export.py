"""CSV Export

Renders canonical records in the fixed column layouts the tax tool imports:

    spot: timestamp,chain,asset,side,quantity,price,total,fees,hash
    perp: timestamp,asset,side,quantity,entry_price,exit_price,pnl,fees,
          funding,exchange,leverage,liquidation,chain,hash

Numbers keep their natural decimal representation (no rounding, no
exponent notation: 5000 lamports of fees is 0.000005, 10.0 is 10). Missing
values (open-position exit_price/pnl, unknown spot price) become empty
strings and liquidation is written as YES/NO.
"""

from pathlib import Path
from typing import Iterable, Union

import numpy as np
import pandas as pd

from tax_exporter.core.models import SPOT, PERP, Record, format_timestamp
from tax_exporter.helpers.data_helper import frame_to_csv_text, save_df_to_csv

SPOT_COLUMNS = ["timestamp", "chain", "asset", "side", "quantity", "price", "total", "fees", "hash"]
PERP_COLUMNS = [
    "timestamp", "asset", "side", "quantity", "entry_price", "exit_price", "pnl",
    "fees", "funding", "exchange", "leverage", "liquidation", "chain", "hash",
]

COLUMNS = {SPOT: SPOT_COLUMNS, PERP: PERP_COLUMNS}


def format_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "YES" if value else "NO"
    if hasattr(value, "tzinfo"):
        return format_timestamp(value)
    if isinstance(value, float):
        # Shortest round-trip digits, never exponent notation
        return np.format_float_positional(value, trim="-")
    return str(value)


def record_to_row(record: Record) -> list[str]:
    if record.kind not in COLUMNS:
        raise ValueError(f"Unknown record kind: {record.kind}")
    return [format_value(getattr(record, col)) for col in COLUMNS[record.kind]]


def records_to_frame(records: Iterable[Record], record_type: str = SPOT) -> pd.DataFrame:
    """All-string DataFrame in export column order."""
    if record_type not in COLUMNS:
        raise ValueError(f"Unknown record type: {record_type}")
    rows = []
    for record in records:
        if record.kind != record_type:
            raise ValueError(f"Cannot export {record.kind} record as {record_type}")
        rows.append(record_to_row(record))
    return pd.DataFrame(rows, columns=COLUMNS[record_type], dtype=object)


def to_csv(records: Iterable[Record], record_type: str = SPOT) -> str:
    """CSV text, header first, rows terminated by \\n."""
    return frame_to_csv_text(records_to_frame(records, record_type))


def export_filename(record_type: str, account_id: str) -> str:
    return f"{record_type}-export-{account_id[:8]}.csv"


def export_to_file(
    records: Iterable[Record],
    record_type: str,
    account_id: str,
    folder: Union[str, Path],
) -> Path:
    df = records_to_frame(records, record_type)
    return save_df_to_csv(df, Path(folder) / export_filename(record_type, account_id))
