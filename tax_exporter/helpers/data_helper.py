"""Helper utilities for DataFrame CSV output.

This module provides:
- save_df_to_csv: CSV writer with optional directory creation and a fixed
  ``\\n`` line terminator, so exports are byte-identical across platforms.
- frame_to_csv_text: the same CSV rendering returned as a string.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

import pandas as pd

LINE_TERMINATOR = "\n"


def frame_to_csv_text(df: pd.DataFrame) -> str:
    """Render a DataFrame as CSV text (header first, no index)."""
    if not isinstance(df, pd.DataFrame):
        raise ValueError("df must be a pandas DataFrame")
    return df.to_csv(index=False, lineterminator=LINE_TERMINATOR)


def save_df_to_csv(
    df: pd.DataFrame,
    file_path: Union[str, Path],
    *,
    create_dirs: bool = True,
) -> Path:
    """Save a DataFrame to CSV and return the written path.

    Parameters
    - df: DataFrame to write
    - file_path: Destination CSV path
    - create_dirs: Create parent directories if missing

    Raises
    - ValueError: If df is not a pandas DataFrame
    - OSError: On I/O errors when writing the file
    """
    text = frame_to_csv_text(df)

    path = Path(file_path)
    parent = os.path.dirname(os.path.abspath(path))
    if create_dirs and parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    # newline="" keeps the terminator exactly as rendered
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)
    return path
