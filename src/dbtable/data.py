"""
DataFrame conversion for table reads.
"""
from collections.abc import Iterable, Sequence
from typing import Any

import pandas as pd

__all__ = ['rows_to_frame']


def rows_to_frame(rows: Iterable[Sequence[Any]] | None, columns: Sequence[str]) -> pd.DataFrame:
    """Standard pandas DataFrame loader.

    Always returns a DataFrame, never None, with columns preserved for empty results.
    """
    rows = list(rows or [])
    if not rows:
        return pd.DataFrame(columns=list(columns))
    return pd.DataFrame.from_records(rows, columns=list(columns))
