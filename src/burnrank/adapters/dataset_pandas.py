from __future__ import annotations
import os
import pandas as pd
from typing import Sequence

from ..domain.errors import ExportError
from ..domain.models import BurnRecord
from ..ports.storage import DatasetSink

def records_to_frame(records: Sequence[BurnRecord], *, rank_title: str = "Rank", symbol: str = "XEN") -> pd.DataFrame:
    """Rank order is kept; amounts go out as strings so wei values stay exact."""
    return pd.DataFrame(
        {
            rank_title:         [r.rank for r in records],
            "Chain":            [r.chain for r in records],
            "Address":          [r.address for r in records],
            f"Burned {symbol}": [format(r.amount, "f") for r in records],
            "Burned Wei":       [str(r.amount_raw) for r in records],
        },
        columns=[rank_title, "Chain", "Address", f"Burned {symbol}", "Burned Wei"],
    )

class PandasDatasetSink(DatasetSink):
    """Writes `.parquet` paths with pyarrow, everything else as CSV."""

    async def write(
        self,
        records: Sequence[BurnRecord],
        path: str,
        *,
        rank_title: str = "Rank",
        symbol: str = "XEN",
    ) -> str:
        df = records_to_frame(records, rank_title=rank_title, symbol=symbol)
        tmp = path + ".tmp"
        try:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            if path.lower().endswith(".parquet"):
                df.to_parquet(tmp, engine="pyarrow", index=False)
            else:
                df.to_csv(tmp, index=False)
            os.replace(tmp, path)
        except (OSError, ValueError) as e:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise ExportError(path, e) from e
        return path
