# burnrank/ports/storage.py
from __future__ import annotations

from typing import Protocol, Sequence
from ..domain.models import BurnRecord


class DatasetSink(Protocol):
    """Port for writing a ranked burn dataset (e.g., CSV or Parquet)."""

    async def write(
        self,
        records: Sequence[BurnRecord],
        path: str,
        *,
        rank_title: str = "Rank",
        symbol: str = "XEN",
    ) -> str:
        """Persist `records` in rank order and return the written path."""
