from __future__ import annotations
from typing import Iterator
from ..domain.errors import InvalidRangeError
from ..domain.models import BlockRange

def count_chunks(start_block: int, end_block: int, step: int) -> int:
    return -(-(end_block - start_block + 1) // step)

class ChunkPlan:
    """Lazy, re-iterable partition of [start_block, end_block] into `step`-sized ranges."""

    def __init__(self, start_block: int, end_block: int, step: int) -> None:
        if step < 1:
            raise InvalidRangeError(f"chunk size must be >= 1, got {step}")
        if end_block < start_block:
            raise InvalidRangeError(f"latest block ({end_block}) is below start block ({start_block})")
        self.start_block = start_block
        self.end_block = end_block
        self.step = step

    def __len__(self) -> int:
        return count_chunks(self.start_block, self.end_block, self.step)

    def __iter__(self) -> Iterator[BlockRange]:
        b = self.start_block
        while b <= self.end_block:
            fb, tb = b, min(self.end_block, b + self.step - 1)
            yield BlockRange(from_block=fb, to_block=tb)
            b = tb + 1

def plan_chunks(start_block: int, end_block: int, step: int) -> ChunkPlan:
    return ChunkPlan(start_block, end_block, step)
