# burnrank/domain/errors.py
from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import BlockRange


class BurnRankError(Exception):
    """Base class for every error raised by burnrank."""


class ConfigurationError(BurnRankError):
    """Unknown chain key or incomplete configuration."""


class InvalidRangeError(BurnRankError, ValueError):
    pass


class RPCError(BurnRankError):
    """JSON-RPC error object or malformed response."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class ConnectivityError(BurnRankError):
    pass


class ChunkScanError(BurnRankError):
    """A block range could not be scanned; the whole chain scan is aborted."""

    def __init__(self, chunk_index: int, block_range: BlockRange, cause: BaseException) -> None:
        super().__init__(
            f"chunk {chunk_index + 1} [{block_range.from_block}-{block_range.to_block}] failed: "
            f"{type(cause).__name__}: {cause}"
        )
        self.chunk_index = chunk_index
        self.block_range = block_range
        self.cause = cause


class AddressResolutionError(BurnRankError):
    def __init__(self, address: str, cause: BaseException) -> None:
        super().__init__(f"userBurns({address}) failed: {type(cause).__name__}: {cause}")
        self.address = address
        self.cause = cause


class ExportError(BurnRankError):
    """Writing a dataset failed. The computed result is kept on `result`."""

    def __init__(self, path: str, cause: BaseException, result: Any = None) -> None:
        super().__init__(f"could not write {path}: {type(cause).__name__}: {cause}")
        self.path = path
        self.cause = cause
        self.result = result
