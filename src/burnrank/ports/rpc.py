# burnrank/ports/rpc.py
from __future__ import annotations

from typing import Protocol
from ..domain.models import TransferLog
from ..domain.value_types import Address


class ChainRPC(Protocol):
    """Port defining the read-only queries the burn scan needs from a chain node."""

    async def chain_id(self) -> int:
        """Return the network id reported by the endpoint."""

    async def latest_block(self) -> int:
        """Return the latest block number as an integer."""

    async def get_burn_logs(self, contract: Address, from_block: int, to_block: int) -> list[TransferLog]:
        """Return Transfer(from, to=null, value) logs emitted by `contract` in [from_block, to_block] inclusive."""

    async def user_burns(self, contract: Address, account: Address) -> int:
        """Return `userBurns(account)` as a raw integer."""

    async def token_name(self, contract: Address) -> str: ...

    async def token_symbol(self, contract: Address) -> str: ...

    async def aclose(self) -> None: ...
