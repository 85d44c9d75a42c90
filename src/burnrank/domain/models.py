from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from .value_types import Address, ChainKey, Phase, UNRANKED

@dataclass(slots=True, frozen=True)
class ChainDescriptor:
    key: ChainKey
    name: str
    chain_id: int                   # expected network id
    rpc_url: str
    contract: Address
    start_block: int
    chunk_size: int                 # blocks per eth_getLogs
    token_symbol: str = "XEN"
    decimals: int = 18
    scan_delay_s: float = 0.05      # pause after every chunk
    resolve_every: int = 100        # pause after every N addresses
    resolve_delay_s: float = 0.05

@dataclass(slots=True, frozen=True)
class BlockRange:
    from_block: int
    to_block: int
    def span(self) -> int: return self.to_block - self.from_block + 1

@dataclass(slots=True, frozen=True)
class TransferLog:
    sender: Address
    recipient: Address
    value: int
    block_number: int
    tx_hash: str
    log_index: int

@dataclass(slots=True, frozen=True)
class BurnRecord:
    address: Address
    amount_raw: int                 # smallest unit, exact
    amount: Decimal                 # scaled by token decimals
    chain: str
    rank: int = UNRANKED

@dataclass(slots=True, frozen=True)
class RankedDataset:
    records: tuple[BurnRecord, ...]
    total_raw: int

@dataclass(slots=True, frozen=True)
class ChainResult:
    chain: str
    address_count: int
    total_raw: int
    total_burned: Decimal
    records: tuple[BurnRecord, ...]
    output: str | None = None

@dataclass(slots=True, frozen=True)
class CombinedResult:
    records: tuple[BurnRecord, ...]
    total_addresses: int
    total_burned: Decimal
    chains: tuple[ChainResult, ...]
    output: str | None = None

@dataclass(slots=True, frozen=True)
class ProgressEvent:
    phase: Phase
    done: int
    total: int
    extra: dict[str, Any] = field(default_factory=dict)

@dataclass(slots=True, frozen=True)
class ConnectionStatus:
    chain: str
    network_id: int
    latest_block: int
    token_name: str | None = None
    token_symbol: str | None = None
