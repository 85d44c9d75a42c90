from __future__ import annotations

import os
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Mapping, Sequence

from eth_utils import is_address

from .domain.errors import ConfigurationError
from .domain.models import ChainDescriptor
from .domain.value_types import Address, ChainKey

API_KEY_ENV = "ALCHEMY_API_KEY"
RPC_OVERRIDE_ENV = "BURNRANK_RPC_{key}"     # e.g. BURNRANK_RPC_BASE


@dataclass(frozen=True)
class _ChainSpec:
    name: str
    chain_id: int
    rpc_template: str
    contract: str
    start_block: int
    chunk_size: int = 450
    scan_delay_s: float = 0.05


# XEN deployments. Optimism and Base start blocks are approximate.
_CHAIN_SPECS: Mapping[str, _ChainSpec] = MappingProxyType({
    "ethereum": _ChainSpec(
        name="Ethereum", chain_id=1,
        rpc_template="https://eth-mainnet.g.alchemy.com/v2/{api_key}",
        contract="0x06450dEe7FD2Fb8E39061434BAbCFC05599a6Fb8",
        start_block=15_732_899, scan_delay_s=0.1,
    ),
    "optimism": _ChainSpec(
        name="Optimism", chain_id=10,
        rpc_template="https://opt-mainnet.g.alchemy.com/v2/{api_key}",
        contract="0xeB585163DEbB1E637c6D617de3bEF99347cd75c8",
        start_block=109_613_347,
    ),
    "base": _ChainSpec(
        name="Base", chain_id=8453,
        rpc_template="https://base-mainnet.g.alchemy.com/v2/{api_key}",
        contract="0xffcbF84650cE02DaFE96926B37a0ac5E34932fa5",
        start_block=3_098_388,
    ),
})

SUPPORTED_CHAINS: tuple[str, ...] = tuple(_CHAIN_SPECS)


def _rpc_url(key: str, spec: _ChainSpec, env: Mapping[str, str]) -> str:
    override = env.get(RPC_OVERRIDE_ENV.format(key=key.upper()))
    if override:
        return override
    api_key = env.get(API_KEY_ENV)
    if not api_key:
        raise ConfigurationError(
            f"no RPC endpoint for {key}: set {API_KEY_ENV} or {RPC_OVERRIDE_ENV.format(key=key.upper())}"
        )
    return spec.rpc_template.format(api_key=api_key)


def load_chains(env: Mapping[str, str] | None = None) -> Mapping[ChainKey, ChainDescriptor]:
    """
    Build the immutable chain table once. Chains without a usable RPC endpoint are left out;
    `resolve_chain` reports them as configuration errors.
    """
    env = os.environ if env is None else env
    table: dict[ChainKey, ChainDescriptor] = {}
    for key, spec in _CHAIN_SPECS.items():
        if not is_address(spec.contract.lower()):
            raise ConfigurationError(f"invalid contract address for {key}: {spec.contract}")
        try:
            rpc_url = _rpc_url(key, spec, env)
        except ConfigurationError:
            continue
        table[ChainKey(key)] = ChainDescriptor(
            key=ChainKey(key),
            name=spec.name,
            chain_id=spec.chain_id,
            rpc_url=rpc_url,
            contract=Address(spec.contract.lower()),
            start_block=spec.start_block,
            chunk_size=spec.chunk_size,
            scan_delay_s=spec.scan_delay_s,
        )
    return MappingProxyType(table)


def resolve_chain(key: str, chains: Mapping[ChainKey, ChainDescriptor]) -> ChainDescriptor:
    k = key.strip().lower()
    if k not in _CHAIN_SPECS:
        raise ConfigurationError(f"Unsupported chain: {key}. Supported chains: {', '.join(SUPPORTED_CHAINS)}")
    chain = chains.get(ChainKey(k))
    if chain is None:
        raise ConfigurationError(
            f"no RPC endpoint for {k}: set {API_KEY_ENV} or {RPC_OVERRIDE_ENV.format(key=k.upper())}"
        )
    return chain


def resolve_chains(keys: Sequence[str], chains: Mapping[ChainKey, ChainDescriptor]) -> list[ChainDescriptor]:
    """
    Resolve every key up front so a typo fails before any chain is scanned.
    A repeated key keeps its first position only.
    """
    picked: dict[ChainKey, ChainDescriptor] = {}
    for k in keys:
        chain = resolve_chain(k, chains)
        picked.setdefault(chain.key, chain)
    return list(picked.values())


def with_chunk_size(chain: ChainDescriptor, chunk_size: int | None) -> ChainDescriptor:
    return chain if not chunk_size else replace(chain, chunk_size=chunk_size)
