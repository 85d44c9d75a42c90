from __future__ import annotations

import dataclasses
import logging
import time
from typing import Callable, Sequence

from ..domain.errors import BurnRankError, ConnectivityError, ExportError
from ..domain.models import ChainDescriptor, ChainResult, CombinedResult, ConnectionStatus
from ..domain.ranking import chain_result, combine_results, rank_burns, scale_by
from ..ports.progress import NullProgress, ProgressSink
from ..ports.rpc import ChainRPC
from ..ports.storage import DatasetSink
from .pacing import NO_RETRY, FixedDelay, RetryPolicy, Throttle
from .planning import plan_chunks
from .scanning import resolve_burns, scan_burners
from .utils import chain_output_path, combined_output_path

log = logging.getLogger(__name__)

RPCFactory = Callable[[ChainDescriptor], ChainRPC]
ProgressFactory = Callable[[ChainDescriptor], ProgressSink]
ThrottleFactory = Callable[[ChainDescriptor], tuple[Throttle, Throttle]]


def default_throttles(chain: ChainDescriptor) -> tuple[Throttle, Throttle]:
    """(scan, resolve) pacing: a pause after every chunk, and one per `resolve_every` addresses."""
    return (
        FixedDelay(chain.scan_delay_s),
        FixedDelay(chain.resolve_delay_s, every=chain.resolve_every),
    )


async def check_connection(rpc: ChainRPC, chain: ChainDescriptor) -> ConnectionStatus:
    """Verify the endpoint serves the expected network. Token metadata is best effort."""
    try:
        network_id = await rpc.chain_id()
        latest = await rpc.latest_block()
    except Exception as e:
        raise ConnectivityError(f"Connection to {chain.name} failed: {type(e).__name__}: {e}") from e
    if network_id != chain.chain_id:
        raise ConnectivityError(f"{chain.name}: expected chain ID {chain.chain_id}, got {network_id}")
    log.info("connected to %s (chain id %d), current block %d", chain.name, network_id, latest)

    name = symbol = None
    try:
        name = await rpc.token_name(chain.contract)
        symbol = await rpc.token_symbol(chain.contract)
        log.info("token: %s (%s) at %s", name, symbol, chain.contract)
    except Exception as e:
        log.warning("could not verify token contract details at %s: %s", chain.contract, e)
    return ConnectionStatus(chain=chain.name, network_id=network_id, latest_block=latest,
                            token_name=name, token_symbol=symbol)


async def snapshot_chain(
    *,
    rpc: ChainRPC,
    chain: ChainDescriptor,
    sink: DatasetSink,
    output: str | None = None,
    retry: RetryPolicy = NO_RETRY,
    throttles: ThrottleFactory = default_throttles,
    progress: ProgressSink | None = None,
) -> ChainResult | None:
    """
    Scan → resolve → rank → export for one chain.

    Returns None when the chain has no burners. Fatal errors (ConnectivityError,
    InvalidRangeError, ChunkScanError) propagate; ExportError carries the computed result.
    """
    t0 = time.time()
    progress = progress or NullProgress()
    status = await check_connection(rpc, chain)

    plan = plan_chunks(chain.start_block, status.latest_block, chain.chunk_size)
    log.info("%s: scanning %s blocks in %s chunks from %d",
             chain.name, f"{status.latest_block - chain.start_block + 1:,}", f"{len(plan):,}", chain.start_block)
    scan_throttle, resolve_throttle = throttles(chain)
    try:
        addresses = await scan_burners(
            rpc=rpc, contract=chain.contract, plan=plan,
            throttle=scan_throttle, retry=retry, progress=progress,
        )
        burns = await resolve_burns(
            rpc=rpc, contract=chain.contract, addresses=addresses,
            throttle=resolve_throttle, retry=retry, progress=progress,
        )
    finally:
        progress.close()

    convert = scale_by(chain.decimals)
    ranked = rank_burns(burns, chain.name, convert)
    if not ranked.records:
        log.warning("no burns found on %s", chain.name)
        return None
    result = chain_result(chain.name, ranked, convert)
    log.info("%s: %d addresses, %s %s burned", chain.name, result.address_count,
             format(result.total_burned, "f"), chain.token_symbol)

    path = output or chain_output_path(chain)
    try:
        written = await sink.write(result.records, path, rank_title="Rank", symbol=chain.token_symbol)
    except ExportError as e:
        e.result = result
        raise
    log.info("%s snapshot complete in %.2fs → %s", chain.name, time.time() - t0, written)
    return dataclasses.replace(result, output=written)


async def snapshot_chains(
    *,
    chains: Sequence[ChainDescriptor],
    rpc_factory: RPCFactory,
    sink: DatasetSink,
    output_prefix: str | None = None,
    retry: RetryPolicy = NO_RETRY,
    throttles: ThrottleFactory = default_throttles,
    progress_factory: ProgressFactory | None = None,
) -> CombinedResult | None:
    """
    Run `snapshot_chain` for each chain, strictly one after another, then combine.

    A chain that fails is logged and left out; earlier results are kept. A chain whose
    export failed still contributes its computed records.
    """
    results: list[ChainResult] = []
    seen: set[str] = set()
    for chain in chains:
        if chain.key in seen:
            log.warning("%s requested twice, running it once", chain.name)
            continue
        seen.add(chain.key)
        log.info("processing %s", chain.name)
        progress = progress_factory(chain) if progress_factory else None
        rpc = rpc_factory(chain)
        try:
            res = await snapshot_chain(
                rpc=rpc, chain=chain, sink=sink,
                output=chain_output_path(chain, output_prefix) if output_prefix else None,
                retry=retry, throttles=throttles, progress=progress,
            )
        except ExportError as e:
            log.error("failed to export %s: %s", chain.name, e)
            res = e.result
        except BurnRankError as e:
            log.error("failed to process %s: %s", chain.name, e)
            res = None
        finally:
            await rpc.aclose()
        if res is not None:
            results.append(res)

    if not results:
        log.warning("no chain produced results")
        return None

    combined = combine_results(results)
    symbol = chains[0].token_symbol if chains else "XEN"
    path = combined_output_path(symbol, output_prefix)
    try:
        written = await sink.write(combined.records, path, rank_title="Global Rank", symbol=symbol)
    except ExportError as e:
        e.result = combined
        raise
    log.info("combined dataset: %d records → %s", len(combined.records), written)
    return dataclasses.replace(combined, output=written)
