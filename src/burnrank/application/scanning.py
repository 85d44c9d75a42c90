from __future__ import annotations

import logging
from typing import Iterable

from ..domain.errors import AddressResolutionError, ChunkScanError
from ..domain.models import BlockRange, ProgressEvent
from ..domain.value_types import Address
from ..ports.progress import NullProgress, ProgressSink
from ..ports.rpc import ChainRPC
from .pacing import NO_RETRY, NoThrottle, RetryPolicy, Throttle
from .planning import ChunkPlan

log = logging.getLogger(__name__)


def _emit(progress: ProgressSink, event: ProgressEvent) -> None:
    try:
        progress.update(event)
    except Exception as e:
        log.warning("progress sink failed on %s event: %s", event.phase, e)


async def scan_burners(
    *,
    rpc: ChainRPC,
    contract: Address,
    plan: ChunkPlan,
    throttle: Throttle | None = None,
    retry: RetryPolicy = NO_RETRY,
    progress: ProgressSink | None = None,
) -> list[Address]:
    """
    Collect every distinct sender of a Transfer to the null address, in discovery order.

    Chunks are queried one at a time. A chunk that still fails once `retry` is exhausted
    aborts the whole scan with ChunkScanError; no partial address list is returned.
    """
    throttle = throttle or NoThrottle()
    progress = progress or NullProgress()
    total = len(plan)
    seen: dict[Address, None] = {}   # ordered set

    for idx, br in enumerate(plan):
        def query(br: BlockRange = br):
            return rpc.get_burn_logs(contract, br.from_block, br.to_block)
        try:
            logs = await retry.run(query, what=f"eth_getLogs {br.from_block}-{br.to_block}")
        except Exception as e:
            log.error("scan aborted at chunk %d/%d (%d-%d): %s", idx + 1, total, br.from_block, br.to_block, e)
            raise ChunkScanError(idx, br, e) from e

        for ev in logs:
            seen.setdefault(Address(ev.sender.lower()), None)

        _emit(progress, ProgressEvent("scan", idx + 1, total, {"addresses": len(seen)}))
        await throttle.after(idx + 1)

    log.info("scan complete: %d chunks, %d unique addresses", total, len(seen))
    return list(seen)


async def resolve_burns(
    *,
    rpc: ChainRPC,
    contract: Address,
    addresses: Iterable[Address],
    throttle: Throttle | None = None,
    retry: RetryPolicy = NO_RETRY,
    progress: ProgressSink | None = None,
) -> dict[Address, int]:
    """
    Read `userBurns(address)` for every address and keep the strictly positive ones.

    A lookup that fails is logged and skipped; the rest of the batch goes on.
    Pacing counts failed lookups too.
    """
    throttle = throttle or NoThrottle()
    progress = progress or NullProgress()
    todo = list(addresses)
    total = len(todo)
    burns: dict[Address, int] = {}
    failed = 0

    for i, addr in enumerate(todo, start=1):
        def query(addr: Address = addr):
            return rpc.user_burns(contract, addr)
        try:
            amount = await retry.run(query, what=f"userBurns({addr})")
        except Exception as e:
            failed += 1
            log.warning("skipped: %s", AddressResolutionError(addr, e))
        else:
            if amount > 0:
                burns[addr] = int(amount)

        _emit(progress, ProgressEvent("resolve", i, total, {"burners": len(burns), "failed": failed}))
        await throttle.after(i)

    if failed:
        log.warning("%d of %d userBurns lookups failed and were skipped", failed, total)
    log.info("resolve complete: %d of %d addresses have burns", len(burns), total)
    return burns
