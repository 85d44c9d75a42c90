from __future__ import annotations

from dataclasses import replace
from decimal import Decimal, localcontext
from typing import Callable, Iterable, Mapping, Sequence

from .models import BurnRecord, ChainResult, CombinedResult, RankedDataset
from .value_types import Address

Converter = Callable[[int], Decimal]


def scale_by(decimals: int) -> Converter:
    """Fixed-point conversion raw / 10**decimals, exact at any magnitude."""
    def _convert(raw: int) -> Decimal:
        raw = int(raw)
        # built from digits, so no context precision applies
        return Decimal((int(raw < 0), tuple(int(d) for d in str(abs(raw))), -decimals))
    return _convert


def _exact_sum(values: Sequence[Decimal]) -> Decimal:
    if not values:
        return Decimal(0)
    top = max(v.adjusted() for v in values)
    bottom = min(v.as_tuple().exponent for v in values)
    with localcontext() as ctx:
        ctx.prec = top - bottom + len(str(len(values))) + 2
        return sum(values, Decimal(0))


def _by_amount_desc(records: Iterable[BurnRecord]) -> list[BurnRecord]:
    # sorted() keeps equal keys in input order, also with reverse=True
    return sorted(records, key=lambda r: r.amount, reverse=True)


def _assign_ranks(records: Sequence[BurnRecord]) -> tuple[BurnRecord, ...]:
    return tuple(replace(r, rank=i) for i, r in enumerate(records, start=1))


def rank_burns(amounts: Mapping[Address, int], chain: str, convert: Converter) -> RankedDataset:
    """
    Turn an address -> raw amount mapping into a ranked dataset.
    Entries that scale to exactly zero are dropped; the raw total covers the kept entries only.
    """
    kept: list[BurnRecord] = []
    total_raw = 0
    for address, raw in amounts.items():
        amount = convert(raw)
        if amount == 0:
            continue
        kept.append(BurnRecord(address=address, amount_raw=int(raw), amount=amount, chain=chain))
        total_raw += int(raw)
    return RankedDataset(records=_assign_ranks(_by_amount_desc(kept)), total_raw=total_raw)


def chain_result(chain: str, ranked: RankedDataset, convert: Converter, output: str | None = None) -> ChainResult:
    return ChainResult(
        chain=chain,
        address_count=len(ranked.records),
        total_raw=ranked.total_raw,
        total_burned=convert(ranked.total_raw),
        records=ranked.records,
        output=output,
    )


def combine_results(results: Sequence[ChainResult]) -> CombinedResult:
    """
    Merge per-chain results into one globally ranked sequence.
    Address counts are summed per chain, so an address burning on two chains counts twice.
    """
    merged = _by_amount_desc(r for res in results for r in res.records)
    return CombinedResult(
        records=_assign_ranks(merged),
        total_addresses=sum(res.address_count for res in results),
        total_burned=_exact_sum([res.total_burned for res in results]),
        chains=tuple(results),
    )
