from datetime import datetime, timezone

from ..domain.models import ChainDescriptor


def _now_ts_str() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")


def chain_output_path(chain: ChainDescriptor, prefix: str | None = None) -> str:
    if prefix:
        return f"{prefix}_{chain.key}.csv"
    return f"{chain.key}_{chain.token_symbol.lower()}_burns_{_now_ts_str()}.csv"


def combined_output_path(symbol: str = "XEN", prefix: str | None = None) -> str:
    if prefix:
        return f"{prefix}_combined.csv"
    return f"multichain_{symbol.lower()}_burns_{_now_ts_str()}.csv"
