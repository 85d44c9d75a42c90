"""
Shared fixtures: an in-memory ChainRPC, a recording dataset sink and chain descriptors.
"""

import pytest

from burnrank.domain.errors import ExportError
from burnrank.domain.models import ChainDescriptor, TransferLog
from burnrank.domain.value_types import Address, ChainKey, NULL_ADDRESS


A = Address("0x" + "a" * 40)
B = Address("0x" + "b" * 40)
C = Address("0x" + "c" * 40)
D = Address("0x" + "d" * 40)


def burn_log(sender: str, block: int = 1, value: int = 1) -> TransferLog:
    return TransferLog(
        sender=Address(sender), recipient=NULL_ADDRESS, value=value,
        block_number=block, tx_hash="0x" + "0" * 64, log_index=0,
    )


class StubRPC:
    """
    ChainRPC double.

    logs:  {from_block: [TransferLog] | Exception}; missing chunks return no logs
    burns: {address: int | Exception}; missing addresses return 0
    """

    def __init__(self, *, chain_id=1, latest=0, logs=None, burns=None,
                 name="XEN Crypto", symbol="XEN", fail_connect=False, fail_metadata=False):
        self._chain_id = chain_id
        self._latest = latest
        self.logs = logs or {}
        self.burns = burns or {}
        self.name = name
        self.symbol = symbol
        self.fail_connect = fail_connect
        self.fail_metadata = fail_metadata
        self.log_calls: list[tuple[int, int]] = []
        self.burn_calls: list[str] = []
        self.closed = False

    async def chain_id(self):
        if self.fail_connect:
            raise OSError("connection refused")
        return self._chain_id

    async def latest_block(self):
        return self._latest

    async def get_burn_logs(self, contract, from_block, to_block):
        self.log_calls.append((from_block, to_block))
        res = self.logs.get(from_block, [])
        if isinstance(res, Exception):
            raise res
        return list(res)

    async def user_burns(self, contract, account):
        self.burn_calls.append(account)
        res = self.burns.get(account, 0)
        if isinstance(res, Exception):
            raise res
        return res

    async def token_name(self, contract):
        if self.fail_metadata:
            raise RuntimeError("execution reverted")
        return self.name

    async def token_symbol(self, contract):
        if self.fail_metadata:
            raise RuntimeError("execution reverted")
        return self.symbol

    async def aclose(self):
        self.closed = True


class MemorySink:
    """DatasetSink that keeps what it was given."""

    def __init__(self, fail_on: str | None = None):
        self.writes: list[tuple[str, list, str]] = []
        self.fail_on = fail_on

    async def write(self, records, path, *, rank_title="Rank", symbol="XEN"):
        if self.fail_on and self.fail_on in path:
            raise ExportError(path, PermissionError("read-only"))
        self.writes.append((path, list(records), rank_title))
        return path


def make_chain(key="ethereum", name="Ethereum", chain_id=1, start_block=100, chunk_size=10, **kw) -> ChainDescriptor:
    return ChainDescriptor(
        key=ChainKey(key), name=name, chain_id=chain_id, rpc_url="http://node.invalid",
        contract=Address("0x" + "e" * 40), start_block=start_block, chunk_size=chunk_size,
        scan_delay_s=0.0, resolve_delay_s=0.0, **kw,
    )


class FakeSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def sink():
    return MemorySink()


@pytest.fixture
def chain():
    return make_chain()
