"""
Tests for the httpx JSON-RPC adapter.

Requests go through httpx.MockTransport; nothing leaves the process.
"""

import json

import httpx
import pytest

from burnrank.adapters.rpc_httpx import (
    NAME_SIG, TRANSFER_T0, USER_BURNS_SIG, HttpxRPC, _decode_string, _decode_uint256,
)
from burnrank.domain.errors import RPCError

CONTRACT = "0x06450dee7fd2fb8e39061434babcfc05599a6fb8"
SENDER = "0x" + "ab" * 20


def _topic(addr: str) -> str:
    return "0x" + addr[2:].rjust(64, "0")


def _word(n: int) -> str:
    return f"{n:064x}"


def _abi_string(s: str) -> str:
    raw = s.encode()
    padded = raw.hex().ljust(((len(raw) + 31) // 32) * 64, "0")
    return "0x" + _word(32) + _word(len(raw)) + padded


class Node:
    """Scripted JSON-RPC endpoint; records every request body."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        status, payload = self.responses.pop(0)
        if isinstance(payload, dict) and "jsonrpc" not in payload:
            payload = {"jsonrpc": "2.0", "id": body["id"], **payload}
        return httpx.Response(status, json=payload)


def _rpc(node: Node, **kw) -> HttpxRPC:
    return HttpxRPC("http://node.test", transport=httpx.MockTransport(node), **kw)


class TestSignatures:
    def test_transfer_topic(self):
        assert TRANSFER_T0 == "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

    def test_selectors_are_four_bytes(self):
        assert len(USER_BURNS_SIG) == 10 and USER_BURNS_SIG.startswith("0x")
        assert NAME_SIG == "0x06fdde03"


class TestDecoding:
    def test_uint256(self):
        assert _decode_uint256("0x" + _word(12345)) == 12345

    def test_empty_return_is_error(self):
        with pytest.raises(RPCError):
            _decode_uint256("0x")

    def test_abi_string(self):
        assert _decode_string(_abi_string("XEN Crypto")) == "XEN Crypto"

    def test_bytes32_string(self):
        assert _decode_string("0x" + b"MKR".hex().ljust(64, "0")) == "MKR"


class TestHttpxRPC:

    @pytest.mark.asyncio
    async def test_chain_id_and_latest_block(self):
        node = Node([(200, {"result": "0x1"}), (200, {"result": "0x10"})])
        async with _rpc(node) as rpc:
            assert await rpc.chain_id() == 1
            assert await rpc.latest_block() == 16
        assert [r["method"] for r in node.requests] == ["eth_chainId", "eth_blockNumber"]

    @pytest.mark.asyncio
    async def test_get_burn_logs_filters_on_null_recipient(self):
        log = {
            "address": CONTRACT,
            "topics": [TRANSFER_T0, _topic(SENDER.upper().replace("0X", "0x")), _topic("0x" + "0" * 40)],
            "data": "0x" + _word(5 * 10**18),
            "blockNumber": "0xf0",
            "transactionHash": "0x" + "AA" * 32,
            "logIndex": "0x3",
        }
        node = Node([(200, {"result": [log]})])
        async with _rpc(node) as rpc:
            logs = await rpc.get_burn_logs(CONTRACT, 100, 200)

        params = node.requests[0]["params"][0]
        assert node.requests[0]["method"] == "eth_getLogs"
        assert params["fromBlock"] == "0x64" and params["toBlock"] == "0xc8"
        assert params["address"] == CONTRACT
        assert params["topics"] == [TRANSFER_T0, None, "0x" + "0" * 64]

        assert len(logs) == 1
        assert logs[0].sender == SENDER
        assert logs[0].recipient == "0x" + "0" * 40
        assert logs[0].value == 5 * 10**18
        assert logs[0].block_number == 240
        assert logs[0].log_index == 3
        assert logs[0].tx_hash == "0x" + "aa" * 32

    @pytest.mark.asyncio
    async def test_user_burns_call(self):
        node = Node([(200, {"result": "0x" + _word(777)})])
        async with _rpc(node) as rpc:
            amount = await rpc.user_burns(CONTRACT, SENDER)

        call = node.requests[0]["params"]
        assert node.requests[0]["method"] == "eth_call"
        assert call[1] == "latest"
        assert call[0]["to"] == CONTRACT
        assert call[0]["data"] == USER_BURNS_SIG + SENDER[2:].rjust(64, "0")
        assert amount == 777

    @pytest.mark.asyncio
    async def test_token_metadata(self):
        node = Node([(200, {"result": _abi_string("XEN Crypto")}), (200, {"result": _abi_string("XEN")})])
        async with _rpc(node) as rpc:
            assert await rpc.token_name(CONTRACT) == "XEN Crypto"
            assert await rpc.token_symbol(CONTRACT) == "XEN"

    @pytest.mark.asyncio
    async def test_rpc_error_object_raises(self):
        node = Node([(200, {"error": {"code": -32005, "message": "query returned more than 10000 results"}})])
        async with _rpc(node) as rpc:
            with pytest.raises(RPCError) as exc:
                await rpc.get_burn_logs(CONTRACT, 0, 10)
        assert exc.value.code == -32005

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        node = Node([(503, {"error": "unavailable"})])
        async with _rpc(node) as rpc:
            with pytest.raises(httpx.HTTPStatusError):
                await rpc.latest_block()

    @pytest.mark.asyncio
    async def test_rate_limit_backs_off_then_succeeds(self, monkeypatch):
        slept = []

        async def no_sleep(delay):
            slept.append(delay)

        monkeypatch.setattr("burnrank.adapters.rpc_httpx.asyncio.sleep", no_sleep)
        node = Node([(429, {"error": "slow down"}), (200, {"result": "0x2a"})])
        async with _rpc(node) as rpc:
            assert await rpc.latest_block() == 42
        assert slept == [1.0]
        assert len(node.requests) == 2

    @pytest.mark.asyncio
    async def test_rate_limit_exhausted(self, monkeypatch):
        async def no_sleep(delay):
            return None

        monkeypatch.setattr("burnrank.adapters.rpc_httpx.asyncio.sleep", no_sleep)
        node = Node([(429, {"error": "slow down"})] * 3)
        async with _rpc(node, max_429_retries=2) as rpc:
            with pytest.raises(httpx.HTTPStatusError):
                await rpc.latest_block()
        assert len(node.requests) == 3
