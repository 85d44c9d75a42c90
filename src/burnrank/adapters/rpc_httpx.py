from __future__ import annotations
import asyncio, logging, httpx
from typing import Any
from eth_utils import encode_hex, event_signature_to_log_topic, function_signature_to_4byte_selector
from ..domain.errors import RPCError
from ..domain.models import TransferLog
from ..domain.value_types import Address, NULL_ADDRESS
from ..ports.rpc import ChainRPC

log = logging.getLogger(__name__)

TRANSFER_T0     = encode_hex(event_signature_to_log_topic("Transfer(address,address,uint256)"))
USER_BURNS_SIG  = encode_hex(function_signature_to_4byte_selector("userBurns(address)"))
NAME_SIG        = encode_hex(function_signature_to_4byte_selector("name()"))
SYMBOL_SIG      = encode_hex(function_signature_to_4byte_selector("symbol()"))

def _to_hex_block(n: int) -> str: return hex(int(n))
def _addr_topic(a: str) -> str: return "0x" + a.lower()[2:].rjust(64, "0")
def _addr_from_topic(t: str) -> Address: return Address("0x" + t.lower()[-40:])
def _strip0x(h: str) -> str: return h[2:] if h[:2].lower() == "0x" else h

def _decode_uint256(result: str) -> int:
    h = _strip0x(result or "")
    if not h:
        raise RPCError("empty return data (reverted or not a contract)")
    return int(h[:64], 16)

def _decode_string(result: str) -> str:
    b = bytes.fromhex(_strip0x(result or ""))
    if len(b) == 32:                              # bytes32-style tokens
        return b.rstrip(b"\x00").decode("utf-8", "replace")
    if len(b) < 64:
        raise RPCError(f"cannot decode string from {len(b)} bytes")
    offset = int.from_bytes(b[:32], "big")
    length = int.from_bytes(b[offset:offset+32], "big")
    return b[offset+32:offset+32+length].decode("utf-8", "replace")

def _parse_log(rl: dict[str, Any]) -> TransferLog:
    topics = rl.get("topics", [])
    if len(topics) < 3:
        raise RPCError(f"Transfer log without indexed from/to: {rl.get('transactionHash')}")
    data = _strip0x(rl.get("data") or "0x")
    return TransferLog(
        sender=_addr_from_topic(topics[1]),
        recipient=_addr_from_topic(topics[2]),
        value=int(data, 16) if data else 0,
        block_number=int(rl["blockNumber"], 16),
        tx_hash=(rl.get("transactionHash") or "").lower(),
        log_index=int(rl["logIndex"], 16),
    )

class HttpxRPC(ChainRPC):
    def __init__(
        self,
        rpc_url: str,
        timeout_s: int = 20,
        max_conn: int = 8,
        *,
        max_429_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.max_429_retries = max_429_retries
        self._id = 0
        self.client = httpx.AsyncClient(
            http2=transport is None,
            timeout=httpx.Timeout(timeout_s),
            limits=httpx.Limits(max_connections=max_conn, max_keepalive_connections=max(1, max_conn//2)),
            transport=transport,
        )

    async def __aenter__(self) -> "HttpxRPC":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        self._id += 1
        payload = {"jsonrpc": "2.0", "id": self._id, "method": method, "params": params}
        # back off on 429; every other failure is left to the caller's RetryPolicy
        for attempt in range(self.max_429_retries + 1):
            r = await self.client.post(self.rpc_url, json=payload)
            if r.status_code == 429 and attempt < self.max_429_retries:
                ra = r.headers.get("Retry-After")
                delay = max(1.0, float(ra)) if ra and ra.isdigit() else (1.0 * (2**attempt))
                log.debug("%s rate limited, sleeping %.1fs", method, delay)
                await asyncio.sleep(delay); continue
            r.raise_for_status()
            data = r.json()
            if "error" in data:
                err = data["error"]
                if isinstance(err, dict):
                    raise RPCError(f"{method} RPC error code={err.get('code')} message={err.get('message')}", err.get("code"))
                raise RPCError(f"{method} RPC error: {err}")
            if "result" not in data:
                raise RPCError(f"{method}: response has no result")
            return data["result"]
        raise RPCError(f"Retries exhausted for {method}")

    async def chain_id(self) -> int:
        return int(await self._call("eth_chainId", []), 16)

    async def latest_block(self) -> int:
        return int(await self._call("eth_blockNumber", []), 16)

    async def get_burn_logs(self, contract: Address, from_block: int, to_block: int) -> list[TransferLog]:
        res = await self._call("eth_getLogs", [{
            "address": str(contract),
            "fromBlock": _to_hex_block(from_block),
            "toBlock": _to_hex_block(to_block),
            "topics": [TRANSFER_T0, None, _addr_topic(NULL_ADDRESS)],
        }])
        return [_parse_log(rl) for rl in (res or [])]

    async def _eth_call(self, contract: Address, data: str) -> str:
        return await self._call("eth_call", [{"to": str(contract), "data": data}, "latest"])

    async def user_burns(self, contract: Address, account: Address) -> int:
        data = USER_BURNS_SIG + _strip0x(_addr_topic(account))
        return _decode_uint256(await self._eth_call(contract, data))

    async def token_name(self, contract: Address) -> str:
        return _decode_string(await self._eth_call(contract, NAME_SIG))

    async def token_symbol(self, contract: Address) -> str:
        return _decode_string(await self._eth_call(contract, SYMBOL_SIG))
