"""Shared fixtures for the settlement test suite."""

import json

import httpx
import pytest
import pytest_asyncio
from eth_account import Account
from eth_account.messages import encode_defunct

from arena.auth import build_sign_message
from arena.storage import StorageManager


# ── Constants ───────────────────────────────────────────────────────────────

WALLET = "0x24691e54afafe2416a8252097c9ca67557271475"
OTHER_WALLET = "0xabcdef0123456789abcdef0123456789abcdef01"
STAKE_TOKEN = "0x" + "ee" * 20
RPC_URL = "http://rpc.test"

# Last byte 0x02 is even -> heads; 0x03 is odd -> tails
EVEN_BLOCK_HASH = "0x" + "ab" * 31 + "02"
ODD_BLOCK_HASH = "0x" + "ab" * 31 + "03"


# ── RPC node doubles ────────────────────────────────────────────────────────

def block_transport(block_hash: str = EVEN_BLOCK_HASH, number: int = 0x1234, eth_call=None):
    """httpx.MockTransport answering eth_getBlockByNumber (and optionally eth_call)."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        calls.append(body)
        if body["method"] == "eth_getBlockByNumber":
            result = {"number": hex(number), "hash": block_hash}
        elif body["method"] == "eth_call" and eth_call is not None:
            result = eth_call(body["params"][0]["to"], body["params"][0]["data"])
        else:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"],
                                             "error": {"code": -32601, "message": "method not found"}})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    transport = httpx.MockTransport(handler)
    transport.calls = calls
    return transport


def failing_transport():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)


# ── Signing ─────────────────────────────────────────────────────────────────

def sign(account, action: str, nonce: str = None, timestamp: int = None):
    """Build and sign the standard message; returns (message, signature hex)."""
    message = build_sign_message(account.address, action, nonce=nonce, timestamp=timestamp)
    signed = account.sign_message(encode_defunct(text=message))
    return message, "0x" + bytes(signed.signature).hex()


@pytest.fixture
def account():
    return Account.create()


# ── Storage ─────────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def storage():
    sm = StorageManager(":memory:")
    await sm.initialize()
    yield sm
    await sm.close()
