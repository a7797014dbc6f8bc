"""
Shared fixtures for HTTP integration tests.

Provides a GameServer backed by in-memory SQLite and a mocked RPC node,
driven through FastAPI's TestClient so the app lifespan runs for real.
"""

import pytest
from fastapi.testclient import TestClient

from arena.auth import EthSignatureVerifier
from arena.chain import ChainClient
from arena.config import ServerConfig
from arena.grid import TOTAL_TILES
from arena.server import GameServer
from tests.conftest import EVEN_BLOCK_HASH, RPC_URL, block_transport


def make_server(environment="development", block_hash=EVEN_BLOCK_HASH, verifier=None, transport=None):
    config = ServerConfig(db_path=":memory:", rpc_url=RPC_URL, environment=environment)
    chain = ChainClient(RPC_URL, transport=transport or block_transport(block_hash))
    return GameServer(config, chain=chain, verifier=verifier)


def mine_layout(client, server, session_id):
    """Read the hidden layout straight from storage (test-only peek)."""
    session = client.portal.call(server.storage.mines.get, session_id)
    mines = session.grid.mine_positions()
    return mines, [i for i in range(TOTAL_TILES) if i not in mines]


@pytest.fixture
def server():
    return make_server()


@pytest.fixture
def client(server):
    with TestClient(server.app) as c:
        yield c


@pytest.fixture
def signed_server():
    return make_server(verifier=EthSignatureVerifier())


@pytest.fixture
def signed_client(signed_server):
    with TestClient(signed_server.app) as c:
        yield c
