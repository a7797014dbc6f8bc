"""
test_coinflip.py - Unit tests for the coinflip fairness protocol.

Covers:
 - Outcome rule (even last byte -> heads), Scenario D
 - Reproducibility of stored outcomes from the block hash
 - Fallback randomness tagging and strict (no-fallback) mode
 - Leaderboard aggregation and the recent-games listing
"""

import random

import pytest
import pytest_asyncio

from arena.auth import PermissiveVerifier
from arena.chain import ChainClient
from arena.coinflip import HEADS, TAILS, CoinflipEngine, outcome_from_byte, outcome_from_hash
from arena.errors import InvalidInput, NotFound, Unavailable
from arena.randomness import RandomnessSource
from tests.conftest import (
    EVEN_BLOCK_HASH, ODD_BLOCK_HASH, OTHER_WALLET, RPC_URL, WALLET,
    block_transport, failing_transport,
)


def _engine(storage, transport, allow_fallback=True):
    chain = ChainClient(RPC_URL, transport=transport)
    randomness = RandomnessSource(chain, allow_fallback=allow_fallback, rng=random.Random(5))
    return CoinflipEngine(storage, randomness, PermissiveVerifier())


@pytest_asyncio.fixture
async def heads_engine(storage):
    return _engine(storage, block_transport(EVEN_BLOCK_HASH, number=100))


@pytest_asyncio.fixture
async def tails_engine(storage):
    return _engine(storage, block_transport(ODD_BLOCK_HASH, number=101))


class TestOutcomeRule:

    @pytest.mark.parametrize("byte,expected", [(0, HEADS), (1, TAILS), (2, HEADS), (255, TAILS)])
    def test_last_byte_parity(self, byte, expected):
        assert outcome_from_byte(byte) == expected

    def test_from_hash(self):
        assert outcome_from_hash(EVEN_BLOCK_HASH) == HEADS
        assert outcome_from_hash(ODD_BLOCK_HASH) == TAILS


@pytest.mark.asyncio
class TestPlay:

    async def test_scenario_d_heads_wins(self, heads_engine, storage):
        result = await heads_engine.play(WALLET, 1, "heads")
        assert result["outcome"] == HEADS
        assert result["result"] == "win"
        assert result["won"] is True
        assert result["provably_fair"] is True
        assert result["block_hash"] == EVEN_BLOCK_HASH
        assert result["block_number"] == 100
        assert result["seed_source"] == EVEN_BLOCK_HASH
        assert result["payout_amount"] == 2.0

        payout = await storage.payouts.get("coinflip", result["game_id"])
        assert payout["owner_wallet"] == WALLET

    async def test_loss_writes_no_payout(self, tails_engine, storage):
        result = await tails_engine.play(WALLET, "0.5", "heads")
        assert result["outcome"] == TAILS
        assert result["result"] == "lose"
        assert "payout_amount" not in result
        assert await storage.payouts.count() == 0
        record = await storage.coinflips.get(result["game_id"])
        assert record["result"] == "lose"
        assert await storage.coinflips.count() == 1

    async def test_record_is_persisted(self, tails_engine, storage):
        result = await tails_engine.play(WALLET, "0.5", "tails", tx_hash="0xfeed")
        record = await storage.coinflips.get(result["game_id"])
        assert record["user_choice"] == TAILS
        assert record["outcome"] == TAILS
        assert record["block_number"] == 101
        assert record["tx_hash"] == "0xfeed"

    @pytest.mark.parametrize("choice", ["HEADS", "edge", "", None])
    async def test_rejects_bad_choice(self, heads_engine, choice):
        with pytest.raises(InvalidInput):
            await heads_engine.play(WALLET, 1, choice)

    @pytest.mark.parametrize("wager", [0, -2, "abc", None])
    async def test_rejects_bad_wager(self, heads_engine, wager):
        with pytest.raises(InvalidInput):
            await heads_engine.play(WALLET, wager, "heads")


@pytest.mark.asyncio
class TestVerify:

    async def test_stored_outcome_is_reproducible(self, heads_engine):
        result = await heads_engine.play(WALLET, 1, "tails")
        check = await heads_engine.verify(result["game_id"])
        assert check["verified"] is True
        assert check["recomputed_outcome"] == check["stored_outcome"] == HEADS
        assert check["block_hash"] == EVEN_BLOCK_HASH

    async def test_fallback_record_is_not_verifiable(self, storage):
        engine = _engine(storage, failing_transport(), allow_fallback=True)
        result = await engine.play(WALLET, 1, "heads")
        check = await engine.verify(result["game_id"])
        assert check["provably_fair"] is False
        assert check["verified"] is False
        assert check["recomputed_outcome"] is None

    async def test_unknown_record(self, heads_engine):
        with pytest.raises(NotFound):
            await heads_engine.verify(12345)


@pytest.mark.asyncio
class TestFallback:

    async def test_fallback_is_tagged(self, storage):
        engine = _engine(storage, failing_transport(), allow_fallback=True)
        result = await engine.play(WALLET, 1, "heads")
        assert result["provably_fair"] is False
        assert result["block_hash"] is None
        assert result["block_number"] is None
        assert result["seed_source"].startswith("0x")
        assert len(result["seed_source"]) == 66

    async def test_strict_mode_refuses_fallback(self, storage):
        engine = _engine(storage, failing_transport(), allow_fallback=False)
        with pytest.raises(Unavailable):
            await engine.play(WALLET, 1, "heads")
        assert await storage.coinflips.count() == 0


@pytest.mark.asyncio
class TestListings:

    async def test_leaderboard(self, heads_engine, tails_engine):
        await heads_engine.play(WALLET, 1, "heads")          # win
        await heads_engine.play(WALLET, 3, "heads")          # win
        await tails_engine.play(WALLET, 2, "heads")          # loss
        await heads_engine.play(OTHER_WALLET, 10, "heads")   # win

        board = await heads_engine.leaderboard()
        assert [row["wallet"] for row in board] == [WALLET, OTHER_WALLET]
        top = board[0]
        assert top["total_games"] == 3
        assert top["wins"] == 2
        assert top["losses"] == 1
        assert top["total_winnings"] == 4.0
        assert top["total_wagered"] == 6.0
        assert top["win_rate"] == 66.67

    async def test_recent_newest_first(self, heads_engine):
        ids = [(await heads_engine.play(WALLET, 1, "heads"))["game_id"] for _ in range(3)]
        games = await heads_engine.recent(2)
        assert [g["id"] for g in games] == ids[::-1][:2]
        assert games[0]["wager"] == 1.0

    @pytest.mark.parametrize("limit", [0, 101, "x"])
    async def test_recent_limit_bounds(self, heads_engine, limit):
        with pytest.raises(InvalidInput):
            await heads_engine.recent(limit)
