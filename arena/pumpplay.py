"""
pumpplay.py - PumpPlay rounds.

A round offers up to five candidate coins for a fixed window (24 hours by
default). Each bet backs one candidate: the bet row and the new pool total are
written together under the round's row lock, and the pool update is
conditional on the total read under that lock. A bet that arrives after the
window closes the round instead of joining it.

Listing rounds keeps the schedule moving: open rounds past their end are
closed, and when no round is open a new one is opened from the most recently
registered coins that carry a token address. Rounds are closed, never resolved;
no payout is credited for PumpPlay.
"""

import logging
import time
from typing import TYPE_CHECKING, Optional

from arena.auth import DEFAULT_MAX_AGE_MS, SIGNED_ACTIONS, SignatureVerifier
from arena.errors import Conflict, InvalidInput, InvalidState, NotFound
from arena.storage.pumpplay import OPEN
from arena.validation import integer_in_range, normalize_wallet, positive_decimal

if TYPE_CHECKING:
    from arena.storage import StorageManager

logger = logging.getLogger("pumpplay")

ROUND_DURATION_MS = 24 * 60 * 60 * 1000
CANDIDATES_PER_ROUND = 5
MIN_CANDIDATES = 2
RECENT_ROUNDS = 50
ROUND_TABLE = "pumpplay_rounds"


def _unknown_coin(coin_id: str) -> dict:
    return {"id": coin_id, "name": "Unknown", "symbol": "UNK", "token_address": coin_id}


class PumpPlayEngine:
    def __init__(
        self,
        storage: "StorageManager",
        verifier: SignatureVerifier,
        signature_max_age_ms: int = DEFAULT_MAX_AGE_MS,
        round_duration_ms: int = ROUND_DURATION_MS,
    ):
        self._storage = storage
        self._verifier = verifier
        self._max_age_ms = signature_max_age_ms
        self._round_duration_ms = round_duration_ms

    async def bet(
        self,
        round_id,
        owner_wallet: str,
        coin_id: str,
        amount,
        token_address: Optional[str] = None,
        tx_hash: Optional[str] = None,
        message: Optional[str] = None,
        signature: Optional[str] = None,
    ) -> dict:
        round_id = integer_in_range(round_id, 1, 2 ** 63 - 1, "Round id")
        wallet = normalize_wallet(owner_wallet)
        stake = positive_decimal(amount, "Amount")
        if not isinstance(coin_id, str) or not coin_id.strip():
            raise InvalidInput("Coin id is required")
        coin_id = coin_id.strip()
        token = normalize_wallet(token_address, "Token address") if token_address else None
        self._verifier.verify(message, signature, wallet, self._max_age_ms, action=SIGNED_ACTIONS["pumpplay"])

        repo = self._storage.pumpplay
        current = await self._storage.guard.bounded(repo.get_round(round_id))
        if current is None:
            raise NotFound("Round not found")
        if current["status"] != OPEN:
            raise InvalidState("Round is not open for betting")
        if coin_id not in current["candidates"]:
            raise InvalidInput("Selected coin is not a candidate in this round")

        async def _apply(db):
            locked = await repo.get_round(round_id)
            if locked is None:
                raise NotFound("Round not found")
            if locked["status"] != OPEN:
                raise Conflict("Round was closed by a concurrent request")
            if int(time.time() * 1000) >= locked["ends_at"]:
                await repo.close_round(round_id)
                return None
            placed = await repo.insert_bet(round_id, wallet, coin_id, stake, token_address=token, tx_hash=tx_hash)
            pool = locked["total_pool"] + stake
            if await repo.add_to_pool(round_id, pool, locked["total_pool"]) == 0:
                raise Conflict("Round pool was modified by a concurrent request")
            return placed, pool

        try:
            outcome = await self._storage.guard.run_locked(ROUND_TABLE, round_id, _apply)
        except Conflict:
            logger.warning("Lost race on PumpPlay round %d (wallet=%s)", round_id, wallet)
            raise
        if outcome is None:
            logger.info("PumpPlay round %d closed by a late bet from %s", round_id, wallet)
            raise InvalidState("Round has ended")

        placed, pool = outcome
        logger.info(
            "PumpPlay bet %d: round=%d wallet=%s coin=%s amount=%s pool=%s",
            placed["id"], round_id, wallet, coin_id, stake, pool,
        )
        return {
            "round_id": round_id,
            "bet_id": placed["id"],
            "coin_id": coin_id,
            "amount": float(stake),
            "total_pool": float(pool),
            "message": "Bet placed successfully",
        }

    async def _maintain_schedule(self, now: int):
        """Close expired rounds and open a new one when none is open, in one transaction."""
        repo = self._storage.pumpplay

        async def _maintain(db):
            closed = await repo.close_expired(now)
            opened = None
            if await repo.count_open() == 0:
                coins = await self._storage.coins.latest_with_token(CANDIDATES_PER_ROUND)
                if len(coins) >= MIN_CANDIDATES:
                    opened = await repo.insert_round([c["id"] for c in coins], now + self._round_duration_ms)
            return closed, opened

        closed, opened = await self._storage.guard.run_write(_maintain)
        if closed:
            logger.info("Closed %d expired PumpPlay round(s)", closed)
        if opened:
            logger.info("Opened PumpPlay round %d with %d candidates", opened["id"], len(opened["candidates"]))

    async def rounds(self) -> list:
        now = int(time.time() * 1000)
        await self._maintain_schedule(now)
        repo = self._storage.pumpplay

        async def _load():
            rows = await repo.recent_rounds(RECENT_ROUNDS)
            refs, totals = set(), {}
            for row in rows:
                refs.update(row["candidates"])
                totals[row["id"]] = await repo.bet_totals(row["id"])
            return rows, totals, await self._storage.coins.get_many(refs)

        rows, totals, coins = await self._storage.guard.bounded(_load())
        enriched = []
        for row in rows:
            enriched.append({
                "id": row["id"],
                "created_at": row["created_at"],
                "ends_at": row["ends_at"],
                "time_remaining": max(0, row["ends_at"] - now),
                "status": row["status"],
                "candidates": row["candidates"],
                "coin_details": [coins.get(c) or _unknown_coin(c) for c in row["candidates"]],
                "total_pool": float(row["total_pool"]),
                "bets": [{"coin_id": c, "total": float(t)} for c, t in totals[row["id"]].items()],
            })
        return enriched
