"""
coinflip.py - Provably fair coinflip.

Outcome rule: heads iff the last byte of the seed is even. When the seed is a
block hash, anyone can recompute the outcome from the stored ``block_hash``
(see ``verify``). Records are append-only; a win also writes one payout row
of ``2 * wager`` in the same transaction.
"""

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from arena.auth import DEFAULT_MAX_AGE_MS, SIGNED_ACTIONS, SignatureVerifier
from arena.errors import NotFound
from arena.randomness import RandomnessSource
from arena.validation import integer_in_range, normalize_wallet, one_of, positive_decimal

if TYPE_CHECKING:
    from arena.storage import StorageManager

logger = logging.getLogger("coinflip")

HEADS = "heads"
TAILS = "tails"
CHOICES = (HEADS, TAILS)
WIN_PAYOUT_FACTOR = Decimal(2)
LEADERBOARD_LIMIT = 50


def outcome_from_byte(last_byte: int) -> str:
    return HEADS if last_byte % 2 == 0 else TAILS


def outcome_from_hash(block_hash: str) -> str:
    """Recompute an outcome from a ``0x``-prefixed block hash."""
    return outcome_from_byte(bytes.fromhex(block_hash[2:])[-1])


def _render(record: dict) -> dict:
    result = dict(record)
    result["wager"] = float(record["wager"])
    return result


class CoinflipEngine:
    """Play, verify and rank coinflip games."""

    def __init__(
        self,
        storage: "StorageManager",
        randomness: RandomnessSource,
        verifier: SignatureVerifier,
        signature_max_age_ms: int = DEFAULT_MAX_AGE_MS,
    ):
        self._storage = storage
        self._randomness = randomness
        self._verifier = verifier
        self._max_age_ms = signature_max_age_ms

    async def play(
        self,
        owner_wallet: str,
        wager,
        user_choice: str,
        token_address: Optional[str] = None,
        tx_hash: Optional[str] = None,
        message: Optional[str] = None,
        signature: Optional[str] = None,
    ) -> dict:
        wallet = normalize_wallet(owner_wallet)
        amount = positive_decimal(wager, "Wager")
        choice = one_of(user_choice, CHOICES, "Choice")
        token = normalize_wallet(token_address, "Token address") if token_address else None
        self._verifier.verify(message, signature, wallet, self._max_age_ms, action=SIGNED_ACTIONS["coinflip"])

        seed = await self._randomness.next_seed(wallet)
        outcome = outcome_from_byte(seed.last_byte)
        result = "win" if choice == outcome else "lose"

        async def _record(db):
            record = await self._storage.coinflips.insert(
                owner_wallet=wallet,
                wager=amount,
                user_choice=choice,
                outcome=outcome,
                result=result,
                seed_source=seed.provenance_id,
                block_number=seed.block_number,
                block_hash=seed.block_hash,
                provably_fair=seed.provably_fair,
                token_address=token,
                tx_hash=tx_hash,
            )
            if result == "win":
                await self._storage.payouts.record("coinflip", record["id"], wallet, amount * WIN_PAYOUT_FACTOR)
            return record

        record = await self._storage.guard.run_write(_record)
        logger.info(
            "Coinflip %d: wallet=%s wager=%s choice=%s outcome=%s result=%s fair=%s",
            record["id"], wallet, amount, choice, outcome, result, seed.provably_fair,
        )

        response = {
            "game_id": record["id"],
            "outcome": outcome,
            "result": result,
            "won": result == "win",
            "wager": float(amount),
            "user_choice": choice,
            "seed_source": seed.provenance_id,
            "block_number": seed.block_number,
            "block_hash": seed.block_hash,
            "provably_fair": seed.provably_fair,
        }
        if result == "win":
            response["payout_amount"] = float(amount * WIN_PAYOUT_FACTOR)
        return response

    async def verify(self, record_id) -> dict:
        """Recompute a stored outcome from its block hash."""
        record_id = integer_in_range(record_id, 1, 2 ** 63 - 1, "Game id")
        record = await self._storage.guard.bounded(self._storage.coinflips.get(record_id))
        if record is None:
            raise NotFound("Coinflip game not found")

        if not record["block_hash"]:
            return {
                "game_id": record_id,
                "provably_fair": False,
                "verified": False,
                "stored_outcome": record["outcome"],
                "recomputed_outcome": None,
                "seed_source": record["seed_source"],
            }
        recomputed = outcome_from_hash(record["block_hash"])
        return {
            "game_id": record_id,
            "provably_fair": record["provably_fair"],
            "verified": recomputed == record["outcome"],
            "stored_outcome": record["outcome"],
            "recomputed_outcome": recomputed,
            "block_number": record["block_number"],
            "block_hash": record["block_hash"],
        }

    async def recent(self, limit=20) -> list:
        limit = integer_in_range(limit, 1, 100, "Limit")
        records = await self._storage.guard.bounded(self._storage.coinflips.recent(limit))
        return [_render(r) for r in records]

    async def leaderboard(self) -> list:
        return await self._storage.guard.bounded(self._storage.coinflips.leaderboard(LEADERBOARD_LIMIT))
