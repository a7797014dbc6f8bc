"""
royale.py - Meme Royale battle betting.

A bet judges two coins once, records the battle and the stake together, and
credits a payout of ``2 * stake`` when the staked side wins. Battles are never
re-judged. The judge is pluggable; the default ``RandomJudge`` scores each
side on virality, trend and creativity (each uniform in [0, 10)).
"""

import logging
import random
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from arena.errors import InvalidInput
from arena.validation import normalize_wallet, one_of, positive_decimal

if TYPE_CHECKING:
    from arena.storage import StorageManager

logger = logging.getLogger("royale")

LEFT = "left"
RIGHT = "right"
SIDES = (LEFT, RIGHT)
WIN_PAYOUT_FACTOR = Decimal(2)
RECENT_BATTLES = 20


@dataclass(frozen=True)
class SideScore:
    virality: float
    trend: float
    creativity: float

    @property
    def total(self) -> float:
        return self.virality + self.trend + self.creativity

    def to_dict(self) -> dict:
        return {
            "virality": round(self.virality, 1),
            "trend": round(self.trend, 1),
            "creativity": round(self.creativity, 1),
            "total": round(self.total, 1),
        }


class RandomJudge:
    """Placeholder scorer: independent uniform criteria per side."""

    name = "random-judge"

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.SystemRandom()

    def score(self, coin_id: str) -> SideScore:
        return SideScore(
            virality=self._rng.random() * 10,
            trend=self._rng.random() * 10,
            creativity=self._rng.random() * 10,
        )


def winning_side(left: SideScore, right: SideScore) -> str:
    # Ties go to the right side
    return LEFT if left.total > right.total else RIGHT


def _unknown_coin(coin_id: str) -> dict:
    return {"id": coin_id, "name": "Unknown", "symbol": "UNK"}


class MemeRoyaleEngine:
    def __init__(self, storage: "StorageManager", judge=None):
        self._storage = storage
        self.judge = judge or RandomJudge()

    async def bet(
        self,
        left_coin_id: str,
        right_coin_id: str,
        owner_wallet: str,
        stake_amount,
        stake_side: str,
        tx_hash: Optional[str] = None,
    ) -> dict:
        if not left_coin_id or not right_coin_id:
            raise InvalidInput("Both coins are required")
        left_coin_id, right_coin_id = str(left_coin_id).strip(), str(right_coin_id).strip()
        if left_coin_id.lower() == right_coin_id.lower():
            raise InvalidInput("A coin cannot battle itself")
        wallet = normalize_wallet(owner_wallet)
        stake = positive_decimal(stake_amount, "Stake amount")
        side = one_of(stake_side, SIDES, "Stake side")

        left, right = self.judge.score(left_coin_id), self.judge.score(right_coin_id)
        winner_side = winning_side(left, right)
        winner_coin_id = left_coin_id if winner_side == LEFT else right_coin_id
        user_won = side == winner_side

        async def _settle(db):
            battle = await self._storage.royale.insert_battle(
                left_coin_id, right_coin_id, left.total, right.total, winner_coin_id, self.judge.name,
            )
            await self._storage.royale.insert_stake(battle["id"], wallet, side, stake, user_won, tx_hash=tx_hash)
            if user_won:
                await self._storage.payouts.record("royale", battle["id"], wallet, stake * WIN_PAYOUT_FACTOR)
            return battle

        battle = await self._storage.guard.run_write(_settle)
        logger.info(
            "Battle %d: %s (%.2f) vs %s (%.2f) -> %s; wallet=%s side=%s won=%s",
            battle["id"], left_coin_id, left.total, right_coin_id, right.total,
            winner_coin_id, wallet, side, user_won,
        )

        result = {
            "battle_id": battle["id"],
            "left_score": left.total,
            "right_score": right.total,
            "winner_coin_id": winner_coin_id,
            "user_won": user_won,
            "judge": self.judge.name,
            "judged": {"left": left.to_dict(), "right": right.to_dict()},
            "message": "You won!" if user_won else "You lost. Better luck next time!",
        }
        if user_won:
            result["payout_amount"] = float(stake * WIN_PAYOUT_FACTOR)
        return result

    async def battles(self) -> list:
        """Recent battles with coin metadata attached to each side."""

        async def _load():
            rows = await self._storage.royale.recent_battles(RECENT_BATTLES)
            refs = set()
            for row in rows:
                refs.update((row["left_coin_id"], row["right_coin_id"]))
            return rows, await self._storage.coins.get_many(refs)

        rows, coins = await self._storage.guard.bounded(_load())
        enriched = []
        for row in rows:
            winner = row["winner_coin_id"]
            enriched.append({
                "id": row["id"],
                "left_coin": coins.get(row["left_coin_id"]) or _unknown_coin(row["left_coin_id"]),
                "right_coin": coins.get(row["right_coin_id"]) or _unknown_coin(row["right_coin_id"]),
                "left_score": row["left_score"],
                "right_score": row["right_score"],
                "winner_coin_id": winner,
                "winner_coin": coins.get(winner) if winner else None,
                "judge": row["judge"],
                "created_at": row["created_at"],
            })
        return enriched
