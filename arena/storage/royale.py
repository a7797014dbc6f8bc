import time
from decimal import Decimal
from typing import List, Optional

import aiosqlite

_BATTLE_COLUMNS = (
    "id, left_coin_id, right_coin_id, left_score, right_score, winner_coin_id, judge, created_at"
)


def _battle_row(row) -> dict:
    return {
        "id": row[0],
        "left_coin_id": row[1],
        "right_coin_id": row[2],
        "left_score": row[3],
        "right_score": row[4],
        "winner_coin_id": row[5],
        "judge": row[6],
        "created_at": row[7],
    }


class RoyaleRepo:
    """Persistence for royale_battles and royale_stakes. Rows are never updated."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def insert_battle(
        self,
        left_coin_id: str,
        right_coin_id: str,
        left_score: float,
        right_score: float,
        winner_coin_id: str,
        judge: str,
    ) -> dict:
        now = int(time.time() * 1000)
        cursor = await self._db.execute(
            "INSERT INTO royale_battles (left_coin_id, right_coin_id, left_score, right_score, "
            "winner_coin_id, judge, created_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (left_coin_id, right_coin_id, left_score, right_score, winner_coin_id, judge, now),
        )
        return {
            "id": cursor.lastrowid,
            "left_coin_id": left_coin_id,
            "right_coin_id": right_coin_id,
            "left_score": left_score,
            "right_score": right_score,
            "winner_coin_id": winner_coin_id,
            "judge": judge,
            "created_at": now,
        }

    async def insert_stake(
        self,
        battle_id: int,
        owner_wallet: str,
        stake_side: str,
        stake_amount: Decimal,
        won: bool,
        tx_hash: Optional[str] = None,
    ) -> dict:
        now = int(time.time() * 1000)
        cursor = await self._db.execute(
            "INSERT INTO royale_stakes (battle_id, owner_wallet, stake_side, stake_amount, won, "
            "tx_hash, created_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (battle_id, owner_wallet, stake_side, str(stake_amount), int(won), tx_hash, now),
        )
        return {
            "id": cursor.lastrowid,
            "battle_id": battle_id,
            "owner_wallet": owner_wallet,
            "stake_side": stake_side,
            "stake_amount": stake_amount,
            "won": won,
            "tx_hash": tx_hash,
            "created_at": now,
        }

    async def recent_battles(self, limit: int = 20) -> List[dict]:
        results = []
        async with self._db.execute(
            f"SELECT {_BATTLE_COLUMNS} FROM royale_battles ORDER BY created_at DESC, id DESC LIMIT ?",
            (limit,),
        ) as cursor:
            async for row in cursor:
                results.append(_battle_row(row))
        return results

    async def stakes_for_battle(self, battle_id: int) -> List[dict]:
        results = []
        async with self._db.execute(
            "SELECT id, battle_id, owner_wallet, stake_side, stake_amount, won, tx_hash, created_at "
            "FROM royale_stakes WHERE battle_id = ? ORDER BY id",
            (battle_id,),
        ) as cursor:
            async for row in cursor:
                results.append({
                    "id": row[0],
                    "battle_id": row[1],
                    "owner_wallet": row[2],
                    "stake_side": row[3],
                    "stake_amount": Decimal(row[4]),
                    "won": bool(row[5]),
                    "tx_hash": row[6],
                    "created_at": row[7],
                })
        return results

    async def count(self) -> int:
        async with self._db.execute("SELECT COUNT(*) FROM royale_battles") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
