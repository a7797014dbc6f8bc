import time
from decimal import Decimal
from typing import List, Optional

import aiosqlite

_COLUMNS = (
    "id, owner_wallet, wager, user_choice, outcome, result, seed_source, "
    "block_number, block_hash, provably_fair, token_address, tx_hash, created_at"
)


def _row_to_dict(row) -> dict:
    return {
        "id": row[0],
        "owner_wallet": row[1],
        "wager": Decimal(row[2]),
        "user_choice": row[3],
        "outcome": row[4],
        "result": row[5],
        "seed_source": row[6],
        "block_number": row[7],
        "block_hash": row[8],
        "provably_fair": bool(row[9]),
        "token_address": row[10],
        "tx_hash": row[11],
        "created_at": row[12],
    }


class CoinflipRepo:
    """Append-only access to the coinflip_games table. There is no update path."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def insert(
        self,
        owner_wallet: str,
        wager: Decimal,
        user_choice: str,
        outcome: str,
        result: str,
        seed_source: str,
        block_number: Optional[int],
        block_hash: Optional[str],
        provably_fair: bool,
        token_address: Optional[str] = None,
        tx_hash: Optional[str] = None,
    ) -> dict:
        now = int(time.time() * 1000)
        cursor = await self._db.execute(
            "INSERT INTO coinflip_games (owner_wallet, wager, user_choice, outcome, result, seed_source, "
            "block_number, block_hash, provably_fair, token_address, tx_hash, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (owner_wallet, str(wager), user_choice, outcome, result, seed_source,
             block_number, block_hash, int(provably_fair), token_address, tx_hash, now),
        )
        return {
            "id": cursor.lastrowid,
            "owner_wallet": owner_wallet,
            "wager": wager,
            "user_choice": user_choice,
            "outcome": outcome,
            "result": result,
            "seed_source": seed_source,
            "block_number": block_number,
            "block_hash": block_hash,
            "provably_fair": provably_fair,
            "token_address": token_address,
            "tx_hash": tx_hash,
            "created_at": now,
        }

    async def get(self, record_id: int) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM coinflip_games WHERE id = ?", (record_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_dict(row)

    async def recent(self, limit: int = 20) -> List[dict]:
        results = []
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM coinflip_games ORDER BY created_at DESC, id DESC LIMIT ?",
            (limit,),
        ) as cursor:
            async for row in cursor:
                results.append(_row_to_dict(row))
        return results

    async def leaderboard(self, limit: int = 50) -> List[dict]:
        results = []
        async with self._db.execute(
            "SELECT owner_wallet, COUNT(*) AS total_games, "
            "SUM(CASE WHEN result = 'win' THEN 1 ELSE 0 END) AS wins, "
            "SUM(CASE WHEN result = 'win' THEN CAST(wager AS REAL) ELSE 0 END) AS total_winnings, "
            "SUM(CAST(wager AS REAL)) AS total_wagered "
            "FROM coinflip_games GROUP BY owner_wallet "
            "ORDER BY wins DESC, total_winnings DESC LIMIT ?",
            (limit,),
        ) as cursor:
            async for row in cursor:
                total_games, wins = row[1], row[2] or 0
                results.append({
                    "wallet": row[0],
                    "total_games": total_games,
                    "wins": wins,
                    "losses": total_games - wins,
                    "total_winnings": round(row[3] or 0.0, 8),
                    "total_wagered": round(row[4] or 0.0, 8),
                    "win_rate": round(wins / total_games * 100, 2) if total_games else 0.0,
                })
        return results

    async def count(self) -> int:
        async with self._db.execute("SELECT COUNT(*) FROM coinflip_games") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
