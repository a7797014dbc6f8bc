import json
import time
from decimal import Decimal
from typing import Dict, List, Optional

import aiosqlite

OPEN = "open"
CLOSED = "closed"

_ROUND_COLUMNS = "id, candidates_json, status, total_pool, created_at, ends_at"


def _round_row(row) -> dict:
    return {
        "id": row[0],
        "candidates": json.loads(row[1]),
        "status": row[2],
        "total_pool": Decimal(row[3]),
        "created_at": row[4],
        "ends_at": row[5],
    }


class PumpPlayRepo:
    """Persistence for pumpplay_rounds and the bets placed on them."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def insert_round(self, candidates: List[str], ends_at: int) -> dict:
        now = int(time.time() * 1000)
        cursor = await self._db.execute(
            "INSERT INTO pumpplay_rounds (candidates_json, status, total_pool, created_at, ends_at) "
            "VALUES (?, 'open', '0', ?, ?)",
            (json.dumps(list(candidates)), now, ends_at),
        )
        return {
            "id": cursor.lastrowid,
            "candidates": list(candidates),
            "status": OPEN,
            "total_pool": Decimal(0),
            "created_at": now,
            "ends_at": ends_at,
        }

    async def get_round(self, round_id: int) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_ROUND_COLUMNS} FROM pumpplay_rounds WHERE id = ?", (round_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return _round_row(row)

    async def recent_rounds(self, limit: int = 50) -> List[dict]:
        results = []
        async with self._db.execute(
            f"SELECT {_ROUND_COLUMNS} FROM pumpplay_rounds ORDER BY created_at DESC, id DESC LIMIT ?",
            (limit,),
        ) as cursor:
            async for row in cursor:
                results.append(_round_row(row))
        return results

    async def count_open(self) -> int:
        async with self._db.execute("SELECT COUNT(*) FROM pumpplay_rounds WHERE status = 'open'") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def close_round(self, round_id: int) -> int:
        cursor = await self._db.execute(
            "UPDATE pumpplay_rounds SET status = 'closed' WHERE id = ? AND status = 'open'", (round_id,),
        )
        return cursor.rowcount

    async def close_expired(self, now_ms: int) -> int:
        cursor = await self._db.execute(
            "UPDATE pumpplay_rounds SET status = 'closed' WHERE status = 'open' AND ends_at <= ?", (now_ms,),
        )
        return cursor.rowcount

    async def add_to_pool(self, round_id: int, new_total: Decimal, expected_total: Decimal) -> int:
        """Conditional write: only lands if the round is open and its pool is still ``expected_total``."""
        cursor = await self._db.execute(
            "UPDATE pumpplay_rounds SET total_pool = ? "
            "WHERE id = ? AND status = 'open' AND total_pool = ?",
            (str(new_total), round_id, str(expected_total)),
        )
        return cursor.rowcount

    async def insert_bet(
        self,
        round_id: int,
        owner_wallet: str,
        coin_id: str,
        amount: Decimal,
        token_address: Optional[str] = None,
        tx_hash: Optional[str] = None,
    ) -> dict:
        now = int(time.time() * 1000)
        cursor = await self._db.execute(
            "INSERT INTO pumpplay_bets (round_id, owner_wallet, coin_id, amount, token_address, tx_hash, "
            "created_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (round_id, owner_wallet, coin_id, str(amount), token_address, tx_hash, now),
        )
        return {
            "id": cursor.lastrowid,
            "round_id": round_id,
            "owner_wallet": owner_wallet,
            "coin_id": coin_id,
            "amount": amount,
            "token_address": token_address,
            "tx_hash": tx_hash,
            "created_at": now,
        }

    async def bet_totals(self, round_id: int) -> Dict[str, Decimal]:
        """Summed stake per coin, in order of each coin's first bet."""
        totals: Dict[str, Decimal] = {}
        async with self._db.execute(
            "SELECT coin_id, amount FROM pumpplay_bets WHERE round_id = ? ORDER BY id", (round_id,),
        ) as cursor:
            async for row in cursor:
                totals[row[0]] = totals.get(row[0], Decimal(0)) + Decimal(row[1])
        return totals

    async def count(self) -> int:
        async with self._db.execute("SELECT COUNT(*) FROM pumpplay_rounds") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def count_bets(self) -> int:
        async with self._db.execute("SELECT COUNT(*) FROM pumpplay_bets") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
