import time
from decimal import Decimal
from typing import Optional

import aiosqlite


class PayoutRepo:
    """Payout ledger. UNIQUE (game, reference_id) makes each settlement write-once."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def record(self, game: str, reference_id: int, owner_wallet: str, amount: Decimal) -> dict:
        """Insert a payout row. Raises sqlite3.IntegrityError if this game was already paid."""
        now = int(time.time() * 1000)
        cursor = await self._db.execute(
            "INSERT INTO payouts (game, reference_id, owner_wallet, amount, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (game, reference_id, owner_wallet, str(amount), now),
        )
        return {
            "id": cursor.lastrowid,
            "game": game,
            "reference_id": reference_id,
            "owner_wallet": owner_wallet,
            "amount": amount,
            "created_at": now,
        }

    async def get(self, game: str, reference_id: int) -> Optional[dict]:
        async with self._db.execute(
            "SELECT id, game, reference_id, owner_wallet, amount, created_at "
            "FROM payouts WHERE game = ? AND reference_id = ?",
            (game, reference_id),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return {
            "id": row[0],
            "game": row[1],
            "reference_id": row[2],
            "owner_wallet": row[3],
            "amount": Decimal(row[4]),
            "created_at": row[5],
        }

    async def count(self, game: Optional[str] = None) -> int:
        if game:
            query, params = "SELECT COUNT(*) FROM payouts WHERE game = ?", (game,)
        else:
            query, params = "SELECT COUNT(*) FROM payouts", ()
        async with self._db.execute(query, params) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
