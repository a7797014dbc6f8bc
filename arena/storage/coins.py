import time
from typing import Dict, Iterable, List, Optional

import aiosqlite

_COLUMNS = "coin_id, token_address, name, symbol, image_url"


def _row_to_dict(row) -> dict:
    return {
        "id": row[0],
        "token_address": row[1],
        "name": row[2],
        "symbol": row[3],
        "image_url": row[4],
    }


class CoinRepo:
    """Read-mostly mirror of launch-platform coin metadata."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def upsert(
        self, coin_id: str, token_address: str = "", name: str = "", symbol: str = "", image_url: str = "",
    ) -> dict:
        now = int(time.time() * 1000)
        await self._db.execute(
            "INSERT INTO coins (coin_id, token_address, name, symbol, image_url, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(coin_id) DO UPDATE SET token_address = excluded.token_address, "
            "name = excluded.name, symbol = excluded.symbol, image_url = excluded.image_url, "
            "updated_at = excluded.updated_at",
            (coin_id, token_address, name, symbol, image_url, now),
        )
        return {
            "id": coin_id,
            "token_address": token_address,
            "name": name,
            "symbol": symbol,
            "image_url": image_url,
        }

    async def get(self, coin_ref: str) -> Optional[dict]:
        """Look a coin up by id or by token address."""
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM coins WHERE coin_id = ? OR token_address = ? COLLATE NOCASE",
            (coin_ref, coin_ref),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_dict(row)

    async def latest_with_token(self, limit: int) -> List[dict]:
        """Most recently registered coins that carry a token address."""
        results = []
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM coins WHERE token_address != '' "
            "ORDER BY updated_at DESC, rowid DESC LIMIT ?",
            (limit,),
        ) as cursor:
            async for row in cursor:
                results.append(_row_to_dict(row))
        return results

    async def get_many(self, coin_refs: Iterable[str]) -> Dict[str, dict]:
        result = {}
        for ref in set(coin_refs):
            coin = await self.get(ref)
            if coin is not None:
                result[ref] = coin
        return result
