import json
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

import aiosqlite

from arena.grid import Grid

ACTIVE = "active"
WON = "won"
LOST = "lost"
CASHED_OUT = "cashed_out"
TERMINAL_STATES = frozenset({WON, LOST, CASHED_OUT})

_COLUMNS = (
    "id, owner_wallet, bet_amount, stake_token_address, mines_count, grid_json, "
    "revealed_json, status, current_multiplier, cashout_amount, version, tx_hash, "
    "created_at, completed_at"
)


@dataclass
class MinesSession:
    id: int
    owner_wallet: str
    bet_amount: Decimal
    stake_token_address: str
    mines_count: int
    grid: Grid
    revealed_indices: List[int] = field(default_factory=list)
    status: str = ACTIVE
    current_multiplier: Decimal = Decimal("1.0")
    cashout_amount: Optional[Decimal] = None
    version: int = 0
    tx_hash: Optional[str] = None
    created_at: int = 0
    completed_at: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def to_dict(self, show_mines: bool = False) -> dict:
        show = show_mines or self.is_terminal
        result = {
            "session_id": self.id,
            "owner_wallet": self.owner_wallet,
            "bet_amount": float(self.bet_amount),
            "stake_token_address": self.stake_token_address,
            "mines_count": self.mines_count,
            "status": self.status,
            "current_multiplier": float(self.current_multiplier),
            "revealed_indices": list(self.revealed_indices),
            "grid": self.grid.public_view(show_mines=show),
            "created_at": self.created_at,
            "completed_at": self.completed_at,
        }
        if self.cashout_amount is not None:
            result["cashout_amount"] = float(self.cashout_amount)
        if show:
            result["mine_positions"] = self.grid.mine_positions()
        return result


def _row_to_session(row) -> MinesSession:
    return MinesSession(
        id=row[0],
        owner_wallet=row[1],
        bet_amount=Decimal(row[2]),
        stake_token_address=row[3],
        mines_count=row[4],
        grid=Grid.from_json(row[5]),
        revealed_indices=[int(i) for i in json.loads(row[6] or "[]")],
        status=row[7],
        current_multiplier=Decimal(row[8]),
        cashout_amount=Decimal(row[9]) if row[9] is not None else None,
        version=row[10],
        tx_hash=row[11],
        created_at=row[12],
        completed_at=row[13],
    )


class MinesSessionRepo:
    """Persistence for the mines_sessions table.

    Write methods never commit; they run inside a ConcurrencyGuard transaction.
    """

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def insert(
        self,
        owner_wallet: str,
        bet_amount: Decimal,
        stake_token_address: str,
        mines_count: int,
        grid: Grid,
        tx_hash: Optional[str] = None,
    ) -> int:
        now = int(time.time() * 1000)
        cursor = await self._db.execute(
            "INSERT INTO mines_sessions (owner_wallet, bet_amount, stake_token_address, mines_count, "
            "grid_json, revealed_json, status, current_multiplier, version, tx_hash, created_at) "
            "VALUES (?, ?, ?, ?, ?, '[]', 'active', '1.0', 0, ?, ?)",
            (owner_wallet, str(bet_amount), stake_token_address, mines_count, grid.to_json(), tx_hash, now),
        )
        return cursor.lastrowid

    async def get(self, session_id: int, owner_wallet: Optional[str] = None) -> Optional[MinesSession]:
        query = f"SELECT {_COLUMNS} FROM mines_sessions WHERE id = ?"
        params: tuple = (session_id,)
        if owner_wallet is not None:
            query += " AND owner_wallet = ?"
            params = (session_id, owner_wallet)
        async with self._db.execute(query, params) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_session(row)

    async def apply_transition(self, session: MinesSession, expected_version: int) -> int:
        """Conditional write: only lands if the row is still active at ``expected_version``.

        Returns the number of rows updated (0 means a concurrent request won).
        """
        cursor = await self._db.execute(
            "UPDATE mines_sessions SET grid_json = ?, revealed_json = ?, status = ?, "
            "current_multiplier = ?, cashout_amount = ?, completed_at = ?, version = version + 1 "
            "WHERE id = ? AND status = 'active' AND version = ?",
            (
                session.grid.to_json(),
                json.dumps(session.revealed_indices),
                session.status,
                str(session.current_multiplier),
                str(session.cashout_amount) if session.cashout_amount is not None else None,
                session.completed_at,
                session.id,
                expected_version,
            ),
        )
        return cursor.rowcount

    async def count(self, status: Optional[str] = None) -> int:
        if status:
            query, params = "SELECT COUNT(*) FROM mines_sessions WHERE status = ?", (status,)
        else:
            query, params = "SELECT COUNT(*) FROM mines_sessions", ()
        async with self._db.execute(query, params) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
