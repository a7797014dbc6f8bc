"""
mines.py - Mines state machine.

    active -> won | lost | cashed_out      (all terminal)

Start places the mines once; Reveal and Cash-out are the only mutations and
both go through the ConcurrencyGuard: per-session lock, immediate
transaction, status re-check on a fresh read, and a conditional UPDATE that
only lands if the row is still active at the version that was read.
"""

import logging
import random
import sqlite3
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Optional

from arena.auth import DEFAULT_MAX_AGE_MS, SIGNED_ACTIONS, SignatureVerifier
from arena.errors import Conflict, InvalidState, InvalidTile, NotFound
from arena.grid import MAX_MINES, MIN_MINES, TOTAL_TILES, Grid, multiplier_for
from arena.storage.mines_sessions import ACTIVE, CASHED_OUT, LOST, WON, MinesSession
from arena.validation import integer_in_range, normalize_wallet, positive_decimal

if TYPE_CHECKING:
    from arena.storage import StorageManager

logger = logging.getLogger("mines")

SESSION_TABLE = "mines_sessions"


def apply_reveal(session: MinesSession, tile_index: int, now_ms: int) -> MinesSession:
    """Pure transition for revealing one tile of an active session."""
    if session.status != ACTIVE:
        raise InvalidState("Game is not active")
    if not 0 <= tile_index < TOTAL_TILES:
        raise InvalidTile(f"Invalid tile index (must be 0-{TOTAL_TILES - 1})")
    if session.grid[tile_index].revealed or tile_index in session.revealed_indices:
        raise InvalidTile("Tile already revealed")

    grid = session.grid.reveal(tile_index)
    revealed = session.revealed_indices + [tile_index]

    if grid[tile_index].is_mine:
        # Multiplier stays at its pre-reveal value
        return replace(session, grid=grid, revealed_indices=revealed, status=LOST, completed_at=now_ms)

    multiplier = multiplier_for(len(revealed))
    if len(revealed) == TOTAL_TILES - session.mines_count:
        return replace(
            session, grid=grid, revealed_indices=revealed, current_multiplier=multiplier,
            status=WON, completed_at=now_ms,
        )
    return replace(session, grid=grid, revealed_indices=revealed, current_multiplier=multiplier)


def apply_cashout(session: MinesSession, now_ms: int) -> MinesSession:
    """Pure transition for cashing out an active session."""
    if session.status != ACTIVE:
        raise InvalidState("Game is not active")
    return replace(
        session,
        status=CASHED_OUT,
        cashout_amount=session.bet_amount * session.current_multiplier,
        completed_at=now_ms,
    )


class MinesEngine:
    """Start / reveal / cash-out for Mines sessions."""

    def __init__(
        self,
        storage: "StorageManager",
        verifier: SignatureVerifier,
        rng: Optional[random.Random] = None,
        signature_max_age_ms: int = DEFAULT_MAX_AGE_MS,
    ):
        self._storage = storage
        self._verifier = verifier
        self._rng = rng or random.SystemRandom()
        self._max_age_ms = signature_max_age_ms

    async def start(
        self,
        owner_wallet: str,
        bet_amount,
        stake_token_address: str,
        mines_count,
        tx_hash: Optional[str] = None,
        message: Optional[str] = None,
        signature: Optional[str] = None,
    ) -> dict:
        wallet = normalize_wallet(owner_wallet)
        bet = positive_decimal(bet_amount, "Bet amount")
        token = normalize_wallet(stake_token_address, "Stake token address")
        mines = integer_in_range(mines_count, MIN_MINES, MAX_MINES, "Mines count")
        self._verifier.verify(message, signature, wallet, self._max_age_ms, action=SIGNED_ACTIONS["start"])

        grid = Grid.generate(mines, self._rng)

        async def _insert(db):
            return await self._storage.mines.insert(wallet, bet, token, mines, grid, tx_hash=tx_hash)

        session_id = await self._storage.guard.run_write(_insert)
        logger.info("Mines session %d started: wallet=%s bet=%s mines=%d", session_id, wallet, bet, mines)
        return {
            "session_id": session_id,
            "total_tiles": TOTAL_TILES,
            "mines_count": mines,
            "status": ACTIVE,
            "current_multiplier": 1.0,
        }

    async def _load_active(self, session_id, wallet: str) -> MinesSession:
        """Unlocked pre-check: ownership and status as of now."""
        session = await self._storage.guard.bounded(self._storage.mines.get(session_id, wallet))
        if session is None:
            raise NotFound("Game not found")
        if session.status != ACTIVE:
            raise InvalidState(f"Game is not active (status: {session.status})")
        return session

    async def _locked_transition(self, session_id: int, wallet: str, transition):
        """Re-read under the row lock, apply ``transition`` and conditionally write it."""

        async def _apply(db):
            current = await self._storage.mines.get(session_id, wallet)
            if current is None:
                raise NotFound("Game not found")
            if current.status != ACTIVE:
                raise Conflict("Game was settled by a concurrent request")
            updated = transition(current)
            rows = await self._storage.mines.apply_transition(updated, expected_version=current.version)
            if rows == 0:
                raise Conflict("Game was modified by a concurrent request")
            if updated.status in (WON, CASHED_OUT):
                await self._record_payout(updated)
            return current, updated

        try:
            return await self._storage.guard.run_locked(SESSION_TABLE, session_id, _apply)
        except Conflict:
            logger.warning("Lost race on mines session %d (wallet=%s)", session_id, wallet)
            raise

    async def _record_payout(self, session: MinesSession):
        amount = session.cashout_amount
        if amount is None:
            amount = session.bet_amount * session.current_multiplier
        try:
            await self._storage.payouts.record("mines", session.id, session.owner_wallet, amount)
        except sqlite3.IntegrityError:
            raise Conflict("Game payout was already recorded")

    async def reveal(
        self,
        session_id,
        tile_index,
        owner_wallet: str,
        message: Optional[str] = None,
        signature: Optional[str] = None,
    ) -> dict:
        wallet = normalize_wallet(owner_wallet)
        session_id = integer_in_range(session_id, 1, 2 ** 63 - 1, "Session id")
        index = integer_in_range(tile_index, 0, TOTAL_TILES - 1, "Tile index", error=InvalidTile)
        self._verifier.verify(message, signature, wallet, self._max_age_ms, action=SIGNED_ACTIONS["reveal"])

        await self._load_active(session_id, wallet)
        now = int(time.time() * 1000)
        _, after = await self._locked_transition(
            session_id, wallet, lambda s: apply_reveal(s, index, now),
        )

        hit_mine = after.status == LOST
        game_over = after.is_terminal
        result = {
            "session_id": after.id,
            "revealed_tile": index,
            "is_mine": hit_mine,
            "game_over": game_over,
            "won": after.status == WON,
            "status": after.status,
            "current_multiplier": float(after.current_multiplier),
            "revealed_indices": list(after.revealed_indices),
        }
        if game_over:
            result["mine_positions"] = after.grid.mine_positions()
        if after.status == WON:
            result["payout_amount"] = float(after.bet_amount * after.current_multiplier)

        if hit_mine:
            logger.info("Mines session %d lost on tile %d", after.id, index)
        elif after.status == WON:
            logger.info("Mines session %d won at %sx", after.id, after.current_multiplier)
        else:
            logger.debug("Mines session %d revealed tile %d -> %sx", after.id, index, after.current_multiplier)
        return result

    async def cashout(
        self,
        session_id,
        owner_wallet: str,
        message: Optional[str] = None,
        signature: Optional[str] = None,
    ) -> dict:
        wallet = normalize_wallet(owner_wallet)
        session_id = integer_in_range(session_id, 1, 2 ** 63 - 1, "Session id")
        self._verifier.verify(message, signature, wallet, self._max_age_ms, action=SIGNED_ACTIONS["cashout"])

        await self._load_active(session_id, wallet)
        now = int(time.time() * 1000)
        _, after = await self._locked_transition(session_id, wallet, lambda s: apply_cashout(s, now))

        logger.info(
            "Mines session %d cashed out: bet=%s multiplier=%s amount=%s",
            after.id, after.bet_amount, after.current_multiplier, after.cashout_amount,
        )
        return {
            "session_id": after.id,
            "status": after.status,
            "cashout_amount": float(after.cashout_amount),
            "multiplier": float(after.current_multiplier),
        }

    async def get_session(self, session_id, owner_wallet: str) -> dict:
        """Current state for the owner; mine positions only once the game is over."""
        wallet = normalize_wallet(owner_wallet)
        session_id = integer_in_range(session_id, 1, 2 ** 63 - 1, "Session id")
        session = await self._storage.guard.bounded(self._storage.mines.get(session_id, wallet))
        if session is None:
            raise NotFound("Game not found")
        return session.to_dict()
