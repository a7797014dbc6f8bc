import logging
from typing import Optional

try:
    import aiosqlite
except ImportError:
    raise ImportError(
        "aiosqlite is required for the storage layer. "
        "Install with: pip install aiosqlite"
    )

from ._schema import SCHEMA_VERSION
from ._migrate import run_migrations
from .coinflips import CoinflipRepo
from .coins import CoinRepo
from .guard import DEFAULT_STORE_TIMEOUT, ConcurrencyGuard
from .mines_sessions import MinesSessionRepo
from .payouts import PayoutRepo
from .pumpplay import PumpPlayRepo
from .royale import RoyaleRepo

logger = logging.getLogger("storage")


class StorageManager:
    """Top-level manager: opens the database, runs migrations, exposes repos and the guard."""

    def __init__(self, db_path: str = "data/gaming.db", store_timeout: float = DEFAULT_STORE_TIMEOUT):
        self.db_path = db_path
        self.store_timeout = store_timeout
        self._db: Optional[aiosqlite.Connection] = None
        self.guard: Optional[ConcurrencyGuard] = None
        self.mines: Optional[MinesSessionRepo] = None
        self.coinflips: Optional[CoinflipRepo] = None
        self.royale: Optional[RoyaleRepo] = None
        self.payouts: Optional[PayoutRepo] = None
        self.coins: Optional[CoinRepo] = None
        self.pumpplay: Optional[PumpPlayRepo] = None

    async def initialize(self):
        # isolation_level=None: transactions are opened explicitly by the guard
        self._db = await aiosqlite.connect(self.db_path, isolation_level=None)
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.execute("PRAGMA foreign_keys=ON")
        await self._db.execute("PRAGMA busy_timeout=%d" % int(self.store_timeout * 1000))
        await run_migrations(self._db, logger)

        self.guard = ConcurrencyGuard(self._db, timeout=self.store_timeout)
        self.mines = MinesSessionRepo(self._db)
        self.coinflips = CoinflipRepo(self._db)
        self.royale = RoyaleRepo(self._db)
        self.payouts = PayoutRepo(self._db)
        self.coins = CoinRepo(self._db)
        self.pumpplay = PumpPlayRepo(self._db)

        logger.info("Storage initialized: %s (schema v%d)", self.db_path, SCHEMA_VERSION)

    async def close(self):
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Storage closed")
