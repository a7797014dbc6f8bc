from ._schema import SCHEMA_VERSION, SCHEMA_SQL
from .guard import ConcurrencyGuard
from .mines_sessions import MinesSession, MinesSessionRepo
from .coinflips import CoinflipRepo
from .royale import RoyaleRepo
from .payouts import PayoutRepo
from .coins import CoinRepo
from .pumpplay import PumpPlayRepo
from .manager import StorageManager

__all__ = [
    "SCHEMA_VERSION",
    "SCHEMA_SQL",
    "ConcurrencyGuard",
    "MinesSession",
    "MinesSessionRepo",
    "CoinflipRepo",
    "RoyaleRepo",
    "PayoutRepo",
    "CoinRepo",
    "PumpPlayRepo",
    "StorageManager",
]
