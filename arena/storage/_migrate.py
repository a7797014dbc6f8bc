import logging
import time

from ._schema import SCHEMA_SQL, SCHEMA_VERSION

logger = logging.getLogger("storage")


async def run_migrations(db, logger_override=None):
    log = logger_override or logger
    current_version = 0
    try:
        async with db.execute("SELECT MAX(version) FROM schema_version") as cursor:
            row = await cursor.fetchone()
            if row and row[0] is not None:
                current_version = row[0]
    except Exception:
        log.debug("No schema_version table yet, starting from v0")

    if current_version < SCHEMA_VERSION:
        log.info("Migrating database from v%d to v%d", current_version, SCHEMA_VERSION)
        # CREATE IF NOT EXISTS; this alone brings v2 up to v3 (pumpplay tables)
        await db.executescript(SCHEMA_SQL)

        if 0 < current_version < 2:
            # v1 databases predate client-supplied stake transaction references
            for table, col in [
                ("mines_sessions", "tx_hash"),
                ("coinflip_games", "tx_hash"),
                ("coinflip_games", "token_address"),
                ("royale_stakes", "tx_hash"),
            ]:
                try:
                    await db.execute(f"ALTER TABLE {table} ADD COLUMN {col} TEXT")
                except Exception:
                    log.exception("V2 migration failed: %s.%s", table, col)

        await db.execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
            (SCHEMA_VERSION, time.time()),
        )
        await db.commit()
        log.info("Migration complete (v%d)", SCHEMA_VERSION)
    else:
        log.debug("Database schema up to date (v%d)", current_version)
