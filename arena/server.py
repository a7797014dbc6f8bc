"""
server.py - Wager settlement server entry point.

Single-process server combining:
 - SQLite persistent storage via StorageManager
 - Game engines (Mines, Coinflip, Meme Royale, PumpPlay) and display quotes
 - REST API (FastAPI on uvicorn, port 8080)

Usage:
    python -m arena.server [--api-port 8080] [--db-path data/gaming.db] [--rpc-url URL]
"""

import asyncio
import logging
import os
import traceback
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from arena import __version__
from arena.auth import EthSignatureVerifier, PermissiveVerifier, SignatureVerifier
from arena.chain import ChainClient
from arena.coinflip import CoinflipEngine
from arena.config import ServerConfig
from arena.errors import InvalidInput, SettlementError
from arena.mines import MinesEngine
from arena.pumpplay import PumpPlayEngine
from arena.quotes import BondingCurveQuoter
from arena.randomness import RandomnessSource
from arena.routers import register_all_routers
from arena.royale import MemeRoyaleEngine
from arena.storage import StorageManager

logger = logging.getLogger("server")


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", "invalid"))
    return "; ".join(parts) or "Invalid request"


class GameServer:
    """Owns the FastAPI app, storage and game engines."""

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        chain: Optional[ChainClient] = None,
        verifier: Optional[SignatureVerifier] = None,
        judge=None,
    ):
        self.config = config or ServerConfig()
        if chain is None and self.config.rpc_url:
            chain = ChainClient(self.config.rpc_url, timeout=self.config.rpc_timeout)
        self.chain = chain

        if verifier is None:
            verifier = EthSignatureVerifier() if self.config.require_signatures else PermissiveVerifier()
        self.verifier = verifier

        self.storage = StorageManager(self.config.db_path, store_timeout=self.config.store_timeout)
        self.randomness = RandomnessSource(self.chain, allow_fallback=self.config.allow_fallback)
        self.quoter = BondingCurveQuoter(self.chain) if self.chain is not None else None
        max_age = self.config.signature_max_age_ms
        self.mines = MinesEngine(self.storage, self.verifier, signature_max_age_ms=max_age)
        self.coinflip = CoinflipEngine(self.storage, self.randomness, self.verifier, signature_max_age_ms=max_age)
        self.royale = MemeRoyaleEngine(self.storage, judge=judge)
        self.pumpplay = PumpPlayEngine(self.storage, self.verifier, signature_max_age_ms=max_age)

        self.app = FastAPI(title="Arena Wager Settlement", version=__version__, lifespan=self._lifespan)
        self.app.state.server = self
        self._register_exception_handlers()
        register_all_routers(self.app)

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self._init_storage()
        try:
            yield
        finally:
            await self.storage.close()

    async def _init_storage(self):
        db_dir = os.path.dirname(self.config.db_path)
        if db_dir and self.config.db_path != ":memory:":
            os.makedirs(db_dir, exist_ok=True)
        await self.storage.initialize()
        logger.info(
            "Services initialized (db=%s, env=%s, signatures=%s, fallback=%s)",
            self.config.db_path, self.config.environment,
            "required" if self.config.require_signatures else "optional",
            "allowed" if self.config.allow_fallback else "disabled",
        )

    # -------------------------------------------------------------------
    # Error rendering
    # -------------------------------------------------------------------

    def _error_response(self, status_code: int, body: dict, exc: BaseException) -> JSONResponse:
        if not self.config.is_production:
            body["trace"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return JSONResponse(status_code=status_code, content=body)

    def _register_exception_handlers(self):
        app = self.app

        @app.exception_handler(SettlementError)
        async def settlement_error(request: Request, exc: SettlementError):
            if exc.status_code >= 500:
                logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
            return self._error_response(exc.status_code, exc.to_dict(), exc)

        @app.exception_handler(RequestValidationError)
        async def validation_error(request: Request, exc: RequestValidationError):
            err = InvalidInput(_validation_message(exc))
            return JSONResponse(status_code=err.status_code, content=err.to_dict())

        @app.exception_handler(Exception)
        async def unexpected_error(request: Request, exc: Exception):
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            err = SettlementError("Internal server error")
            return self._error_response(err.status_code, err.to_dict(), exc)

    # -------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------

    async def start(self):
        config = uvicorn.Config(
            self.app,
            host="0.0.0.0",
            port=self.config.api_port,
            log_level="info",
        )
        self._uvicorn_server = uvicorn.Server(config)
        logger.info("REST API starting on port %d", self.config.api_port)
        await self._uvicorn_server.serve()


def main(argv=None):
    """CLI entry point for the settlement server."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)-10s] %(levelname)-5s %(message)s",
        datefmt="%H:%M:%S",
    )
    config = ServerConfig.from_args(argv)
    server = GameServer(config)

    logger.info("=" * 60)
    logger.info("  Arena Wager Settlement Server")
    logger.info("  REST API:    http://localhost:%d", config.api_port)
    logger.info("  Database:    %s", config.db_path)
    logger.info("  RPC node:    %s", config.rpc_url or "none (fallback randomness only)")
    logger.info("  Environment: %s", config.environment)
    logger.info("=" * 60)
    if not config.require_signatures:
        logger.warning("Wallet signatures are NOT required; do not expose this deployment")

    try:
        asyncio.run(server.start())
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
