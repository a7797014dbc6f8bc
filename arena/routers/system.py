"""System router: service info, status and the sign-message template."""

from fastapi import APIRouter
from starlette.requests import Request

from arena import __version__
from arena.auth import SIGNED_ACTIONS, build_sign_message
from arena.deps import get_server
from arena.errors import InvalidInput
from arena.storage.mines_sessions import ACTIVE
from arena.validation import normalize_wallet

router = APIRouter()


@router.get("/")
async def root(request: Request):
    srv = get_server(request)
    return {
        "success": True,
        "service": "Arena Wager Settlement",
        "version": __version__,
        "environment": srv.config.environment,
        "api_port": srv.config.api_port,
    }


@router.get("/api/status")
async def status(request: Request):
    srv = get_server(request)
    storage = srv.storage
    return {
        "success": True,
        "environment": srv.config.environment,
        "signatures_required": srv.config.require_signatures,
        "randomness_fallback": srv.config.allow_fallback,
        "rpc_configured": srv.chain is not None,
        "games": {
            "mines_total": await storage.guard.bounded(storage.mines.count()),
            "mines_active": await storage.guard.bounded(storage.mines.count(status=ACTIVE)),
            "coinflips": await storage.guard.bounded(storage.coinflips.count()),
            "battles": await storage.guard.bounded(storage.royale.count()),
            "pumpplay_rounds": await storage.guard.bounded(storage.pumpplay.count()),
            "pumpplay_bets": await storage.guard.bounded(storage.pumpplay.count_bets()),
            "payouts": await storage.guard.bounded(storage.payouts.count()),
        },
    }


@router.get("/api/auth/message")
async def sign_message(address: str = "", action: str = ""):
    wallet = normalize_wallet(address)
    if action not in SIGNED_ACTIONS:
        raise InvalidInput(f"Unknown action {action!r}; expected one of {', '.join(sorted(SIGNED_ACTIONS))}")
    return {"success": True, "message": build_sign_message(wallet, SIGNED_ACTIONS[action])}
