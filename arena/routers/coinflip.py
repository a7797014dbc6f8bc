"""Coinflip router: /api/gaming/coinflip/* endpoints."""

from fastapi import APIRouter
from starlette.requests import Request

from arena.deps import get_server
from arena.models import CoinflipPlayRequest

router = APIRouter(prefix="/api/gaming/coinflip")


@router.post("/play")
async def play(request: Request, req: CoinflipPlayRequest):
    srv = get_server(request)
    result = await srv.coinflip.play(
        owner_wallet=req.owner_wallet,
        wager=req.wager,
        user_choice=req.user_choice,
        token_address=req.token_address,
        tx_hash=req.tx_hash,
        message=req.message,
        signature=req.signature,
    )
    return {"success": True, **result}


@router.get("/leaderboard")
async def leaderboard(request: Request):
    srv = get_server(request)
    return {"success": True, "leaderboard": await srv.coinflip.leaderboard()}


@router.get("/recent")
async def recent_games(request: Request, limit: int = 20):
    srv = get_server(request)
    return {"success": True, "games": await srv.coinflip.recent(limit)}


@router.get("/{record_id}/verify")
async def verify_game(request: Request, record_id: int):
    srv = get_server(request)
    return {"success": True, **await srv.coinflip.verify(record_id)}
