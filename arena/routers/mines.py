"""Mines router: /api/gaming/mines/* endpoints."""

from fastapi import APIRouter
from starlette.requests import Request

from arena.deps import get_server
from arena.models import MinesCashoutRequest, MinesRevealRequest, MinesStartRequest

router = APIRouter(prefix="/api/gaming/mines")


@router.post("/start")
async def start_game(request: Request, req: MinesStartRequest):
    srv = get_server(request)
    result = await srv.mines.start(
        owner_wallet=req.owner_wallet,
        bet_amount=req.bet_amount,
        stake_token_address=req.stake_token_address,
        mines_count=req.mines_count,
        tx_hash=req.tx_hash,
        message=req.message,
        signature=req.signature,
    )
    return {"success": True, **result}


@router.post("/reveal")
async def reveal_tile(request: Request, req: MinesRevealRequest):
    srv = get_server(request)
    result = await srv.mines.reveal(
        session_id=req.session_id,
        tile_index=req.tile_index,
        owner_wallet=req.owner_wallet,
        message=req.message,
        signature=req.signature,
    )
    return {"success": True, **result}


@router.post("/cashout")
async def cash_out(request: Request, req: MinesCashoutRequest):
    srv = get_server(request)
    result = await srv.mines.cashout(
        session_id=req.session_id,
        owner_wallet=req.owner_wallet,
        message=req.message,
        signature=req.signature,
    )
    return {"success": True, **result}


@router.get("/{session_id}")
async def get_game(request: Request, session_id: int, owner_wallet: str = ""):
    srv = get_server(request)
    session = await srv.mines.get_session(session_id, owner_wallet)
    return {"success": True, "session": session}
