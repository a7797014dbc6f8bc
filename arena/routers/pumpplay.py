"""PumpPlay router: /api/gaming/pumpplay/*"""

from fastapi import APIRouter
from starlette.requests import Request

from arena.deps import get_server
from arena.models import PumpPlayBetRequest

router = APIRouter(prefix="/api/gaming/pumpplay")


@router.post("/bet")
async def place_bet(request: Request, req: PumpPlayBetRequest):
    srv = get_server(request)
    result = await srv.pumpplay.bet(
        round_id=req.round_id,
        owner_wallet=req.owner_wallet,
        coin_id=req.coin_id,
        amount=req.amount,
        token_address=req.token_address,
        tx_hash=req.tx_hash,
        message=req.message,
        signature=req.signature,
    )
    return {"success": True, **result}


@router.get("/rounds")
async def list_rounds(request: Request):
    srv = get_server(request)
    return {"success": True, "rounds": await srv.pumpplay.rounds()}
