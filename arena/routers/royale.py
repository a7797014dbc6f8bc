"""Meme Royale router: /api/gaming/meme-royale/* and the coin registry."""

from fastapi import APIRouter
from starlette.requests import Request

from arena.deps import get_server
from arena.errors import InvalidInput
from arena.models import CoinUpsertRequest, RoyaleBetRequest
from arena.validation import normalize_wallet

router = APIRouter(prefix="/api/gaming")


@router.post("/meme-royale/bet")
async def place_bet(request: Request, req: RoyaleBetRequest):
    srv = get_server(request)
    result = await srv.royale.bet(
        left_coin_id=req.left_coin_id,
        right_coin_id=req.right_coin_id,
        owner_wallet=req.owner_wallet,
        stake_amount=req.stake_amount,
        stake_side=req.stake_side,
        tx_hash=req.tx_hash,
    )
    return {"success": True, **result}


@router.get("/meme-royale/battles")
async def list_battles(request: Request):
    srv = get_server(request)
    return {"success": True, "battles": await srv.royale.battles()}


@router.post("/coins")
async def upsert_coin(request: Request, req: CoinUpsertRequest):
    srv = get_server(request)
    coin_id = req.coin_id.strip()
    if not coin_id:
        raise InvalidInput("Coin id is required")
    token_address = normalize_wallet(req.token_address, "Token address") if req.token_address else ""

    async def _upsert(db):
        return await srv.storage.coins.upsert(
            coin_id, token_address=token_address, name=req.name, symbol=req.symbol, image_url=req.image_url,
        )

    coin = await srv.storage.guard.run_write(_upsert)
    return {"success": True, "coin": coin}
