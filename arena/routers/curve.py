"""Curve router: display-only bonding-curve quotes."""

from fastapi import APIRouter
from starlette.requests import Request

from arena.deps import get_server
from arena.errors import Unavailable

router = APIRouter()


@router.get("/api/curve/{curve_address}/quote")
async def quote(request: Request, curve_address: str, side: str = "buy", amount: str = ""):
    srv = get_server(request)
    if srv.quoter is None:
        raise Unavailable("No RPC endpoint configured for curve quotes")
    return {"success": True, **await srv.quoter.quote(curve_address, side, amount)}
