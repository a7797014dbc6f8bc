"""Router package: collects all API routers and registers them on the FastAPI app."""

from fastapi import FastAPI

from arena.routers import (
    system,
    mines,
    coinflip,
    royale,
    pumpplay,
    curve,
)


def register_all_routers(app: FastAPI):
    app.include_router(system.router)
    app.include_router(mines.router)
    app.include_router(coinflip.router)
    app.include_router(royale.router)
    app.include_router(pumpplay.router)
    app.include_router(curve.router)
