"""Dependency helpers for router modules."""

from typing import TYPE_CHECKING

from starlette.requests import Request

if TYPE_CHECKING:
    from arena.server import GameServer


def get_server(request: Request) -> "GameServer":
    """The GameServer that built this app; engines and storage hang off it."""
    return request.app.state.server
