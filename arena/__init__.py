"""
Arena Wager Settlement - Server Package

Settlement engine for the Mines, Coinflip, Meme Royale and PumpPlay mini-games.
Includes SQLite storage, the concurrency guard, block-hash randomness,
wallet signature verification and the REST API.
"""

__version__ = "0.1.0"

__all__ = [
    "auth",
    "chain",
    "coinflip",
    "config",
    "errors",
    "grid",
    "mines",
    "pumpplay",
    "quotes",
    "randomness",
    "royale",
    "server",
    "storage",
]
