"""
randomness.py - Seed source for provably fair outcomes.

The preferred seed is the hash of the latest chain block, which anyone can
look up later to recompute an outcome. When the node is unreachable the
source can fall back to a local pseudo-random value; such seeds carry
``provably_fair = False`` and a synthetic provenance id
(keccak256 of ``"{wallet}-{epoch_ms}"``) so they are never mistaken for a
block-derived seed. Strict deployments disable the fallback entirely.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Optional

from eth_utils import keccak

from arena.chain import ChainClient, ChainUnavailable
from arena.errors import Unavailable

logger = logging.getLogger("random")


@dataclass(frozen=True)
class Seed:
    value: bytes
    provenance_id: str
    block_number: Optional[int] = None
    block_hash: Optional[str] = None

    @property
    def provably_fair(self) -> bool:
        return self.block_hash is not None

    @property
    def last_byte(self) -> int:
        return self.value[-1]


class RandomnessSource:
    """Latest block hash, with an optional tagged pseudo-random fallback."""

    def __init__(
        self,
        chain: Optional[ChainClient],
        allow_fallback: bool = True,
        rng: Optional[random.Random] = None,
    ):
        self._chain = chain
        self.allow_fallback = allow_fallback
        self._rng = rng or random.Random()

    async def next_seed(self, wallet: str = "") -> Seed:
        if self._chain is not None:
            try:
                block = await self._chain.get_latest_block()
                return Seed(
                    value=bytes.fromhex(block["hash"][2:]),
                    provenance_id=block["hash"],
                    block_number=block["number"],
                    block_hash=block["hash"],
                )
            except ChainUnavailable as e:
                logger.warning("Block seed unavailable: %s", e)
                reason = str(e)
        else:
            reason = "no RPC endpoint configured"

        if not self.allow_fallback:
            raise Unavailable(f"Randomness source unavailable ({reason}) and fallback is disabled")
        return self.fallback_seed(wallet)

    def fallback_seed(self, wallet: str) -> Seed:
        """Local, NOT provably fair, seed tagged with a synthetic provenance id."""
        ts_ms = int(time.time() * 1000)
        provenance_id = "0x" + keccak(text=f"{wallet}-{ts_ms}").hex()
        value = self._rng.getrandbits(256).to_bytes(32, "big")
        logger.warning("Using fallback randomness for %s (provenance %s)", wallet or "-", provenance_id)
        return Seed(value=value, provenance_id=provenance_id)
