"""
quotes.py - Display-only quotes against a constant-product bonding curve.

The curve contract owns the AMM state; this module only reads
``ogReserve()``, ``tokenReserve()`` and ``feeBps()`` through ``eth_call`` and
applies the same integer wei arithmetic the contract uses:

    buy:  fee = in * feeBps / 10000
          tokens_out = tokenReserve - k / (ogReserve + in - fee)
    sell: og_out_before_fee = ogReserve - k / (tokenReserve + in)
          fee = og_out_before_fee * feeBps / 10000
"""

import asyncio
import logging
from decimal import Decimal

from eth_utils import from_wei, function_signature_to_4byte_selector, to_wei

from arena.chain import ChainClient, ChainUnavailable
from arena.errors import InvalidState, Unavailable
from arena.validation import normalize_wallet, one_of, positive_decimal

logger = logging.getLogger("quotes")

BPS_DENOMINATOR = 10000
ONE_ETHER = 10 ** 18
BUY = "buy"
SELL = "sell"


def _selector(signature: str) -> str:
    return "0x" + function_signature_to_4byte_selector(signature).hex()


OG_RESERVE = _selector("ogReserve()")
TOKEN_RESERVE = _selector("tokenReserve()")
FEE_BPS = _selector("feeBps()")


def _format_ether(wei: int) -> str:
    return format(Decimal(from_wei(wei, "ether")).normalize(), "f") if wei else "0"


def buy_quote(og_in: int, og_reserve: int, token_reserve: int, fee_bps: int) -> dict:
    fee = og_in * fee_bps // BPS_DENOMINATOR
    og_in_after_fee = og_in - fee
    k = og_reserve * token_reserve
    tokens_out = token_reserve - k // (og_reserve + og_in_after_fee)
    impact = tokens_out * ONE_ETHER // og_in_after_fee if og_in_after_fee else 0
    return {"amount_out": tokens_out, "fee": fee, "price_impact": impact}


def sell_quote(tokens_in: int, og_reserve: int, token_reserve: int, fee_bps: int) -> dict:
    k = og_reserve * token_reserve
    og_out_before_fee = og_reserve - k // (token_reserve + tokens_in)
    fee = og_out_before_fee * fee_bps // BPS_DENOMINATOR
    og_out = og_out_before_fee - fee
    impact = og_out * ONE_ETHER // tokens_in if tokens_in else 0
    return {"amount_out": og_out, "fee": fee, "price_impact": impact}


class BondingCurveQuoter:
    def __init__(self, chain: ChainClient):
        self._chain = chain

    async def reserves(self, curve_address: str) -> dict:
        try:
            og, token, fee = await asyncio.gather(
                self._chain.eth_call(curve_address, OG_RESERVE),
                self._chain.eth_call(curve_address, TOKEN_RESERVE),
                self._chain.eth_call(curve_address, FEE_BPS),
            )
        except ChainUnavailable as e:
            logger.warning("Reserve read failed for %s: %s", curve_address, e)
            raise Unavailable(f"Could not read curve reserves: {e}") from e
        try:
            return {"og_reserve": int(og, 16), "token_reserve": int(token, 16), "fee_bps": int(fee, 16)}
        except ValueError as e:
            raise Unavailable(f"Malformed reserve data from curve {curve_address}") from e

    async def quote(self, curve_address: str, side: str, amount) -> dict:
        curve = normalize_wallet(curve_address, "Curve address")
        side = one_of(side, (BUY, SELL), "Side")
        amount_wei = to_wei(positive_decimal(amount, "Amount"), "ether")

        state = await self.reserves(curve)
        if state["og_reserve"] == 0 or state["token_reserve"] == 0:
            raise InvalidState("Curve is not seeded")

        calc = buy_quote if side == BUY else sell_quote
        result = calc(amount_wei, state["og_reserve"], state["token_reserve"], state["fee_bps"])
        return {
            "curve_address": curve,
            "side": side,
            "input_amount": str(amount),
            "output_amount": _format_ether(result["amount_out"]),
            "fee": _format_ether(result["fee"]),
            "price_impact": _format_ether(result["price_impact"]),
            "fee_bps": state["fee_bps"],
        }
