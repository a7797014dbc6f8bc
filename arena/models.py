"""Pydantic request models for the REST API."""

from typing import Optional, Union

from pydantic import BaseModel

Amount = Union[float, str]


class SignedRequest(BaseModel):
    message: Optional[str] = None
    signature: Optional[str] = None


class MinesStartRequest(SignedRequest):
    owner_wallet: str
    bet_amount: Amount
    stake_token_address: str
    mines_count: int
    tx_hash: Optional[str] = None


class MinesRevealRequest(SignedRequest):
    session_id: int
    tile_index: int
    owner_wallet: str


class MinesCashoutRequest(SignedRequest):
    session_id: int
    owner_wallet: str


class CoinflipPlayRequest(SignedRequest):
    owner_wallet: str
    wager: Amount
    user_choice: str
    token_address: Optional[str] = None
    tx_hash: Optional[str] = None


class RoyaleBetRequest(BaseModel):
    left_coin_id: str
    right_coin_id: str
    owner_wallet: str
    stake_amount: Amount
    stake_side: str
    tx_hash: Optional[str] = None


class CoinUpsertRequest(BaseModel):
    coin_id: str
    token_address: str = ""
    name: str = ""
    symbol: str = ""
    image_url: str = ""


class PumpPlayBetRequest(SignedRequest):
    round_id: int
    owner_wallet: str
    coin_id: str
    amount: Amount
    token_address: Optional[str] = None
    tx_hash: Optional[str] = None
