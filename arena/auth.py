"""
auth.py - Wallet signature verification (EIP-191).

Game endpoints that move money ask the client to sign a short message:

    Sign this message to <action>

    Address: <wallet>
    Nonce: <nonce>
    Timestamp: <epoch ms>

    This signature will not cost any gas.

The engine always calls ``verifier.verify(...)``; which verifier is installed
is a deployment decision:
  - EthSignatureVerifier: recovers the signer with eth-account, checks the
    message was signed for the action being performed, enforces the freshness
    window and consumes each nonce once.
  - PermissiveVerifier: accepts everything (development only) and logs it.
"""

import logging
import re
import secrets
import time
from typing import Dict, Optional

from eth_account import Account as EthAccount
from eth_account.messages import encode_defunct

from arena.errors import Unauthorized

logger = logging.getLogger("auth")

DEFAULT_MAX_AGE_MS = 5 * 60 * 1000
MAX_TRACKED_NONCES = 2000
SIGN_MESSAGE_TEMPLATE = (
    "Sign this message to {action}\n\n"
    "Address: {address}\n"
    "Nonce: {nonce}\n"
    "Timestamp: {timestamp}\n\n"
    "This signature will not cost any gas."
)

# Query-string action key -> the phrase signed after "Sign this message to"
SIGNED_ACTIONS = {
    "start": "start mines game",
    "reveal": "reveal mines tile",
    "cashout": "cash out mines game",
    "coinflip": "play coinflip",
    "pumpplay": "place pumpplay bet",
}

_NONCE_RE = re.compile(r"Nonce:\s*([^\n]+)", re.IGNORECASE)
_TIMESTAMP_RE = re.compile(r"Timestamp: (\d+)")
_ADDRESS_RE = re.compile(r"Address:\s*(\S+)", re.IGNORECASE)


def build_sign_message(address: str, action: str, nonce: Optional[str] = None,
                       timestamp: Optional[int] = None) -> str:
    return SIGN_MESSAGE_TEMPLATE.format(
        action=action,
        address=address,
        nonce=nonce or secrets.token_hex(16),
        timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
    )


class SignatureVerifier:
    """Capability: verify that ``message`` was signed by ``wallet`` recently.

    When ``action`` is given the message must have been signed for that action.
    """

    def verify(self, message: Optional[str], signature: Optional[str], wallet: str,
               max_age_ms: int = DEFAULT_MAX_AGE_MS, action: Optional[str] = None) -> None:
        """Return None when valid, raise Unauthorized otherwise."""
        raise NotImplementedError


class PermissiveVerifier(SignatureVerifier):
    """Accepts every request. Never install this in production."""

    def verify(self, message, signature, wallet, max_age_ms=DEFAULT_MAX_AGE_MS, action=None):
        if not signature:
            logger.debug("Unsigned %s request accepted for %s (signatures not required)",
                         action or "game", wallet)


class EthSignatureVerifier(SignatureVerifier):
    """EIP-191 personal_sign verification with freshness and replay checks."""

    def __init__(self):
        # (wallet:action:nonce) -> consumed_at_ms
        self._consumed: Dict[str, int] = {}

    def verify(self, message, signature, wallet, max_age_ms=DEFAULT_MAX_AGE_MS, action=None):
        if not message or not signature:
            raise Unauthorized("Wallet signature required. Please sign the message to continue.")
        wallet = wallet.lower()

        try:
            recovered = EthAccount.recover_message(encode_defunct(text=message), signature=signature)
        except Exception as e:
            raise Unauthorized(f"Signature verification failed: {e}") from e
        if recovered.lower() != wallet:
            raise Unauthorized("Signature verification failed: signer does not match wallet")

        if action is not None:
            self._check_binding(message, wallet, action)

        ts_match = _TIMESTAMP_RE.search(message)
        if not ts_match:
            raise Unauthorized("Signature verification failed: message missing timestamp")
        now = int(time.time() * 1000)
        age = now - int(ts_match.group(1))
        if age < 0:
            raise Unauthorized("Signature verification failed: message timestamp is in the future")
        if age > max_age_ms:
            raise Unauthorized(
                f"Signature verification failed: message expired (age: {age // 1000}s, "
                f"max: {max_age_ms // 1000}s)"
            )

        self._consume_nonce(message, wallet, now, max_age_ms)

    @staticmethod
    def _check_binding(message: str, wallet: str, action: str):
        first_line = message.split("\n", 1)[0].strip().lower()
        if first_line != f"sign this message to {action}".lower():
            raise Unauthorized(f"Signature verification failed: message was not signed to {action}")
        address_match = _ADDRESS_RE.search(message)
        if address_match and address_match.group(1).lower() != wallet:
            raise Unauthorized("Signature verification failed: message names a different address")

    def _consume_nonce(self, message: str, wallet: str, now: int, max_age_ms: int):
        nonce_match = _NONCE_RE.search(message)
        if not nonce_match:
            raise Unauthorized("Signature verification failed: message missing nonce")
        action_line = message.split("\n", 1)[0].strip().lower()
        key = f"{wallet}:{action_line}:{nonce_match.group(1).strip()}"

        consumed_at = self._consumed.get(key)
        if consumed_at is not None and now - consumed_at <= max_age_ms:
            raise Unauthorized("Signature verification failed: nonce has already been used")
        self._consumed[key] = now

        if len(self._consumed) > MAX_TRACKED_NONCES:
            for k, ts in list(self._consumed.items()):
                if now - ts > max_age_ms:
                    del self._consumed[k]
