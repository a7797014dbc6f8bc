"""Request-value validation shared by the game engines. Failures raise InvalidInput."""

from decimal import Decimal, InvalidOperation
from typing import Any

from eth_utils import is_address, is_checksum_address, remove_0x_prefix

from arena.errors import InvalidInput


def normalize_wallet(address: Any, field: str = "Wallet address") -> str:
    if not address or not isinstance(address, str):
        raise InvalidInput(f"{field} is required")
    if not is_address(address):
        raise InvalidInput(f"{field} is not a valid Ethereum address")
    # mixed case means EIP-55; the checksum has to hold
    hexpart = remove_0x_prefix(address)
    if hexpart != hexpart.lower() and hexpart != hexpart.upper() and not is_checksum_address(address):
        raise InvalidInput(f"{field} has an invalid checksum")
    return address.lower()


def positive_decimal(value: Any, field: str = "Amount") -> Decimal:
    if value is None or value == "" or isinstance(value, bool):
        raise InvalidInput(f"{field} is required")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"{field} must be a number")
    if not amount.is_finite() or amount <= 0:
        raise InvalidInput(f"{field} must be greater than 0")
    return amount


def integer_in_range(value: Any, low: int, high: int, field: str, error=InvalidInput) -> int:
    if isinstance(value, bool):
        raise error(f"{field} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise error(f"{field} must be an integer")
    if isinstance(value, float) and value != number:
        raise error(f"{field} must be an integer")
    if not low <= number <= high:
        raise error(f"{field} must be between {low} and {high}")
    return number


def one_of(value: Any, choices, field: str) -> str:
    if value not in choices:
        options = ", ".join(f'"{c}"' for c in choices)
        raise InvalidInput(f"{field} must be one of {options}")
    return value
