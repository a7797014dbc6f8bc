"""Server configuration: CLI flags with ARENA_* environment-variable defaults."""

import argparse
import os
from dataclasses import dataclass
from typing import Optional

from arena.auth import DEFAULT_MAX_AGE_MS
from arena.chain import DEFAULT_RPC_TIMEOUT
from arena.storage.guard import DEFAULT_STORE_TIMEOUT

PRODUCTION = "production"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _env_flag(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return None
    value = value.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclass
class ServerConfig:
    api_port: int = 8080
    db_path: str = "data/gaming.db"
    rpc_url: str = ""
    environment: str = "development"
    require_signatures: Optional[bool] = None
    allow_fallback: Optional[bool] = None
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT
    store_timeout: float = DEFAULT_STORE_TIMEOUT
    signature_max_age_ms: int = DEFAULT_MAX_AGE_MS

    def __post_init__(self):
        # Unset flags follow the environment: strict in production
        if self.require_signatures is None:
            self.require_signatures = self.is_production
        if self.allow_fallback is None:
            self.allow_fallback = not self.is_production

    @property
    def is_production(self) -> bool:
        return self.environment == PRODUCTION

    def validate(self):
        if not 0 < self.api_port < 65536:
            raise ValueError(f"api_port out of range: {self.api_port}")
        if self.rpc_url and not self.rpc_url.startswith(("http://", "https://")):
            raise ValueError(f"rpc_url must be an http(s) URL: {self.rpc_url}")
        if self.rpc_timeout <= 0 or self.store_timeout <= 0:
            raise ValueError("Timeouts must be positive")
        if self.signature_max_age_ms <= 0:
            raise ValueError("signature_max_age_ms must be positive")
        return self

    @classmethod
    def from_args(cls, argv=None) -> "ServerConfig":
        parser = build_parser()
        args = parser.parse_args(argv)
        return cls(
            api_port=args.api_port,
            db_path=args.db_path,
            rpc_url=args.rpc_url,
            environment=args.environment,
            require_signatures=args.require_signatures,
            allow_fallback=args.allow_fallback,
            rpc_timeout=args.rpc_timeout,
            store_timeout=args.store_timeout,
            signature_max_age_ms=args.signature_max_age_ms,
        ).validate()


def build_parser() -> argparse.ArgumentParser:
    env = os.environ
    parser = argparse.ArgumentParser(description="Wager settlement server for Mines, Coinflip and Meme Royale")
    parser.add_argument("--api-port", type=int, default=int(env.get("ARENA_API_PORT", 8080)),
                        help="REST API port (default: 8080)")
    parser.add_argument("--db-path", default=env.get("ARENA_DB_PATH", "data/gaming.db"),
                        help="SQLite database path (default: data/gaming.db)")
    parser.add_argument("--rpc-url", default=env.get("ARENA_RPC_URL", ""),
                        help="EVM JSON-RPC endpoint used for block-hash seeds and curve quotes")
    parser.add_argument("--environment", default=env.get("ARENA_ENV", "development"),
                        help="Deployment environment; 'production' turns on strict defaults")
    parser.add_argument("--require-signatures", action=argparse.BooleanOptionalAction,
                        default=_env_flag("ARENA_REQUIRE_SIGNATURES"),
                        help="Require EIP-191 wallet signatures (default: on in production)")
    parser.add_argument("--allow-fallback", action=argparse.BooleanOptionalAction,
                        default=_env_flag("ARENA_ALLOW_RANDOMNESS_FALLBACK"),
                        help="Allow non-provable randomness when the RPC node is down (default: off in production)")
    parser.add_argument("--rpc-timeout", type=float, default=float(env.get("ARENA_RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT)),
                        help="RPC timeout in seconds (default: 3.0)")
    parser.add_argument("--store-timeout", type=float,
                        default=float(env.get("ARENA_STORE_TIMEOUT", DEFAULT_STORE_TIMEOUT)),
                        help="Store round-trip timeout in seconds (default: 5.0)")
    parser.add_argument("--signature-max-age-ms", type=int,
                        default=int(env.get("ARENA_SIGNATURE_MAX_AGE_MS", DEFAULT_MAX_AGE_MS)),
                        help="Maximum signed-message age in milliseconds (default: 300000)")
    return parser
