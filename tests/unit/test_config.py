"""
test_config.py - ServerConfig defaults, environment overrides and validation.
"""

import pytest

from arena.config import ServerConfig
from arena.errors import InvalidInput
from arena.validation import integer_in_range, normalize_wallet, one_of, positive_decimal
from tests.conftest import WALLET


class TestServerConfig:

    def test_development_defaults(self):
        config = ServerConfig()
        assert config.api_port == 8080
        assert config.db_path == "data/gaming.db"
        assert config.require_signatures is False
        assert config.allow_fallback is True

    def test_production_is_strict(self):
        config = ServerConfig(environment="production")
        assert config.require_signatures is True
        assert config.allow_fallback is False

    def test_explicit_flags_win(self):
        config = ServerConfig(environment="production", allow_fallback=True)
        assert config.allow_fallback is True

    def test_from_args(self, monkeypatch):
        monkeypatch.setenv("ARENA_DB_PATH", "/tmp/x.db")
        monkeypatch.setenv("ARENA_REQUIRE_SIGNATURES", "yes")
        config = ServerConfig.from_args(["--api-port", "9000", "--rpc-url", "https://rpc.example"])
        assert config.api_port == 9000
        assert config.db_path == "/tmp/x.db"
        assert config.rpc_url == "https://rpc.example"
        assert config.require_signatures is True

    def test_cli_negation(self):
        config = ServerConfig.from_args(["--environment", "production", "--allow-fallback"])
        assert config.allow_fallback is True
        config = ServerConfig.from_args(["--no-require-signatures"])
        assert config.require_signatures is False

    @pytest.mark.parametrize("kwargs", [
        {"api_port": 0},
        {"api_port": 70000},
        {"rpc_url": "ws://node"},
        {"store_timeout": 0},
    ])
    def test_validate_rejects(self, kwargs):
        with pytest.raises(ValueError):
            ServerConfig(**kwargs).validate()

    def test_bad_env_flag(self, monkeypatch):
        monkeypatch.setenv("ARENA_ALLOW_RANDOMNESS_FALLBACK", "maybe")
        with pytest.raises(ValueError):
            ServerConfig.from_args([])


class TestValidation:

    def test_wallet_is_lowercased(self):
        assert normalize_wallet("0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed") == \
            "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
        assert normalize_wallet(WALLET.upper().replace("0X", "0x")) == WALLET

    @pytest.mark.parametrize("value", [
        "0x5aAeb6053f3E94C9b9A09f33669435E7Ef1BeAed",  # one letter of a valid EIP-55 address lowered
        "0x24691E54aFafe2416a8252097C9Ca67557271474",
    ])
    def test_bad_checksum_rejected(self, value):
        with pytest.raises(InvalidInput):
            normalize_wallet(value)

    @pytest.mark.parametrize("value", ["", None, "0x123", 42, "0xzz691e54afafe2416a8252097c9ca67557271475"])
    def test_bad_wallets(self, value):
        with pytest.raises(InvalidInput):
            normalize_wallet(value)

    def test_positive_decimal_keeps_precision(self):
        assert str(positive_decimal("0.1")) == "0.1"
        assert str(positive_decimal(0.1)) == "0.1"

    @pytest.mark.parametrize("value", [True, 1.5, "1.0x"])
    def test_integer_rejects(self, value):
        with pytest.raises(InvalidInput):
            integer_in_range(value, 0, 10, "n")

    def test_integer_accepts_numeric_strings(self):
        assert integer_in_range("7", 0, 10, "n") == 7

    def test_one_of(self):
        assert one_of("left", ("left", "right"), "side") == "left"
        with pytest.raises(InvalidInput, match='"left", "right"'):
            one_of("up", ("left", "right"), "side")
