"""Tests for settings loading and the ledger network table."""

import pytest
from pydantic import ValidationError

from attendify.core.config import Settings
from attendify.models.event import NetworkIdentifier


def test_network_requires_url_and_seed():
    settings = Settings(  # type: ignore[call-arg]
        APP_ENV="test",
        XRPL_TESTNET_URL="wss://testnet.example",
        XRPL_TESTNET_VAULT_SEED="sEdTM1uX8pu2do5XvTnutH6HsouMaM2",
        XRPL_DEVNET_VAULT_SEED="",
        XRPL_MAINNET_URL="wss://mainnet.example",
    )

    configs = settings.network_configs()

    assert list(configs) == [NetworkIdentifier.TESTNET]
    assert configs[NetworkIdentifier.TESTNET].url == "wss://testnet.example"


def test_missing_configuration_fails_outside_tests():
    with pytest.raises(ValidationError) as exc_info:
        Settings(APP_ENV="production", PINATA_JWT="", XRPL_TESTNET_VAULT_SEED="")  # type: ignore[call-arg]

    message = str(exc_info.value)
    assert "PINATA_JWT" in message
    assert "XRPL_<NETWORK>_URL" in message


def test_cors_origins_list():
    settings = Settings(APP_ENV="test", CORS_ORIGINS="https://a.example, https://b.example")  # type: ignore[call-arg]

    assert settings.cors_origins_list == ["https://a.example", "https://b.example"]
