from __future__ import annotations

import pytest

from goalvault.app.settings import SettingsConfig, apply_dict
from goalvault.domain.entities import NATIVE_ASSET_ADDRESS

VAULT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


def test_defaults() -> None:
    cfg = SettingsConfig()

    assert cfg.rpc_url == "http://127.0.0.1:8545"
    assert cfg.native_asset == NATIVE_ASSET_ADDRESS
    assert cfg.poll_interval_ms == 1000
    assert cfg.chain_id is None
    assert cfg.allow_public_join_by_id is True


def test_apply_dict_coerces_strings() -> None:
    cfg = apply_dict(
        SettingsConfig(),
        {
            "vault_contract": f"  {VAULT} ",
            "poll_interval_ms": "1500",
            "chain_id": "31337",
            "allow_public_join_by_id": "off",
            "share_base_url": "https://example.test/",
        },
    )

    assert cfg.vault_contract == VAULT
    assert cfg.poll_interval_ms == 1500
    assert cfg.chain_id == 31337
    assert cfg.allow_public_join_by_id is False
    assert cfg.share_base_url == "https://example.test/"


def test_apply_dict_returns_new_instance() -> None:
    base = SettingsConfig()
    updated = apply_dict(base, {"cache_ttl_s": 0})

    assert base.cache_ttl_s == 30
    assert updated.cache_ttl_s == 0
    assert apply_dict(base, {}) is base


def test_empty_chain_id_means_unset() -> None:
    cfg = apply_dict(SettingsConfig(chain_id=1), {"chain_id": " "})

    assert cfg.chain_id is None


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"unknown_key": 1}, "Unsupported settings keys: unknown_key"),
        ({"poll_interval_ms": "fast"}, "poll_interval_ms must be an integer"),
        ({"poll_interval_ms": 0}, "poll_interval_ms must be greater than zero"),
        ({"cache_ttl_s": -1}, "cache_ttl_s must be non-negative"),
        ({"max_transient_retries": True}, "max_transient_retries must be an integer"),
        ({"vault_contract": "0x1234"}, "vault_contract must be a 0x-prefixed"),
        ({"usdc_address": "5FbDB2315678afecb367f032d93F642f64180aa3"}, "usdc_address must be"),
        ({"log_level": "chatty"}, "Unknown log level"),
    ],
)
def test_apply_dict_rejects_invalid_values(payload, message) -> None:
    with pytest.raises(ValueError, match=message):
        apply_dict(SettingsConfig(), payload)


def test_apply_dict_requires_mapping() -> None:
    with pytest.raises(ValueError):
        apply_dict(SettingsConfig(), [("rpc_url", "x")])  # type: ignore[arg-type]


def test_from_env_reads_prefixed_variables() -> None:
    env = {
        "GOALVAULT_RPC_URL": "https://rpc.example.test",
        "GOALVAULT_VAULT_CONTRACT": VAULT,
        "GOALVAULT_MAX_CONFIRMATION_POLLS": "30",
        "GOALVAULT_INDEXER_URL": "   ",
        "UNRELATED": "x",
    }

    cfg = SettingsConfig.from_env(env)

    assert cfg.rpc_url == "https://rpc.example.test"
    assert cfg.vault_contract == VAULT
    assert cfg.max_confirmation_polls == 30
    assert cfg.indexer_url == ""


def test_to_dict_round_trips_through_apply_dict() -> None:
    cfg = apply_dict(SettingsConfig(), {"vault_contract": VAULT, "chain_id": 5})

    assert apply_dict(SettingsConfig(), cfg.to_dict()) == cfg


def test_log_level_is_normalized_and_read_from_env() -> None:
    assert SettingsConfig().log_level == ""
    assert apply_dict(SettingsConfig(), {"log_level": " debug "}).log_level == "DEBUG"
    assert SettingsConfig.from_env({"GOALVAULT_LOG_LEVEL": "warning"}).log_level == "WARNING"
