"""Typed runtime settings for the vault client.

Values come from defaults, ``GOALVAULT_*`` environment variables
(:meth:`SettingsConfig.from_env`) or a flat mapping (:func:`apply_dict`).
Validation happens here; adapters and use cases read plain attributes.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

from goalvault.domain.entities import NATIVE_ASSET_ADDRESS
from goalvault.utils.logging import level_from_name

ENV_PREFIX = "GOALVAULT_"


@dataclass(frozen=True)
class SettingsConfig:
    """Chain endpoints, contract addresses and polling policy.

    An empty ``log_level`` leaves the host application's logging alone.
    """

    rpc_url: str = "http://127.0.0.1:8545"
    indexer_url: str = ""
    vault_contract: str = ""
    native_asset: str = NATIVE_ASSET_ADDRESS
    usdc_address: str = ""
    usdc_decimals: int = 6
    chain_id: Optional[int] = None
    request_timeout_s: int = 10
    poll_interval_ms: int = 1000
    poll_backoff_max_ms: int = 5000
    max_confirmation_polls: int = 120
    max_transient_retries: int = 3
    status_batch_limit: int = 25
    cache_ttl_s: int = 30
    allow_public_join_by_id: bool = True
    share_base_url: str = "https://goalfi.app"
    log_level: str = ""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SettingsConfig":
        """Build settings from ``GOALVAULT_<FIELD>`` variables, e.g. ``GOALVAULT_RPC_URL``."""
        env = os.environ if environ is None else environ
        payload: Dict[str, Any] = {}
        for name in _FIELD_NAMES:
            value = env.get(ENV_PREFIX + name.upper())
            if value is not None and value.strip():
                payload[name] = value
        return apply_dict(cls(), payload)

    def to_dict(self) -> dict:
        return asdict(self)


_FIELD_NAMES = tuple(f.name for f in fields(SettingsConfig))
_INT_FIELDS = {
    "usdc_decimals",
    "request_timeout_s",
    "poll_interval_ms",
    "poll_backoff_max_ms",
    "max_confirmation_polls",
    "max_transient_retries",
    "status_batch_limit",
    "cache_ttl_s",
}
_POSITIVE_INT_FIELDS = {"poll_interval_ms", "max_confirmation_polls", "status_batch_limit"}
_BOOL_FIELDS = {"allow_public_join_by_id"}
_ADDRESS_FIELDS = {"vault_contract", "native_asset", "usdc_address"}


def apply_dict(config: SettingsConfig, payload: Mapping[str, Any]) -> SettingsConfig:
    """Return ``config`` updated from a flat mapping of field names.

    Raises:
        ValueError: Unknown keys or values that cannot be coerced.
    """
    if not isinstance(payload, Mapping):
        raise ValueError("Settings payload must be a mapping of flat keys.")

    unknown = set(payload.keys()) - set(_FIELD_NAMES)
    if unknown:
        raise ValueError(f"Unsupported settings keys: {', '.join(sorted(str(key) for key in unknown))}")

    updates = {key: _coerce_value(key, raw) for key, raw in payload.items()}
    if not updates:
        return config
    return replace(config, **updates)


def _coerce_value(key: str, raw: Any) -> Any:
    if key in _INT_FIELDS:
        value = _coerce_int(key, raw, allow_negative=False)
        if key in _POSITIVE_INT_FIELDS and value == 0:
            raise ValueError(f"{key} must be greater than zero.")
        return value
    if key == "chain_id":
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return None
        return _coerce_int(key, raw, allow_negative=False)
    if key in _BOOL_FIELDS:
        return _coerce_bool(raw)
    if key == "log_level":
        return _coerce_log_level(raw)
    if key in _ADDRESS_FIELDS:
        return _coerce_address(key, raw)
    return _coerce_optional_str(raw)


def _coerce_optional_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _coerce_int(name: str, value: Any, *, allow_negative: bool = True) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer.")
    if isinstance(value, (int, float)):
        coerced = int(value)
    elif isinstance(value, str):
        try:
            coerced = int(value.strip())
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{name} must be an integer.") from exc
    else:
        raise ValueError(f"{name} must be an integer.")
    if not allow_negative and coerced < 0:
        raise ValueError(f"{name} must be non-negative.")
    return coerced


def _coerce_log_level(value: Any) -> str:
    text = _coerce_optional_str(value).upper()
    if text:
        level_from_name(text)
    return text


def _coerce_address(name: str, value: Any) -> str:
    text = _coerce_optional_str(value)
    if not text:
        return ""
    body = text[2:] if text[:2].lower() == "0x" else ""
    if len(body) != 40 or any(ch not in "0123456789abcdefABCDEF" for ch in body):
        raise ValueError(f"{name} must be a 0x-prefixed 20-byte hex address.")
    return text


__all__ = ["ENV_PREFIX", "SettingsConfig", "apply_dict"]
