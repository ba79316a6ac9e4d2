"""Explicit read cache for vault and membership records."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from goalvault.domain.entities import MemberRecord, VaultRecord
from goalvault.domain.ports import Address, ChainStatePort, VaultId

log = logging.getLogger(__name__)

V = TypeVar("V")
_MISSING = object()
DEFAULT_NONE_TTL_S = 5.0


class TtlCache(Generic[V]):
    """Small keyed cache whose entries expire ``ttl_s`` seconds after writing.

    ``None`` values are cached for ``none_ttl_s`` (at most ``ttl_s``), so a
    missing record is not re-read on every lookup but a newly created vault
    shows up quickly. Expired entries are pruned on every write.
    """

    def __init__(
        self,
        ttl_s: float,
        *,
        none_ttl_s: float = DEFAULT_NONE_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_s < 0 or none_ttl_s < 0:
            raise ValueError("ttl_s and none_ttl_s must be >= 0")
        self.ttl_s = float(ttl_s)
        self.none_ttl_s = min(float(none_ttl_s), self.ttl_s)
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Optional[V]]] = {}

    def get(self, key: Hashable, default: object = _MISSING) -> object:
        entry = self._entries.get(key)
        if entry is None:
            return default
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return default
        return value

    def put(self, key: Hashable, value: Optional[V]) -> None:
        now = self._clock()
        self.prune(now)
        ttl = self.none_ttl_s if value is None else self.ttl_s
        self._entries[key] = (now + ttl, value)

    def prune(self, now: Optional[float] = None) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock() if now is None else now
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def get_or_load(self, key: Hashable, loader: Callable[[], Optional[V]]) -> Optional[V]:
        cached = self.get(key)
        if cached is not _MISSING:
            return cached  # type: ignore[return-value]
        value = loader()
        self.put(key, value)
        return value

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class CachedChainReader(ChainStatePort):
    """ChainStatePort decorator caching vault and member reads.

    Allowance and real-time status always go to the wrapped reader: both
    drive decisions that must see the latest block. Failed loads are not
    cached.
    """

    def __init__(
        self,
        inner: ChainStatePort,
        *,
        ttl_s: float = 30.0,
        none_ttl_s: float = DEFAULT_NONE_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.inner = inner
        self._vaults: TtlCache[VaultRecord] = TtlCache(ttl_s, none_ttl_s=none_ttl_s, clock=clock)
        self._members: TtlCache[MemberRecord] = TtlCache(ttl_s, none_ttl_s=none_ttl_s, clock=clock)

    def get_vault(self, vault_id: VaultId) -> Optional[VaultRecord]:
        return self._vaults.get_or_load(vault_id, lambda: self.inner.get_vault(vault_id))

    def get_member(self, vault_id: VaultId, address: Address) -> Optional[MemberRecord]:
        key = (vault_id, address.lower())
        return self._members.get_or_load(key, lambda: self.inner.get_member(vault_id, address))

    def get_allowance(self, owner: Address, spender: Address, asset: Address) -> int:
        return self.inner.get_allowance(owner, spender, asset)

    def get_realtime_status(self, vault_id: VaultId) -> int:
        return self.inner.get_realtime_status(vault_id)

    # ---- invalidation ----
    def invalidate_vault(self, vault_id: VaultId) -> None:
        log.debug("Invalidating cached vault %s", vault_id)
        self._vaults.invalidate(vault_id)

    def invalidate_member(self, vault_id: VaultId, address: Address) -> None:
        self._members.invalidate((vault_id, address.lower()))

    def clear(self) -> None:
        self._vaults.clear()
        self._members.clear()


__all__ = ["CachedChainReader", "DEFAULT_NONE_TTL_S", "TtlCache"]
