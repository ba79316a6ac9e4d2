"""Bucket vaults by their effective on-chain status."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from goalvault.adapters.api_errors import ApiError, is_transient
from goalvault.domain.entities import VaultRecord, VaultStatus
from goalvault.domain.ports import ChainStatePort, VaultId

log = logging.getLogger(__name__)

DEFAULT_BATCH_LIMIT = 25

_BUCKET_BY_STATUS = {
    VaultStatus.ACTIVE: "active",
    VaultStatus.SUCCESS: "completed",
    VaultStatus.FAILED: "failed",
    VaultStatus.CANCELLED: "cancelled",
}


@dataclass
class StatusBuckets:
    active: List[VaultRecord] = field(default_factory=list)
    completed: List[VaultRecord] = field(default_factory=list)
    failed: List[VaultRecord] = field(default_factory=list)
    cancelled: List[VaultRecord] = field(default_factory=list)

    def total(self) -> int:
        return len(self.active) + len(self.completed) + len(self.failed) + len(self.cancelled)


@dataclass(frozen=True)
class VaultStatusView:
    """One vault with the status the UI should show for it."""

    record: VaultRecord
    effective_status: VaultStatus
    source: str
    """``"realtime"`` when read from ``checkVaultStatus``, else ``"stored"``."""

    @property
    def bucket(self) -> str:
        return _BUCKET_BY_STATUS[self.effective_status]

    @property
    def display_status(self) -> str:
        return self.bucket.capitalize()


@dataclass
class VaultStatusAggregator:
    """Reconcile stored and real-time vault status.

    Real-time status wins. The stored status is only a fallback when the
    real-time read fails; vaults whose record cannot be read are skipped and
    logged, so one bad vault never empties the batch. At most
    ``batch_limit`` ids are read per call; callers page larger lists themselves.
    """

    chain: ChainStatePort
    batch_limit: int = DEFAULT_BATCH_LIMIT

    def aggregate(self, vault_ids: Iterable[VaultId]) -> StatusBuckets:
        buckets = StatusBuckets()
        for view in self.enrich(vault_ids):
            getattr(buckets, view.bucket).append(view.record)
        return buckets

    def enrich(self, vault_ids: Iterable[VaultId]) -> List[VaultStatusView]:
        ids = self._limited(vault_ids)
        views: List[VaultStatusView] = []
        for vault_id in ids:
            view = self._view(vault_id)
            if view is not None:
                views.append(view)
        return views

    def _limited(self, vault_ids: Iterable[VaultId]) -> List[VaultId]:
        ids: List[VaultId] = []
        seen = set()
        for vault_id in vault_ids:
            if vault_id in seen:
                continue
            seen.add(vault_id)
            ids.append(vault_id)
        if len(ids) > self.batch_limit:
            log.warning(
                "Status batch truncated to %d of %d vaults", self.batch_limit, len(ids)
            )
            ids = ids[: self.batch_limit]
        return ids

    def _view(self, vault_id: VaultId) -> Optional[VaultStatusView]:
        try:
            record = self.chain.get_vault(vault_id)
        except ApiError as exc:
            log.error("Skipping vault %s: record read failed (%s)", vault_id, exc)
            return None
        if record is None:
            log.info("Skipping vault %s: no on-chain record", vault_id)
            return None
        status, source = self._effective_status(record)
        return VaultStatusView(record=record, effective_status=status, source=source)

    def _effective_status(self, record: VaultRecord) -> Tuple[VaultStatus, str]:
        try:
            raw = self.chain.get_realtime_status(record.vault_id)
        except ApiError as exc:
            level = logging.WARNING if is_transient(exc) else logging.ERROR
            log.log(
                level,
                "Real-time status of vault %s unavailable (%s); using stored status",
                record.vault_id,
                exc,
            )
            return VaultStatus.from_raw(record.status), "stored"
        return VaultStatus.from_raw(raw), "realtime"


__all__ = [
    "DEFAULT_BATCH_LIMIT",
    "StatusBuckets",
    "VaultStatusAggregator",
    "VaultStatusView",
]
