"""Vault cards grouped by effective status for the dashboard list.

Call context:
    The composition root feeds ``VaultStatusView`` objects from
    ``VaultStatusAggregator.enrich`` into :meth:`VaultListVM.load`.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from goalvault.domain.amounts import format_units
from goalvault.domain.entities import NATIVE_ASSET_ADDRESS, same_address
from goalvault.usecases.aggregate_vault_status import VaultStatusView

from .status_format import vault_status_label

BUCKETS = ("active", "completed", "failed", "cancelled")


@dataclass(frozen=True)
class VaultCardVM:
    """Display-ready fields of one vault card."""

    vault_id: int
    name: str
    status: str
    status_source: str
    target: str
    deposited: str
    progress_pct: int
    days_left: int
    member_count: int
    is_public: bool

    @classmethod
    def from_view(
        cls,
        view: VaultStatusView,
        *,
        decimals: int,
        symbol: str = "",
        now: float,
    ) -> "VaultCardVM":
        record = view.record
        suffix = f" {symbol}" if symbol else ""
        if record.target_amount > 0:
            pct = min(100, int(record.total_deposited * 100 // record.target_amount))
        else:
            pct = 0
        return cls(
            vault_id=record.vault_id,
            name=record.name or "Unknown Vault",
            status=vault_status_label(view.effective_status),
            status_source=view.source,
            target=format_units(record.target_amount, decimals) + suffix,
            deposited=format_units(record.total_deposited, decimals) + suffix,
            progress_pct=pct,
            days_left=max(0, math.ceil((record.deadline - now) / 86400)),
            member_count=record.member_count,
            is_public=record.is_public,
        )


class VaultListVM:
    """Keeps the dashboard's vault cards per status bucket, no I/O here."""

    def __init__(
        self,
        *,
        token_decimals: Optional[Mapping[str, int]] = None,
        token_symbols: Optional[Mapping[str, str]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._decimals = {k.lower(): v for k, v in (token_decimals or {}).items()}
        self._symbols = {k.lower(): v for k, v in (token_symbols or {}).items()}
        self._clock = clock
        self.cards: Dict[str, List[VaultCardVM]] = {name: [] for name in BUCKETS}

    def load(self, views: Iterable[VaultStatusView]) -> None:
        now = self._clock()
        cards: Dict[str, List[VaultCardVM]] = {name: [] for name in BUCKETS}
        for view in views:
            asset = view.record.asset
            card = VaultCardVM.from_view(
                view,
                decimals=self._decimals_for(asset),
                symbol=self._symbols.get(asset.lower(), ""),
                now=now,
            )
            cards[view.bucket].append(card)
        for bucket in cards.values():
            bucket.sort(key=lambda card: card.vault_id)
        self.cards = cards

    def counts(self) -> Dict[str, int]:
        return {name: len(items) for name, items in self.cards.items()}

    def _decimals_for(self, asset: str) -> int:
        if same_address(asset, NATIVE_ASSET_ADDRESS):
            return 18
        return self._decimals.get(asset.lower(), 18)


__all__ = ["BUCKETS", "VaultCardVM", "VaultListVM"]
