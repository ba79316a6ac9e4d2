"""Dialog state for add-funds and join-and-deposit flows.

Call context:
    ``TransactionFlowPresenter`` wires orchestrator hooks to this view model;
    views only read its attributes and call ``set_amount``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from goalvault.domain.amounts import AmountBounds, format_units, parse_units
from goalvault.domain.entities import Asset
from goalvault.usecases.transaction_orchestrator import TransactionRequest, TxState

from .status_format import short_hash, step_label


@dataclass
class TransactionVM:
    """Keeps amount input and progress of one transaction dialog, no I/O here."""

    asset: Asset
    bounds: AmountBounds = field(default_factory=AmountBounds)
    on_change: Optional[Callable[["TransactionVM"], None]] = None

    amount_text: str = ""
    amount_units: Optional[int] = None
    amount_error: Optional[str] = None
    state: TxState = TxState.IDLE
    status_text: str = ""
    error_text: Optional[str] = None
    error_code: Optional[str] = None
    tx_hash: Optional[str] = None
    approval_done: bool = False
    steps_seen: List[TxState] = field(default_factory=list)

    # ------------------------------------------------------------------
    @property
    def busy(self) -> bool:
        return self.state not in (TxState.IDLE, TxState.SUCCEEDED, TxState.FAILED)

    @property
    def can_submit(self) -> bool:
        return not self.busy and self.amount_units is not None and self.amount_error is None

    @property
    def can_retry(self) -> bool:
        return self.state == TxState.FAILED

    @property
    def needs_approval(self) -> bool:
        return not self.asset.is_native

    # ------------------------------------------------------------------
    def set_amount(self, text: str) -> Optional[int]:
        """Validate user input; returns base units or ``None`` when invalid."""
        self.amount_text = text
        try:
            display = self.bounds.validate(text)
            units = parse_units(display, self.asset.decimals)
        except ValueError as exc:
            self.amount_units = None
            self.amount_error = str(exc)
        else:
            self.amount_units = units
            self.amount_error = None
        self._notify()
        return self.amount_units

    def amount_display(self) -> str:
        if self.amount_units is None:
            return ""
        suffix = f" {self.asset.symbol}" if self.asset.symbol else ""
        return format_units(self.amount_units, self.asset.decimals) + suffix

    # ---- orchestrator hooks ----
    def on_state(self, state: TxState) -> None:
        if not self.busy and not state.terminal and state != TxState.IDLE:
            # new attempt
            self.error_text = None
            self.error_code = None
            self.tx_hash = None
            self.steps_seen = []
        self.state = state
        self.status_text = step_label(state)
        if state == TxState.IDLE:
            self.steps_seen = []
        else:
            self.steps_seen.append(state)
        self._notify()

    def on_succeeded(self, request: TransactionRequest) -> None:
        self.tx_hash = str(request.result) if request.result else None
        self.status_text = f"Done: {short_hash(self.tx_hash)}" if self.tx_hash else "Done"
        self._notify()

    def on_failed(self, request: TransactionRequest) -> None:
        failure = request.failure
        self.error_code = failure.code if failure else None
        self.error_text = failure.message if failure else "Transaction failed."
        self.approval_done = bool(failure and failure.approval_confirmed) or self.approval_done
        if self.approval_done and self.needs_approval:
            self.status_text = "Failed. Approval already confirmed; retry will not ask again."
        self._notify()

    def reset(self) -> None:
        """Clear progress and errors, e.g. when the dialog closes."""
        self.state = TxState.IDLE
        self.status_text = ""
        self.error_text = None
        self.error_code = None
        self.tx_hash = None
        self.approval_done = False
        self.steps_seen = []
        self._notify()

    def _notify(self) -> None:
        if self.on_change:
            self.on_change(self)


__all__ = ["TransactionVM"]
