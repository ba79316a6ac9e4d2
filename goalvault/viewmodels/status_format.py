"""Display labels for transaction steps and vault statuses.

Call context:
    ``TransactionVM`` and ``VaultListVM`` call these helpers so every surface
    shows the same wording for the same state.
"""

from __future__ import annotations

from typing import Optional

from goalvault.domain.entities import VaultStatus
from goalvault.usecases.transaction_orchestrator import TxState

_STEP_LABELS = {
    TxState.IDLE: "",
    TxState.CHECKING_ALLOWANCE: "Checking token allowance...",
    TxState.APPROVING: "Approve the token spend in your wallet",
    TxState.AWAITING_APPROVAL_CONFIRMATION: "Waiting for approval confirmation...",
    TxState.EXECUTING: "Confirm the transaction in your wallet",
    TxState.AWAITING_EXECUTION_CONFIRMATION: "Waiting for transaction confirmation...",
    TxState.SUCCEEDED: "Done",
    TxState.FAILED: "Failed",
}

_STATUS_LABELS = {
    VaultStatus.ACTIVE: "Active",
    VaultStatus.SUCCESS: "Completed",
    VaultStatus.FAILED: "Failed",
    VaultStatus.CANCELLED: "Cancelled",
}


def step_label(state: Optional[TxState]) -> str:
    """Operator-facing text for an orchestrator state."""
    if state is None:
        return ""
    return _STEP_LABELS.get(state, state.value.replace("_", " ").title())


def vault_status_label(status: object) -> str:
    return _STATUS_LABELS[VaultStatus.from_raw(status)]


def short_hash(value: Optional[str], *, head: int = 6, tail: int = 4) -> str:
    """Shorten a transaction hash or address for display, e.g. ``0x1234...abcd``."""
    text = (value or "").strip()
    if len(text) <= head + tail + 3:
        return text
    return f"{text[:head]}...{text[-tail:]}"


__all__ = ["short_hash", "step_label", "vault_status_label"]
