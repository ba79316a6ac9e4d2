"""UI-facing presenter that drives one transaction dialog.

The presenter owns an orchestrator and schedules its ``step`` calls through a
:class:`PollingScheduler`, so the UI thread never blocks on the network.
Closing the dialog calls :meth:`TransactionFlowPresenter.close`, which leaves
no timer behind.
"""

from __future__ import annotations

import logging
from typing import Optional

from goalvault.adapters.chain_cache import CachedChainReader
from goalvault.domain.ports import SignerPort, UseCaseError
from goalvault.usecases.operations import OperationDescriptor
from goalvault.usecases.transaction_orchestrator import (
    OrchestratorHooks,
    OrchestratorTick,
    TransactionOrchestrator,
    TransactionRequest,
)
from goalvault.viewmodels.transaction_vm import TransactionVM

from .polling_scheduler import PollingScheduler
from .settings import SettingsConfig


class TransactionFlowPresenter:
    """Coordinates start/retry/close of one dialog's transaction."""

    def __init__(
        self,
        *,
        chain: CachedChainReader,
        signer: SignerPort,
        settings: SettingsConfig,
        scheduler: PollingScheduler,
        vm: TransactionVM,
        channel: str = "transaction",
    ) -> None:
        self._log = logging.getLogger(__name__)
        self.chain = chain
        self.vm = vm
        self.channel = channel
        self._scheduler = scheduler
        self.orchestrator = TransactionOrchestrator(
            chain,
            signer,
            settings,
            hooks=OrchestratorHooks(
                on_state=vm.on_state,
                on_succeeded=self._on_succeeded,
                on_failed=vm.on_failed,
            ),
        )

    # ------------------------------------------------------------------
    def start(self, operation: OperationDescriptor) -> TransactionRequest:
        """Begin ``operation`` and schedule its first step.

        Raises:
            AlreadyInProgress: The dialog is still running a transaction.
        """
        request = self.orchestrator.begin(operation)
        self._schedule(0)
        return request

    def retry(self) -> Optional[TransactionRequest]:
        try:
            request = self.orchestrator.retry()
        except UseCaseError as exc:
            self._log.info("Retry ignored: %s", exc.message)
            return None
        self._schedule(0)
        return request

    def close(self) -> None:
        """Cancel the pending step and stop observing the transaction."""
        self._scheduler.cancel(self.channel)
        self.orchestrator.abandon()
        self.vm.reset()

    # ------------------------------------------------------------------
    def _schedule(self, delay_ms: Optional[int]) -> None:
        self._scheduler.schedule(self.channel, max(1, int(delay_ms or 0)), self._on_step)

    def _on_step(self) -> None:
        """Cooperative step executed on the UI thread."""
        tick: OrchestratorTick = self.orchestrator.step()
        if not tick.settled:
            self._schedule(tick.next_delay_ms)
            return
        self._scheduler.cancel(self.channel)

    def _on_succeeded(self, request: TransactionRequest) -> None:
        op = request.operation
        self.chain.invalidate_vault(op.vault_id)
        self.chain.invalidate_member(op.vault_id, op.owner)
        self.vm.on_succeeded(request)


__all__ = ["TransactionFlowPresenter"]
