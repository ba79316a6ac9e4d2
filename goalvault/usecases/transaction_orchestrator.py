"""State machine driving approval-gated transfers without UI concerns."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, TYPE_CHECKING

from goalvault.adapters.api_errors import UserRejectedError, is_transient
from goalvault.domain.entities import Confirmation, ConfirmationStatus, TxHandle, TxIntent
from goalvault.domain.errors import AlreadyInProgress
from goalvault.domain.ports import ChainStatePort, SignerPort, UseCaseError
from goalvault.usecases.error_mapping import map_api_error
from goalvault.usecases.operations import OperationDescriptor

if TYPE_CHECKING:  # pragma: no cover - type checking helper
    from goalvault.app.settings import SettingsConfig

log = logging.getLogger(__name__)


def _noop(*_: object, **__: object) -> None:
    """Default no-op callback used for hooks."""


class TxState(str, Enum):
    IDLE = "IDLE"
    CHECKING_ALLOWANCE = "CHECKING_ALLOWANCE"
    APPROVING = "APPROVING"
    AWAITING_APPROVAL_CONFIRMATION = "AWAITING_APPROVAL_CONFIRMATION"
    EXECUTING = "EXECUTING"
    AWAITING_EXECUTION_CONFIRMATION = "AWAITING_EXECUTION_CONFIRMATION"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def terminal(self) -> bool:
        return self in (TxState.SUCCEEDED, TxState.FAILED)


class FailureCode:
    ALLOWANCE_CHECK_FAILED = "ALLOWANCE_CHECK_FAILED"
    APPROVAL_REJECTED = "APPROVAL_REJECTED"
    APPROVAL_SUBMISSION_ERROR = "APPROVAL_SUBMISSION_ERROR"
    APPROVAL_REVERTED = "APPROVAL_REVERTED"
    ACTION_REJECTED = "ACTION_REJECTED"
    ACTION_SUBMISSION_ERROR = "ACTION_SUBMISSION_ERROR"
    ACTION_REVERTED = "ACTION_REVERTED"
    CONFIRMATION_TIMEOUT = "CONFIRMATION_TIMEOUT"


@dataclass(frozen=True)
class TxFailure:
    """Terminal failure of a transaction request."""

    code: str
    message: str
    revert_reason: Optional[str] = None
    approval_confirmed: bool = False
    """True when an approval already landed, so a retry skips re-approving."""


@dataclass
class TransactionRequest:
    """Mutable state of the request currently owned by the orchestrator."""

    operation: OperationDescriptor
    state: TxState = TxState.IDLE
    approval_handle: Optional[TxHandle] = None
    action_handle: Optional[TxHandle] = None
    approval_confirmed: bool = False
    result: Optional[TxHandle] = None
    """Action transaction handle once the request succeeded."""
    failure: Optional[TxFailure] = None
    history: list = field(default_factory=lambda: [TxState.IDLE])
    """States visited, in order, starting with ``IDLE``."""


@dataclass(frozen=True)
class OrchestratorTick:
    """Single decision unit returned by ``step`` to guide scheduling."""

    event: str
    """One of 'idle', 'advanced', 'submitted', 'waiting', 'retrying', 'succeeded', 'failed'."""
    state: TxState
    next_delay_ms: Optional[int] = None
    """Delay before the next ``step``; ``None`` once nothing is left to do."""
    failure: Optional[TxFailure] = None
    handle: Optional[TxHandle] = None

    @property
    def settled(self) -> bool:
        return self.state.terminal or self.event == "idle"


@dataclass
class OrchestratorHooks:
    """Optional callbacks triggered on significant orchestration events."""

    on_state: Callable[[TxState], None] = _noop
    on_succeeded: Callable[[TransactionRequest], None] = _noop
    on_failed: Callable[[TransactionRequest], None] = _noop

    def __post_init__(self) -> None:
        self.on_state = self.on_state or _noop
        self.on_succeeded = self.on_succeeded or _noop
        self.on_failed = self.on_failed or _noop


class TransactionOrchestrator:
    """Drives one operation through allowance, approval and execution.

    Each call to :meth:`step` performs at most one network round trip and
    returns an :class:`OrchestratorTick` telling the caller when to step
    again. The orchestrator never blocks and never owns a timer.
    """

    def __init__(
        self,
        chain: ChainStatePort,
        signer: SignerPort,
        settings: "SettingsConfig",
        hooks: Optional[OrchestratorHooks] = None,
    ) -> None:
        self.chain = chain
        self.signer = signer
        self.settings = settings
        self.hooks = hooks or OrchestratorHooks()
        self._request: Optional[TransactionRequest] = None
        self._last_operation: Optional[OperationDescriptor] = None
        self._current_delay_ms = self._baseline_poll_interval()
        self._pending_polls = 0
        self._transient_failures = 0

    @property
    def state(self) -> TxState:
        return self._request.state if self._request else TxState.IDLE

    @property
    def request(self) -> Optional[TransactionRequest]:
        return self._request

    @property
    def busy(self) -> bool:
        return self._request is not None and not self._request.state.terminal

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def begin(self, operation: OperationDescriptor) -> TransactionRequest:
        """Start a new request; the first ``step`` does the first round trip.

        Raises:
            AlreadyInProgress: A request is still running.
            ValueError: Amount is not positive.
        """
        if self.busy:
            raise AlreadyInProgress(operation.kind.value, self.state.value)
        if operation.amount <= 0:
            raise ValueError("Amount must be greater than zero.")

        self._request = TransactionRequest(operation=operation)
        self._last_operation = operation
        self._pending_polls = 0
        self._transient_failures = 0
        self._current_delay_ms = self._baseline_poll_interval()
        log.info(
            "Begin %s on vault %s: amount=%s asset=%s",
            operation.kind.value,
            operation.vault_id,
            operation.amount,
            operation.asset.address,
        )
        first = TxState.EXECUTING if operation.is_native else TxState.CHECKING_ALLOWANCE
        self._transition(first)
        return self._request

    def retry(self) -> TransactionRequest:
        """Re-begin the last failed operation from a fresh allowance read."""
        if self._request is None or self._request.state != TxState.FAILED:
            raise UseCaseError("NOTHING_TO_RETRY", "There is no failed transaction to retry.")
        operation = self._last_operation
        assert operation is not None
        log.info("Retrying %s on vault %s", operation.kind.value, operation.vault_id)
        return self.begin(operation)

    def abandon(self) -> None:
        """Stop observing the current request; submitted transactions are not reverted."""
        request = self._request
        if request is None:
            return
        if not request.state.terminal:
            log.info(
                "Abandoned %s in %s (approval=%s, action=%s)",
                request.operation.kind.value,
                request.state.value,
                request.approval_handle,
                request.action_handle,
            )
        self._request = None
        self._pending_polls = 0
        self._transient_failures = 0
        self.hooks.on_state(TxState.IDLE)

    def step(self) -> OrchestratorTick:
        """Perform the work of the current state once."""
        request = self._request
        if request is None:
            return OrchestratorTick(event="idle", state=TxState.IDLE)
        if request.state == TxState.SUCCEEDED:
            return OrchestratorTick(event="succeeded", state=request.state, handle=request.result)
        if request.state == TxState.FAILED:
            return OrchestratorTick(event="failed", state=request.state, failure=request.failure)

        handler = {
            TxState.CHECKING_ALLOWANCE: self._check_allowance,
            TxState.APPROVING: self._submit_approval,
            TxState.AWAITING_APPROVAL_CONFIRMATION: self._await_approval,
            TxState.EXECUTING: self._submit_action,
            TxState.AWAITING_EXECUTION_CONFIRMATION: self._await_action,
        }[request.state]
        return handler(request)

    def run_until_settled(
        self,
        *,
        sleep: Callable[[float], None] = time.sleep,
        max_steps: int = 10_000,
    ) -> Optional[TransactionRequest]:
        """Step synchronously until the request succeeds, fails or is abandoned."""
        for _ in range(max_steps):
            tick = self.step()
            if tick.settled:
                return self._request
            if tick.next_delay_ms:
                sleep(tick.next_delay_ms / 1000.0)
        raise RuntimeError(f"Transaction did not settle within {max_steps} steps.")

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------

    def _check_allowance(self, request: TransactionRequest) -> OrchestratorTick:
        op = request.operation
        try:
            allowance = self.chain.get_allowance(op.owner, op.spender, op.asset.address)
        except Exception as exc:
            if self._can_retry(exc, "allowance read"):
                return self._retry_tick(request)
            return self._fail(
                request,
                FailureCode.ALLOWANCE_CHECK_FAILED,
                map_api_error(exc, default_code="ALLOWANCE_CHECK_FAILED").message,
            )
        self._transient_failures = 0
        if allowance >= op.amount:
            log.debug("Allowance %s covers %s; skipping approval", allowance, op.amount)
            return self._advance(TxState.EXECUTING)
        return self._advance(TxState.APPROVING)

    def _submit_approval(self, request: TransactionRequest) -> OrchestratorTick:
        handle = self._submit(
            request,
            request.operation.approval_intent(),
            rejected=FailureCode.APPROVAL_REJECTED,
            failed=FailureCode.APPROVAL_SUBMISSION_ERROR,
        )
        if handle is None:
            return self._failed_tick(request)
        request.approval_handle = handle
        return self._enter_wait(TxState.AWAITING_APPROVAL_CONFIRMATION, handle)

    def _submit_action(self, request: TransactionRequest) -> OrchestratorTick:
        handle = self._submit(
            request,
            request.operation.action_intent(),
            rejected=FailureCode.ACTION_REJECTED,
            failed=FailureCode.ACTION_SUBMISSION_ERROR,
        )
        if handle is None:
            return self._failed_tick(request)
        request.action_handle = handle
        return self._enter_wait(TxState.AWAITING_EXECUTION_CONFIRMATION, handle)

    def _await_approval(self, request: TransactionRequest) -> OrchestratorTick:
        assert request.approval_handle is not None
        confirmation = self._observe(request, request.approval_handle)
        if isinstance(confirmation, OrchestratorTick):
            return confirmation
        if confirmation.status == ConfirmationStatus.CONFIRMED:
            request.approval_confirmed = True
            log.info("Approval %s confirmed", request.approval_handle)
            return self._advance(TxState.EXECUTING)
        return self._fail(
            request,
            FailureCode.APPROVAL_REVERTED,
            "Approval transaction reverted.",
            revert_reason=confirmation.revert_reason,
        )

    def _await_action(self, request: TransactionRequest) -> OrchestratorTick:
        assert request.action_handle is not None
        confirmation = self._observe(request, request.action_handle)
        if isinstance(confirmation, OrchestratorTick):
            return confirmation
        if confirmation.status == ConfirmationStatus.CONFIRMED:
            request.result = request.action_handle
            self._transition(TxState.SUCCEEDED)
            log.info(
                "%s on vault %s succeeded: %s",
                request.operation.kind.value,
                request.operation.vault_id,
                request.result,
            )
            self.hooks.on_succeeded(request)
            return OrchestratorTick(event="succeeded", state=TxState.SUCCEEDED, handle=request.result)
        reason = confirmation.revert_reason
        message = f"Transaction reverted: {reason}" if reason else "Transaction reverted."
        return self._fail(request, FailureCode.ACTION_REVERTED, message, revert_reason=reason)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _submit(
        self,
        request: TransactionRequest,
        intent: TxIntent,
        *,
        rejected: str,
        failed: str,
    ) -> Optional[TxHandle]:
        try:
            return self.signer.submit(intent)
        except UserRejectedError as exc:
            self._fail(request, rejected, map_api_error(exc, default_code=rejected).message)
        except Exception as exc:
            self._fail(request, failed, map_api_error(exc, default_code=failed).message)
        return None

    def _observe(self, request: TransactionRequest, handle: TxHandle):
        """Poll one confirmation; returns a tick when no settled receipt is available."""
        try:
            confirmation: Confirmation = self.signer.confirmation(handle)
        except Exception as exc:
            if self._can_retry(exc, f"confirmation of {handle}", any_error=True):
                return self._retry_tick(request)
            return self._fail(
                request,
                FailureCode.CONFIRMATION_TIMEOUT,
                f"Could not confirm transaction {handle}: {map_api_error(exc, default_code='CONFIRMATION_TIMEOUT').message}",
            )
        self._transient_failures = 0
        if confirmation.settled:
            return confirmation

        self._pending_polls += 1
        if self._pending_polls > self._max_confirmation_polls():
            return self._fail(
                request,
                FailureCode.CONFIRMATION_TIMEOUT,
                f"Transaction {handle} was not confirmed in time.",
            )
        return OrchestratorTick(
            event="waiting",
            state=request.state,
            next_delay_ms=self._bump_delay(),
            handle=handle,
        )

    def _can_retry(self, exc: Exception, what: str, *, any_error: bool = False) -> bool:
        if not (any_error or is_transient(exc)):
            return False
        if self._transient_failures >= self._max_transient_retries():
            return False
        self._transient_failures += 1
        log.warning(
            "Transient failure during %s (%d/%d): %s",
            what,
            self._transient_failures,
            self._max_transient_retries(),
            exc,
        )
        return True

    def _retry_tick(self, request: TransactionRequest) -> OrchestratorTick:
        return OrchestratorTick(event="retrying", state=request.state, next_delay_ms=self._bump_delay())

    def _advance(self, state: TxState) -> OrchestratorTick:
        self._transition(state)
        return OrchestratorTick(event="advanced", state=state, next_delay_ms=0)

    def _enter_wait(self, state: TxState, handle: TxHandle) -> OrchestratorTick:
        self._transition(state)
        self._pending_polls = 0
        self._current_delay_ms = self._baseline_poll_interval()
        log.info("Submitted %s, awaiting confirmation", handle)
        return OrchestratorTick(
            event="submitted",
            state=state,
            next_delay_ms=self._current_delay_ms,
            handle=handle,
        )

    def _fail(
        self,
        request: TransactionRequest,
        code: str,
        message: str,
        *,
        revert_reason: Optional[str] = None,
    ) -> OrchestratorTick:
        request.failure = TxFailure(
            code=code,
            message=message,
            revert_reason=revert_reason,
            approval_confirmed=request.approval_confirmed,
        )
        self._transition(TxState.FAILED)
        log.error(
            "%s on vault %s failed with %s: %s",
            request.operation.kind.value,
            request.operation.vault_id,
            code,
            message,
        )
        self.hooks.on_failed(request)
        return self._failed_tick(request)

    @staticmethod
    def _failed_tick(request: TransactionRequest) -> OrchestratorTick:
        return OrchestratorTick(event="failed", state=TxState.FAILED, failure=request.failure)

    def _transition(self, state: TxState) -> None:
        request = self._request
        assert request is not None
        log.debug("%s: %s -> %s", request.operation.kind.value, request.state.value, state.value)
        request.state = state
        request.history.append(state)
        self.hooks.on_state(state)

    def _baseline_poll_interval(self) -> int:
        raw = getattr(self.settings, "poll_interval_ms", 1000)
        try:
            delay = int(raw)
        except (TypeError, ValueError):
            delay = 1000
        return max(200, delay)

    def _max_poll_backoff(self, baseline: int) -> int:
        raw = getattr(self.settings, "poll_backoff_max_ms", None)
        try:
            limit = int(raw) if raw is not None else 5000
        except (TypeError, ValueError):
            limit = 5000
        if limit <= 0:
            limit = 5000
        return max(baseline, limit)

    def _bump_delay(self) -> int:
        """Grow the poll delay by 1.5x up to the configured ceiling."""
        baseline = self._baseline_poll_interval()
        current = self._current_delay_ms or baseline
        next_delay = int(max(current * 1.5, current + 1))
        self._current_delay_ms = min(next_delay, self._max_poll_backoff(baseline))
        return self._current_delay_ms

    def _max_confirmation_polls(self) -> int:
        return max(1, int(getattr(self.settings, "max_confirmation_polls", 120)))

    def _max_transient_retries(self) -> int:
        return max(0, int(getattr(self.settings, "max_transient_retries", 3)))


__all__ = [
    "FailureCode",
    "OrchestratorHooks",
    "OrchestratorTick",
    "TransactionOrchestrator",
    "TransactionRequest",
    "TxFailure",
    "TxState",
]
