"""Translate adapter errors into user-facing UseCaseError instances."""

from __future__ import annotations

from typing import Optional

from goalvault.adapters.api_errors import (
    ApiClientError,
    ApiError,
    ApiServerError,
    ApiTimeoutError,
    ContractRevertError,
    TxSubmissionError,
    UserRejectedError,
    error_hint,
    is_transient,
)
from goalvault.domain.ports import UseCaseError


def map_api_error(
    exc: Exception,
    *,
    default_code: str,
    default_message: Optional[str] = None,
) -> UseCaseError:
    """Map adapter exceptions to stable UseCaseError codes.

    ``UseCaseError`` instances pass through unchanged; anything that is not
    an adapter error becomes ``default_code``.
    """
    if isinstance(exc, UseCaseError):
        return exc
    if isinstance(exc, UserRejectedError):
        return UseCaseError("USER_REJECTED", "Transaction was rejected in the wallet.")
    if isinstance(exc, ContractRevertError):
        reason = exc.reason or "no reason given"
        return UseCaseError(
            "TX_REVERTED",
            _compose_error_message("Transaction reverted", reason),
            meta={"revert_reason": exc.reason},
        )
    if isinstance(exc, TxSubmissionError):
        return UseCaseError(
            "SUBMISSION_FAILED",
            _compose_error_message("Transaction could not be submitted", exc.hint or str(exc)),
        )
    if isinstance(exc, ApiTimeoutError):
        return UseCaseError("REQUEST_TIMEOUT", "Request timed out. Check connection.")
    if isinstance(exc, ApiClientError) and is_transient(exc):
        return UseCaseError("NETWORK_BUSY", "Network is busy. Please try again in a moment.")
    if isinstance(exc, ApiClientError):
        status = exc.status or 0
        hint = exc.hint or error_hint(getattr(exc, "payload", None))
        label = f"Request failed (HTTP {status})" if status else "Request failed"
        return UseCaseError("REQUEST_FAILED", _compose_error_message(label, hint))
    if isinstance(exc, ApiServerError):
        return UseCaseError("SERVER_ERROR", "Node error, try again.")
    if isinstance(exc, ApiError) and is_transient(exc):
        return UseCaseError("NETWORK_BUSY", "Network is busy. Please try again in a moment.")
    if isinstance(exc, ApiError):
        return UseCaseError("REQUEST_FAILED", str(exc))

    message = default_message or str(exc) or "Unexpected error."
    return UseCaseError(default_code, message)


def _compose_error_message(base: str, hint: Optional[str]) -> str:
    hint_text = (hint or "").strip()
    if hint_text:
        return f"{base}: {hint_text}"
    if base.endswith("."):
        return base
    return f"{base}."


__all__ = ["map_api_error"]
