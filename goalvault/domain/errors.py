"""Domain-level error types for use-case and adapter mapping.

Every error here is a :class:`UseCaseError` with a stable ``code`` so view
models can branch on codes without importing transport exceptions.
"""
from __future__ import annotations

from typing import Optional

from .ports import UseCaseError


# ---- Invite code format ----
class InviteCodeError(UseCaseError, ValueError):
    """Invite code rejected locally, before any network access."""


class MalformedCode(InviteCodeError):
    def __init__(self, message: str = "Invite code is malformed.") -> None:
        super().__init__("MALFORMED_CODE", message)


class ChecksumMismatch(InviteCodeError):
    def __init__(self, message: str = "Invite code checksum does not match.") -> None:
        super().__init__("CHECKSUM_MISMATCH", message)


# ---- Join authorization ----
class InviteAuthError(UseCaseError):
    """Invite decoded locally but rejected against chain state."""


class InvalidFormat(InviteAuthError):
    def __init__(self, cause: Optional[InviteCodeError] = None) -> None:
        detail = cause.message if cause is not None else "Invalid invite code format."
        super().__init__(
            "INVALID_FORMAT",
            detail,
            meta={"cause": cause.code} if cause is not None else None,
        )
        self.cause = cause


class VaultNotFound(InviteAuthError):
    def __init__(self, vault_id: int) -> None:
        super().__init__("VAULT_NOT_FOUND", f"Vault {vault_id} not found.")
        self.vault_id = vault_id


class CodeNotAuthorized(InviteAuthError):
    def __init__(self, vault_id: int, message: Optional[str] = None) -> None:
        super().__init__(
            "CODE_NOT_AUTHORIZED",
            message or f"Invite code is not valid for vault {vault_id}.",
        )
        self.vault_id = vault_id


class JoinRejection:
    """Reason codes attached to :class:`VaultNotJoinable`."""

    EXPIRED = "EXPIRED"
    ALREADY_FAILED = "ALREADY_FAILED"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"
    NOT_ACTIVE = "NOT_ACTIVE"
    ALREADY_FULL_IF_CAPPED = "ALREADY_FULL_IF_CAPPED"
    ALREADY_MEMBER = "ALREADY_MEMBER"


_JOIN_REJECTION_TEXT = {
    JoinRejection.EXPIRED: "the deadline has passed",
    JoinRejection.ALREADY_FAILED: "the goal has failed",
    JoinRejection.ALREADY_COMPLETED: "the goal is already completed",
    JoinRejection.NOT_ACTIVE: "the vault is no longer active",
    JoinRejection.ALREADY_FULL_IF_CAPPED: "the vault is full",
    JoinRejection.ALREADY_MEMBER: "you are already a member",
}


class VaultNotJoinable(InviteAuthError):
    def __init__(self, vault_id: int, reason: str) -> None:
        text = _JOIN_REJECTION_TEXT.get(reason, reason.lower())
        super().__init__(
            "VAULT_NOT_JOINABLE",
            f"Cannot join vault {vault_id}: {text}.",
            meta={"reason": reason},
        )
        self.vault_id = vault_id
        self.reason = reason


# ---- Orchestration ----
class AlreadyInProgress(UseCaseError):
    def __init__(self, kind: str, state: str) -> None:
        super().__init__(
            "ALREADY_IN_PROGRESS",
            f"A {kind} transaction is already in progress ({state}).",
        )
        self.kind = kind
        self.state = state


__all__ = [
    "AlreadyInProgress",
    "ChecksumMismatch",
    "CodeNotAuthorized",
    "InvalidFormat",
    "InviteAuthError",
    "InviteCodeError",
    "JoinRejection",
    "MalformedCode",
    "VaultNotFound",
    "VaultNotJoinable",
]
