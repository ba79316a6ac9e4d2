"""Domain package exports for value objects, errors and the invite codec."""

from .entities import (
    Asset,
    Confirmation,
    ConfirmationStatus,
    EMPTY_INVITE_CODE,
    GoalType,
    MemberRecord,
    NATIVE_ASSET_ADDRESS,
    TxHandle,
    TxIntent,
    VaultHandle,
    VaultRecord,
    VaultStatus,
    Visibility,
    ZERO_ADDRESS,
)
from .errors import (
    AlreadyInProgress,
    ChecksumMismatch,
    CodeNotAuthorized,
    InvalidFormat,
    MalformedCode,
    VaultNotFound,
    VaultNotJoinable,
)
from .ports import UseCaseError

__all__ = [
    "AlreadyInProgress",
    "Asset",
    "ChecksumMismatch",
    "CodeNotAuthorized",
    "Confirmation",
    "ConfirmationStatus",
    "EMPTY_INVITE_CODE",
    "GoalType",
    "InvalidFormat",
    "MalformedCode",
    "MemberRecord",
    "NATIVE_ASSET_ADDRESS",
    "TxHandle",
    "TxIntent",
    "UseCaseError",
    "VaultHandle",
    "VaultNotFound",
    "VaultNotJoinable",
    "VaultRecord",
    "VaultStatus",
    "Visibility",
    "ZERO_ADDRESS",
]
