"""Domain value objects shared across adapters, use-cases, and view models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Optional, Tuple

NATIVE_ASSET_ADDRESS = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
EMPTY_INVITE_CODE = b"\x00" * 32


class GoalType(IntEnum):
    GROUP = 0
    PERSONAL = 1


class Visibility(IntEnum):
    PRIVATE = 0
    PUBLIC = 1


class VaultStatus(IntEnum):
    """Contract status enum; values outside 0..2 are treated as cancelled."""

    ACTIVE = 0
    SUCCESS = 1
    FAILED = 2
    CANCELLED = 3

    @classmethod
    def from_raw(cls, raw: Any) -> "VaultStatus":
        try:
            value = int(raw)
        except (TypeError, ValueError):
            return cls.CANCELLED
        if value in (0, 1, 2):
            return cls(value)
        return cls.CANCELLED


def same_address(left: Optional[str], right: Optional[str]) -> bool:
    """Compare hex addresses without regard to checksum casing."""
    if not left or not right:
        return False
    return left.strip().lower() == right.strip().lower()


@dataclass(frozen=True)
class Asset:
    """Fungible asset a vault is denominated in."""

    address: str
    """ERC20 contract address, or ``NATIVE_ASSET_ADDRESS`` for the chain's coin."""
    decimals: int = 18
    """Number of base units per display unit, as a power of ten."""
    symbol: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.address, str) or not self.address.strip():
            raise ValueError("Asset address must be a non-empty string.")
        if self.decimals < 0:
            raise ValueError("Asset decimals must be non-negative.")

    @property
    def is_native(self) -> bool:
        return same_address(self.address, NATIVE_ASSET_ADDRESS)

    @classmethod
    def native(cls, symbol: str = "ETH") -> "Asset":
        return cls(address=NATIVE_ASSET_ADDRESS, decimals=18, symbol=symbol)


@dataclass(frozen=True)
class VaultRecord:
    """Committed on-chain vault state as returned by ``getVault``."""

    vault_id: int
    creator: str
    asset: str
    goal_type: GoalType
    visibility: Visibility
    target_amount: int
    total_deposited: int
    deadline: int
    """Unix timestamp in seconds after which deposits are no longer accepted."""
    member_count: int
    status: int
    """Stored contract status; may lag the real-time status."""
    invite_code: bytes
    """Canonical bytes32 invite code written at creation and never reissued."""
    created_at: int
    name: str = ""
    description: str = ""
    member_cap: Optional[int] = None
    """Maximum members for capped vaults, ``None`` when unlimited."""

    @property
    def is_public(self) -> bool:
        return self.visibility == Visibility.PUBLIC

    @property
    def is_native(self) -> bool:
        return same_address(self.asset, NATIVE_ASSET_ADDRESS)


@dataclass(frozen=True)
class MemberRecord:
    """Membership of one address in one vault."""

    vault_id: int
    address: str
    deposited_amount: int
    has_withdrawn: bool
    joined_at: int
    penalty_amount: int = 0
    early_withdrawal_time: int = 0

    @property
    def is_active(self) -> bool:
        return not self.has_withdrawn


@dataclass(frozen=True)
class VaultHandle:
    """Advisory join preview built from an authenticated invite.

    Values are re-read on-chain when the join is actually submitted.
    """

    vault_id: int
    name: str
    description: str
    target_amount: int
    total_deposited: int
    member_count: int
    deadline: int
    creator: str
    asset: str
    is_public: bool
    invite_code: bytes

    @classmethod
    def from_record(cls, record: VaultRecord) -> "VaultHandle":
        return cls(
            vault_id=record.vault_id,
            name=record.name or "Unknown Vault",
            description=record.description or "No description",
            target_amount=record.target_amount,
            total_deposited=record.total_deposited,
            member_count=record.member_count,
            deadline=record.deadline,
            creator=record.creator,
            asset=record.asset,
            is_public=record.is_public,
            invite_code=record.invite_code,
        )


@dataclass(frozen=True)
class TxIntent:
    """Unsigned contract call handed to the signer."""

    interface: str
    """ABI family of the target contract: ``"vault"`` or ``"erc20"``."""
    contract: str
    function: str
    args: Tuple[Any, ...] = ()
    value: int = 0
    """Native asset amount attached to the call, in base units."""
    description: str = ""


@dataclass(frozen=True)
class TxHandle:
    """Transaction hash returned once the wallet broadcast a transaction."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValueError("TxHandle must be a non-empty string.")

    def __str__(self) -> str:
        return self.value


class ConfirmationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"


@dataclass(frozen=True)
class Confirmation:
    """Receipt observation for a submitted transaction."""

    status: ConfirmationStatus
    block_number: Optional[int] = None
    revert_reason: Optional[str] = None

    @property
    def settled(self) -> bool:
        return self.status != ConfirmationStatus.PENDING


__all__ = [
    "Asset",
    "Confirmation",
    "ConfirmationStatus",
    "EMPTY_INVITE_CODE",
    "GoalType",
    "MemberRecord",
    "NATIVE_ASSET_ADDRESS",
    "TxHandle",
    "TxIntent",
    "VaultHandle",
    "VaultRecord",
    "VaultStatus",
    "Visibility",
    "ZERO_ADDRESS",
    "same_address",
]
