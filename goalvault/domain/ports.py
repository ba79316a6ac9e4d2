from __future__ import annotations
from typing import List, Optional, Protocol

from .entities import Confirmation, MemberRecord, TxHandle, TxIntent, VaultRecord

VaultId = int
Address = str


# ---- Error model ----
class UseCaseError(Exception):
    """Base class for use case level errors (user-presentable)."""

    def __init__(self, code: str, message: str, *, meta: Optional[dict] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.meta = meta


# ---- Ports (Hexagonal boundaries) ----
class ChainStatePort(Protocol):
    """Read-only view over vault, membership and token state.

    Results reflect the latest committed block of the connected node.
    ``None`` means the record does not exist.
    """

    def get_vault(self, vault_id: VaultId) -> Optional[VaultRecord]: ...
    def get_member(self, vault_id: VaultId, address: Address) -> Optional[MemberRecord]: ...
    def get_allowance(self, owner: Address, spender: Address, asset: Address) -> int: ...
    def get_realtime_status(self, vault_id: VaultId) -> int: ...  # raw contract enum


class SignerPort(Protocol):
    """Wallet-side submission and receipt observation.

    ``submit`` raises ``UserRejectedError`` when the wallet declines and
    ``TxSubmissionError`` for any other refusal. ``confirmation`` never blocks:
    it reports PENDING until the transaction is mined.
    """

    def submit(self, intent: TxIntent) -> TxHandle: ...
    def confirmation(self, handle: TxHandle) -> Confirmation: ...


class VaultIndexPort(Protocol):
    """Indexed lookups that the contracts cannot answer cheaply."""

    def vault_ids_for_user(self, address: Address) -> List[VaultId]: ...
