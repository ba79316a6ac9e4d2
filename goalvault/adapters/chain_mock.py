from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from goalvault.domain import invite_code
from goalvault.domain.entities import (
    Confirmation,
    ConfirmationStatus,
    GoalType,
    MemberRecord,
    NATIVE_ASSET_ADDRESS,
    TxHandle,
    TxIntent,
    VaultRecord,
    VaultStatus,
    Visibility,
)
from goalvault.domain.ports import Address, ChainStatePort, SignerPort, VaultIndexPort, VaultId

from .api_errors import ContractRevertError

log = logging.getLogger(__name__)


class _Revert(Exception):
    pass


@dataclass
class InMemoryChain(ChainStatePort, SignerPort, VaultIndexPort):
    """Offline substitute for the web3 reader, signer and indexer.

    Transactions take effect when their receipt settles, after
    ``pending_polls`` PENDING observations. Failures can be queued per
    method with :meth:`inject` (``"get_vault"``, ``"submit"``,
    ``"submit:approve"``, ``"confirmation"`` ...).
    """

    account: Address = "0x00000000000000000000000000000000000A11CE"
    pending_polls: int = 1
    clock: Callable[[], float] = time.time
    submitted: List[TxIntent] = field(default_factory=list)
    reads: List[Tuple[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._vaults: Dict[VaultId, VaultRecord] = {}
        self._realtime: Dict[VaultId, int] = {}
        self._members: Dict[Tuple[VaultId, str], MemberRecord] = {}
        self._allowances: Dict[Tuple[str, str, str], int] = {}
        self._receipts: Dict[str, Dict[str, Any]] = {}
        self._faults: Dict[str, List[Exception]] = {}
        self._reverts: Dict[str, str] = {}
        self._next_id = 1
        self._nonce = 0

    # ---------- ChainStatePort ----------

    def get_vault(self, vault_id: VaultId) -> Optional[VaultRecord]:
        self._read("get_vault", vault_id)
        return self._vaults.get(vault_id)

    def get_member(self, vault_id: VaultId, address: Address) -> Optional[MemberRecord]:
        self._read("get_member", (vault_id, address))
        return self._members.get((vault_id, address.lower()))

    def get_allowance(self, owner: Address, spender: Address, asset: Address) -> int:
        self._read("get_allowance", (owner, spender, asset))
        return self._allowances.get((owner.lower(), spender.lower(), asset.lower()), 0)

    def get_realtime_status(self, vault_id: VaultId) -> int:
        self._read("get_realtime_status", vault_id)
        if vault_id not in self._vaults:
            raise ContractRevertError(f"checkVaultStatus({vault_id}): reverted", reason="Vault does not exist")
        return self._realtime.get(vault_id, self._vaults[vault_id].status)

    # ---------- SignerPort ----------

    def submit(self, intent: TxIntent) -> TxHandle:
        self._raise_fault("submit")
        self._raise_fault(f"submit:{intent.function}")
        self.submitted.append(intent)
        self._nonce += 1
        handle = TxHandle(f"0x{self._nonce:064x}")
        self._receipts[handle.value] = {
            "intent": intent,
            "polls_left": self.pending_polls,
            "result": None,
        }
        log.debug("Mock submitted %s as %s", intent.function, handle)
        return handle

    def confirmation(self, handle: TxHandle) -> Confirmation:
        self._raise_fault("confirmation")
        receipt = self._receipts.get(handle.value)
        if receipt is None:
            return Confirmation(ConfirmationStatus.PENDING)
        if receipt["result"] is None:
            if receipt["polls_left"] > 0:
                receipt["polls_left"] -= 1
                return Confirmation(ConfirmationStatus.PENDING)
            receipt["result"] = self._settle(receipt["intent"])
        return receipt["result"]

    # ---------- VaultIndexPort ----------

    def vault_ids_for_user(self, address: Address) -> List[VaultId]:
        self._read("vault_ids_for_user", address)
        owner = address.lower()
        ids = {vid for vid, rec in self._vaults.items() if rec.creator.lower() == owner}
        ids.update(vid for vid, member in self._members if member == owner)
        return sorted(ids)

    # ---------- Test helpers ----------

    def create_vault(
        self,
        *,
        creator: Address = "0x000000000000000000000000000000000000C0DE",
        asset: Address = NATIVE_ASSET_ADDRESS,
        target_amount: int = 1_000,
        deadline: Optional[int] = None,
        visibility: Visibility = Visibility.PRIVATE,
        goal_type: GoalType = GoalType.GROUP,
        status: int = VaultStatus.ACTIVE,
        name: str = "",
        description: str = "",
        member_cap: Optional[int] = None,
        vault_id: Optional[VaultId] = None,
    ) -> VaultRecord:
        vid = self._next_id if vault_id is None else vault_id
        self._next_id = max(self._next_id, vid + 1)
        now = int(self.clock())
        record = VaultRecord(
            vault_id=vid,
            creator=creator,
            asset=asset,
            goal_type=goal_type,
            visibility=visibility,
            target_amount=target_amount,
            total_deposited=0,
            deadline=now + 30 * 86400 if deadline is None else deadline,
            member_count=0,
            status=int(status),
            invite_code=invite_code.to_bytes32(invite_code.encode(vid)),
            created_at=now,
            name=name,
            description=description,
            member_cap=member_cap,
        )
        self._vaults[vid] = record
        return record

    def set_status(
        self,
        vault_id: VaultId,
        *,
        stored: Optional[int] = None,
        realtime: Optional[int] = None,
    ) -> None:
        if stored is not None:
            self._vaults[vault_id] = replace(self._vaults[vault_id], status=int(stored))
        if realtime is not None:
            self._realtime[vault_id] = int(realtime)

    def add_member(
        self,
        vault_id: VaultId,
        address: Address,
        *,
        deposited: int = 0,
        has_withdrawn: bool = False,
    ) -> MemberRecord:
        member = MemberRecord(
            vault_id=vault_id,
            address=address,
            deposited_amount=deposited,
            has_withdrawn=has_withdrawn,
            joined_at=int(self.clock()),
        )
        self._members[(vault_id, address.lower())] = member
        vault = self._vaults[vault_id]
        self._vaults[vault_id] = replace(
            vault,
            member_count=vault.member_count + 1,
            total_deposited=vault.total_deposited + deposited,
        )
        return member

    def set_allowance(self, owner: Address, spender: Address, asset: Address, amount: int) -> None:
        self._allowances[(owner.lower(), spender.lower(), asset.lower())] = amount

    def inject(self, method: str, *errors: Exception) -> None:
        """Queue errors raised by the next calls of ``method``, one per call."""
        self._faults.setdefault(method, []).extend(errors)

    def revert_next(self, function: str, reason: str) -> None:
        """Make the next settled ``function`` transaction revert with ``reason``."""
        self._reverts[function] = reason

    def count_reads(self, method: str) -> int:
        return sum(1 for name, _ in self.reads if name == method)

    def functions_submitted(self) -> List[str]:
        return [intent.function for intent in self.submitted]

    # ---------- internals ----------

    def _read(self, method: str, args: Any) -> None:
        self._raise_fault(method)
        self.reads.append((method, args))

    def _raise_fault(self, method: str) -> None:
        queue = self._faults.get(method)
        if queue:
            raise queue.pop(0)

    def _settle(self, intent: TxIntent) -> Confirmation:
        block = self._nonce
        reason = self._reverts.pop(intent.function, None)
        if reason is None:
            try:
                self._execute(intent)
            except _Revert as exc:
                reason = str(exc)
        if reason is not None:
            log.debug("Mock reverted %s: %s", intent.function, reason)
            return Confirmation(ConfirmationStatus.REVERTED, block_number=block, revert_reason=reason)
        return Confirmation(ConfirmationStatus.CONFIRMED, block_number=block)

    def _execute(self, intent: TxIntent) -> None:
        fn, args = intent.function, intent.args
        if intent.interface == "erc20":
            if fn != "approve":
                raise _Revert(f"unsupported erc20 call {fn}")
            spender, amount = args
            self.set_allowance(self.account, spender, intent.contract, int(amount))
            return
        if fn == "joinVault":
            vault_id, code = args
            self._join(vault_id, code, intent.value)
        elif fn == "joinVaultWithToken":
            vault_id, amount, code = args
            self._spend_allowance(vault_id, amount)
            self._join(vault_id, code, amount)
        elif fn == "depositNative":
            (vault_id,) = args
            self._deposit(vault_id, intent.value)
        elif fn == "depositToken":
            vault_id, amount = args
            self._spend_allowance(vault_id, amount)
            self._deposit(vault_id, amount)
        else:
            raise _Revert(f"unsupported vault call {fn}")

    def _open_vault(self, vault_id: VaultId) -> VaultRecord:
        vault = self._vaults.get(vault_id)
        if vault is None:
            raise _Revert("Vault does not exist")
        if self._realtime.get(vault_id, vault.status) != VaultStatus.ACTIVE:
            raise _Revert("Vault not active")
        if vault.deadline <= self.clock():
            raise _Revert("Vault deadline passed")
        return vault

    def _join(self, vault_id: VaultId, code: bytes, amount: int) -> None:
        vault = self._open_vault(vault_id)
        if not vault.is_public and bytes(code) != vault.invite_code:
            raise _Revert("Invalid invite code")
        existing = self._members.get((vault_id, self.account.lower()))
        if existing is not None and existing.is_active:
            raise _Revert("Already a member")
        if vault.member_cap is not None and vault.member_count >= vault.member_cap:
            raise _Revert("Vault is full")
        if amount <= 0:
            raise _Revert("Amount must be greater than 0")
        self.add_member(vault_id, self.account, deposited=amount)

    def _deposit(self, vault_id: VaultId, amount: int) -> None:
        vault = self._open_vault(vault_id)
        key = (vault_id, self.account.lower())
        member = self._members.get(key)
        if member is None or not member.is_active:
            raise _Revert("Not a member")
        if amount <= 0:
            raise _Revert("Amount must be greater than 0")
        self._members[key] = replace(member, deposited_amount=member.deposited_amount + amount)
        self._vaults[vault_id] = replace(vault, total_deposited=vault.total_deposited + amount)

    def _spend_allowance(self, vault_id: VaultId, amount: int) -> None:
        vault = self._vaults.get(vault_id)
        if vault is None:
            raise _Revert("Vault does not exist")
        # spender is the vault contract; tokens are keyed by the vault's asset
        for (owner, spender, asset), allowed in list(self._allowances.items()):
            if owner == self.account.lower() and asset == vault.asset.lower() and allowed >= amount:
                self._allowances[(owner, spender, asset)] = allowed - amount
                return
        raise _Revert("ERC20: insufficient allowance")


__all__ = ["InMemoryChain"]
