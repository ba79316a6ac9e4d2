"""web3.py implementations of the chain reader and signer ports.

Every web3, RPC and transport failure is translated into the adapter error
hierarchy in ``api_errors`` so use cases never see web3 exception types.
Transactions are sent with ``eth_sendTransaction`` from the node-managed
(wallet) account; gas and fee fields are filled in by web3.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from eth_utils import to_checksum_address, to_hex
from requests import exceptions as req_exc
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError, TransactionNotFound

from goalvault.domain.entities import (
    Confirmation,
    ConfirmationStatus,
    GoalType,
    MemberRecord,
    TxHandle,
    TxIntent,
    VaultRecord,
    Visibility,
    ZERO_ADDRESS,
    same_address,
)
from goalvault.domain.ports import Address, ChainStatePort, SignerPort, VaultId

from .abis import ABIS, ERC20_ABI, VAULT_ABI
from .api_errors import (
    ApiClientError,
    ApiError,
    ApiServerError,
    ApiTimeoutError,
    ContractRevertError,
    TxSubmissionError,
    UserRejectedError,
    is_transient,
)

log = logging.getLogger(__name__)

USER_REJECTED_CODE = 4001
_LIMIT_EXCEEDED_CODE = -32005


# ---- Error translation ----
def _rpc_error(exc: Exception) -> Optional[Dict[str, Any]]:
    response = getattr(exc, "rpc_response", None)
    if isinstance(response, dict) and isinstance(response.get("error"), dict):
        return response["error"]
    if exc.args and isinstance(exc.args[0], dict):
        return exc.args[0]
    return None


def translate_error(exc: Exception, ctx: str) -> ApiError:
    """Map a web3/requests exception onto the adapter error hierarchy."""
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, ContractLogicError):
        reason = getattr(exc, "message", None) or str(exc)
        if reason.startswith("execution reverted: "):
            reason = reason[len("execution reverted: "):]
        return ContractRevertError(f"{ctx}: reverted", reason=reason, context=ctx)
    if isinstance(exc, (req_exc.Timeout, req_exc.ConnectionError)):
        return ApiTimeoutError(f"{ctx}: node unreachable", context=ctx)
    if isinstance(exc, req_exc.HTTPError) and exc.response is not None:
        status = exc.response.status_code
        if 500 <= status < 600:
            return ApiServerError(f"{ctx}: HTTP {status}", status=status, context=ctx)
        return ApiClientError(f"{ctx}: HTTP {status}", status=status, context=ctx)

    error = _rpc_error(exc)
    message = str(error.get("message", "")) if error else str(exc)
    code = error.get("code") if error else None
    lowered = message.lower()
    if code == USER_REJECTED_CODE or "user rejected" in lowered or "user denied" in lowered:
        return UserRejectedError(message or "User rejected the request.", context=ctx)
    if code == _LIMIT_EXCEEDED_CODE or "too many requests" in lowered:
        return ApiClientError(
            f"{ctx}: Too Many Requests", status=429, code=str(code), payload=error, context=ctx
        )
    return ApiError(
        f"{ctx}: {message or exc.__class__.__name__}",
        code=None if code is None else str(code),
        payload=error,
        context=ctx,
    )


# ---- Decoding ----
def vault_from_tuple(vault_id: VaultId, raw: Sequence[Any]) -> Optional[VaultRecord]:
    """Decode a ``getVault`` tuple; an unset creator means the vault does not exist."""
    creator = raw[3]
    if not creator or same_address(creator, ZERO_ADDRESS):
        return None
    return VaultRecord(
        vault_id=vault_id,
        name=raw[1],
        description=raw[2],
        creator=creator,
        asset=raw[4],
        goal_type=GoalType(int(raw[5])),
        visibility=Visibility(int(raw[6])),
        target_amount=int(raw[7]),
        total_deposited=int(raw[8]),
        deadline=int(raw[9]),
        member_count=int(raw[10]),
        status=int(raw[11]),
        invite_code=bytes(raw[12]),
        created_at=int(raw[13]),
    )


def member_from_tuple(vault_id: VaultId, address: Address, raw: Sequence[Any]) -> Optional[MemberRecord]:
    """Decode a ``getMember`` tuple; ``joinedAt == 0`` means no membership."""
    joined_at = int(raw[2])
    if joined_at == 0:
        return None
    return MemberRecord(
        vault_id=vault_id,
        address=address,
        deposited_amount=int(raw[0]),
        has_withdrawn=bool(raw[3]),
        joined_at=joined_at,
        early_withdrawal_time=int(raw[4]),
        penalty_amount=int(raw[5]),
    )


class Web3ChainReader(ChainStatePort):
    """Read-only contract calls against the latest block."""

    def __init__(self, w3: Web3, vault_address: Address) -> None:
        self.w3 = w3
        self.vault: Contract = w3.eth.contract(
            address=to_checksum_address(vault_address), abi=VAULT_ABI
        )

    def get_vault(self, vault_id: VaultId) -> Optional[VaultRecord]:
        raw = self._call(self.vault.functions.getVault(vault_id), f"getVault({vault_id})")
        return vault_from_tuple(vault_id, raw)

    def get_member(self, vault_id: VaultId, address: Address) -> Optional[MemberRecord]:
        raw = self._call(
            self.vault.functions.getMember(vault_id, to_checksum_address(address)),
            f"getMember({vault_id})",
        )
        return member_from_tuple(vault_id, address, raw)

    def get_allowance(self, owner: Address, spender: Address, asset: Address) -> int:
        token = self.w3.eth.contract(address=to_checksum_address(asset), abi=ERC20_ABI)
        fn = token.functions.allowance(to_checksum_address(owner), to_checksum_address(spender))
        return int(self._call(fn, f"allowance({asset})"))

    def get_realtime_status(self, vault_id: VaultId) -> int:
        fn = self.vault.functions.checkVaultStatus(vault_id)
        return int(self._call(fn, f"checkVaultStatus({vault_id})"))

    @staticmethod
    def _call(fn: Any, ctx: str) -> Any:
        try:
            return fn.call()
        except Exception as exc:
            raise translate_error(exc, ctx) from exc


class Web3Signer(SignerPort):
    """Submits intents from ``account`` and observes their receipts."""

    def __init__(self, w3: Web3, account: Address, *, chain_id: Optional[int] = None) -> None:
        self.w3 = w3
        self.account = to_checksum_address(account)
        self.chain_id = chain_id

    def submit(self, intent: TxIntent) -> TxHandle:
        ctx = f"{intent.function} on {intent.contract}"
        try:
            contract = self.w3.eth.contract(
                address=to_checksum_address(intent.contract), abi=ABIS[intent.interface]
            )
            fn = getattr(contract.functions, intent.function)(*intent.args)
            params: Dict[str, Any] = {"from": self.account, "value": int(intent.value)}
            if self.chain_id is not None:
                params["chainId"] = self.chain_id
            tx_hash = self.w3.eth.send_transaction(fn.build_transaction(params))
        except Exception as exc:
            err = translate_error(exc, ctx)
            if isinstance(err, UserRejectedError):
                raise err from exc
            raise TxSubmissionError(
                str(err), code=err.code, hint=err.hint, payload=err.payload, context=ctx
            ) from exc
        handle = TxHandle(to_hex(tx_hash))
        log.info("Submitted %s: %s", intent.description or ctx, handle)
        return handle

    def confirmation(self, handle: TxHandle) -> Confirmation:
        ctx = f"receipt {handle}"
        try:
            receipt = self.w3.eth.get_transaction_receipt(handle.value)
        except TransactionNotFound:
            return Confirmation(ConfirmationStatus.PENDING)
        except Exception as exc:
            raise translate_error(exc, ctx) from exc
        block = receipt.get("blockNumber")
        if receipt.get("status") == 1:
            return Confirmation(ConfirmationStatus.CONFIRMED, block_number=block)
        return Confirmation(
            ConfirmationStatus.REVERTED,
            block_number=block,
            revert_reason=self._revert_reason(handle, block),
        )

    def _revert_reason(self, handle: TxHandle, block: Optional[int]) -> Optional[str]:
        """Replay the reverted call at its block to recover the revert string."""
        ctx = f"replay {handle}"
        try:
            tx = self.w3.eth.get_transaction(handle.value)
            self.w3.eth.call(
                {
                    "from": tx["from"],
                    "to": tx["to"],
                    "data": tx["input"],
                    "value": tx.get("value", 0),
                },
                block,
            )
        except Exception as exc:
            err = translate_error(exc, ctx)
            if isinstance(err, ContractRevertError):
                return err.reason
            if is_transient(err):
                raise err from exc
            log.warning("Could not decode revert reason for %s: %s", handle, err)
            return None
        return None


__all__ = [
    "Web3ChainReader",
    "Web3Signer",
    "member_from_tuple",
    "translate_error",
    "vault_from_tuple",
]
