"""Operation descriptors consumed by the transaction orchestrator.

Every approval-gated operation is expressed as one ``OperationDescriptor``:
what is spent (asset, amount, owner), who pulls it (spender) and how the
final contract call is built. Adding an operation means adding a factory
here, not a new state machine.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from goalvault.domain import invite_code as codec
from goalvault.domain.entities import EMPTY_INVITE_CODE, Asset, TxIntent
from goalvault.domain.ports import Address, VaultId


class OperationKind(str, Enum):
    ADD_FUNDS = "add_funds"
    JOIN_AND_DEPOSIT = "join_and_deposit"


@dataclass(frozen=True)
class OperationDescriptor:
    """Parameters of one approval-gated transfer."""

    kind: OperationKind
    vault_id: VaultId
    amount: int
    """Amount in the asset's base units."""
    asset: Asset
    owner: Address
    """Account whose funds are spent and whose allowance is checked."""
    spender: Address
    """Contract that pulls the tokens, i.e. the vault contract."""
    build_action: Callable[["OperationDescriptor"], TxIntent]

    @property
    def is_native(self) -> bool:
        return self.asset.is_native

    def approval_intent(self) -> TxIntent:
        return TxIntent(
            interface="erc20",
            contract=self.asset.address,
            function="approve",
            args=(self.spender, self.amount),
            description=f"Approve {self.asset.symbol or 'token'} for vault {self.vault_id}",
        )

    def action_intent(self) -> TxIntent:
        return self.build_action(self)


def _deposit_action(op: OperationDescriptor) -> TxIntent:
    if op.is_native:
        return TxIntent(
            interface="vault",
            contract=op.spender,
            function="depositNative",
            args=(op.vault_id,),
            value=op.amount,
            description=f"Add funds to vault {op.vault_id}",
        )
    return TxIntent(
        interface="vault",
        contract=op.spender,
        function="depositToken",
        args=(op.vault_id, op.amount),
        description=f"Add funds to vault {op.vault_id}",
    )


def add_funds_operation(
    *,
    vault_id: VaultId,
    amount: int,
    asset: Asset,
    owner: Address,
    vault_contract: Address,
) -> OperationDescriptor:
    """Deposit more funds into a vault the owner already belongs to."""
    return OperationDescriptor(
        kind=OperationKind.ADD_FUNDS,
        vault_id=vault_id,
        amount=amount,
        asset=asset,
        owner=owner,
        spender=vault_contract,
        build_action=_deposit_action,
    )


def join_and_deposit_operation(
    *,
    vault_id: VaultId,
    amount: int,
    asset: Asset,
    owner: Address,
    vault_contract: Address,
    invite: Optional[Union[str, bytes]] = None,
) -> OperationDescriptor:
    """Join a vault with an initial deposit.

    ``invite`` is the code text or its bytes32 form; ``None`` joins a public
    vault with the empty code.
    """
    if invite is None:
        code = EMPTY_INVITE_CODE
    elif isinstance(invite, bytes):
        if len(invite) != 32:
            raise ValueError("Invite code bytes must be 32 bytes long.")
        code = invite
    else:
        code = codec.to_bytes32(invite)

    def _join_action(op: OperationDescriptor) -> TxIntent:
        if op.is_native:
            return TxIntent(
                interface="vault",
                contract=op.spender,
                function="joinVault",
                args=(op.vault_id, code),
                value=op.amount,
                description=f"Join vault {op.vault_id}",
            )
        return TxIntent(
            interface="vault",
            contract=op.spender,
            function="joinVaultWithToken",
            args=(op.vault_id, op.amount, code),
            description=f"Join vault {op.vault_id}",
        )

    return OperationDescriptor(
        kind=OperationKind.JOIN_AND_DEPOSIT,
        vault_id=vault_id,
        amount=amount,
        asset=asset,
        owner=owner,
        spender=vault_contract,
        build_action=_join_action,
    )


__all__ = [
    "OperationDescriptor",
    "OperationKind",
    "add_funds_operation",
    "join_and_deposit_operation",
]
