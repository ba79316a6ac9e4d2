"""Minimal ABI fragments for the vault contract and ERC20 tokens.

Only the functions this client calls are listed. Field order of the
``getVault`` and ``getMember`` tuples is what ``chain_web3`` decodes.
"""

from __future__ import annotations

from typing import Any, Dict, List

VAULT_TUPLE = [
    {"name": "id", "type": "uint256"},
    {"name": "name", "type": "string"},
    {"name": "description", "type": "string"},
    {"name": "creator", "type": "address"},
    {"name": "token", "type": "address"},
    {"name": "goalType", "type": "uint8"},
    {"name": "visibility", "type": "uint8"},
    {"name": "targetAmount", "type": "uint256"},
    {"name": "totalDeposited", "type": "uint256"},
    {"name": "deadline", "type": "uint256"},
    {"name": "memberCount", "type": "uint256"},
    {"name": "status", "type": "uint8"},
    {"name": "inviteCode", "type": "bytes32"},
    {"name": "createdAt", "type": "uint256"},
]

MEMBER_TUPLE = [
    {"name": "depositedAmount", "type": "uint256"},
    {"name": "targetShare", "type": "uint256"},
    {"name": "joinedAt", "type": "uint256"},
    {"name": "hasWithdrawn", "type": "bool"},
    {"name": "earlyWithdrawalTime", "type": "uint256"},
    {"name": "penaltyAmount", "type": "uint256"},
]


def _fn(
    name: str,
    inputs: List[Dict[str, Any]],
    outputs: List[Dict[str, Any]],
    mutability: str,
) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs,
        "stateMutability": mutability,
    }


_VAULT_ID = {"name": "vaultId", "type": "uint256"}
_AMOUNT = {"name": "amount", "type": "uint256"}
_INVITE = {"name": "inviteCode", "type": "bytes32"}

VAULT_ABI: List[Dict[str, Any]] = [
    _fn(
        "getVault",
        [_VAULT_ID],
        [{"name": "", "type": "tuple", "components": VAULT_TUPLE}],
        "view",
    ),
    _fn(
        "getMember",
        [_VAULT_ID, {"name": "member", "type": "address"}],
        [{"name": "", "type": "tuple", "components": MEMBER_TUPLE}],
        "view",
    ),
    _fn("checkVaultStatus", [_VAULT_ID], [{"name": "", "type": "uint8"}], "view"),
    _fn("joinVault", [_VAULT_ID, _INVITE], [], "payable"),
    _fn("joinVaultWithToken", [_VAULT_ID, _AMOUNT, _INVITE], [], "nonpayable"),
    _fn("depositNative", [_VAULT_ID], [], "payable"),
    _fn("depositToken", [_VAULT_ID, _AMOUNT], [], "nonpayable"),
]

ERC20_ABI: List[Dict[str, Any]] = [
    _fn(
        "allowance",
        [{"name": "owner", "type": "address"}, {"name": "spender", "type": "address"}],
        [{"name": "", "type": "uint256"}],
        "view",
    ),
    _fn(
        "approve",
        [{"name": "spender", "type": "address"}, _AMOUNT],
        [{"name": "", "type": "bool"}],
        "nonpayable",
    ),
    _fn("decimals", [], [{"name": "", "type": "uint8"}], "view"),
]

ABIS = {"vault": VAULT_ABI, "erc20": ERC20_ABI}

__all__ = ["ABIS", "ERC20_ABI", "MEMBER_TUPLE", "VAULT_ABI", "VAULT_TUPLE"]
