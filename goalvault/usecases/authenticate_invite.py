"""Authenticate invite codes and public join requests against chain state.

The decoded vault id is only a candidate: a code authorizes a join only if
its bytes32 form equals the canonical code stored for that vault, so
guessing sequential ids yields ``CodeNotAuthorized``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from goalvault.adapters.api_errors import ApiError, is_transient
from goalvault.domain import invite_code as codec
from goalvault.domain.entities import VaultHandle, VaultRecord, VaultStatus
from goalvault.domain.errors import (
    CodeNotAuthorized,
    InvalidFormat,
    InviteCodeError,
    JoinRejection,
    VaultNotFound,
    VaultNotJoinable,
)
from goalvault.domain.ports import Address, ChainStatePort, VaultId
from goalvault.usecases.error_mapping import map_api_error

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class InviteAuthenticator:
    """Resolve an invite (or a public vault id) into a join preview.

    Attributes:
        chain: Reader used for vault and membership records.
        allow_public_join_by_id: Whether PUBLIC vaults may be joined without a code.
        max_retries: Retries for rate-limited or transient reads.
        backoff_base_s: First retry delay; doubled on every further retry.
    """

    chain: ChainStatePort
    allow_public_join_by_id: bool = True
    max_retries: int = 3
    backoff_base_s: float = 1.0
    clock: Callable[[], float] = field(default=time.time, repr=False)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def authenticate(self, code: str, *, caller: Optional[Address] = None) -> VaultHandle:
        """Validate ``code`` and return the vault it authorizes.

        ``code`` may also be the on-chain ``0x`` bytes32 hex form; it then goes
        through the same decode and canonical-code checks as typed text.

        Raises:
            InvalidFormat: The code failed local format or checksum checks.
            VaultNotFound: No vault exists for the decoded id.
            CodeNotAuthorized: The code is not the vault's canonical code.
            VaultNotJoinable: The vault cannot be joined right now.
            UseCaseError: Chain reads failed after retries.
        """
        try:
            text = codec.from_bytes32_hex(code)
            vault_id = codec.decode(text)
            supplied = codec.to_bytes32(text)
        except InviteCodeError as exc:
            raise InvalidFormat(exc) from exc

        vault = self._load_vault(vault_id)
        if supplied != vault.invite_code:
            log.info("Invite code rejected for vault %s: not the canonical code", vault_id)
            raise CodeNotAuthorized(vault_id)
        self._ensure_joinable(vault, caller)
        return VaultHandle.from_record(vault)

    def authenticate_public(self, vault_id: VaultId, *, caller: Optional[Address] = None) -> VaultHandle:
        """Join-by-identifier for PUBLIC vaults, with the same eligibility checks."""
        if not self.allow_public_join_by_id:
            raise CodeNotAuthorized(vault_id, "Joining by vault id is disabled; an invite code is required.")
        vault = self._load_vault(vault_id)
        if not vault.is_public:
            raise CodeNotAuthorized(vault_id, f"Vault {vault_id} is private; an invite code is required.")
        self._ensure_joinable(vault, caller)
        return VaultHandle.from_record(vault)

    # ---- helpers ----
    def _load_vault(self, vault_id: VaultId) -> VaultRecord:
        vault = self._read(lambda: self.chain.get_vault(vault_id), f"vault {vault_id}")
        if vault is None:
            raise VaultNotFound(vault_id)
        return vault

    def _ensure_joinable(self, vault: VaultRecord, caller: Optional[Address]) -> None:
        status = VaultStatus.from_raw(vault.status)
        if status == VaultStatus.FAILED:
            raise VaultNotJoinable(vault.vault_id, JoinRejection.ALREADY_FAILED)
        if status == VaultStatus.SUCCESS:
            raise VaultNotJoinable(vault.vault_id, JoinRejection.ALREADY_COMPLETED)
        if status != VaultStatus.ACTIVE:
            raise VaultNotJoinable(vault.vault_id, JoinRejection.NOT_ACTIVE)
        if vault.deadline <= self.clock():
            raise VaultNotJoinable(vault.vault_id, JoinRejection.EXPIRED)
        if vault.member_cap is not None and vault.member_count >= vault.member_cap:
            raise VaultNotJoinable(vault.vault_id, JoinRejection.ALREADY_FULL_IF_CAPPED)
        if caller:
            member = self._read(
                lambda: self.chain.get_member(vault.vault_id, caller),
                f"membership in vault {vault.vault_id}",
            )
            if member is not None and member.is_active:
                raise VaultNotJoinable(vault.vault_id, JoinRejection.ALREADY_MEMBER)

    def _read(self, fn: Callable[[], T], what: str) -> T:
        attempt = 0
        while True:
            try:
                return fn()
            except ApiError as exc:
                if not is_transient(exc) or attempt >= self.max_retries:
                    raise map_api_error(exc, default_code="NETWORK_BUSY") from exc
                delay = self.backoff_base_s * (2**attempt)
                attempt += 1
                log.warning(
                    "Reading %s failed (%s), retry %d/%d in %.1fs",
                    what,
                    exc,
                    attempt,
                    self.max_retries,
                    delay,
                )
                self.sleep(delay)


__all__ = ["InviteAuthenticator"]
