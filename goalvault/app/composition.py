"""Adapter and use-case wiring for the vault client.

This module owns construction of concrete web3/indexer adapters and the use
cases that depend on :class:`SettingsConfig`. Presenters ask it for
ready-made collaborators instead of building adapters themselves.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from web3 import Web3

from goalvault.adapters.api_errors import ApiError
from goalvault.adapters.chain_cache import CachedChainReader
from goalvault.adapters.chain_web3 import Web3ChainReader, Web3Signer
from goalvault.adapters.indexer_http import GraphQLVaultIndex
from goalvault.domain import invite_code
from goalvault.domain.entities import Asset, VaultHandle, same_address
from goalvault.domain.errors import InvalidFormat, MalformedCode, VaultNotFound
from goalvault.domain.ports import Address, ChainStatePort, SignerPort, VaultId, VaultIndexPort
from goalvault.usecases.aggregate_vault_status import VaultStatusAggregator, VaultStatusView
from goalvault.usecases.authenticate_invite import InviteAuthenticator
from goalvault.usecases.error_mapping import map_api_error
from goalvault.usecases.operations import (
    OperationDescriptor,
    add_funds_operation,
    join_and_deposit_operation,
)
from goalvault.utils.logging import configure_logging
from goalvault.viewmodels.transaction_vm import TransactionVM

from .polling_scheduler import CancelFn, PollingScheduler, ScheduleFn
from .settings import SettingsConfig
from .transaction_flow import TransactionFlowPresenter

log = logging.getLogger(__name__)


class AppController:
    """Create and hold runtime adapters and use cases for one wallet account.

    Call chain:
        The UI shell builds one instance (``from_settings`` for a live node,
        the plain constructor for injected doubles) and asks it for
        authenticators, aggregators and transaction presenters.
    """

    def __init__(
        self,
        settings: SettingsConfig,
        *,
        chain: ChainStatePort,
        signer: SignerPort,
        index: Optional[VaultIndexPort],
        account: Address,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.settings = settings
        self.account = account
        self.chain = CachedChainReader(chain, ttl_s=settings.cache_ttl_s)
        self.signer = signer
        self.index = index
        self.authenticator = InviteAuthenticator(
            self.chain,
            allow_public_join_by_id=settings.allow_public_join_by_id,
            max_retries=settings.max_transient_retries,
            clock=clock or time.time,
        )
        self.aggregator = VaultStatusAggregator(self.chain, batch_limit=settings.status_batch_limit)

    @classmethod
    def from_settings(cls, settings: SettingsConfig, account: Address) -> "AppController":
        """Wire live adapters against ``settings.rpc_url`` and the indexer.

        Applies ``settings.log_level`` to the root logger when it is set.
        """
        if settings.log_level:
            configure_logging(settings.log_level)
        if not settings.vault_contract:
            raise ValueError("vault_contract must be configured.")
        w3 = Web3(
            Web3.HTTPProvider(
                settings.rpc_url,
                request_kwargs={"timeout": settings.request_timeout_s},
            )
        )
        index = None
        if settings.indexer_url:
            index = GraphQLVaultIndex(
                settings.indexer_url, request_timeout=settings.request_timeout_s
            )
        log.info("Connecting to %s (vault contract %s)", settings.rpc_url, settings.vault_contract)
        return cls(
            settings,
            chain=Web3ChainReader(w3, settings.vault_contract),
            signer=Web3Signer(w3, account, chain_id=settings.chain_id),
            index=index,
            account=account,
        )

    # ------------------------------------------------------------------
    # Assets and links
    # ------------------------------------------------------------------
    def asset_for(self, address: Address) -> Asset:
        if same_address(address, self.settings.native_asset):
            return Asset.native()
        if self.settings.usdc_address and same_address(address, self.settings.usdc_address):
            return Asset(address=address, decimals=self.settings.usdc_decimals, symbol="USDC")
        return Asset(address=address, decimals=18)

    def share_url(self, vault_id: VaultId) -> str:
        return invite_code.build_share_url(
            self.settings.share_base_url, vault_id, invite_code.encode(vault_id)
        )

    # ------------------------------------------------------------------
    # Use-case entry points
    # ------------------------------------------------------------------
    def preview_invite(self, code: str) -> VaultHandle:
        return self.authenticator.authenticate(code, caller=self.account)

    def preview_invite_link(self, url: str) -> VaultHandle:
        """Authenticate the code carried by a ``/join/{id}?invite=`` link."""
        link = invite_code.parse_invite_link(url)
        if not link.is_valid or link.invite_code is None:
            raise InvalidFormat(MalformedCode("Invite link is not valid."))
        handle = self.authenticator.authenticate(link.invite_code, caller=self.account)
        if handle.vault_id != link.vault_id:
            log.warning("Link vault id %s disagrees with its code (%s)", link.vault_id, handle.vault_id)
        return handle

    def vault(self, vault_id: VaultId) -> VaultHandle:
        """Fresh handle for a vault the account already belongs to (add funds)."""
        try:
            record = self.chain.get_vault(vault_id)
        except ApiError as exc:
            raise map_api_error(exc, default_code="VAULT_READ_FAILED") from exc
        if record is None:
            raise VaultNotFound(vault_id)
        return VaultHandle.from_record(record)

    def my_vaults(self) -> List[VaultStatusView]:
        if self.index is None:
            return []
        try:
            vault_ids = self.index.vault_ids_for_user(self.account)
        except ApiError as exc:
            raise map_api_error(exc, default_code="INDEXER_FAILED") from exc
        return self.aggregator.enrich(vault_ids)

    def transaction_flow(
        self,
        schedule: ScheduleFn,
        cancel: CancelFn,
        vm: TransactionVM,
        *,
        channel: str = "transaction",
    ) -> TransactionFlowPresenter:
        return TransactionFlowPresenter(
            chain=self.chain,
            signer=self.signer,
            settings=self.settings,
            scheduler=PollingScheduler(schedule, cancel),
            vm=vm,
            channel=channel,
        )

    def add_funds(self, handle: VaultHandle, amount: int) -> OperationDescriptor:
        return add_funds_operation(
            vault_id=handle.vault_id,
            amount=amount,
            asset=self.asset_for(handle.asset),
            owner=self.account,
            vault_contract=self.settings.vault_contract,
        )

    def join_and_deposit(self, handle: VaultHandle, amount: int) -> OperationDescriptor:
        """Join with the vault's canonical code re-read from the handle."""
        invite = None if handle.is_public else handle.invite_code
        return join_and_deposit_operation(
            vault_id=handle.vault_id,
            amount=amount,
            asset=self.asset_for(handle.asset),
            owner=self.account,
            vault_contract=self.settings.vault_contract,
            invite=invite,
        )


__all__ = ["AppController"]
