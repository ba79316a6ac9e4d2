from __future__ import annotations

from goalvault.adapters.chain_mock import InMemoryChain
from goalvault.domain.entities import VaultStatus, Visibility
from goalvault.usecases.aggregate_vault_status import VaultStatusAggregator
from goalvault.viewmodels.status_format import vault_status_label
from goalvault.viewmodels.vault_list_vm import BUCKETS, VaultListVM

NOW = 1_700_000_000
USDC = "0x00000000000000000000000000000000000005DC"


def _views():
    chain = InMemoryChain(clock=lambda: NOW)
    chain.create_vault(
        asset=USDC,
        target_amount=100_000_000,
        deadline=NOW + 2 * 86400 + 1,
        name="Laptop",
        visibility=Visibility.PUBLIC,
    )
    chain.add_member(1, "0x00000000000000000000000000000000000000B0", deposited=25_000_000)
    chain.create_vault(target_amount=10**18, deadline=NOW - 10)
    chain.set_status(2, realtime=VaultStatus.FAILED)
    chain.create_vault(target_amount=10, deadline=NOW + 86400)
    chain.add_member(3, "0x00000000000000000000000000000000000000B1", deposited=30)
    chain.set_status(3, realtime=VaultStatus.SUCCESS)
    return VaultStatusAggregator(chain).enrich([1, 2, 3])


def test_cards_are_grouped_by_bucket() -> None:
    vm = VaultListVM(token_decimals={USDC: 6}, token_symbols={USDC: "USDC"}, clock=lambda: NOW)

    vm.load(_views())

    assert set(vm.cards) == set(BUCKETS)
    assert vm.counts() == {"active": 1, "completed": 1, "failed": 1, "cancelled": 0}


def test_card_fields_are_display_ready() -> None:
    vm = VaultListVM(token_decimals={USDC.lower(): 6}, token_symbols={USDC: "USDC"}, clock=lambda: NOW)
    vm.load(_views())

    card = vm.cards["active"][0]
    assert card.name == "Laptop"
    assert card.status == "Active"
    assert card.status_source == "realtime"
    assert card.target == "100 USDC"
    assert card.deposited == "25 USDC"
    assert card.progress_pct == 25
    assert card.days_left == 3
    assert card.is_public


def test_progress_is_capped_and_deadline_floors_at_zero() -> None:
    vm = VaultListVM(clock=lambda: NOW)
    vm.load(_views())

    completed = vm.cards["completed"][0]
    failed = vm.cards["failed"][0]
    assert completed.progress_pct == 100
    assert failed.days_left == 0
    assert failed.name == "Unknown Vault"
    assert failed.target == "1"


def test_status_labels() -> None:
    assert vault_status_label(0) == "Active"
    assert vault_status_label(1) == "Completed"
    assert vault_status_label(2) == "Failed"
    assert vault_status_label(5) == "Cancelled"
