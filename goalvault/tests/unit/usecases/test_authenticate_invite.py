from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import pytest

from goalvault.adapters.api_errors import ApiClientError, ApiServerError, ApiTimeoutError
from goalvault.domain import invite_code as codec
from goalvault.domain.entities import (
    GoalType,
    MemberRecord,
    NATIVE_ASSET_ADDRESS,
    VaultRecord,
    VaultStatus,
    Visibility,
)
from goalvault.domain.errors import (
    CodeNotAuthorized,
    InvalidFormat,
    JoinRejection,
    VaultNotFound,
    VaultNotJoinable,
)
from goalvault.domain.ports import UseCaseError
from goalvault.usecases.authenticate_invite import InviteAuthenticator

NOW = 1_700_000_000
CALLER = "0x00000000000000000000000000000000000A11CE"


class _StubChain:
    def __init__(self) -> None:
        self.vaults: Dict[int, VaultRecord] = {}
        self.members: Dict[Tuple[int, str], MemberRecord] = {}
        self.errors: List[Exception] = []
        self.calls: List[str] = []

    def get_vault(self, vault_id: int) -> Optional[VaultRecord]:
        self.calls.append("get_vault")
        if self.errors:
            raise self.errors.pop(0)
        return self.vaults.get(vault_id)

    def get_member(self, vault_id: int, address: str) -> Optional[MemberRecord]:
        self.calls.append("get_member")
        return self.members.get((vault_id, address.lower()))


def _vault(vault_id: int = 42, **overrides) -> VaultRecord:
    fields = dict(
        vault_id=vault_id,
        creator="0x000000000000000000000000000000000000C0DE",
        asset=NATIVE_ASSET_ADDRESS,
        goal_type=GoalType.GROUP,
        visibility=Visibility.PRIVATE,
        target_amount=10**18,
        total_deposited=0,
        deadline=NOW + 86400,
        member_count=1,
        status=int(VaultStatus.ACTIVE),
        invite_code=codec.to_bytes32(codec.encode(vault_id)),
        created_at=NOW - 86400,
        name="Trip fund",
    )
    fields.update(overrides)
    return VaultRecord(**fields)


def _make_auth(chain: _StubChain, **overrides) -> Tuple[InviteAuthenticator, List[float]]:
    slept: List[float] = []
    params = dict(chain=chain, clock=lambda: NOW, sleep=slept.append)
    params.update(overrides)
    return InviteAuthenticator(**params), slept


def test_valid_code_returns_join_preview() -> None:
    chain = _StubChain()
    chain.vaults[42] = _vault()
    auth, _ = _make_auth(chain)

    handle = auth.authenticate(" goal16c ", caller=CALLER)

    assert handle.vault_id == 42
    assert handle.name == "Trip fund"
    assert handle.description == "No description"
    assert handle.is_public is False
    assert handle.invite_code == chain.vaults[42].invite_code


def test_checksum_failure_surfaces_as_invalid_format_without_reads() -> None:
    chain = _StubChain()
    auth, _ = _make_auth(chain)

    with pytest.raises(InvalidFormat) as excinfo:
        auth.authenticate("GOAL16D")

    assert excinfo.value.code == "INVALID_FORMAT"
    assert excinfo.value.meta == {"cause": "CHECKSUM_MISMATCH"}
    assert chain.calls == []


def test_unknown_vault_is_not_found() -> None:
    auth, _ = _make_auth(_StubChain())

    with pytest.raises(VaultNotFound):
        auth.authenticate(codec.encode(7))


def test_well_formed_code_for_other_vault_is_not_authorized() -> None:
    chain = _StubChain()
    # vault 43 carries a code that is not the one derived from its id
    chain.vaults[43] = _vault(43, invite_code=codec.to_bytes32("GOALPRIVATE7"))
    auth, _ = _make_auth(chain)

    with pytest.raises(CodeNotAuthorized) as excinfo:
        auth.authenticate(codec.encode(43))

    assert excinfo.value.code == "CODE_NOT_AUTHORIZED"
    assert excinfo.value.vault_id == 43


def test_onchain_hex_form_of_code_authenticates() -> None:
    chain = _StubChain()
    chain.vaults[42] = _vault()
    auth, _ = _make_auth(chain)

    handle = auth.authenticate("0x" + chain.vaults[42].invite_code.hex())

    assert handle.vault_id == 42


def test_onchain_hex_form_of_other_code_is_not_authorized() -> None:
    chain = _StubChain()
    chain.vaults[43] = _vault(43, invite_code=codec.to_bytes32("GOALPRIVATE7"))
    auth, _ = _make_auth(chain)

    with pytest.raises(CodeNotAuthorized):
        auth.authenticate("0x" + codec.to_bytes32(codec.encode(43)).hex().upper())


def test_empty_onchain_hex_is_invalid_format() -> None:
    auth, _ = _make_auth(_StubChain())

    with pytest.raises(InvalidFormat):
        auth.authenticate("0x" + "00" * 32)


@pytest.mark.parametrize(
    "overrides, reason",
    [
        ({"status": int(VaultStatus.FAILED)}, JoinRejection.ALREADY_FAILED),
        ({"status": int(VaultStatus.SUCCESS)}, JoinRejection.ALREADY_COMPLETED),
        ({"status": 7}, JoinRejection.NOT_ACTIVE),
        ({"deadline": NOW}, JoinRejection.EXPIRED),
        ({"member_cap": 3, "member_count": 3}, JoinRejection.ALREADY_FULL_IF_CAPPED),
    ],
)
def test_unjoinable_vaults_report_reason(overrides, reason) -> None:
    chain = _StubChain()
    chain.vaults[42] = _vault(**overrides)
    auth, _ = _make_auth(chain)

    with pytest.raises(VaultNotJoinable) as excinfo:
        auth.authenticate("GOAL16C")

    assert excinfo.value.reason == reason
    assert excinfo.value.meta == {"reason": reason}


def test_active_member_cannot_join_again() -> None:
    chain = _StubChain()
    chain.vaults[42] = _vault()
    chain.members[(42, CALLER.lower())] = MemberRecord(42, CALLER, 5, False, NOW)
    auth, _ = _make_auth(chain)

    with pytest.raises(VaultNotJoinable) as excinfo:
        auth.authenticate("GOAL16C", caller=CALLER)

    assert excinfo.value.reason == JoinRejection.ALREADY_MEMBER


def test_withdrawn_member_may_rejoin() -> None:
    chain = _StubChain()
    chain.vaults[42] = _vault()
    chain.members[(42, CALLER.lower())] = MemberRecord(42, CALLER, 5, True, NOW)
    auth, _ = _make_auth(chain)

    assert auth.authenticate("GOAL16C", caller=CALLER).vault_id == 42


def test_membership_not_checked_without_caller() -> None:
    chain = _StubChain()
    chain.vaults[42] = _vault()
    auth, _ = _make_auth(chain)

    auth.authenticate("GOAL16C")

    assert "get_member" not in chain.calls


def test_public_vault_joinable_by_id() -> None:
    chain = _StubChain()
    chain.vaults[9] = _vault(9, visibility=Visibility.PUBLIC)
    auth, _ = _make_auth(chain)

    handle = auth.authenticate_public(9, caller=CALLER)

    assert handle.is_public is True


def test_private_vault_requires_code() -> None:
    chain = _StubChain()
    chain.vaults[9] = _vault(9)
    auth, _ = _make_auth(chain)

    with pytest.raises(CodeNotAuthorized):
        auth.authenticate_public(9)


def test_join_by_id_can_be_disabled() -> None:
    chain = _StubChain()
    chain.vaults[9] = _vault(9, visibility=Visibility.PUBLIC)
    auth, _ = _make_auth(chain, allow_public_join_by_id=False)

    with pytest.raises(CodeNotAuthorized):
        auth.authenticate_public(9)
    assert chain.calls == []


def test_transient_reads_are_retried_with_backoff() -> None:
    chain = _StubChain()
    chain.vaults[42] = _vault()
    chain.errors = [
        ApiClientError("Too Many Requests", status=429),
        ApiServerError("bad gateway", status=502),
    ]
    auth, slept = _make_auth(chain, backoff_base_s=0.5)

    assert auth.authenticate("GOAL16C").vault_id == 42
    assert slept == [0.5, 1.0]


def test_rate_limit_exhaustion_maps_to_network_busy() -> None:
    chain = _StubChain()
    chain.vaults[42] = _vault()
    chain.errors = [ApiClientError("Too Many Requests", status=429) for _ in range(3)]
    auth, slept = _make_auth(chain, max_retries=2)

    with pytest.raises(UseCaseError) as excinfo:
        auth.authenticate("GOAL16C")

    assert excinfo.value.code == "NETWORK_BUSY"
    assert slept == [1.0, 2.0]


def test_timeout_exhaustion_maps_to_request_timeout() -> None:
    chain = _StubChain()
    chain.errors = [ApiTimeoutError("timed out")]
    auth, slept = _make_auth(chain, max_retries=0)

    with pytest.raises(UseCaseError) as excinfo:
        auth.authenticate("GOAL16C")

    assert excinfo.value.code == "REQUEST_TIMEOUT"
    assert slept == []
