from __future__ import annotations

from types import SimpleNamespace

import pytest
from requests import exceptions as req_exc
from web3.exceptions import ContractLogicError, TransactionNotFound

from goalvault.adapters.api_errors import (
    ApiClientError,
    ApiError,
    ApiServerError,
    ApiTimeoutError,
    ContractRevertError,
    UserRejectedError,
    is_transient,
)
from goalvault.adapters.chain_web3 import (
    Web3Signer,
    member_from_tuple,
    translate_error,
    vault_from_tuple,
)
from goalvault.domain.entities import (
    ConfirmationStatus,
    GoalType,
    TxHandle,
    Visibility,
    ZERO_ADDRESS,
)

CREATOR = "0x000000000000000000000000000000000000C0DE"
TOKEN = "0x00000000000000000000000000000000000005DC"


def _vault_tuple(creator=CREATOR):
    return (
        42,
        "Trip fund",
        "Saving for a trip",
        creator,
        TOKEN,
        1,
        1,
        5_000,
        1_250,
        1_800_000_000,
        3,
        0,
        b"GOAL16C".ljust(32, b"\x00"),
        1_700_000_000,
    )


def test_vault_tuple_decodes_in_abi_order() -> None:
    record = vault_from_tuple(42, _vault_tuple())

    assert record.name == "Trip fund"
    assert record.description == "Saving for a trip"
    assert record.creator == CREATOR
    assert record.asset == TOKEN
    assert record.goal_type == GoalType.PERSONAL
    assert record.visibility == Visibility.PUBLIC
    assert (record.target_amount, record.total_deposited) == (5_000, 1_250)
    assert record.deadline == 1_800_000_000
    assert record.member_count == 3
    assert record.status == 0
    assert record.invite_code.startswith(b"GOAL16C")
    assert record.member_cap is None


def test_zero_creator_means_no_vault() -> None:
    assert vault_from_tuple(42, _vault_tuple(creator=ZERO_ADDRESS)) is None


def test_member_tuple_decoding() -> None:
    assert member_from_tuple(1, CREATOR, (10, 0, 0, False, 0, 0)) is None

    member = member_from_tuple(1, CREATOR, (10, 500, 1_700_000_000, True, 1_700_000_500, 2))
    assert member.deposited_amount == 10
    assert member.has_withdrawn is True
    assert member.is_active is False
    assert member.early_withdrawal_time == 1_700_000_500
    assert member.penalty_amount == 2


def test_contract_logic_error_becomes_revert_with_reason() -> None:
    err = translate_error(ContractLogicError("execution reverted: Vault is full"), "joinVault")

    assert isinstance(err, ContractRevertError)
    assert err.reason == "Vault is full"
    assert not is_transient(err)


@pytest.mark.parametrize(
    "exc, expected_type",
    [
        (req_exc.Timeout("slow"), ApiTimeoutError),
        (req_exc.ConnectionError("refused"), ApiTimeoutError),
    ],
)
def test_transport_failures_are_timeouts(exc, expected_type) -> None:
    err = translate_error(exc, "getVault(1)")

    assert isinstance(err, expected_type)
    assert is_transient(err)


def _http_error(status: int) -> req_exc.HTTPError:
    return req_exc.HTTPError(f"{status}", response=SimpleNamespace(status_code=status))


def test_http_status_errors_are_classified() -> None:
    assert isinstance(translate_error(_http_error(502), "rpc"), ApiServerError)

    limited = translate_error(_http_error(429), "rpc")
    assert isinstance(limited, ApiClientError)
    assert limited.rate_limited


def test_wallet_rejection_code_is_recognized() -> None:
    rpc = ValueError({"code": 4001, "message": "MetaMask Tx Signature: User denied transaction signature."})

    assert isinstance(translate_error(rpc, "approve"), UserRejectedError)


def test_rpc_limit_exceeded_is_rate_limit() -> None:
    err = translate_error(ValueError({"code": -32005, "message": "limit exceeded"}), "rpc")

    assert isinstance(err, ApiClientError)
    assert err.status == 429
    assert is_transient(err)


def test_unknown_errors_stay_generic() -> None:
    err = translate_error(ValueError({"code": -32000, "message": "nonce too low"}), "rpc")

    assert type(err) is ApiError
    assert err.code == "-32000"
    assert "nonce too low" in str(err)


def test_adapter_errors_pass_through() -> None:
    original = ApiTimeoutError("x")

    assert translate_error(original, "ctx") is original


class _FakeEth:
    def __init__(self, receipt=None, receipt_error=None, replay_error=None) -> None:
        self.receipt = receipt
        self.receipt_error = receipt_error
        self.replay_error = replay_error

    def get_transaction_receipt(self, tx_hash):
        if self.receipt_error is not None:
            raise self.receipt_error
        return self.receipt

    def get_transaction(self, tx_hash):
        return {"from": CREATOR, "to": TOKEN, "input": "0x", "value": 0}

    def call(self, tx, block):
        if self.replay_error is not None:
            raise self.replay_error
        return b""


def _signer(eth: _FakeEth) -> Web3Signer:
    return Web3Signer(SimpleNamespace(eth=eth), CREATOR)


HANDLE = TxHandle("0x" + "ab" * 32)


def test_unknown_receipt_is_pending() -> None:
    signer = _signer(_FakeEth(receipt_error=TransactionNotFound("not yet")))

    assert signer.confirmation(HANDLE).status == ConfirmationStatus.PENDING


def test_successful_receipt_is_confirmed() -> None:
    signer = _signer(_FakeEth(receipt={"status": 1, "blockNumber": 10}))

    confirmation = signer.confirmation(HANDLE)

    assert confirmation.status == ConfirmationStatus.CONFIRMED
    assert confirmation.block_number == 10


def test_failed_receipt_recovers_revert_reason() -> None:
    eth = _FakeEth(
        receipt={"status": 0, "blockNumber": 11},
        replay_error=ContractLogicError("execution reverted: Invalid invite code"),
    )

    confirmation = _signer(eth).confirmation(HANDLE)

    assert confirmation.status == ConfirmationStatus.REVERTED
    assert confirmation.revert_reason == "Invalid invite code"


def test_receipt_transport_errors_propagate_as_adapter_errors() -> None:
    signer = _signer(_FakeEth(receipt_error=req_exc.ConnectionError("down")))

    with pytest.raises(ApiTimeoutError):
        signer.confirmation(HANDLE)
