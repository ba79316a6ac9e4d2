from __future__ import annotations

import pytest

from goalvault.adapters.api_errors import (
    ApiClientError,
    ApiError,
    ApiServerError,
    ApiTimeoutError,
    ContractRevertError,
    TxSubmissionError,
    UserRejectedError,
)
from goalvault.domain.errors import VaultNotFound
from goalvault.usecases.error_mapping import map_api_error


@pytest.mark.parametrize(
    "exc, code",
    [
        (UserRejectedError(), "USER_REJECTED"),
        (ContractRevertError("reverted", reason="Vault not active"), "TX_REVERTED"),
        (TxSubmissionError("insufficient funds for gas"), "SUBMISSION_FAILED"),
        (ApiTimeoutError("timed out"), "REQUEST_TIMEOUT"),
        (ApiClientError("Too Many Requests", status=429), "NETWORK_BUSY"),
        (ApiClientError("bad request", status=400), "REQUEST_FAILED"),
        (ApiServerError("bad gateway", status=502), "SERVER_ERROR"),
        (ApiError("execution: too many requests"), "NETWORK_BUSY"),
        (ApiError("weird"), "REQUEST_FAILED"),
        (RuntimeError("boom"), "FALLBACK"),
    ],
)
def test_adapter_errors_map_to_stable_codes(exc, code) -> None:
    assert map_api_error(exc, default_code="FALLBACK").code == code


def test_revert_reason_is_kept_in_message_and_meta() -> None:
    err = map_api_error(
        ContractRevertError("reverted", reason="Vault not active"),
        default_code="X",
    )

    assert err.message == "Transaction reverted: Vault not active"
    assert err.meta == {"revert_reason": "Vault not active"}


def test_client_error_message_includes_status_and_hint() -> None:
    err = map_api_error(
        ApiClientError("bad", status=400, hint="Missing field 'user'"),
        default_code="X",
    )

    assert err.message == "Request failed (HTTP 400): Missing field 'user'"


def test_use_case_errors_pass_through() -> None:
    original = VaultNotFound(3)

    assert map_api_error(original, default_code="X") is original


def test_default_message_used_for_unknown_errors() -> None:
    err = map_api_error(ValueError(), default_code="X", default_message="Oops.")

    assert err.code == "X"
    assert err.message == "Oops."
