from __future__ import annotations

import pytest

from goalvault.domain import invite_code as codec
from goalvault.domain.entities import EMPTY_INVITE_CODE
from goalvault.domain.errors import ChecksumMismatch, MalformedCode


def test_vault_42_encodes_to_tag_base36_and_check() -> None:
    code = codec.encode(42)

    assert code == "GOAL16C"
    assert code[:4] == "GOAL"
    assert code[4:-1] == "16"
    assert codec.decode(code) == 42


def test_vault_42_with_last_character_changed_fails_checksum() -> None:
    code = codec.encode(42)
    tampered = code[:-1] + ("D" if code[-1] != "D" else "E")

    with pytest.raises(ChecksumMismatch):
        codec.decode(tampered)


@pytest.mark.parametrize(
    "vault_id",
    [0, 1, 35, 36, 1295, 1296, 987654321, 2**64, codec.MAX_VAULT_ID],
)
def test_decode_inverts_encode(vault_id: int) -> None:
    assert codec.decode(codec.encode(vault_id)) == vault_id


def test_small_ids_are_padded_to_minimum_width() -> None:
    assert codec.encode(0) == "GOAL005"
    assert codec.encode(7)[4:-1] == "07"


@pytest.mark.parametrize("vault_id", [0, 42, 1296, 123456789])
def test_every_single_character_substitution_is_detected(vault_id: int) -> None:
    code = codec.encode(vault_id)
    for index, original in enumerate(code):
        for replacement in codec.ALPHABET:
            if replacement == original:
                continue
            mutated = code[:index] + replacement + code[index + 1:]
            with pytest.raises(ChecksumMismatch):
                codec.decode(mutated)


def test_decode_normalizes_case_and_whitespace() -> None:
    assert codec.decode("  goal16c\n") == 42


@pytest.mark.parametrize(
    "text",
    ["", "GOAL1", "GOAL-6C", "GOAL16C!", "GOAL" + "1" * 40, "ÄOAL16C"],
)
def test_malformed_shapes_are_rejected(text: str) -> None:
    with pytest.raises(MalformedCode):
        codec.decode(text)


def test_non_text_input_is_malformed() -> None:
    with pytest.raises(MalformedCode):
        codec.decode(42)  # type: ignore[arg-type]


def test_wrong_tag_with_valid_checksum_is_malformed() -> None:
    body = "GOAX16"
    with pytest.raises(MalformedCode):
        codec.decode(body + codec.checksum_char(body))


def test_over_padded_digits_are_not_canonical() -> None:
    body = "GOAL016"
    with pytest.raises(MalformedCode):
        codec.decode(body + codec.checksum_char(body))


@pytest.mark.parametrize("bad", [-1, True, 1.5, "42", codec.MAX_VAULT_ID + 1])
def test_encode_rejects_invalid_ids(bad) -> None:
    with pytest.raises(ValueError):
        codec.encode(bad)


def test_is_valid_format() -> None:
    assert codec.is_valid_format("GOAL16C")
    assert not codec.is_valid_format("GOAL16D")
    assert not codec.is_valid_format("nonsense")


def test_bytes32_form_is_ascii_right_padded() -> None:
    raw = codec.to_bytes32("goal16c")

    assert len(raw) == 32
    assert raw.startswith(b"GOAL16C")
    assert raw[7:] == b"\x00" * 25
    assert codec.from_bytes32(raw) == "GOAL16C"


def test_largest_code_still_fits_bytes32() -> None:
    code = codec.encode(codec.MAX_VAULT_ID)

    assert len(code) == 32
    assert codec.from_bytes32(codec.to_bytes32(code)) == code


def test_unset_bytes32_code_reads_as_none() -> None:
    assert codec.from_bytes32(EMPTY_INVITE_CODE) is None


def test_bytes32_hex_input_is_converted_to_text() -> None:
    hex_form = "0x" + codec.to_bytes32("GOAL16C").hex()

    assert codec.is_bytes32_hex(hex_form)
    assert codec.from_bytes32_hex(" " + hex_form.upper() + " ") == "GOAL16C"
    assert codec.from_bytes32_hex("goal16c") == "goal16c"
    assert not codec.is_bytes32_hex("0x1234")
    with pytest.raises(MalformedCode):
        codec.from_bytes32_hex("0x" + EMPTY_INVITE_CODE.hex())


def test_share_url_round_trips_through_link_parser() -> None:
    url = codec.build_share_url("https://goalfi.app/", 42, "GOAL16C")

    assert url == "https://goalfi.app/join/42?invite=GOAL16C"
    link = codec.parse_invite_link(url)
    assert link.vault_id == 42
    assert link.invite_code == "GOAL16C"
    assert link.is_valid
    assert codec.extract_invite_code(url) == "GOAL16C"


@pytest.mark.parametrize(
    "url",
    [
        "https://goalfi.app/vaults/42?invite=GOAL16C",
        "https://goalfi.app/join/abc?invite=GOAL16C",
        "https://goalfi.app/join/42",
        "https://goalfi.app/join/0?invite=GOAL005",
    ],
)
def test_invalid_links_are_flagged(url: str) -> None:
    assert not codec.parse_invite_link(url).is_valid
