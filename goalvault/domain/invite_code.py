"""Invite code text format.

A code is ``TAG + DIGITS + CHECK``:

* ``TAG`` is the literal ``GOAL``;
* ``DIGITS`` is the vault id in upper-case base 36, zero-padded to
  ``MIN_DIGITS`` and never longer than ``MAX_DIGITS``;
* ``CHECK`` is one base-36 character equal to ``sum(value(c) * w) mod 36``
  over TAG+DIGITS, with weights cycling through the units of Z/36.

Every weight is invertible modulo 36, so replacing any single character of
the tag or digits with another base-36 character always changes the expected
check character. The code is only a candidate vault reference: the vault's
canonical on-chain code decides whether it authorizes a join.

Pure functions only; nothing here touches the network.
"""

from __future__ import annotations

import re
import string
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, quote, urlparse

from .errors import ChecksumMismatch, MalformedCode

TAG = "GOAL"
BASE = 36
MIN_DIGITS = 2
MAX_DIGITS = 27  # TAG + 27 digits + CHECK fills a bytes32
ALPHABET = string.digits + string.ascii_uppercase
_WEIGHTS = (1, 5, 7, 11, 13, 17, 19, 23, 25, 29, 31, 35)
_MIN_LENGTH = len(TAG) + MIN_DIGITS + 1
_MAX_LENGTH = len(TAG) + MAX_DIGITS + 1
MAX_VAULT_ID = BASE**MAX_DIGITS - 1
_BYTES32_HEX = re.compile(r"^0[xX][0-9a-fA-F]{64}$")


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, BASE)
        digits.append(ALPHABET[rem])
    return "".join(reversed(digits))


def checksum_char(body: str) -> str:
    """Return the check character for a tag+digits body."""
    total = 0
    for index, char in enumerate(body):
        total += ALPHABET.index(char) * _WEIGHTS[index % len(_WEIGHTS)]
    return ALPHABET[total % BASE]


def encode(vault_id: int) -> str:
    """Encode a vault id into its shareable invite code."""
    if isinstance(vault_id, bool) or not isinstance(vault_id, int):
        raise ValueError("Vault id must be an integer.")
    if vault_id < 0 or vault_id > MAX_VAULT_ID:
        raise ValueError(f"Vault id out of range: {vault_id}")
    body = TAG + _to_base36(vault_id).rjust(MIN_DIGITS, "0")
    return body + checksum_char(body)


def normalize(code: str) -> str:
    """Trim whitespace and upper-case a user-supplied code."""
    if not isinstance(code, str):
        raise MalformedCode("Invite code must be text.")
    return code.strip().upper()


def decode(code: str) -> int:
    """Decode an invite code into the vault id it names.

    Raises:
        MalformedCode: Wrong length, characters, tag, or padding.
        ChecksumMismatch: Check character disagrees with the body.
    """
    text = normalize(code)
    if not _MIN_LENGTH <= len(text) <= _MAX_LENGTH:
        raise MalformedCode(f"Invite code must be {_MIN_LENGTH}-{_MAX_LENGTH} characters.")
    if any(char not in ALPHABET for char in text):
        raise MalformedCode("Invite code may only contain letters and digits.")

    body, check = text[:-1], text[-1]
    if checksum_char(body) != check:
        raise ChecksumMismatch()
    if not body.startswith(TAG):
        raise MalformedCode(f"Invite code must start with {TAG}.")

    digits = body[len(TAG):]
    if len(digits) > MIN_DIGITS and digits.startswith("0"):
        raise MalformedCode("Invite code digits are not canonical.")
    return int(digits, BASE)


def is_valid_format(code: str) -> bool:
    try:
        decode(code)
    except (MalformedCode, ChecksumMismatch):
        return False
    return True


# ---- On-chain representation ----
def to_bytes32(code: str) -> bytes:
    """Canonical bytes32 form stored by the vault contract (ASCII, zero padded)."""
    text = normalize(code)
    raw = text.encode("ascii") if text.isascii() else b""
    if not raw or len(raw) > 32:
        raise MalformedCode("Invite code does not fit in 32 bytes.")
    return raw.ljust(32, b"\x00")


def from_bytes32(raw: bytes) -> Optional[str]:
    """Inverse of :func:`to_bytes32`; ``None`` for an unset (all-zero) code."""
    trimmed = bytes(raw).rstrip(b"\x00")
    if not trimmed:
        return None
    try:
        return trimmed.decode("ascii")
    except UnicodeDecodeError:
        return None


def is_bytes32_hex(code: str) -> bool:
    return isinstance(code, str) and bool(_BYTES32_HEX.match(code.strip()))


def from_bytes32_hex(code: str) -> str:
    """Accept a code pasted as its on-chain ``0x`` + 64 hex form.

    Any other input is returned unchanged so the caller can :func:`decode` it.
    """
    if not is_bytes32_hex(code):
        return code
    text = from_bytes32(bytes.fromhex(code.strip()[2:]))
    if text is None:
        raise MalformedCode("Invite code hex does not hold a code.")
    return text


# ---- Share links ----
@dataclass(frozen=True)
class InviteLink:
    vault_id: Optional[int]
    invite_code: Optional[str]
    is_valid: bool


def build_share_url(base_url: str, vault_id: int, code: str) -> str:
    """Return ``{base}/join/{vault_id}?invite={code}``."""
    base = (base_url or "").rstrip("/")
    return f"{base}/join/{vault_id}?invite={quote(code, safe='')}"


def extract_invite_code(url: str) -> Optional[str]:
    try:
        query = parse_qs(urlparse(url).query)
    except ValueError:
        return None
    values = query.get("invite")
    return values[0] if values else None


def parse_invite_link(url: str) -> InviteLink:
    """Parse a ``/join/{vault_id}?invite=...`` link without validating the code."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return InviteLink(None, None, False)
    parts = parsed.path.split("/")
    if len(parts) < 3 or parts[1] != "join":
        return InviteLink(None, None, False)
    try:
        vault_id = int(parts[2])
    except ValueError:
        return InviteLink(None, None, False)
    invite = extract_invite_code(url)
    return InviteLink(vault_id, invite, vault_id > 0 and invite is not None)


__all__ = [
    "ALPHABET",
    "InviteLink",
    "MAX_VAULT_ID",
    "MIN_DIGITS",
    "TAG",
    "build_share_url",
    "checksum_char",
    "decode",
    "encode",
    "extract_invite_code",
    "from_bytes32",
    "from_bytes32_hex",
    "is_bytes32_hex",
    "is_valid_format",
    "normalize",
    "parse_invite_link",
    "to_bytes32",
]
