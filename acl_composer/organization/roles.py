"""Role normalization — maps a role name or id to its canonical 32-byte id."""

from __future__ import annotations

import re

from eth_utils import encode_hex, keccak

from acl_composer.errors import InvalidArgumentError

ROLE_ID_LENGTH = 66  # "0x" + 32 bytes hex
_ROLE_ID_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def is_role_id(role: str) -> bool:
    return bool(_ROLE_ID_RE.match(role))


def normalize_role(role: str) -> str:
    """
    Return the canonical role id for `role`.

    Names are hashed with keccak-256 (`MINT_ROLE` -> `0x154c...`). Values
    that already look like an encoded id are returned unchanged, hex case
    included.

    Raises:
        InvalidArgumentError: If `role` is `0x`-prefixed but not a 32-byte
            hex value. Such values are never hashed as names.
    """
    if role.startswith("0x"):
        if len(role) != ROLE_ID_LENGTH or not is_role_id(role):
            raise InvalidArgumentError(
                f"Invalid role provided: {role}", name="ErrorInvalidRole"
            )
        return role

    return encode_hex(keccak(text=role))
