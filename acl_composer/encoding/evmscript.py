"""
Call scripts — binary encoding of an ordered list of calls.

Layout (spec id 1):

    spec id (4 bytes, big-endian)
    repeated:
        target address (20 bytes)
        calldata length (4 bytes, big-endian)
        calldata

A forwarder's `forward` entry point re-executes such a script atomically.
"""

from __future__ import annotations

from typing import Sequence

from eth_utils import to_bytes, to_checksum_address

from acl_composer.errors import InvalidArgumentError
from acl_composer.organization.schema import Action

SPEC_ID_LENGTH = 4
ADDRESS_LENGTH = 20
CALLDATA_LENGTH_SIZE = 4
MAX_CALLDATA_LENGTH = 2**32 - 1


def encode_spec_id(spec_id: int = 1) -> bytes:
    return spec_id.to_bytes(SPEC_ID_LENGTH, "big")


def encode_call_script(actions: Sequence[Action], spec_id: int = 1) -> bytes:
    """
    Encode actions into a call script.

    Raises:
        InvalidArgumentError: If an action carries a value transfer, which a
            call script cannot express, or its calldata is too long.
    """
    script = bytearray(encode_spec_id(spec_id))
    for action in actions:
        if action.value:
            raise InvalidArgumentError(
                f"Action to {action.to} transfers value and cannot be scripted",
                name="ErrorInvalidScriptAction",
            )
        if len(action.data) > MAX_CALLDATA_LENGTH:
            raise InvalidArgumentError(
                f"Calldata for {action.to} is too long to script",
                name="ErrorInvalidScriptAction",
            )
        script += to_bytes(hexstr=action.to)
        script += len(action.data).to_bytes(CALLDATA_LENGTH_SIZE, "big")
        script += action.data
    return bytes(script)


def decode_call_script(script: bytes) -> tuple[int, list[Action]]:
    """
    Decode a call script back into its spec id and actions.

    Raises:
        InvalidArgumentError: If the script is truncated.
    """
    if len(script) < SPEC_ID_LENGTH:
        raise InvalidArgumentError("Call script too short", name="ErrorInvalidScript")

    spec_id = int.from_bytes(script[:SPEC_ID_LENGTH], "big")
    actions: list[Action] = []
    offset = SPEC_ID_LENGTH
    header = ADDRESS_LENGTH + CALLDATA_LENGTH_SIZE

    while offset < len(script):
        if offset + header > len(script):
            raise InvalidArgumentError(
                f"Truncated call script header at byte {offset}", name="ErrorInvalidScript"
            )
        target = script[offset : offset + ADDRESS_LENGTH]
        offset += ADDRESS_LENGTH
        length = int.from_bytes(script[offset : offset + CALLDATA_LENGTH_SIZE], "big")
        offset += CALLDATA_LENGTH_SIZE
        if offset + length > len(script):
            raise InvalidArgumentError(
                f"Truncated calldata at byte {offset}", name="ErrorInvalidScript"
            )
        actions.append(
            Action(to=to_checksum_address(target), data=bytes(script[offset : offset + length]))
        )
        offset += length

    return spec_id, actions
