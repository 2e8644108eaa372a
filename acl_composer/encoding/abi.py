"""
ABI encoding interface — builds calldata for named contract functions.

Each app in the organization snapshot carries an `AbiInterface` listing the
function signatures it exposes. Commands ask for calldata by function name;
overloads (e.g. `forward(bytes)` / `forward(bytes,bytes)`) are told apart
by argument count or by passing the full signature.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_bytes

from acl_composer.errors import InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)


ACL_FUNCTIONS = (
    "createPermission(address,address,bytes32,address)",
    "grantPermission(address,address,bytes32)",
    "grantPermissionP(address,address,bytes32,uint256[])",
    "revokePermission(address,address,bytes32)",
    "removePermissionManager(address,bytes32)",
    "setPermissionManager(address,address,bytes32)",
)

FORWARDER_FUNCTIONS = (
    "forward(bytes)",
    "forward(bytes,bytes)",
    "isForwarder()",
    "forwarderType()",
    "forwardFee()",
)

ERC20_FUNCTIONS = ("approve(address,uint256)",)


def split_signature(signature: str) -> tuple[str, list[str]]:
    """Split `name(type1,type2)` into its name and argument types."""
    signature = signature.replace(" ", "")
    open_at = signature.find("(")
    if open_at <= 0 or not signature.endswith(")"):
        raise InvalidArgumentError(
            f"Invalid function signature {signature!r}", name="ErrorInvalidSignature"
        )
    name = signature[:open_at]
    body = signature[open_at + 1 : -1]

    types: list[str] = []
    depth = 0
    current = ""
    for char in body:
        if char == "," and depth == 0:
            types.append(current)
            current = ""
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        current += char
    if current:
        types.append(current)
    return name, types


def _coerce(abi_type: str, value: Any) -> Any:
    # Hex strings are accepted wherever raw bytes are expected
    if abi_type.startswith("bytes") and isinstance(value, str):
        return to_bytes(hexstr=value)
    if abi_type.endswith("[]") and isinstance(value, (list, tuple)):
        return [_coerce(abi_type[:-2], item) for item in value]
    return value


class AbiFunction:
    """One function signature with its selector and argument types."""

    def __init__(self, signature: str) -> None:
        self.name, self.types = split_signature(signature)
        self.signature = f"{self.name}({','.join(self.types)})"
        self.selector = function_signature_to_4byte_selector(self.signature)

    def encode(self, args: Sequence[Any]) -> bytes:
        if len(args) != len(self.types):
            raise InvalidArgumentError(
                f"{self.signature} expects {len(self.types)} arguments, got {len(args)}",
                name="ErrorInvalidArguments",
            )
        values = [_coerce(abi_type, arg) for abi_type, arg in zip(self.types, args)]
        return self.selector + encode(self.types, values)

    def decode(self, data: bytes) -> tuple[Any, ...]:
        if data[:4] != self.selector:
            raise InvalidArgumentError(
                f"Calldata is not a {self.signature} call", name="ErrorInvalidCalldata"
            )
        return decode(self.types, data[4:])

    def __repr__(self) -> str:
        return f"AbiFunction({self.signature!r})"


class AbiInterface:
    """Calldata builder over a set of function signatures."""

    def __init__(self, signatures: Iterable[str] = ()) -> None:
        self.functions: dict[str, list[AbiFunction]] = {}
        for signature in signatures:
            function = AbiFunction(signature)
            self.functions.setdefault(function.name, []).append(function)

    def __contains__(self, name: str) -> bool:
        return name in self.functions

    @property
    def signatures(self) -> list[str]:
        return [fn.signature for overloads in self.functions.values() for fn in overloads]

    def get_function(self, name_or_signature: str, arg_count: int | None = None) -> AbiFunction:
        """
        Look up a function by bare name or full signature.

        Raises:
            NotFoundError: If no matching function is declared.
        """
        if "(" in name_or_signature:
            wanted = AbiFunction(name_or_signature)
            for function in self.functions.get(wanted.name, []):
                if function.signature == wanted.signature:
                    return function
            raise NotFoundError(
                f"Function {wanted.signature} not found in interface",
                name="ErrorFunctionNotFound",
            )

        candidates = self.functions.get(name_or_signature, [])
        if arg_count is not None:
            candidates = [fn for fn in candidates if len(fn.types) == arg_count]
        if not candidates:
            raise NotFoundError(
                f"Function {name_or_signature} not found in interface",
                name="ErrorFunctionNotFound",
            )
        return candidates[0]

    def encode_function_data(self, name_or_signature: str, args: Sequence[Any] = ()) -> bytes:
        function = self.get_function(name_or_signature, len(args))
        return function.encode(args)

    def decode_function_data(self, name_or_signature: str, data: bytes) -> tuple[Any, ...]:
        for function in self._matching(name_or_signature):
            if data[:4] == function.selector:
                return function.decode(data)
        raise InvalidArgumentError(
            f"Calldata does not match {name_or_signature}", name="ErrorInvalidCalldata"
        )

    def _matching(self, name_or_signature: str) -> list[AbiFunction]:
        if "(" in name_or_signature:
            return [self.get_function(name_or_signature)]
        return list(self.functions.get(name_or_signature, []))


ACL_ABI = AbiInterface(ACL_FUNCTIONS)
FORWARDER_ABI = AbiInterface(FORWARDER_FUNCTIONS)
ERC20_ABI = AbiInterface(ERC20_FUNCTIONS)
