"""
ACL permission parameters — conditions attached to a parameterized grant.

Each parameter is packed into one uint256:

    | id (8 bits) | op (8 bits) | value (240 bits) |

The id selects what is compared (a call argument, the block number, the
timestamp, an oracle, a logic operation or a constant), the op how it is
compared. Logic operations refer to other parameters by their position in
the list; a condition tree is flattened pre-order so that the root is
always parameter 0.

Usage:
    and_(arg(0).gt(100), timestamp().lt(1_700_000_000))
    oracle("0x...")
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence, Union

from acl_composer.errors import InvalidArgumentError

MAX_ARGUMENT_INDEX = 199
VALUE_BITS = 240
INDEX_BITS = 32


class ParamId(enum.IntEnum):
    BLOCK_NUMBER = 200
    TIMESTAMP = 201
    # 202 is reserved
    ORACLE = 203
    LOGIC_OP = 204
    PARAM_VALUE = 205


class Op(enum.IntEnum):
    NONE = 0
    EQ = 1
    NEQ = 2
    GT = 3
    LT = 4
    GTE = 5
    LTE = 6
    RET = 7
    NOT = 8
    AND = 9
    OR = 10
    XOR = 11
    IF_ELSE = 12


ParamValue = Union[int, bool, str]


def _to_int(value: ParamValue) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value, 16) if value.startswith("0x") else int(value)
        except ValueError:
            raise InvalidArgumentError(
                f"Invalid parameter value: {value!r}", name="ErrorInvalidParam"
            ) from None
    return value


def encode_param(param_id: int, op: Op, value: ParamValue) -> int:
    """
    Pack one parameter into its uint256 form.

    Raises:
        InvalidArgumentError: If the value does not fit in 240 bits.
    """
    number = _to_int(value)
    if number < 0 or number >= 2**VALUE_BITS:
        raise InvalidArgumentError(
            f"Parameter value {number} does not fit in {VALUE_BITS} bits",
            name="ErrorInvalidParam",
        )
    return (int(param_id) << 248) | (int(op) << 240) | number


def decode_param(param: int) -> tuple[int, Op, int]:
    return param >> 248, Op((param >> 240) & 0xFF), param & (2**VALUE_BITS - 1)


class Condition(ABC):
    """A node of a permission condition tree."""

    @abstractmethod
    def flatten(self, params: list[int]) -> int:
        """Append this node (and its children) to `params`; return its index."""


@dataclass(frozen=True)
class Comparison(Condition):
    param_id: int
    op: Op
    value: ParamValue

    def flatten(self, params: list[int]) -> int:
        params.append(encode_param(self.param_id, self.op, self.value))
        return len(params) - 1


@dataclass(frozen=True)
class Logic(Condition):
    op: Op
    operands: tuple[Condition, ...]

    def flatten(self, params: list[int]) -> int:
        index = len(params)
        params.append(0)  # placeholder until operand positions are known
        value = 0
        for position, operand in enumerate(self.operands):
            value |= operand.flatten(params) << (INDEX_BITS * position)
        params[index] = encode_param(ParamId.LOGIC_OP, self.op, value)
        return index


class Subject:
    """Something a condition compares: an argument, the block number or the timestamp."""

    def __init__(self, param_id: int) -> None:
        self.param_id = param_id

    def _compare(self, op: Op, value: ParamValue) -> Comparison:
        return Comparison(self.param_id, op, value)

    def eq(self, value: ParamValue) -> Comparison:
        return self._compare(Op.EQ, value)

    def neq(self, value: ParamValue) -> Comparison:
        return self._compare(Op.NEQ, value)

    def gt(self, value: ParamValue) -> Comparison:
        return self._compare(Op.GT, value)

    def lt(self, value: ParamValue) -> Comparison:
        return self._compare(Op.LT, value)

    def gte(self, value: ParamValue) -> Comparison:
        return self._compare(Op.GTE, value)

    def lte(self, value: ParamValue) -> Comparison:
        return self._compare(Op.LTE, value)


def arg(index: int) -> Subject:
    """The `index`-th argument passed to the permission check."""
    if not 0 <= index <= MAX_ARGUMENT_INDEX:
        raise InvalidArgumentError(
            f"Argument index must be between 0 and {MAX_ARGUMENT_INDEX}, got {index}",
            name="ErrorInvalidParam",
        )
    return Subject(index)


def block_number() -> Subject:
    return Subject(ParamId.BLOCK_NUMBER)


def timestamp() -> Subject:
    return Subject(ParamId.TIMESTAMP)


def oracle(address: str) -> Comparison:
    """Require `canPerform` on the oracle contract at `address` to return true."""
    return Comparison(ParamId.ORACLE, Op.EQ, address)


def param_value(flag: bool) -> Comparison:
    """A constant that always evaluates to `flag`."""
    return Comparison(ParamId.PARAM_VALUE, Op.RET, flag)


def not_(condition: Condition) -> Logic:
    return Logic(Op.NOT, (condition,))


def and_(left: Condition, right: Condition) -> Logic:
    return Logic(Op.AND, (left, right))


def or_(left: Condition, right: Condition) -> Logic:
    return Logic(Op.OR, (left, right))


def xor(left: Condition, right: Condition) -> Logic:
    return Logic(Op.XOR, (left, right))


def iif(condition: Condition, success: Condition, failure: Condition) -> Logic:
    return Logic(Op.IF_ELSE, (condition, success, failure))


def encode_params(condition: Condition | Sequence[int] | None) -> list[int]:
    """
    Turn a condition tree (or an already encoded list) into a parameter list.

    Raises:
        InvalidArgumentError: If an encoded parameter is not a uint256.
    """
    if condition is None:
        return []
    params: list[int] = []
    if isinstance(condition, Condition):
        condition.flatten(params)
        return params
    for param in condition:
        try:
            number = int(param)
        except (TypeError, ValueError):
            raise InvalidArgumentError(
                f"Invalid parameter: {param!r}", name="ErrorInvalidParam"
            ) from None
        if not 0 <= number < 2**256:
            raise InvalidArgumentError(
                f"Parameter {number} does not fit in 256 bits", name="ErrorInvalidParam"
            )
        params.append(number)
    return params
