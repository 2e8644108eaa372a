"""
Call Script Compiler — wraps actions for execution through forwarders.

Given a forwarder chain (listed from the caller side inward) and the
terminal actions, the compiler encodes the actions as a call script and
wraps it, innermost forwarder first, as calldata to each forwarder's
`forward` entry point. The outermost wrapping is the single action the
caller submits.

    caller -> chain[0].forward(script[ chain[1].forward(script[ actions ]) ])

Output is a pure function of the inputs: compiling twice yields identical
bytes.
"""

from __future__ import annotations

import logging
from typing import Sequence

from acl_composer.config import settings
from acl_composer.encoding.abi import ERC20_ABI, FORWARDER_ABI
from acl_composer.encoding.evmscript import decode_call_script, encode_call_script
from acl_composer.errors import InvalidArgumentError
from acl_composer.forwarding.classifier import ForwarderProfile
from acl_composer.organization.schema import Action, ForwarderTier

logger = logging.getLogger(__name__)

FORWARD = "forward(bytes)"
FORWARD_WITH_CONTEXT = "forward(bytes,bytes)"


class CallScriptCompiler:
    """Builds nested forwarding calls."""

    def __init__(self, spec_id: int | None = None) -> None:
        self.spec_id = settings.call_script_spec_id if spec_id is None else spec_id

    def compile(
        self,
        chain: Sequence[tuple[str, ForwarderTier]],
        actions: Sequence[Action],
        context: bytes | None = None,
    ) -> Action:
        """
        Wrap `actions` through every forwarder of `chain`.

        Args:
            chain: (address, tier) pairs, first element called by the caller.
            actions: Terminal actions, in execution order.
            context: Payload attached to WITH_CONTEXT forwarders. Dropped for
                NO_CONTEXT forwarders.

        Returns:
            The outermost forwarding action.

        Raises:
            InvalidArgumentError: Empty chain, or a member that cannot forward.
        """
        if not chain:
            raise InvalidArgumentError(
                "Forwarder chain is empty", name="ErrorInvalidForwarderChain"
            )
        for address, tier in chain:
            if tier == ForwarderTier.NOT_IMPLEMENTED:
                raise InvalidArgumentError(
                    f"Cannot forward through non-forwarding app {address}",
                    name="ErrorInvalidForwarderChain",
                )

        current = list(actions)
        for address, tier in reversed(chain):
            script = encode_call_script(current, self.spec_id)
            if tier == ForwarderTier.WITH_CONTEXT:
                data = FORWARDER_ABI.encode_function_data(
                    FORWARD_WITH_CONTEXT, [script, context or b""]
                )
            else:
                if context:
                    logger.debug("Forwarder %s takes no context, dropping it", address)
                data = FORWARDER_ABI.encode_function_data(FORWARD, [script])
            current = [Action(to=address, data=data)]

        logger.info(
            "Compiled %d action(s) through %d forwarder(s)", len(actions), len(chain)
        )
        return current[0]

    def compile_profiles(
        self,
        profiles: Sequence[ForwarderProfile],
        actions: Sequence[Action],
        context: bytes | None = None,
    ) -> list[Action]:
        """
        Compile through classified forwarders, paying the entry fee if any.

        The forwarder the caller talks to may charge a fee in an ERC-20
        token; an `approve` for that amount is emitted before the forwarding
        action.
        """
        forward_action = self.compile(
            [(profile.address, profile.tier) for profile in profiles], actions, context
        )
        fee = profiles[0].fee
        if fee is None or fee.amount == 0:
            return [forward_action]

        logger.info(
            "Forwarder %s charges %d of %s, approving", profiles[0].address, fee.amount, fee.token
        )
        approve = Action(
            to=fee.token,
            data=ERC20_ABI.encode_function_data("approve", [profiles[0].address, fee.amount]),
        )
        return [approve, forward_action]


def unwrap_forward(action: Action) -> tuple[list[Action], bytes | None]:
    """
    Decode a forwarding action into its script actions and context.

    Raises:
        InvalidArgumentError: If the action is not a `forward` call.
    """
    for signature in (FORWARD, FORWARD_WITH_CONTEXT):
        function = FORWARDER_ABI.get_function(signature)
        if action.selector == function.selector:
            decoded = function.decode(action.data)
            _, inner = decode_call_script(decoded[0])
            return inner, decoded[1] if len(decoded) > 1 else None
    raise InvalidArgumentError(
        f"Action to {action.to} is not a forward call", name="ErrorInvalidCalldata"
    )


def unwrap_chain(action: Action, depth: int) -> tuple[list[str], list[Action]]:
    """Peel `depth` forwarding layers off `action`, outermost first."""
    addresses: list[str] = []
    current = [action]
    for _ in range(depth):
        if len(current) != 1:
            raise InvalidArgumentError(
                "Forwarding layer does not wrap a single call", name="ErrorInvalidScript"
            )
        addresses.append(current[0].to)
        current, _ = unwrap_forward(current[0])
    return addresses, current
