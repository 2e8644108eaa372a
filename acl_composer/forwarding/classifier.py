"""
Forwarder Classifier — probes an authorizer contract's forwarding abilities.

Two read-only probes, each with a fixed fallback instead of an error:

- `forwardFee()`: on failure the app is assumed not to charge a fee.
- `forwarderType()`: on failure the app is assumed to be a forwarder from
  before forwarder types existed, i.e. NO_CONTEXT.

Classification never raises to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from eth_abi import decode

from acl_composer.chain.reader import ChainReader
from acl_composer.encoding.abi import FORWARDER_ABI
from acl_composer.organization.schema import ForwarderTier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForwarderFee:
    token: str
    amount: int


@dataclass(frozen=True)
class ForwarderProfile:
    """Result of classifying one forwarder."""

    address: str
    fee: ForwarderFee | None
    tier: ForwarderTier


class ForwarderClassifier:
    def __init__(self, reader: ChainReader) -> None:
        self.reader = reader

    async def forward_fee(self, address: str) -> ForwarderFee | None:
        try:
            raw = await self.reader.call(address, FORWARDER_ABI.encode_function_data("forwardFee"))
            token, amount = decode(["address", "uint256"], raw)
        except Exception as e:
            logger.debug("forwardFee() probe failed on %s, assuming no fee: %s", address, e)
            return None
        return ForwarderFee(token=token, amount=amount)

    async def forwarder_type(self, address: str) -> ForwarderTier:
        try:
            raw = await self.reader.call(
                address, FORWARDER_ABI.encode_function_data("forwarderType")
            )
            (reported,) = decode(["uint8"], raw)
            return ForwarderTier(reported)
        except Exception as e:
            logger.debug(
                "forwarderType() probe failed on %s, assuming NO_CONTEXT: %s", address, e
            )
            return ForwarderTier.NO_CONTEXT

    async def classify(self, address: str) -> ForwarderProfile:
        """Probe fee and tier of the forwarder at `address`, one call at a time."""
        fee = await self.forward_fee(address)
        tier = await self.forwarder_type(address)
        logger.info(
            "Forwarder %s classified as %s (fee=%s)",
            address, tier.name, f"{fee.amount}@{fee.token}" if fee else "none",
        )
        return ForwarderProfile(address=address, fee=fee, tier=tier)
