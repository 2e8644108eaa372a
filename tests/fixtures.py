"""Shared test data: a small organization snapshot and a scripted chain reader."""

from __future__ import annotations

from typing import Any

from eth_utils import to_checksum_address

from acl_composer.chain.reader import ChainCallError
from acl_composer.organization.loader import organization_from_dict
from acl_composer.organization.schema import Organization


def addr(byte: str) -> str:
    return to_checksum_address("0x" + byte * 20)


ORG = addr("0d")
ACL = addr("ac")
VOTING = addr("11")
VOTING_COUNCIL = addr("12")
TOKEN_MANAGER = addr("22")
FINANCE = addr("33")
ALICE = addr("44")
BOB = addr("55")
MANAGER = addr("66")
ORACLE = addr("77")
FEE_TOKEN = addr("88")


def organization_document() -> dict[str, Any]:
    return {
        "address": ORG.lower(),
        "apps": [
            {"name": "acl", "address": ACL.lower()},
            {
                "name": "voting",
                "address": VOTING.lower(),
                "permissions": {
                    "CREATE_VOTES_ROLE": {"manager": VOTING.lower(), "grantees": [ALICE.lower()]},
                    "MODIFY_QUORUM_ROLE": {"manager": None, "grantees": []},
                },
            },
            {
                "name": "voting",
                "label": "council",
                "address": VOTING_COUNCIL.lower(),
                "permissions": {
                    "CREATE_VOTES_ROLE": {"manager": "0x" + "00" * 20, "grantees": []},
                },
            },
            {
                "name": "token-manager",
                "address": TOKEN_MANAGER.lower(),
                "permissions": {
                    "MINT_ROLE": {"manager": MANAGER.lower(), "grantees": [ALICE.lower()]},
                    "BURN_ROLE": {},
                },
            },
            {
                "name": "finance",
                "address": FINANCE.lower(),
                "permissions": {
                    "CREATE_PAYMENTS_ROLE": {"manager": MANAGER.lower(), "grantees": []},
                },
            },
        ],
    }


def make_organization() -> Organization:
    return organization_from_dict(organization_document())


class FakeChainReader:
    """
    Answers `eth_call` from a table keyed by (address, selector).

    Missing entries behave like a contract without the function: the call
    fails with `ChainCallError`.
    """

    def __init__(self, responses: dict[tuple[str, bytes], bytes | Exception] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, bytes]] = []

    async def call(self, to: str, data: bytes) -> bytes:
        self.calls.append((to, data))
        response = self.responses.get((to, data[:4]))
        if response is None:
            raise ChainCallError(f"execution reverted ({to})")
        if isinstance(response, Exception):
            raise response
        return response
