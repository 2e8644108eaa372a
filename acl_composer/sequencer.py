"""
Action Sequencer — runs governance commands in order and flattens their actions.

Commands are plain values describing what to do (grant, revoke, forward,
pass through a raw action). The sequencer awaits them one at a time, in
declaration order, against a single `CompilationContext`, so that every
permission change is visible to the next command before it resolves its
own preconditions.

Fail fast: the first failing command stops the run, no later command is
started and no partial batch is returned.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Sequence

from eth_utils import to_bytes

from acl_composer.chain.reader import ChainReader
from acl_composer.config import ComposerSettings, settings as default_settings
from acl_composer.errors import ComposerError, ErrorKind, InvalidArgumentError
from acl_composer.forwarding.classifier import ForwarderClassifier
from acl_composer.forwarding.compiler import CallScriptCompiler
from acl_composer.organization.resolver import EntityResolver, checksum_address
from acl_composer.organization.schema import Action, Organization
from acl_composer.permissions.commands import PermissionCommandExecutor
from acl_composer.permissions.params import Condition
from acl_composer.permissions.state import PermissionStateModel

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════
# Compilation context
# ════════════════════════════════════════════════════════════════


@dataclass
class CompilationContext:
    """Everything one compilation run reads from and writes to."""

    resolver: EntityResolver
    state: PermissionStateModel
    executor: PermissionCommandExecutor
    classifier: ForwarderClassifier
    compiler: CallScriptCompiler

    @classmethod
    def create(
        cls,
        organization: Organization,
        reader: ChainReader,
        config: ComposerSettings | None = None,
    ) -> CompilationContext:
        config = config or default_settings
        resolver = EntityResolver(organization, acl_identifier=config.acl_app_identifier)
        state = PermissionStateModel(organization)
        return cls(
            resolver=resolver,
            state=state,
            executor=PermissionCommandExecutor(resolver, state),
            classifier=ForwarderClassifier(reader),
            compiler=CallScriptCompiler(config.call_script_spec_id),
        )


# ════════════════════════════════════════════════════════════════
# Commands (action producers)
# ════════════════════════════════════════════════════════════════


class ActionProducer(ABC):
    """A deferred unit of work that yields zero or more actions when run."""

    @abstractmethod
    async def run(self, context: CompilationContext) -> list[Action]:
        ...


@dataclass(frozen=True)
class GrantCommand(ActionProducer):
    grantee: str
    app: str
    role: str
    manager: str | None = None
    params: Condition | tuple[int, ...] | None = None
    oracle: str | None = None

    async def run(self, context: CompilationContext) -> list[Action]:
        return context.executor.grant(
            self.grantee,
            self.app,
            self.role,
            manager=self.manager,
            params=self.params,
            oracle=self.oracle,
        )


@dataclass(frozen=True)
class RevokeCommand(ActionProducer):
    grantee: str
    app: str
    role: str
    remove_manager: bool = False

    async def run(self, context: CompilationContext) -> list[Action]:
        return context.executor.revoke(
            self.grantee, self.app, self.role, remove_manager=self.remove_manager
        )


@dataclass(frozen=True)
class RawActionCommand(ActionProducer):
    """An action that was encoded elsewhere and is passed through as-is."""

    action: Action

    async def run(self, context: CompilationContext) -> list[Action]:
        return [self.action]


@dataclass(frozen=True)
class ForwardCommand(ActionProducer):
    """
    Run nested commands, then route their actions through a forwarder chain.

    `forwarders` is listed from the caller side inward: the first one is
    called directly, the last one executes the nested actions.
    """

    forwarders: tuple[str, ...]
    commands: tuple[ActionProducer, ...]
    context: bytes | str | None = None

    async def run(self, context: CompilationContext) -> list[Action]:
        if not self.forwarders:
            raise InvalidArgumentError(
                "Forward command needs at least one forwarder",
                name="ErrorInvalidForwarderChain",
            )
        actions = await ActionSequencer(context).run(self.commands)

        profiles = []
        for forwarder in self.forwarders:
            address = context.resolver.resolve_address(forwarder)
            profiles.append(await context.classifier.classify(address))

        payload = self.context.encode("utf-8") if isinstance(self.context, str) else self.context
        return context.compiler.compile_profiles(profiles, actions, payload)


# ════════════════════════════════════════════════════════════════
# Sequencer
# ════════════════════════════════════════════════════════════════


class ActionSequencer:
    """Strictly sequential driver over a list of action producers."""

    def __init__(self, context: CompilationContext) -> None:
        self.context = context

    async def run(self, producers: Sequence[ActionProducer]) -> list[Action]:
        """
        Run every producer in order and return their actions, flattened.

        Raises:
            ComposerError: The first failure, unchanged. Later producers
                are not started.
        """
        actions: list[Action] = []
        for index, producer in enumerate(producers):
            try:
                produced = await producer.run(self.context)
            except ComposerError as e:
                logger.warning(
                    "Command #%d (%s) failed: %s", index, type(producer).__name__, e
                )
                raise
            actions.extend(produced)
        return actions


@dataclass
class BatchResult:
    """Outcome of a whole compilation: an action batch, or an error."""

    actions: list[Action] = field(default_factory=list)
    error_kind: ErrorKind | None = None
    error_name: str | None = None
    message: str | None = None

    @property
    def is_success(self) -> bool:
        return self.error_kind is None


class Composer:
    """
    Compiles command lists into atomic action batches for one organization.

    Each call to `compile` starts from the snapshot again with a fresh
    permission state; nothing is carried over between calls.
    """

    def __init__(
        self,
        organization: Organization,
        reader: ChainReader,
        config: ComposerSettings | None = None,
    ) -> None:
        self.organization = organization
        self.reader = reader
        self.config = config or default_settings

    async def run(self, commands: Sequence[ActionProducer]) -> list[Action]:
        context = CompilationContext.create(self.organization, self.reader, self.config)
        return await ActionSequencer(context).run(commands)

    async def compile(self, commands: Sequence[ActionProducer]) -> BatchResult:
        try:
            actions = await self.run(commands)
        except ComposerError as e:
            return BatchResult(error_kind=e.kind, error_name=e.name, message=e.message)
        logger.info("Compiled batch of %d action(s) from %d command(s)", len(actions), len(commands))
        return BatchResult(actions=actions)


# ════════════════════════════════════════════════════════════════
# Command documents
# ════════════════════════════════════════════════════════════════


def command_from_dict(data: dict[str, Any]) -> ActionProducer:
    """
    Build a command from its JSON form.

        {"command": "grant", "grantee": ..., "app": ..., "role": ...,
         "manager": ..., "params": [...], "oracle": ...}
        {"command": "revoke", "grantee": ..., "app": ..., "role": ...,
         "remove_manager": true}
        {"command": "forward", "forwarders": [...], "commands": [...],
         "context": "..."}
        {"command": "act", "to": ..., "data": "0x...", "value": 0}

    Raises:
        InvalidArgumentError: Unknown command, missing or malformed field.
    """
    if not isinstance(data, dict):
        raise InvalidArgumentError(
            f"Command must be an object, got {data!r}", name="ErrorInvalidCommand"
        )
    kind = data.get("command")
    try:
        if kind == "grant":
            params = data.get("params")
            return GrantCommand(
                grantee=data["grantee"],
                app=data["app"],
                role=data["role"],
                manager=data.get("manager"),
                params=tuple(int(p, 0) if isinstance(p, str) else p for p in params)
                if params is not None
                else None,
                oracle=data.get("oracle"),
            )
        if kind == "revoke":
            return RevokeCommand(
                grantee=data["grantee"],
                app=data["app"],
                role=data["role"],
                remove_manager=bool(data.get("remove_manager", False)),
            )
        if kind == "forward":
            return ForwardCommand(
                forwarders=tuple(data["forwarders"]),
                commands=tuple(command_from_dict(item) for item in data["commands"]),
                context=data.get("context"),
            )
        if kind == "act":
            return RawActionCommand(
                Action(
                    to=checksum_address(data["to"]),
                    data=to_bytes(hexstr=data.get("data", "0x")),
                    value=int(data.get("value", 0)),
                )
            )
    except KeyError as e:
        raise InvalidArgumentError(
            f"Command {kind!r} is missing field {e.args[0]!r}", name="ErrorInvalidCommand"
        ) from None
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(
            f"Command {kind!r} has an invalid field: {e}", name="ErrorInvalidCommand"
        ) from None
    raise InvalidArgumentError(f"Unknown command {kind!r}", name="ErrorInvalidCommand")
