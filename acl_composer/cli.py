"""
ACL Composer command line — compiles a command file into an action batch.

Usage:
    acl-composer compile --org org.json --commands commands.json
    acl-composer compile --org org.json --commands commands.json --json
    acl-composer compile ... --rpc-url https://rpc.example.org

The batch is printed, never submitted. Exit status is 0 on success and 1
when compilation fails, with the error kind and message printed instead.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

import structlog
from eth_utils import encode_hex
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from acl_composer.chain.reader import JsonRpcChainReader
from acl_composer.config import settings
from acl_composer.errors import ComposerError, ErrorKind, InvalidArgumentError
from acl_composer.organization.loader import load_organization
from acl_composer.sequencer import BatchResult, Composer, command_from_dict

console = Console()


def configure_logging() -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            (
                structlog.dev.ConsoleRenderer()
                if settings.log_format != "json"
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        level=settings.log_level,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


async def run_compile(org_path: str, commands_path: str, rpc_url: str) -> BatchResult:
    """Load inputs, compile them, and always release the RPC client."""
    log = structlog.get_logger()
    try:
        organization = load_organization(org_path)
        with open(commands_path, encoding="utf-8") as handle:
            documents = json.load(handle)
        if not isinstance(documents, list):
            raise InvalidArgumentError(
                "Command file must hold a list of commands", name="ErrorInvalidCommand"
            )
        commands = [command_from_dict(item) for item in documents]
    except ComposerError as e:
        log.warning("acl_composer.compile.rejected", error_name=e.name, message=e.message)
        return BatchResult(error_kind=e.kind, error_name=e.name, message=e.message)
    except (ValidationError, json.JSONDecodeError, OSError) as e:
        log.warning("acl_composer.compile.rejected", error_name="ErrorInvalidInput")
        return BatchResult(
            error_kind=ErrorKind.INVALID_ARGUMENT,
            error_name="ErrorInvalidInput",
            message=str(e),
        )

    log.info(
        "acl_composer.compile.starting",
        organization=organization.address,
        commands=len(commands),
        rpc_url=rpc_url,
    )
    reader = JsonRpcChainReader(rpc_url, timeout=settings.rpc_timeout_seconds)
    try:
        result = await Composer(organization, reader).compile(commands)
    finally:
        await reader.close()

    log.info(
        "acl_composer.compile.finished",
        success=result.is_success,
        actions=len(result.actions),
        error_kind=result.error_kind.value if result.error_kind else None,
    )
    return result


def print_result(result: BatchResult, as_json: bool = False) -> None:
    if not result.is_success:
        console.print(
            f"[bold red]✗ {result.error_kind.value}[/bold red] "
            f"[yellow]{result.error_name}[/yellow]: {result.message}"
        )
        return

    if as_json:
        console.print_json(json.dumps([action.to_dict() for action in result.actions]))
        return

    table = Table(title=f"Action batch ({len(result.actions)})", show_lines=True)
    table.add_column("#", style="cyan", width=4)
    table.add_column("To", style="green")
    table.add_column("Selector", style="yellow", width=12)
    table.add_column("Calldata (bytes)", justify="right")
    table.add_column("Value", justify="right")
    for index, action in enumerate(result.actions):
        table.add_row(
            str(index),
            action.to,
            encode_hex(action.selector),
            str(len(action.data)),
            str(action.value) if action.value else "—",
        )
    console.print(table)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Compile ACL governance commands into an atomic action batch"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    compile_parser = subparsers.add_parser("compile", help="Compile a command file")
    compile_parser.add_argument("--org", required=True, help="Organization snapshot JSON")
    compile_parser.add_argument("--commands", required=True, help="Command list JSON")
    compile_parser.add_argument(
        "--rpc-url",
        default=None,
        help="JSON-RPC endpoint for forwarder probes (defaults to .env settings)",
    )
    compile_parser.add_argument(
        "--json", action="store_true", help="Print the batch as JSON"
    )
    args = parser.parse_args()

    configure_logging()
    result = asyncio.run(
        run_compile(args.org, args.commands, args.rpc_url or settings.rpc_url)
    )
    print_result(result, as_json=args.json)
    sys.exit(0 if result.is_success else 1)


if __name__ == "__main__":
    main()
