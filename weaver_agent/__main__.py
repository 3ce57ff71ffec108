# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Main entrypoint, either as `python -m weaver_agent` or the `weaver-agent`
console script.
"""

import sys
import logging
import asyncio
import argparse

from pathlib import Path
from dotenv import load_dotenv

from .shell import Shell, bootstrap, format_tools
from .src.config import settings
from .src.rpc import ToolServer

logger = logging.getLogger(__name__)


def setup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weaver-agent",
        description="Orchestrate specialised coding agents over your repository",
    )
    parser.add_argument("--repo", type=str, default=None, help="Repository to work on (default: cwd)")
    parser.add_argument(
        "--providers",
        type=str,
        default=None,
        help="Tool provider config file (default: <repo>/mcp-servers.json)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument(
        "--no-providers", action="store_true", help="Do not connect external tool providers"
    )

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("chat", help="Interactive shell (default)")

    run_parser = subparsers.add_parser("run", help="Run a single request and exit")
    run_parser.add_argument("message", nargs="+", help="The request")
    run_parser.add_argument(
        "--agent", type=str, default=None, help="Send straight to this sub-agent"
    )

    subparsers.add_parser("serve", help="Serve the built-in tools over stdio JSON-RPC")
    subparsers.add_parser("tools", help="List the registered tools")

    return parser


def setup_logging(verbose: bool) -> None:
    # stdout is reserved for answers (and, when serving, for the protocol)
    logging.captureWarnings(True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(asctime)s - %(levelname)s - %(filename)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


async def run_command(message: str, agent: str | None, connect_providers: bool, providers: str | None):
    shell = await Shell.create(connect_providers, providers)
    try:
        if agent:
            outcome = await shell.orchestrator.direct(agent, message)
        else:
            outcome = await shell.orchestrator.run(message)
        print(outcome.result)
    finally:
        await shell.close()


async def chat(connect_providers: bool, providers: str | None):
    shell = await Shell.create(connect_providers, providers)
    try:
        await shell.repl()
    finally:
        await shell.close()


async def serve():
    registry, _ = await bootstrap(connect_providers=False)
    await ToolServer(registry).serve_stdio()


async def list_tools(connect_providers: bool, providers: str | None):
    registry, manager = await bootstrap(connect_providers, providers)
    try:
        print(format_tools(registry))
    finally:
        await manager.disconnect_all()


async def main(args: argparse.Namespace):
    if args.repo:
        repo = Path(args.repo).expanduser().resolve()
        if not repo.is_dir():
            raise ValueError(f"Repository directory ({repo}) does not exist")
        settings.REPO_PATH = str(repo)

    connect = not args.no_providers
    command = args.command or "chat"
    if command == "chat":
        await chat(connect, args.providers)
    elif command == "run":
        await run_command(" ".join(args.message), args.agent, connect, args.providers)
    elif command == "serve":
        await serve()
    elif command == "tools":
        await list_tools(connect, args.providers)


def run():
    load_dotenv()
    args = setup_parser().parse_args()
    setup_logging(args.verbose or settings.VERBOSE)
    try:
        asyncio.run(main(args))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.debug("Fatal error", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
