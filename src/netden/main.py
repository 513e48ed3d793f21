"""
main.py — NetDen Entry Point

Usage:
    netden serve                               # HTTP/SSE gateway on server.host:port
    netden serve --port 9000
    netden ask "what is due tomorrow?"         # one turn, in-process
    netden ask "add a note" --url http://127.0.0.1:8787   # one turn via a gateway
    netden tools                               # tool catalog
    netden --log-level DEBUG --config path/to/config.yaml ask "..."
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import uuid
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _find_env_file() -> Path | None:
    """Walk up from CWD looking for .env file."""
    cwd = Path.cwd()
    for d in [cwd, *cwd.parents]:
        candidate = d / ".env"
        if candidate.is_file():
            return candidate
    return None


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="netden",
        description="NetDen: conversational agent for the NetDen workspace",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: $NETDEN_CONFIG or config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override log level from config",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP/SSE gateway")
    serve.add_argument("--host", default=None, help="Bind host (default: server.host)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: server.port)")

    ask = sub.add_parser("ask", help="Run one agent turn and print the reply")
    ask.add_argument("message", help="Message to send")
    ask.add_argument("--url", default=None,
                     help="Gateway base URL; omit to run the agent in-process")
    ask.add_argument("--session", default=None, help="Session id (default: random)")
    ask.add_argument("--user", default=None, help="User id (default: agent.default_user_id)")
    decision = ask.add_mutually_exclusive_group()
    decision.add_argument("--yes", action="store_true",
                          help="Approve a proposed action without asking")
    decision.add_argument("--no", action="store_true",
                          help="Reject a proposed action without asking")

    sub.add_parser("tools", help="List the tool catalog")
    return parser.parse_args(argv)


def bootstrap(args: argparse.Namespace):
    """
    Load config, validate it fully, and set up logging.
    Returns (settings, log) ready for use.

    Exits with code 1 (after printing a clear message) if config.yaml has
    invalid values or validate_all() finds cross-field problems.
    """
    from pydantic import ValidationError

    from netden.config.settings import ConfigError, load_settings
    from netden.observability.logger import get_logger, setup_logging

    try:
        settings = load_settings(args.config)
    except ValidationError as exc:
        problems = "\n".join(
            f"  • {'.'.join(str(p) for p in e['loc']) or '?'}: {e['msg']}"
            for e in exc.errors()
        )
        print(
            f"\nConfig validation failed:\n\n{problems}\n\n"
            f"    Fix config/config.yaml or your .env file and restart.\n",
            file=sys.stderr,
        )
        sys.exit(1)
    except OSError as exc:
        print(f"\nFailed to load config: {type(exc).__name__}: {exc}\n", file=sys.stderr)
        sys.exit(1)

    try:
        settings.validate_all()
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    setup_logging(
        level=args.log_level or settings.log_level,
        log_dir=settings.log_dir,
        json_format=settings.logging.json_format,
        console_output=settings.logging.console_output and args.command == "serve",
        max_bytes=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )
    return settings, get_logger("netden.main")


# ─────────────────────────────────────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────────────────────────────────────


def _run_serve(args, settings, log) -> int:
    import uvicorn

    from netden.gateway.server import create_app

    host = args.host or settings.server.host
    port = args.port or settings.server.port
    log.info("main.serve", host=host, port=port, model=settings.effective_model)
    uvicorn.run(create_app(settings), host=host, port=port, log_level="warning")
    return 0


def _run_tools(console) -> int:
    from rich.table import Table

    from netden.tools.builtin import build_default_registry

    table = Table(title="NetDen tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Module")
    table.add_column("Mutating")
    table.add_column("Description", style="dim")
    for d in build_default_registry().catalog():
        table.add_row(d.name, d.module.value, "yes" if d.mutating else "", d.description)
    console.print(table)
    return 0


def _decide(args, console, summary: str) -> bool:
    from rich.prompt import Confirm

    if args.yes:
        return True
    if args.no:
        return False
    return Confirm.ask(f"[bold yellow]Run this action?[/] [dim]{summary}[/]",
                       default=False, console=console)


async def _ask_remote(args, console) -> int:
    from netden.gateway.client import AgentStreamClient

    session_id = args.session or str(uuid.uuid4())
    write = lambda text: console.print(text, end="", markup=False, highlight=False)  # noqa: E731
    on_nav = lambda path: console.print(f"\n[cyan]→ navigate {path}[/]")  # noqa: E731

    async with AgentStreamClient(args.url, user_id=args.user) as client:
        reply = await client.stream_turn(
            {"sessionId": session_id, "message": args.message},
            on_token=write, on_navigate=on_nav,
        )
        console.print()
        action = reply.pending_action
        if action:
            approved = _decide(args, console, action.get("summary", ""))
            reply = await client.decide(session_id, action["id"], approved,
                                        on_token=write, on_navigate=on_nav)
            console.print()
    return 1 if reply.errors else 0


async def _ask_local(args, settings, console) -> int:
    from datetime import datetime, timezone

    from rich.markdown import Markdown
    from rich.panel import Panel

    from netden.agent.coordinator import TurnCoordinator
    from netden.agent.types import ActionDecision, TurnInput, UserContext

    coordinator = TurnCoordinator.from_settings(settings)
    await coordinator.pending_store.init()
    user = UserContext(
        user_id=args.user or settings.agent.default_user_id,
        user_name=settings.agent.default_user_name,
        now_iso=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    )
    session_id = args.session or str(uuid.uuid4())

    try:
        result = await coordinator.run_turn(
            TurnInput(session_id=session_id, message=args.message), user,
        )
        console.print(Panel(Markdown(result.text), border_style="cyan", padding=(0, 2)))
        if result.navigate_to:
            console.print(f"[cyan]→ navigate {result.navigate_to}[/]")
        if result.pending_action:
            approved = _decide(args, console, result.pending_action.summary)
            result = await coordinator.run_turn(
                TurnInput(
                    session_id=session_id,
                    action_decision=ActionDecision(
                        action_id=result.pending_action.id, approved=approved,
                    ),
                ),
                user,
            )
            console.print(Panel(result.text, border_style="green" if approved else "dim",
                                padding=(0, 2)))
    finally:
        await coordinator.pending_store.close()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    env_path = _find_env_file()
    if env_path:
        load_dotenv(dotenv_path=env_path)

    args = parse_args(argv)
    settings, log = bootstrap(args)

    from rich.console import Console
    console = Console()

    if args.command == "serve":
        return _run_serve(args, settings, log)
    if args.command == "tools":
        return _run_tools(console)
    if args.url:
        return asyncio.run(_ask_remote(args, console))
    return asyncio.run(_ask_local(args, settings, console))


def main_sync() -> None:
    """Synchronous entry point for console_scripts (pyproject.toml)."""
    sys.exit(main())


if __name__ == "__main__":
    main_sync()
