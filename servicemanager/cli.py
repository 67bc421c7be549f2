"""
Service Manager CLI — Server launch and remote diagnostics.

Commands:
- servicemanager run       — Start the Reflex dev server
- servicemanager fetch     — Fetch a folder through the configured remote, print JSON
- servicemanager validate  — Validate servicemanager.yaml
- servicemanager events    — Print recent session or remote log entries
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import Optional

from servicemanager.engine.logging import CATEGORIES

logger = logging.getLogger("servicemanager.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="servicemanager",
        description="Service Manager — single-folder service catalogue",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # servicemanager run
    run_parser = subparsers.add_parser("run", help="Start the Reflex dev server")
    run_parser.add_argument("--host", default="0.0.0.0", help="Backend host to bind (default: 0.0.0.0)")
    run_parser.add_argument("--port", type=int, default=3000, help="Frontend port (default: 3000)")
    run_parser.add_argument("--backend-port", type=int, default=8000, help="Backend port (default: 8000)")
    run_parser.add_argument("--env", choices=["dev", "prod"], default="dev", help="Environment (default: dev)")

    # servicemanager fetch
    fetch_parser = subparsers.add_parser("fetch", help="Fetch a folder and print it as JSON")
    fetch_parser.add_argument("folder_id", help="Folder ID to fetch")
    fetch_parser.add_argument("--config", default=None, help="Path to servicemanager.yaml")

    # servicemanager validate
    validate_parser = subparsers.add_parser("validate", help="Validate servicemanager.yaml")
    validate_parser.add_argument("--config", default=None, help="Path to servicemanager.yaml")

    # servicemanager events
    events_parser = subparsers.add_parser("events", help="Print recent structured log entries")
    events_parser.add_argument("category", choices=list(CATEGORIES), help="Log category")
    events_parser.add_argument("--days", type=int, default=7, help="Daily files to scan (default: 7)")
    events_parser.add_argument("--limit", type=int, default=50, help="Max entries (default: 50)")
    events_parser.add_argument("--operation", default=None, help="Only entries for this operation")
    events_parser.add_argument("--config", default=None, help="Path to servicemanager.yaml")

    args = parser.parse_args(argv)

    if args.command == "run":
        return cmd_run(args)
    elif args.command == "fetch":
        return cmd_fetch(args)
    elif args.command == "validate":
        return cmd_validate(args)
    elif args.command == "events":
        return cmd_events(args)
    else:
        parser.print_help()
        return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Start the Reflex dev server."""
    import subprocess

    print("Starting Service Manager (Reflex) server...")
    try:
        cmd = [
            "reflex", "run",
            "--backend-host", args.host,
            "--frontend-port", str(args.port),
            "--backend-port", str(args.backend_port),
            "--env", args.env,
        ]
        result = subprocess.run(cmd, check=True)
        return result.returncode
    except FileNotFoundError:
        print("[ERROR] 'reflex' command not found. Install: pip install reflex")
        return 1
    except subprocess.CalledProcessError as e:
        print(f"[ERROR] reflex exited with status {e.returncode}")
        return e.returncode
    except KeyboardInterrupt:
        print("\nServer stopped.")
        return 0


def cmd_fetch(args: argparse.Namespace) -> int:
    """Drive a session controller through fetch_folder and print the folder."""
    from servicemanager.controller import FolderSessionController
    from servicemanager.engine.config import load_config
    from servicemanager.engine.errors import ConfigError
    from servicemanager.remote import build_remote

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"[ERROR] {e.message}")
        return 1

    remote = build_remote(config.remote)
    controller = FolderSessionController(remote)

    async def _fetch():
        try:
            return await controller.fetch_folder(args.folder_id)
        finally:
            aclose = getattr(remote, "aclose", None)
            if aclose is not None:
                await aclose()

    folder = asyncio.run(_fetch())
    if folder is None:
        print(f"[ERROR] {controller.message}")
        return 1

    print(json.dumps(folder.model_dump(), indent=2))
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Load servicemanager.yaml and print the effective configuration."""
    from servicemanager.engine.config import load_config
    from servicemanager.engine.errors import ConfigError

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"[ERROR] {e.message}")
        return 1

    print(json.dumps(config.model_dump(), indent=2))
    print("\n[OK] Configuration valid")
    return 0


def cmd_events(args: argparse.Namespace) -> int:
    """Read entries back from the JSONL event log, newest first."""
    from servicemanager.engine.config import load_config
    from servicemanager.engine.errors import ConfigError
    from servicemanager.engine.logging import FileLogger

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"[ERROR] {e.message}")
        return 1

    filters = {"operation": args.operation} if args.operation else None
    entries = FileLogger(log_dir=config.logging.directory).query(
        args.category, days=args.days, filters=filters, limit=args.limit,
    )
    if not entries:
        print(f"No {args.category} entries in the last {args.days} day(s)")
        return 0

    for entry in entries:
        print(json.dumps(entry, default=str))
    return 0
