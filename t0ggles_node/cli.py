"""
t0ggles node CLI — run node operations and manage credentials from a shell.

Commands:
- t0ggles-node describe      — Print the node description (resources, operations, fields)
- t0ggles-node run           — Execute one resource/operation with parameters from JSON files
- t0ggles-node credentials   — Store, show or delete the t0ggles API key
- t0ggles-node copy-assets   — Copy the node icon into the distribution tree
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger("t0ggles_node.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="t0ggles-node",
        description="t0ggles node — tasks and dependencies over the t0ggles API",
    )
    parser.add_argument("--config", help="Path to t0ggles.yaml (default: auto-discover)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # t0ggles-node describe
    describe_parser = subparsers.add_parser("describe", help="Print the node description as JSON")
    describe_parser.add_argument("--resource", help="Only show operations for this resource")

    # t0ggles-node run
    run_parser = subparsers.add_parser("run", help="Execute one operation")
    run_parser.add_argument("resource", help="Resource (task, dependency)")
    run_parser.add_argument("operation", help="Operation (create, update, getAll, delete)")
    run_parser.add_argument("--params", required=True, help="JSON file with node parameters")
    run_parser.add_argument("--items", help="JSON file with a list of per-item parameter objects")
    run_parser.add_argument(
        "--continue-on-fail", action="store_true",
        help="Return error records instead of failing the run",
    )

    # t0ggles-node credentials
    cred_parser = subparsers.add_parser("credentials", help="Manage the stored API key")
    cred_parser.add_argument("action", choices=["set", "show", "delete"])
    cred_parser.add_argument("--api-key", help="API key to store (prompted if not provided)")

    # t0ggles-node copy-assets
    assets_parser = subparsers.add_parser("copy-assets", help="Copy node assets into dist/")
    assets_parser.add_argument("--root", help="Project root (default: package parent directory)")
    assets_parser.add_argument("--dest", help="Destination directory (default: <root>/dist)")

    args = parser.parse_args(argv)

    if args.config and args.command in ("run", "credentials"):
        from t0ggles_node.engine.config import load_node_config
        from t0ggles_node.engine.errors import ConfigError

        try:
            load_node_config(args.config)
        except ConfigError as e:
            print(f"[ERROR] {e.message}", file=sys.stderr)
            return 1

    if args.command == "describe":
        return cmd_describe(args)
    elif args.command == "run":
        return cmd_run(args)
    elif args.command == "credentials":
        return cmd_credentials(args)
    elif args.command == "copy-assets":
        return cmd_copy_assets(args)
    else:
        parser.print_help()
        return 0


def cmd_describe(args: argparse.Namespace) -> int:
    """Print the node description."""
    from t0ggles_node.node.description import T0GGLES_NODE

    description = T0GGLES_NODE.to_dict()
    if args.resource:
        if args.resource not in T0GGLES_NODE.resources:
            print(f"[ERROR] Unknown resource: {args.resource}", file=sys.stderr)
            return 1
        description["resources"] = {args.resource: description["resources"][args.resource]}
    print(json.dumps(description, indent=2))
    return 0


# ---------------------------------------------------------------------------
# t0ggles-node run
# ---------------------------------------------------------------------------

def _read_json(path: str, label: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise ValueError(f"{label} file not found: {path}")
    except json.JSONDecodeError as e:
        raise ValueError(f"{label} file is not valid JSON: {e}")


def _make_dispatcher(credential_source: Any):
    """Build the dispatcher for a CLI run. Tests replace this to inject a transport."""
    from t0ggles_node.engine.dispatcher import RequestDispatcher

    return RequestDispatcher(credential_source)


async def _execute(params, continue_on_fail: bool) -> List[Dict[str, Any]]:
    from t0ggles_node.engine.credentials import get_credential_manager
    from t0ggles_node.engine.router import OperationRouter

    async with _make_dispatcher(get_credential_manager()) as dispatcher:
        router = OperationRouter(dispatcher)
        records = await router.execute(params, continue_on_fail=continue_on_fail)
    return [record.to_dict() for record in records]


def cmd_run(args: argparse.Namespace) -> int:
    """
    Execute one operation:
    1. Read node parameters (and optional per-item parameters) from JSON files
    2. Start the structured log queue from config
    3. Route and dispatch, print the output records as JSON
    """
    from t0ggles_node.engine.config import get_node_config
    from t0ggles_node.engine.errors import T0gglesError
    from t0ggles_node.engine.logging import init_logging, shutdown_logging
    from t0ggles_node.node.parameters import ItemParameters

    try:
        node_params = _read_json(args.params, "Parameters")
        items = _read_json(args.items, "Items") if args.items else []
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    if not isinstance(node_params, dict):
        print("[ERROR] Parameters file must contain a JSON object", file=sys.stderr)
        return 1
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        print("[ERROR] Items file must contain a JSON list of objects", file=sys.stderr)
        return 1

    node_params = {**node_params, "resource": args.resource, "operation": args.operation}
    params = ItemParameters(node_params, items)

    cfg = get_node_config()
    queue_cfg = cfg.logging.async_queue
    init_logging(
        log_dir=str(Path(cfg.logging.directory)),
        level=cfg.logging.level,
        flush_interval_ms=queue_cfg.flush_interval_ms,
        flush_batch_size=queue_cfg.flush_batch_size,
        max_queue_size=queue_cfg.max_queue_size,
    )
    try:
        output = asyncio.run(_execute(params, args.continue_on_fail))
    except T0gglesError as e:
        print(f"[ERROR] {e.message}", file=sys.stderr)
        logger.debug(f"Run failed: {e.to_json()}")
        return 1
    finally:
        shutdown_logging()

    print(json.dumps(output, indent=2))
    return 0


# ---------------------------------------------------------------------------
# t0ggles-node credentials
# ---------------------------------------------------------------------------

def _mask(api_key: str) -> str:
    if len(api_key) <= 8:
        return "*" * len(api_key)
    return f"{api_key[:4]}{'*' * (len(api_key) - 8)}{api_key[-4:]}"


def cmd_credentials(args: argparse.Namespace) -> int:
    """Store, show or delete the API key in the encrypted credential store."""
    from t0ggles_node.engine.credentials import CREDENTIAL_NAME, get_credential_manager
    from t0ggles_node.engine.errors import AuthenticationError

    manager = get_credential_manager()

    if args.action == "set":
        api_key = args.api_key or getpass.getpass("  t0ggles API key: ")
        if not api_key.strip():
            print("[ERROR] API key must not be empty", file=sys.stderr)
            return 1
        manager.set_credentials(CREDENTIAL_NAME, {"apiKey": api_key.strip()})
        print(f"[OK] Stored API key for '{CREDENTIAL_NAME}'")
        return 0

    if args.action == "show":
        try:
            credentials = manager.get_credentials(CREDENTIAL_NAME)
        except AuthenticationError as e:
            print(f"[ERROR] {e.message}", file=sys.stderr)
            return 1
        if not credentials or not credentials.get("apiKey"):
            print(f"[INFO] No API key configured for '{CREDENTIAL_NAME}'")
            return 1
        print(f"{CREDENTIAL_NAME}: {_mask(str(credentials['apiKey']))}")
        return 0

    if manager.delete_credentials(CREDENTIAL_NAME):
        print(f"[OK] Deleted API key for '{CREDENTIAL_NAME}'")
        return 0
    print(f"[INFO] No stored API key for '{CREDENTIAL_NAME}'")
    return 1


def cmd_copy_assets(args: argparse.Namespace) -> int:
    """Copy the node assets into the distribution tree."""
    from t0ggles_node.utilities.assets import copy_assets

    copied = copy_assets(root=args.root, dest=args.dest)
    for path in copied:
        print(f"[OK] {path}")
    if not copied:
        print("[INFO] No assets found to copy")
    return 0


if __name__ == "__main__":
    sys.exit(main())
