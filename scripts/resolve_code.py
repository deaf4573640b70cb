#!/usr/bin/env python3
"""Resolve a cross-reference code against a live OData service.

Prints progress while pages are scanned, then the resolved tree.

Usage
-----
Set environment variables and run::

    export CROSSCODE_BASE_URL="https://example.com/api"
    export CROSSCODE_API_TOKEN="..."
    python scripts/resolve_code.py A2

Options::

    --group              Treat CODE as a main code and fetch its group
                         with a server-side filter instead of scanning
    --page-size N        Preferred page size sent to the server
    --json               Output the tree as machine-readable JSON
    -v, --verbose        Enable DEBUG logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pycrosscode import (  # noqa: E402
    Cancelled,
    CrossCodeClient,
    CrossCodeConfig,
    CrossCodeError,
    Err,
    NodeKind,
    TreeNode,
)


def _format_node(node: TreeNode, indent: int = 0) -> list[str]:
    prefix = "  " * indent
    if node.kind == NodeKind.BRAND:
        line = f"{prefix}[{node.label}]"
    elif node.verity is not None:
        line = f"{prefix}{node.label} (verity {node.verity:g})"
    else:
        line = f"{prefix}{node.label}"
    lines = [line]
    for child in node.children:
        lines.extend(_format_node(child, indent + 1))
    return lines


def _print_progress(loaded: int, main_code: str | None) -> None:
    found = f", group {main_code}" if main_code else ""
    print(f"\r  scanned {loaded} records{found}", end="", file=sys.stderr, flush=True)


async def _run(args: argparse.Namespace) -> int:
    overrides = {}
    if args.page_size is not None:
        overrides["page_size"] = args.page_size
    config = CrossCodeConfig.from_env(**overrides)

    async with CrossCodeClient(config) as client:
        if args.group:
            tree: list[TreeNode] | None = await client.fetch_group_tree(args.code)
        else:
            outcome = await client.resolve(args.code, on_progress=_print_progress)
            print(file=sys.stderr)
            if isinstance(outcome, Cancelled):
                print("Resolution was superseded", file=sys.stderr)
                return 1
            if isinstance(outcome, Err):
                print(f"Error: {outcome.error}", file=sys.stderr)
                return 1
            tree = outcome.value

    if not tree:
        print(f"{args.code}: not found", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps([node.model_dump(mode="json") for node in tree], indent=2, ensure_ascii=False))
    else:
        for node in tree:
            print("\n".join(_format_node(node)))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Resolve a cross-reference code")
    parser.add_argument("code", help="Cross code to resolve")
    parser.add_argument("--group", action="store_true", help="Fetch CODE's group with a server-side filter")
    parser.add_argument("--page-size", type=int, default=None, help="Preferred server page size")
    parser.add_argument("--json", action="store_true", help="Output JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return asyncio.run(_run(args))
    except CrossCodeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
