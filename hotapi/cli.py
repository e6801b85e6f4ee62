"""Command line interface for the interface registry."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from hotapi.kernel.config import load_config
from hotapi.kernel.errors import HotApiError
from hotapi.registry.interfaces import InterfaceRegistry


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def _load_registry(args: argparse.Namespace) -> InterfaceRegistry:
    overrides: dict[str, Any] = {"interfaces": {"autoload": True}}
    if args.root:
        overrides["interfaces"]["root"] = args.root
    if args.data_dir:
        overrides["storage"] = {"data_dir": args.data_dir}
    config = load_config(args.config, overrides=overrides)
    return InterfaceRegistry.from_config(config)


def cmd_scan(args: argparse.Namespace) -> int:
    registry = _load_registry(args)
    _print_json(registry.snapshot())
    return 0


def cmd_signatures(args: argparse.Namespace) -> int:
    registry = _load_registry(args)
    _print_json(registry.signatures)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hotapi")
    parser.add_argument("--config", default=None, help="Path to a JSON config file")
    parser.add_argument("--root", default=None, help="Interface root directory")
    parser.add_argument("--data-dir", default=None, help="Directory for logs")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Load the root and print interfaces and versions")
    scan.set_defaults(func=cmd_scan)

    signatures = sub.add_parser("signatures", help="Load the root and print method signatures")
    signatures.set_defaults(func=cmd_signatures)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except HotApiError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
