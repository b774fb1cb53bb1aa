"""
overlaykit edit set-replicas command.

SUMMARY: Set replica counts (name=count) for workloads
"""

from __future__ import annotations

import argparse
from typing import Any, Dict

from overlaykit.cli.edit._common import parse_pairs, register_common, run_edit
from overlaykit.core.exceptions import KustomizationError

SUMMARY = "Set replica counts (name=count) for workloads"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("replicas", nargs="+", help="Replica counts as name=count")
    register_common(parser)


def main(args: argparse.Namespace) -> int:
    def _mutate(data: Dict[str, Any]) -> str:
        counts: Dict[str, int] = {}
        for name, raw in parse_pairs(args.replicas, separator="=").items():
            try:
                count = int(raw)
            except ValueError:
                raise KustomizationError(f"replica count for {name!r} must be an integer, got {raw!r}") from None
            if count < 0:
                raise KustomizationError(f"replica count for {name!r} must not be negative")
            counts[name] = count

        replicas = list(data.get("replicas") or [])
        for entry in replicas:
            if entry.get("name") in counts:
                entry["count"] = counts.pop(entry["name"])
        replicas.extend({"name": name, "count": count} for name, count in counts.items())
        data["replicas"] = replicas
        return f"Set {len(args.replicas)} replica count(s)"

    return run_edit(args, _mutate, error_code="set_replicas_error")
