import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any
from typing import Dict
from typing import Optional
from typing import Sequence

from pydantic import ValidationError

from cluster_sizing.capacity_planner import planner
from cluster_sizing.hardware import disks
from cluster_sizing.hardware import load_disks_from_disk
from cluster_sizing.interface import SizingRequest


def parse_node_range(value: str) -> Sequence[int]:
    """Parses '3-8' or '3' into the node counts to chart"""
    low, sep, high = value.partition("-")
    try:
        start = int(low)
        end = int(high) if sep else start
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"Node range must look like 3-8, got {value!r}"
        ) from exc
    if start <= 0 or end < start:
        raise argparse.ArgumentTypeError(
            f"Node range must be positive and ascending, got {value!r}"
        )
    return list(range(start, end + 1))


def load_request(path: Path) -> SizingRequest:
    if str(path) == "-":
        return SizingRequest(**json.load(sys.stdin))
    with open(path, encoding="utf-8") as fd:
        return SizingRequest(**json.load(fd))


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.disk_catalog:
            disks.load(load_disks_from_disk(args.disk_catalog))

        request = load_request(args.request)
        if args.model is not None:
            request = request.model_copy(update={"model": args.model})

        config = planner.resolve_config(request)
        result = planner.plan(request.model, request.workloads, config)
        output: Dict[str, Any] = {
            "model": request.model,
            "result": result.model_dump(mode="json", exclude_unset=False),
        }
        if args.curve is not None:
            curve = planner.utilization_curve(
                request.model, request.workloads, args.curve, config
            )
            output["curve"] = [c.model_dump(mode="json") for c in curve]
    except (OSError, json.JSONDecodeError, ValidationError, KeyError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2))
    for warning in result.warnings:
        print(f"WARNING: {warning}", file=sys.stderr)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="size-cluster",
        description=(
            "Size a hyper-converged cluster for a set of workloads described "
            "in a JSON sizing request"
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "request",
        type=Path,
        help="Path to the JSON sizing request, or - to read it from stdin",
    )
    parser.add_argument(
        "--model",
        default=None,
        choices=planner.models,
        help="Override the sizing model named in the request",
    )
    parser.add_argument(
        "--curve",
        type=parse_node_range,
        default=None,
        help="Also report utilization for each node count in a range like 3-8",
    )
    parser.add_argument(
        "--disk-catalog",
        type=Path,
        action="append",
        help=(
            "Disk catalog JSON file(s) to use instead of the packaged one, "
            "may be repeated"
        ),
    )
    parser.add_argument("--debug", action="store_true", help="Show verbose output")
    return parser


if __name__ == "__main__":
    sys.exit(main())
