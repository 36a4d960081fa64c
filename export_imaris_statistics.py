"""
Entry-point script for exporting Surpass item statistics from a running Imaris.

The script connects to Imaris through ImarisXT, optionally runs a detection
workflow first, then writes one CSV with a row per object and a column per
selected statistic (and channel) for every requested item.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from imaris_stats import (
    ImarisStatsError,
    QueryConfig,
    export_statistics,
    get_imaris_application,
    load_query_config,
    load_workflow,
    run_workflow,
)
from imaris_stats.connection import find_items, iter_object_items


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export Imaris statistics to CSV.")
    parser.add_argument(
        "output",
        type=Path,
        help="CSV file to write.",
    )
    parser.add_argument(
        "--items",
        nargs="+",
        default=None,
        help="Names of the Surpass items to export. Defaults to every Surfaces and Spots item in the scene.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON file with ids/statistics/channels/timepoints selections.",
    )
    parser.add_argument(
        "--workflow",
        type=Path,
        default=None,
        help=(
            "JSON workflow of surface/spot detections to run before exporting. "
            "The statistics of the detected items are exported, so --items and --config cannot be given."
        ),
    )
    parser.add_argument(
        "--imaris-id",
        type=int,
        default=0,
        help="Object id of the Imaris instance to connect to (default: %(default)s).",
    )
    parser.add_argument(
        "--sep",
        default=",",
        help="Column separator for the output file (default: %(default)r).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print debug logging.",
    )
    args = parser.parse_args(argv)
    if args.workflow is not None and (args.items or args.config is not None):
        parser.error("--workflow exports the detected items; it cannot be combined with --items or --config")
    return args


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    output: Path = args.output.expanduser().resolve()

    try:
        application = get_imaris_application(args.imaris_id)

        if args.workflow is not None:
            print(f"[step] Running workflow {args.workflow}...")
            workflow = load_workflow(args.workflow)
            results = run_workflow(application, workflow, output_csv=output)
            print(f"[info] Wrote {len(results)} rows to {output}")
            return 0

        selection = load_query_config(args.config) if args.config is not None else QueryConfig()
        if args.items:
            items = find_items(application, args.items)
        else:
            items = list(iter_object_items(application))
        print(f"[info] Exporting {len(items)} item(s) to {output}")
        export_statistics(
            items,
            output,
            configure=selection.apply,
            application=application,
            sep=args.sep,
        )
    except (ImarisStatsError, KeyError, ValueError, FileNotFoundError) as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1

    print("[done] Statistics export complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
