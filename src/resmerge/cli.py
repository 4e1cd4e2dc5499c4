#!/usr/bin/env python3
"""Command line interface: merge resolution levels of clusterings or extract their node base."""

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import Any

from resmerge.__version__ import __version__ as VERSION
from resmerge.config_validator import read_yaml
from resmerge.exceptions import InputUnavailableError, ResmergeError
from resmerge.logging_config import add_logging_args, configure_logging
from resmerge.merge import extract_base, merge_collections, resolve_merge_settings
from resmerge.utils.io import CollectionFile, create_output, open_inputs, write_json

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "clsmerged.cnl"
DEFAULT_BASE_OUTPUT = "clsbase.cnl"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="resmerge",
        description=(
            "Merge resolution levels of clusterings (collections in the CNL format) "
            "into one collection of unique clusters, or extract their node base."
        ),
    )
    parser.add_argument(
        "inputs",
        nargs="+",
        help="Input collections: files or directories of files (one level).",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help=(
            f"Output collection (default: {DEFAULT_OUTPUT}, {DEFAULT_BASE_OUTPUT} on "
            "--extract-base, or <dir>.cnl / <dir>_base.cnl for a single input directory)."
        ),
    )
    parser.add_argument(
        "-r", "--rewrite", action="store_true", help="Rewrite the output if it exists."
    )
    parser.add_argument(
        "-b", "--btm-size", type=int, default=None, help="Min allowed cluster size (default: 0)."
    )
    parser.add_argument(
        "-t",
        "--top-size",
        type=int,
        default=None,
        help="Max allowed cluster size, 0 means any size (default: 0).",
    )
    parser.add_argument(
        "-m",
        "--membership",
        type=float,
        default=None,
        help="Average expected membership of the nodes, > 0, typically ~= 1 (default: 1).",
    )
    parser.add_argument(
        "-s",
        "--sync-base",
        default=None,
        help="Node base to synchronize with: members absent from it are dropped.",
    )
    parser.add_argument(
        "-e",
        "--extract-base",
        action="store_true",
        help="Extract the node base of the inputs as a single cluster instead of merging.",
    )
    parser.add_argument(
        "--strict-dedup",
        action="store_true",
        default=None,
        help="Compare members of clusters having matching fingerprints.",
    )
    parser.add_argument("--config", default=None, help="YAML config with the merge defaults.")
    parser.add_argument("--summary", default=None, help="Write a JSON run summary to this path.")
    add_logging_args(parser)
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser.parse_args(argv)


def resolve_output_name(inputs: list[str], output: str | None, *, extract: bool) -> str:
    if output:
        return output
    if len(inputs) == 1:
        name = inputs[0].rstrip("/\\")
        # Note: "../." like names are not resolved
        if name not in ("", ".", "..") and Path(name).is_dir():
            return name + ("_base.cnl" if extract else ".cnl")
    return DEFAULT_BASE_OUTPUT if extract else DEFAULT_OUTPUT


def _open_base(name: str) -> CollectionFile:
    try:
        return CollectionFile(name)
    except OSError as e:
        raise InputUnavailableError(
            f"The node base {name} can't be opened: {e}", context={"sync_base": name}
        ) from e


def run(args: argparse.Namespace) -> int:
    cfg: dict[str, Any] = read_yaml(Path(args.config)) if args.config else {}
    log_cfg = cfg.get("logging", {}) or {}
    configure_logging(
        level=args.log_level or log_cfg.get("level"),
        fmt=args.log_format or log_cfg.get("format", "text"),
    )
    settings = resolve_merge_settings(
        cfg,
        btm_size=args.btm_size,
        top_size=args.top_size,
        membership=args.membership,
        strict_dedup=args.strict_dedup,
    )
    outpname = resolve_output_name(args.inputs, args.output, extract=args.extract_base)

    with ExitStack() as stack:
        files = open_inputs(args.inputs)
        for file in files:
            stack.enter_context(file)
        base = None
        if args.sync_base:
            if args.extract_base:
                logger.warning("The node base %s is ignored on extraction", args.sync_base)
            else:
                base = stack.enter_context(_open_base(args.sync_base))
        output = stack.enter_context(create_output(outpname, rewrite=args.rewrite))
        logger.debug("Output file created: %s", output.name)

        if args.extract_base:
            result = extract_base(
                output,
                files,
                min_size=settings.btm_size,
                max_size=settings.top_size,
                membership=settings.membership,
            )
        else:
            result = merge_collections(
                output,
                files,
                base,
                min_size=settings.btm_size,
                max_size=settings.top_size,
                membership=settings.membership,
                strict=settings.strict_dedup,
            )

    if args.summary:
        payload = {
            "version": VERSION,
            "mode": "extract_base" if args.extract_base else "merge",
            "settings": {
                "btm_size": settings.btm_size,
                "top_size": settings.top_size,
                "membership": settings.membership,
                "strict_dedup": settings.strict_dedup,
            },
        }
        payload.update(result.to_dict())
        write_json(Path(args.summary), payload)

    if not result.is_ok:
        print(f"ERROR: {result.message}", file=sys.stderr)
        return 1
    if args.extract_base:
        print(f"The node base of {len(files)} CNL files extracted into {outpname}")
    else:
        print(f"{len(files)} CNL files merged into {outpname}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        return run(args)
    except ResmergeError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
