"""Command-line interface.

Usage:
    skdump structure FILE
    skdump syntax FILE
    skdump syntax --text SOURCE
    skdump docs -- COMPILER_ARGS...
    skdump doc-offsets FILE
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TypeAlias

from skdump import __version__
from skdump.config import SkdumpConfig, load_config
from skdump.errors import SkdumpError
from skdump.serialize import documents_to_json, to_json, tokens_to_json
from skdump.service import SourceKitd, SourceKitService, find_sourcekitd
from skdump.session import Session

logger = logging.getLogger(__name__)

ServiceFactory: TypeAlias = Callable[[SkdumpConfig], SourceKitService]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skdump",
        description="Dump SourceKit structure, syntax and docs as JSON",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--sourcekitd", type=Path, help="Path to the sourcekitd library")
    parser.add_argument("--indent", type=int, help="JSON indentation (default: 2)")
    parser.add_argument("--config-dir", type=Path, help="Directory holding skdump.toml")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="More logging (repeatable)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    structure_p = subparsers.add_parser("structure", help="Structure of a Swift file")
    structure_p.add_argument("file", type=Path)

    syntax_p = subparsers.add_parser("syntax", help="Syntax highlighting tokens")
    source = syntax_p.add_mutually_exclusive_group(required=True)
    source.add_argument("file", type=Path, nargs="?")
    source.add_argument("--text", help="Swift source to highlight instead of a file")

    docs_p = subparsers.add_parser(
        "docs", help="Documentation for the Swift files in a compiler invocation"
    )
    docs_p.add_argument("compiler_args", nargs="*", help="Compiler arguments, after --")

    offsets_p = subparsers.add_parser(
        "doc-offsets", help="Offsets of the identifiers that doc comments belong to"
    )
    offsets_p.add_argument("file", type=Path)

    return parser


def configure_logging(verbose: int, level: str) -> None:
    if verbose >= 2:
        level = "DEBUG"
    elif verbose == 1:
        level = "INFO"
    logging.basicConfig(
        level=logging.getLevelNamesMapping()[level],
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def default_service(config: SkdumpConfig) -> SourceKitService:
    return SourceKitd(find_sourcekitd(config.sourcekitd_path))


def run(args: argparse.Namespace, session: Session, indent: int) -> str:
    """Run one command and return its JSON output."""
    if args.command == "structure":
        return to_json(session.structure(args.file), indent=indent)

    if args.command == "syntax":
        tokens = session.syntax(source_file=args.file, source_text=args.text)
        return tokens_to_json(tokens, indent=indent)

    if args.command == "docs":
        return documents_to_json(session.docs(args.compiler_args), indent=indent)

    if args.command == "doc-offsets":
        return json.dumps(session.documented_token_offsets(args.file), indent=indent)

    raise ValueError(f"Unknown command: {args.command}")


def main(
    argv: Sequence[str] | None = None,
    service_factory: ServiceFactory = default_service,
) -> int:
    """Entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config_dir).merged(
            sourcekitd_path=args.sourcekitd,
            indent=args.indent,
        )
        configure_logging(args.verbose, config.log_level)

        service = service_factory(config)
        try:
            output = run(args, Session(service), config.indent)
        finally:
            close = getattr(service, "close", None)
            if close is not None:
                close()
    except SkdumpError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"skdump: {e}", file=sys.stderr)
        return 1

    print(output)
    return 0
