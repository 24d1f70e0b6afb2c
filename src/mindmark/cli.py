"""Command line entry point: ``mindmark``.

Subcommands operate on single markdown files (or stdin with ``-``) and
use the same parser/serializer as the sync engine:

- ``parse``    -- print the node tree (outline or JSON)
- ``format``   -- print, check or rewrite the canonical serialization
- ``lines``    -- print the line -> node mapping, or resolve one line
- ``preview``  -- render HTML
- ``maps``     -- list maps in the storage root
- ``init``     -- write a starter config file
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from mindmark import __version__
from mindmark.config import Config, load_config
from mindmark.config_loader import (
    discover_config_files,
    ensure_config,
    load_hierarchical_config,
)
from mindmark.config_schema import UnifiedConfig, build_config, yaml_fallbacks
from mindmark.errors import MindmarkError
from mindmark.logger import setup_logging
from mindmark.markdown.models import Node, ParseResult
from mindmark.markdown.parser import parse
from mindmark.markdown.preview import render_html
from mindmark.markdown.serializer import serialize
from mindmark.storage import (
    MarkdownFolderStorage,
    read_text_with_encoding,
    write_text_atomic,
)
from mindmark.sync.mapper import build_line_mapping, get_node_id_by_line

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mindmark",
        description="mindmark - mind map <-> markdown tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show the node tree of a map
  mindmark parse ideas.md

  # Normalize list markers and numbering in place
  mindmark format --write ideas.md

  # Which node owns line 12?
  mindmark lines ideas.md 12

  # Render a preview
  mindmark preview ideas.md -o ideas.html

Settings come from CLI flags, MINDMARK_* environment variables (.env is
loaded), .mindmark/config.yml and ~/.config/mindmark/config.yml.
        """,
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log record format (default: text)",
    )
    parser.add_argument(
        "--collapse-depth",
        type=int,
        help="Collapse nodes deeper than this (overrides MINDMARK_COLLAPSE_DEPTH)",
    )
    parser.add_argument(
        "--storage-root",
        help="Map directory (overrides MINDMARK_STORAGE_ROOT)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"mindmark version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="Print the node tree of a file")
    p_parse.add_argument("file", help="Markdown file, or - for stdin")
    p_parse.add_argument(
        "--json", action="store_true", help="Emit the tree as JSON"
    )

    p_format = sub.add_parser(
        "format", help="Print the canonical serialization of a file"
    )
    p_format.add_argument("file", help="Markdown file, or - for stdin")
    mode = p_format.add_mutually_exclusive_group()
    mode.add_argument(
        "--write", action="store_true", help="Rewrite the file in place"
    )
    mode.add_argument(
        "--check",
        action="store_true",
        help="Exit 1 if the file is not in canonical form",
    )

    p_lines = sub.add_parser("lines", help="Print the line -> node mapping")
    p_lines.add_argument("file", help="Markdown file, or - for stdin")
    p_lines.add_argument(
        "line", nargs="?", type=int, help="Resolve this 1-based line only"
    )

    p_preview = sub.add_parser("preview", help="Render a file to HTML")
    p_preview.add_argument("file", help="Markdown file, or - for stdin")
    p_preview.add_argument("-o", "--output", help="Write HTML to this file")

    sub.add_parser("maps", help="List maps in the storage root")
    sub.add_parser("init", help="Create a starter config file")

    return parser


def load_runtime_config(args: argparse.Namespace) -> tuple[Config, UnifiedConfig]:
    """Resolve settings: CLI > env (.env loaded first) > YAML > defaults."""
    load_dotenv()

    unified = UnifiedConfig()
    fallbacks = None
    if discover_config_files():
        unified = build_config(load_hierarchical_config())
        fallbacks = yaml_fallbacks(unified)

    config = load_config(
        default_collapse_depth=args.collapse_depth,
        storage_root=args.storage_root,
        debug=args.debug,
        yaml_fallbacks=fallbacks,
    )
    return config, unified


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    content, encoding = read_text_with_encoding(Path(source))
    logger.debug("Read %s as %s", source, encoding)
    return content


def _outline(nodes: list[Node], depth: int = 0) -> list[str]:
    rows: list[str] = []
    for node in nodes:
        meta = node.markdown_meta
        kind = meta.type.value if meta is not None else "node"
        line = "-" if meta is None or meta.line_number is None else meta.line_number + 1
        marker = " +" if node.collapsed and node.children else ""
        rows.append(f"{line!s:>5}  {'  ' * depth}[{kind}] {node.text}{marker}")
        rows.extend(_outline(node.children, depth + 1))
    return rows


def cmd_parse(args: argparse.Namespace, config: Config) -> int:
    result = parse(
        _read_input(args.file),
        default_collapse_depth=config.default_collapse_depth,
    )
    if args.json:
        print(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        print("\n".join(_outline(result.root_nodes)))
    return 0


def cmd_format(args: argparse.Namespace, config: Config) -> int:
    text = _read_input(args.file)
    result: ParseResult = parse(text)
    formatted = serialize(result.root_nodes, line_ending=result.line_ending)

    if args.check:
        if formatted != text:
            print(f"{args.file}: not in canonical form", file=sys.stderr)
            return 1
        return 0

    if args.write:
        if args.file == "-":
            print("--write needs a file, not stdin", file=sys.stderr)
            return 2
        if formatted != text:
            write_text_atomic(Path(args.file), formatted)
            print(f"Reformatted {args.file}", file=sys.stderr)
        return 0

    sys.stdout.write(formatted)
    return 0


def cmd_lines(args: argparse.Namespace, config: Config) -> int:
    result = parse(_read_input(args.file))
    mapping = build_line_mapping(result.root_nodes)
    texts = {node.id: node.text for root in result.root_nodes for node in root.walk()}

    if args.line is not None:
        node_id = get_node_id_by_line(mapping, args.line)
        if node_id is None:
            print(f"No node at or before line {args.line}", file=sys.stderr)
            return 1
        print(f"{node_id}\t{texts[node_id]}")
        return 0

    for line, node_id in sorted(mapping.line_to_node.items()):
        print(f"{line}\t{node_id}\t{texts[node_id]}")
    return 0


def cmd_preview(args: argparse.Namespace, config: Config) -> int:
    html = render_html(_read_input(args.file))
    if args.output:
        write_text_atomic(Path(args.output), html)
        print(f"Wrote {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(html)
    return 0


def cmd_maps(args: argparse.Namespace, config: Config) -> int:
    storage = MarkdownFolderStorage(config.storage_root or ".")
    for map_id in storage.list_maps():
        print(map_id)
    return 0


def cmd_init(args: argparse.Namespace, config: Config) -> int:
    path = ensure_config()
    print(str(path))
    return 0


_COMMANDS = {
    "parse": cmd_parse,
    "format": cmd_format,
    "lines": cmd_lines,
    "preview": cmd_preview,
    "maps": cmd_maps,
    "init": cmd_init,
}


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        config, unified = load_runtime_config(args)
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(
        mode="cli",
        debug=config.debug,
        log_file=args.log_file or unified.logging.file,
        debug_format=args.log_format,
        level=unified.logging.level,
    )

    try:
        return _COMMANDS[args.command](args, config)
    except MindmarkError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
