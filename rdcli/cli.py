#!/usr/bin/env python3
"""
rdcli - command-line client for Raindrop.io

Each command fetches data through RaindropClient and hands it to the output
layer together with a column configuration.
"""
import sys
import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from rdcli.client import (
    RaindropClient,
    fetch_all_pages,
    FAVORITES_SEARCH,
    TRASH_COLLECTION,
    ALL_COLLECTION,
    UNSORTED_COLLECTION,
)
from rdcli.config import RdcliConfig, OUTPUT_FORMATS, save_config, validate_timeout
from rdcli.errors import RdcliError, UsageError, handle_error
from rdcli.output import ColumnConfig, OutputOptions, output, output_tree
from rdcli.streams import configure_logging, output_message, verbose_time
from rdcli.tree import build_tree

logger = logging.getLogger(__name__)

# =================
# COLUMN CONFIGURATION
# =================

RAINDROP_COLUMNS = [
    ColumnConfig("title", "Title", width=40, prominent=True),
    ColumnConfig("link", "URL", width=50, prominent=True, style="cyan"),
    ColumnConfig("excerpt", "Excerpt"),
    ColumnConfig("note", "Note"),
    ColumnConfig("tags", "Tags", width=20),
    ColumnConfig("domain", "Domain", width=20, style="dim"),
    ColumnConfig("created", "Created", width=12),
    ColumnConfig("_id", "ID", width=12),
]

COLLECTION_FLAT_COLUMNS = [
    ColumnConfig("title", "Title", width=40, prominent=True),
    ColumnConfig("_id", "ID", width=10),
    ColumnConfig("count", "Items", width=8),
    ColumnConfig("parent.$id", "Parent", width=10),
]

COLLECTION_DETAIL_COLUMNS = [
    ColumnConfig("title", "Title", width=40, prominent=True),
    ColumnConfig("_id", "ID", width=12),
    ColumnConfig("description", "Description"),
    ColumnConfig("count", "Items", width=8),
    ColumnConfig("public", "Public", width=8),
    ColumnConfig("created", "Created", width=12),
    ColumnConfig("lastUpdate", "Updated", width=12),
]

TAG_COLUMNS = [
    ColumnConfig("_id", "Tag", prominent=True),
    ColumnConfig("count", "Count", width=10),
]

HIGHLIGHT_COLUMNS = [
    ColumnConfig("_id", "ID", width=24),
    ColumnConfig("title", "Bookmark", width=30),
    ColumnConfig("text", "Highlight", width=50, prominent=True),
    ColumnConfig("color", "Color", width=8),
    ColumnConfig("note", "Note", width=25),
    ColumnConfig("created", "Created", width=12),
]

CONFIG_COLUMNS = [
    ColumnConfig("key", "Setting", style="bold"),
    ColumnConfig("value", "Value"),
]

SPECIAL_COLLECTIONS = {
    "all": ALL_COLLECTION,
    "unsorted": UNSORTED_COLLECTION,
    "trash": TRASH_COLLECTION,
}


def parse_collection_id(value: Optional[str]) -> int:
    """Parse a collection argument: a number or one of all, unsorted, trash."""
    if value is None:
        return ALL_COLLECTION
    if value.lower() in SPECIAL_COLLECTIONS:
        return SPECIAL_COLLECTIONS[value.lower()]
    try:
        return int(value)
    except ValueError:
        raise UsageError(
            f'Invalid collection ID: "{value}". Use a number or one of: all, unsorted, trash'
        ) from None


def short_date(value: Optional[str]) -> str:
    return value.split("T")[0] if value else ""


def format_raindrop(item: dict) -> dict:
    """Trim a raindrop to the displayed fields."""
    return {
        "_id": item.get("_id"),
        "title": item.get("title", ""),
        "link": item.get("link", ""),
        "excerpt": item.get("excerpt", ""),
        "note": item.get("note", ""),
        "tags": item.get("tags", []),
        "domain": item.get("domain", ""),
        "created": short_date(item.get("created")),
        "collection": item.get("collection"),
    }


def _options(args, config: RdcliConfig) -> OutputOptions:
    return OutputOptions.from_config(config, quiet=args.quiet)


def _raindrop_list(args, config: RdcliConfig, collection_id: int, search: Optional[str]):
    client = RaindropClient(config)
    items = verbose_time(
        "Fetching bookmarks",
        lambda: fetch_all_pages(
            lambda page, per_page: client.raindrops(collection_id, search, page, per_page),
            max_items=args.limit,
        ),
    )
    output([format_raindrop(item) for item in items], RAINDROP_COLUMNS, _options(args, config))


# =================
# COMMANDS
# =================

def cmd_collections_list(args, config: RdcliConfig):
    """List collections as a tree (or flat with --flat)."""
    client = RaindropClient(config)
    roots = verbose_time("Fetching root collections", client.collections)
    children = verbose_time("Fetching child collections", client.child_collections)

    if args.flat:
        output(roots + children, COLLECTION_FLAT_COLUMNS, _options(args, config))
        return
    output_tree(build_tree(roots, children), _options(args, config))


def cmd_collections_get(args, config: RdcliConfig):
    client = RaindropClient(config)
    item = client.collection(parse_collection_id(args.id))
    item = dict(item, created=short_date(item.get("created")),
                lastUpdate=short_date(item.get("lastUpdate")))
    output(item, COLLECTION_DETAIL_COLUMNS, _options(args, config))


def cmd_raindrops_list(args, config: RdcliConfig):
    _raindrop_list(args, config, parse_collection_id(args.collection), args.search)


def cmd_raindrops_get(args, config: RdcliConfig):
    client = RaindropClient(config)
    output(format_raindrop(client.raindrop(args.id)), RAINDROP_COLUMNS, _options(args, config))


def cmd_favorites_list(args, config: RdcliConfig):
    search = f"{FAVORITES_SEARCH} {args.search}" if args.search else FAVORITES_SEARCH
    _raindrop_list(args, config, parse_collection_id(args.collection), search)


def cmd_trash_list(args, config: RdcliConfig):
    _raindrop_list(args, config, TRASH_COLLECTION, args.search)


def cmd_tags_list(args, config: RdcliConfig):
    client = RaindropClient(config)
    collection_id = parse_collection_id(args.collection) if args.collection else None
    output(client.tags(collection_id), TAG_COLUMNS, _options(args, config))


def cmd_highlights_list(args, config: RdcliConfig):
    client = RaindropClient(config)
    items = fetch_all_pages(lambda page, per_page: {"items": client.highlights(page, per_page)},
                            max_items=args.limit)
    rows = [dict(item, created=short_date(item.get("created"))) for item in items]
    output(rows, HIGHLIGHT_COLUMNS, _options(args, config))


def cmd_config_show(args, config: RdcliConfig):
    rows = [
        {"key": "token", "value": "(set)" if config.token else "(not set)"},
        {"key": "token_source", "value": config.token_source},
        {"key": "base_url", "value": config.base_url},
        {"key": "default_format", "value": config.default_format},
        {"key": "default_collection", "value": config.default_collection},
        {"key": "timeout", "value": config.timeout},
        {"key": "api_delay_ms", "value": config.api_delay_ms},
    ]
    output(rows, CONFIG_COLUMNS, _options(args, config))


def cmd_config_set_token(args, config: RdcliConfig):
    path = save_config({"token": args.token}, Path(args.config) if args.config else None)
    output_message(f"Token saved to {path}")


# =================
# PARSER
# =================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rdcli",
        description="rdcli - command-line client for Raindrop.io bookmarks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rdcli collections list
  rdcli raindrops list 12345 --search python --format tsv
  rdcli favorites list -q | xargs -n1 rdcli raindrops get
  rdcli tags list --format json | jq '.[]._id'

Configuration:
  Config file: ~/.config/rdcli/config.toml
  Environment: RAINDROP_TOKEN, RDCLI_TIMEOUT, RDCLI_FORMAT, RDCLI_API_DELAY_MS, NO_COLOR
        """
    )

    # Global options
    parser.add_argument("-f", "--format", choices=OUTPUT_FORMATS, help="Output format")
    parser.add_argument("-q", "--quiet", action="store_true", help="Output ids only")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show API calls and timing")
    parser.add_argument("--debug", action="store_true", help="Show debug details")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--timeout", help="Network timeout in seconds (1-300)")
    parser.add_argument("--config", help="Config file path")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Command groups")

    collections = subparsers.add_parser("collections", help="Collection operations")
    collections_sub = collections.add_subparsers(dest="collections_command", required=True)
    c_list = collections_sub.add_parser("list", help="List collections as a tree")
    c_list.add_argument("--flat", action="store_true", help="Flat list instead of a tree")
    c_list.set_defaults(func=cmd_collections_list)
    c_get = collections_sub.add_parser("get", help="Show one collection")
    c_get.add_argument("id", help="Collection id")
    c_get.set_defaults(func=cmd_collections_get)

    raindrops = subparsers.add_parser("raindrops", help="Bookmark operations")
    raindrops_sub = raindrops.add_subparsers(dest="raindrops_command", required=True)
    r_list = raindrops_sub.add_parser("list", help="List bookmarks")
    r_list.add_argument("collection", nargs="?", help="Collection id or all/unsorted/trash")
    r_list.add_argument("-s", "--search", help="Search query")
    r_list.add_argument("-l", "--limit", type=int, help="Maximum number of bookmarks")
    r_list.set_defaults(func=cmd_raindrops_list)
    r_get = raindrops_sub.add_parser("get", help="Show one bookmark")
    r_get.add_argument("id", type=int, help="Bookmark id")
    r_get.set_defaults(func=cmd_raindrops_get)

    favorites = subparsers.add_parser("favorites", help="Favorite bookmarks")
    favorites_sub = favorites.add_subparsers(dest="favorites_command", required=True)
    f_list = favorites_sub.add_parser("list", help="List favorites")
    f_list.add_argument("collection", nargs="?", help="Collection id or all/unsorted/trash")
    f_list.add_argument("-s", "--search", help="Additional search query")
    f_list.add_argument("-l", "--limit", type=int, help="Maximum number of bookmarks")
    f_list.set_defaults(func=cmd_favorites_list)

    trash = subparsers.add_parser("trash", help="Trashed bookmarks")
    trash_sub = trash.add_subparsers(dest="trash_command", required=True)
    t_list = trash_sub.add_parser("list", help="List trashed bookmarks")
    t_list.add_argument("-s", "--search", help="Search query")
    t_list.add_argument("-l", "--limit", type=int, help="Maximum number of bookmarks")
    t_list.set_defaults(func=cmd_trash_list)

    tags = subparsers.add_parser("tags", help="Tag operations")
    tags_sub = tags.add_subparsers(dest="tags_command", required=True)
    tg_list = tags_sub.add_parser("list", help="List tags")
    tg_list.add_argument("collection", nargs="?", help="Collection id (all tags by default)")
    tg_list.set_defaults(func=cmd_tags_list)

    highlights = subparsers.add_parser("highlights", help="Highlights")
    highlights_sub = highlights.add_subparsers(dest="highlights_command", required=True)
    h_list = highlights_sub.add_parser("list", help="List highlights")
    h_list.add_argument("-l", "--limit", type=int, help="Maximum number of highlights")
    h_list.set_defaults(func=cmd_highlights_list)

    config_parser = subparsers.add_parser("config", help="Configuration")
    config_sub = config_parser.add_subparsers(dest="config_command", required=True)
    cfg_show = config_sub.add_parser("show", help="Show resolved configuration")
    cfg_show.set_defaults(func=cmd_config_show)
    cfg_token = config_sub.add_parser("set-token", help="Store the API token")
    cfg_token.add_argument("token", help="Raindrop API token")
    cfg_token.set_defaults(func=cmd_config_set_token)

    return parser


def resolve_config(args) -> RdcliConfig:
    """Load configuration and apply command-line overrides."""
    if args.timeout is not None:
        problem = validate_timeout(args.timeout)
        if problem:
            raise UsageError(problem)

    config = RdcliConfig.load(Path(args.config) if args.config else None)
    return config.with_overrides(
        default_format=args.format,
        timeout=int(args.timeout) if args.timeout is not None else None,
        verbose=args.verbose or None,
        debug=args.debug or None,
        no_color=args.no_color or None,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, debug=args.debug)

    try:
        config = resolve_config(args)
        args.func(args, config)
    except KeyboardInterrupt:
        output_message("\nInterrupted")
        return 130
    except RdcliError as e:
        return handle_error(e, debug=args.debug, fmt=args.format)
    return 0


if __name__ == "__main__":
    sys.exit(main())
