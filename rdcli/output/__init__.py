"""
Output layer for rdcli.

A command passes its response data and a list of ColumnConfig to output();
the dispatcher picks quiet mode or a renderer and writes the result to stdout
in a single write.

Example Usage:
    >>> columns = [ColumnConfig("title", "Title", prominent=True),
    ...            ColumnConfig("_id", "ID", width=10)]
    >>> output(items, columns, OutputOptions(format="tsv"))
"""
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence, TextIO

from rdcli.styles import current_style, default_format
from rdcli.streams import output_data
from rdcli.tree import TreeNode
from .json_fmt import format_json
from .plain import format_plain
from .table import format_table
from .tsv import format_tsv
from .tree import (
    flatten_tree_to_data,
    format_tree_tsv,
    render_tree_table,
    render_tree_terminal,
)


class OutputFormat(str, Enum):
    JSON = "json"
    TABLE = "table"
    TSV = "tsv"
    PLAIN = "plain"


@dataclass(frozen=True)
class ColumnConfig:
    """
    Declarative description of one displayed field.

    Attributes:
        key: Dotted path into the record
        header: Display label
        width: Total column width for tables (auto-sized when None)
        prominent: Show first and unlabeled in plain output
        style: One of bold, dim, cyan or none
    """
    key: str
    header: str
    width: Optional[int] = None
    prominent: bool = False
    style: Optional[str] = None


@dataclass(frozen=True)
class OutputOptions:
    """Resolved global output options."""
    format: Optional[str] = None
    quiet: bool = False
    verbose: bool = False
    debug: bool = False
    no_color: bool = False
    stream: Optional[TextIO] = None

    @classmethod
    def from_config(cls, config, stream: Optional[TextIO] = None,
                    **overrides: Any) -> "OutputOptions":
        """Build options from an RdcliConfig."""
        values = dict(format=config.default_format, verbose=config.verbose,
                      debug=config.debug, no_color=config.no_color, stream=stream)
        values.update(overrides)
        return cls(**values)

    @property
    def out(self) -> TextIO:
        return self.stream or sys.stdout


def resolve_format(options: OutputOptions) -> OutputFormat:
    """
    Resolve the requested format, falling back to the TTY-aware default.

    Raises:
        ValueError: for an unrecognized format
    """
    value = options.format or default_format(options.out)
    try:
        return OutputFormat(value)
    except ValueError:
        raise ValueError(f"Unknown output format: {value}") from None


def record_id(record: Any) -> Optional[str]:
    """Identifier of a record for quiet mode: _id first, then id."""
    if isinstance(record, dict):
        for key in ("_id", "id"):
            if key in record:
                return str(record[key])
    return None


def output_ids(data: Any, options: OutputOptions) -> None:
    records = data if isinstance(data, (list, tuple)) else [data]
    for record in records:
        identifier = record_id(record)
        if identifier is not None:
            output_data(identifier, options.out)


def output(data: Any, columns: Sequence[ColumnConfig], options: OutputOptions) -> None:
    """
    Write data in the selected format.

    Args:
        data: A record or a sequence of records
        columns: Fields to show (ignored by json and quiet mode)
        options: Resolved global options

    Raises:
        ValueError: for an unrecognized format
    """
    if options.quiet:
        output_ids(data, options)
        return

    fmt = resolve_format(options)
    style = current_style(no_color=options.no_color, stream=options.out)

    if fmt is OutputFormat.JSON:
        text = format_json(data)
    elif fmt is OutputFormat.TSV:
        text = format_tsv(data, columns)
    elif fmt is OutputFormat.TABLE:
        text = format_table(data, columns, style)
    elif fmt is OutputFormat.PLAIN:
        text = format_plain(data, columns, style)
    else:
        raise AssertionError(f"Unhandled output format: {fmt}")

    output_data(text, options.out)


def output_tree(forest: Sequence[TreeNode], options: OutputOptions) -> None:
    """
    Write a collection forest in the selected format.

    - quiet: ids only, in tree order
    - json/tsv: flattened rows with title, _id, count, parentId, depth
    - plain: compact connector-art tree
    - table: connector art in the first column of a name/id/count table
    """
    if options.quiet:
        for row in flatten_tree_to_data(forest):
            output_data(str(row["_id"]), options.out)
        return

    fmt = resolve_format(options)
    style = current_style(no_color=options.no_color, stream=options.out)

    if fmt is OutputFormat.JSON:
        text = format_json(flatten_tree_to_data(forest))
    elif fmt is OutputFormat.TSV:
        text = format_tree_tsv(flatten_tree_to_data(forest))
    elif fmt is OutputFormat.PLAIN:
        text = render_tree_terminal(forest, style)
    elif fmt is OutputFormat.TABLE:
        text = render_tree_table(forest, style)
    else:
        raise AssertionError(f"Unhandled output format: {fmt}")

    output_data(text, options.out)


__all__ = [
    "ColumnConfig",
    "OutputFormat",
    "OutputOptions",
    "output",
    "output_tree",
    "format_json",
    "format_tsv",
    "format_table",
    "format_plain",
]
