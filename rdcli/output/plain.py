"""
Styled plain-text output: one record card per item.

Prominent columns (title, link) are printed first without labels. The
remaining columns are printed as "<icon> <label>  <value>" with the labels
padded so all values line up.
"""
import re
import textwrap
from typing import Any, List, Optional, Sequence, TYPE_CHECKING

from rich.cells import cell_len

from rdcli.styles import StyleFunctions, PLAIN_STYLE
from .tsv import as_records
from .values import get_nested_value, format_value

if TYPE_CHECKING:
    from . import ColumnConfig

FIELD_ICONS = {
    "id": "🔖",
    "_id": "🔖",
    "title": "📌",
    "name": "📌",
    "url": "🔗",
    "link": "🔗",
    "tags": "🏷️",
    "excerpt": "📝",
    "note": "💬",
    "notes": "💬",
    "created": "📅",
    "updated": "📅",
    "lastupdated": "📅",
    "lastupdate": "📅",
    "domain": "🌐",
    "type": "📁",
    "collection": "📂",
    "collectionid": "📂",
}
DEFAULT_ICON = "•"

# Fields shown with the label on its own line and the content wrapped below
BLOCK_FIELDS = {"excerpt", "note", "notes", "description", "content", "body"}

WRAP_WIDTH = 72
BLOCK_INDENT = 4

EMPTY_PLACEHOLDER = "—"
NO_RESULTS = "No results found."
SEPARATOR = "  " + "─" * 37


def normalize_key(key: str) -> str:
    return re.sub(r"[._-]", "", key.lower())


def field_icon(key: str) -> str:
    """Icon for a column key, a bullet when unmapped."""
    return FIELD_ICONS.get(normalize_key(key), DEFAULT_ICON)


def is_block_field(key: str) -> bool:
    return normalize_key(key) in BLOCK_FIELDS


def is_link_key(key: str) -> bool:
    lowered = key.lower()
    return "url" in lowered or "link" in lowered


def plain_value(value: Any) -> Optional[str]:
    """Display text for a value, or None when it should show the placeholder."""
    if value is None or value == "" or value == [] or value == ():
        return None
    return format_value(value)


def word_wrap(text: str, width: int = WRAP_WIDTH) -> str:
    """Wrap each line independently, keeping existing line breaks."""
    lines = []
    for line in text.split("\n"):
        if not line.strip():
            lines.append("")
        elif len(line) <= width:
            lines.append(line)
        else:
            lines.extend(textwrap.wrap(line, width=width, break_long_words=False,
                                       break_on_hyphens=False))
    return "\n".join(lines)


def indent_continuation(text: str, indent: int) -> str:
    """Indent every line but the first so they align under the value column."""
    lines = text.split("\n")
    padding = " " * indent
    return "\n".join([lines[0]] + [padding + line for line in lines[1:]])


def _format_record(record: Any, prominent: List["ColumnConfig"], regular: List["ColumnConfig"],
                   label_length: int, c: StyleFunctions) -> str:
    out = []

    for col in prominent:
        value = plain_value(get_nested_value(record, col.key))
        if value is None:
            continue
        out.append(c.cyan(value) if is_link_key(col.key) else c.bold(value))

    if prominent and regular:
        out.append("")

    for col in regular:
        icon = field_icon(col.key)
        label = f"{icon} {c.bold(col.header.ljust(label_length))}"
        value_column = cell_len(f"{icon} {col.header.ljust(label_length)}  ")
        value = plain_value(get_nested_value(record, col.key))

        if value is None:
            out.append(f"{label}  {c.dim(EMPTY_PLACEHOLDER)}")
        elif is_block_field(col.key):
            out.append(label)
            out.append(textwrap.indent(word_wrap(value), " " * BLOCK_INDENT,
                                       predicate=lambda line: True))
        else:
            out.append(f"{label}  {indent_continuation(value, value_column)}")

    return "\n".join(out)


def format_plain(data: Any, columns: Sequence["ColumnConfig"],
                 style: StyleFunctions = PLAIN_STYLE) -> str:
    """
    Format records as human-oriented cards separated by a divider.

    Args:
        data: A record or a sequence of records
        columns: Column configuration, in display order
        style: Style functions (identity functions when colour is off)

    Returns:
        The rendered text; a dimmed "No results found." for no records
    """
    records = as_records(data)
    if not records:
        return style.dim(NO_RESULTS)

    prominent = [col for col in columns if col.prominent]
    regular = [col for col in columns if not col.prominent]
    label_length = max((len(col.header) for col in regular), default=0)

    cards = [_format_record(record, prominent, regular, label_length, style) for record in records]
    return f"\n\n{style.dim(SEPARATOR)}\n\n".join(cards)
