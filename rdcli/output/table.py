"""
Bordered table output built on rich.

Column widths come from ColumnConfig.width (total width including cell
padding) or are sized automatically. Styles are attached to rich Text cells,
so a colour-less console renders exactly the same characters without escapes.
"""
import io
import shutil
from typing import Any, Optional, Sequence, TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from rdcli.styles import StyleFunctions, PLAIN_STYLE
from .tsv import as_records
from .values import get_nested_value, format_value

if TYPE_CHECKING:
    from . import ColumnConfig

CELL_PADDING = 2


def content_width(width: Optional[int]) -> Optional[int]:
    """Convert a total column width into rich's content width."""
    if width is None:
        return None
    return max(width - CELL_PADDING, 1)


def new_table(headers: Sequence[str], widths: Sequence[Optional[int]],
              style: StyleFunctions) -> Table:
    table = Table(box=box.SQUARE, header_style="bold" if style.enabled else "",
                  show_lines=False, pad_edge=True)
    for header, width in zip(headers, widths):
        table.add_column(Text(header), width=content_width(width), overflow="fold")
    return table


def render_to_string(renderable: Any, style: StyleFunctions, width: Optional[int] = None) -> str:
    """Render a rich object to a string, with or without ANSI escapes."""
    width = width or shutil.get_terminal_size(fallback=(120, 24)).columns
    console = Console(
        file=io.StringIO(),
        width=width,
        color_system="standard" if style.enabled else None,
        force_terminal=style.enabled,
        highlight=False,
        emoji=False,
        legacy_windows=False,
    )
    console.print(renderable)
    return console.file.getvalue().rstrip("\n")


def format_table(data: Any, columns: Sequence["ColumnConfig"],
                 style: StyleFunctions = PLAIN_STYLE, width: Optional[int] = None) -> str:
    """
    Format records as a bordered grid with one header row.

    An empty record sequence still renders the header.
    """
    table = new_table([col.header for col in columns], [col.width for col in columns], style)

    for record in as_records(data):
        cells = []
        for col in columns:
            text = format_value(get_nested_value(record, col.key))
            cell_style = col.style if style.enabled and col.style not in (None, "none") else ""
            cells.append(Text(text, style=cell_style))
        table.add_row(*cells)

    return render_to_string(table, style, width)
