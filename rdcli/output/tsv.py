"""Tab-separated output for scripting (cut, awk, spreadsheets)."""
from typing import Any, Sequence, TYPE_CHECKING

from .values import get_nested_value, format_tsv_value

if TYPE_CHECKING:
    from . import ColumnConfig


def as_records(data: Any) -> list:
    """Treat a single record as a one-element sequence."""
    if isinstance(data, (list, tuple)):
        return list(data)
    return [data]


def format_tsv(data: Any, columns: Sequence["ColumnConfig"]) -> str:
    """
    Format records as TSV.

    The first line holds the column headers; each record is one line with
    tabs and newlines inside values escaped so records never span lines.
    """
    lines = ["\t".join(col.header for col in columns)]
    for record in as_records(data):
        lines.append("\t".join(format_tsv_value(get_nested_value(record, col.key))
                               for col in columns))
    return "\n".join(lines)
