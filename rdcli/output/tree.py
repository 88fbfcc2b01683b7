"""
Tree-specific output formatting.

Terminal formats show a compact tree drawn with box characters; data formats
(JSON/TSV) get clean structured rows with an explicit depth instead.
"""
from typing import Any, Dict, List, Optional, Sequence

from rich.text import Text

from rdcli.styles import StyleFunctions, PLAIN_STYLE
from rdcli.tree import TreeNode, DEFAULT_ICON, walk_tree
from .table import new_table, render_to_string
from .values import format_tsv_value

TREE_DATA_HEADERS = ["title", "_id", "count", "parentId", "depth"]
TREE_TABLE_HEADERS = ["Collection", "ID", "Items"]
TREE_TABLE_WIDTHS = [50, 12, 8]


def flatten_tree_to_data(nodes: Sequence[TreeNode]) -> List[Dict[str, Any]]:
    """
    Flatten a forest into rows {title, _id, count, parentId, depth}.

    Rows follow the same depth-first, sorted order as the rendered tree.
    parentId is the item's own parent reference, so a promoted orphan keeps
    the id of its missing parent.
    """
    return [
        {
            "title": node.item.title,
            "_id": node.item.id,
            "count": node.item.count,
            "parentId": node.item.parent_id,
            "depth": depth,
        }
        for node, _, depth in walk_tree(nodes)
    ]


def pluralize_items(count: int) -> str:
    return "1 item" if count == 1 else f"{count} items"


def render_tree_terminal(nodes: Sequence[TreeNode], style: StyleFunctions = PLAIN_STYLE,
                         icon: str = DEFAULT_ICON) -> str:
    """Render the forest as compact connector art, one line per node."""
    lines = []
    for node, connector, _ in walk_tree(nodes):
        count = style.dim(f"({pluralize_items(node.item.count)})")
        lines.append(f"{connector}{icon} {style.bold(node.item.title)} {count}")
    return "\n".join(lines)


def render_tree_table(nodes: Sequence[TreeNode], style: StyleFunctions = PLAIN_STYLE,
                      icon: str = DEFAULT_ICON, width: Optional[int] = None) -> str:
    """Render the forest as a table with the tree drawn in the first column."""
    table = new_table(TREE_TABLE_HEADERS, TREE_TABLE_WIDTHS, style)
    for node, connector, _ in walk_tree(nodes):
        cell = Text(f"{connector}{icon} ")
        cell.append(node.item.title, style="bold" if style.enabled else "")
        table.add_row(cell, Text(str(node.item.id)), Text(str(node.item.count)))
    return render_to_string(table, style, width)


def format_tree_tsv(rows: Sequence[Dict[str, Any]]) -> str:
    """Format flattened tree rows as TSV; a null parent is an empty cell."""
    lines = ["\t".join(TREE_DATA_HEADERS)]
    for row in rows:
        lines.append("\t".join(format_tsv_value(row[key]) for key in TREE_DATA_HEADERS))
    return "\n".join(lines)
