"""
Building trees from flat collection lists.

The API returns root collections and child collections as two flat lists;
children reference their parent as {"parent": {"$id": <id>}}. build_tree()
turns both lists into a forest sorted by title at every level.
"""
import locale
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

DEFAULT_ICON = "📂"
BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "


@dataclass
class TreeItem:
    """An item that can be placed in a tree."""
    id: Hashable
    title: str
    count: int = 0
    parent_id: Optional[Hashable] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "TreeItem":
        """Build a TreeItem from an API collection record."""
        parent = record.get("parent")
        parent_id = parent.get("$id") if isinstance(parent, Mapping) else None
        return cls(
            id=record.get("_id", record.get("id")),
            title=str(record.get("title") or ""),
            count=record.get("count") or 0,
            parent_id=parent_id if parent_id is not None else record.get("parentId"),
        )


@dataclass
class TreeNode:
    """A node of the forest: an item and its sorted children."""
    item: TreeItem
    children: List["TreeNode"] = field(default_factory=list)


ItemLike = Union[TreeItem, Mapping[str, Any]]


def _as_item(value: ItemLike) -> TreeItem:
    return value if isinstance(value, TreeItem) else TreeItem.from_record(value)


def _sort_key(node: TreeNode):
    title = node.item.title
    return (locale.strxfrm(title.casefold()), title, str(node.item.id))


def _sort_nodes(nodes: List[TreeNode]) -> None:
    stack = [nodes]
    while stack:
        siblings = stack.pop()
        siblings.sort(key=_sort_key)
        stack.extend(node.children for node in siblings if node.children)


def _reachable(roots: List[TreeNode]) -> set:
    seen = set()
    stack = list(roots)
    while stack:
        node = stack.pop()
        if node.item.id in seen:
            continue
        seen.add(node.item.id)
        stack.extend(node.children)
    return seen


def _break_cycles(nodes: Dict[Hashable, TreeNode], parents: Dict[Hashable, Hashable],
                  roots: List[TreeNode]) -> None:
    """Promote one member of every parent cycle to the root list."""
    reachable = _reachable(roots)
    for item_id in sorted(nodes, key=str):
        if item_id in reachable:
            continue

        # Walk up until an id repeats; the repeated part is the cycle
        path: List[Hashable] = []
        current = item_id
        while current not in path:
            path.append(current)
            current = parents[current]
        cycle = path[path.index(current):]

        promoted = min(cycle, key=str)
        parent = nodes[parents[promoted]]
        parent.children = [child for child in parent.children if child.item.id != promoted]
        del parents[promoted]
        roots.append(nodes[promoted])
        logger.warning(f"Parent cycle detected among ids {cycle}; treating {promoted} as a root")
        reachable |= _reachable([nodes[promoted]])


def build_tree(root_items: Sequence[ItemLike], child_items: Sequence[ItemLike]) -> List[TreeNode]:
    """
    Build a forest from flat item lists.

    Items present in both lists are deduplicated by id (the later one wins).
    Items whose parent is not in the input become roots. Siblings are sorted
    by title at every level.

    Args:
        root_items: Items at root level (no parent)
        child_items: Items with parents

    Returns:
        Root nodes with children populated
    """
    items: Dict[Hashable, TreeItem] = {}
    for value in list(root_items) + list(child_items):
        item = _as_item(value)
        items[item.id] = item

    nodes = {item_id: TreeNode(item) for item_id, item in items.items()}
    parents: Dict[Hashable, Hashable] = {}
    roots: List[TreeNode] = []

    for item_id, node in nodes.items():
        parent_id = node.item.parent_id
        if parent_id is not None and parent_id in nodes and parent_id != item_id:
            nodes[parent_id].children.append(node)
            parents[item_id] = parent_id
        else:
            roots.append(node)

    if len(_reachable(roots)) < len(nodes):
        _break_cycles(nodes, parents, roots)

    _sort_nodes(roots)
    return roots


def walk_tree(nodes: Sequence[TreeNode]):
    """
    Depth-first traversal yielding (node, connector prefix, depth).

    Roots get no connector; deeper levels get box-drawing connectors that
    depend on whether each node is the last of its siblings.
    """
    stack = [(node, "", 0, i == len(nodes) - 1) for i, node in reversed(list(enumerate(nodes)))]
    while stack:
        node, prefix, depth, is_last = stack.pop()
        branch = "" if depth == 0 else (LAST_BRANCH if is_last else BRANCH)
        yield node, f"{prefix}{branch}", depth

        if node.children:
            if depth == 0:
                child_prefix = ""
            else:
                child_prefix = prefix + (SPACE if is_last else PIPE)
            count = len(node.children)
            for i in range(count - 1, -1, -1):
                stack.append((node.children[i], child_prefix, depth + 1, i == count - 1))


def render_tree(nodes: Sequence[TreeNode], icon: str = DEFAULT_ICON) -> List[Dict[str, Any]]:
    """
    Render nodes as unstyled rows {tree, _id, count}.

    The rows can be passed to output() like any other records.
    """
    return [
        {"tree": f"{connector}{icon} {node.item.title}", "_id": node.item.id,
         "count": node.item.count}
        for node, connector, _ in walk_tree(nodes)
    ]
