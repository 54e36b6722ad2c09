from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Sequence, Tuple, Union

from .errors import DegenerateTreeError

NodePath = Tuple[int, ...]


class Orientation(str, Enum):
    # Direction of the cut line.
    # H: children stacked top to bottom, sharing the width.
    # V: children side by side, left to right, sharing the height.
    HORIZONTAL = "H"
    VERTICAL = "V"

    def flipped(self) -> "Orientation":
        if self is Orientation.HORIZONTAL:
            return Orientation.VERTICAL
        return Orientation.HORIZONTAL


@dataclass(frozen=True)
class Leaf:
    index: int


@dataclass(frozen=True)
class Split:
    orientation: Orientation
    children: Tuple["SplitNode", ...]


SplitNode = Union[Leaf, Split]


def unknown_node(node: object) -> TypeError:
    return TypeError(f"not a split-tree node: {node!r}")


def leaf_indices(node: SplitNode) -> List[int]:
    """Image indices in left-to-right (pre-order) leaf order."""
    out: List[int] = []

    def rec(n: SplitNode) -> None:
        if isinstance(n, Leaf):
            out.append(n.index)
        elif isinstance(n, Split):
            for child in n.children:
                rec(child)
        else:
            raise unknown_node(n)

    rec(node)
    return out


def leaf_count(node: SplitNode) -> int:
    return len(leaf_indices(node))


def node_count(node: SplitNode) -> int:
    if isinstance(node, Leaf):
        return 1
    if isinstance(node, Split):
        return 1 + sum(node_count(c) for c in node.children)
    raise unknown_node(node)


def iter_nodes(node: SplitNode, path: NodePath = ()) -> Iterator[Tuple[NodePath, SplitNode]]:
    yield path, node
    if isinstance(node, Split):
        for i, child in enumerate(node.children):
            yield from iter_nodes(child, path + (i,))
    elif not isinstance(node, Leaf):
        raise unknown_node(node)


def node_at(node: SplitNode, path: NodePath) -> SplitNode:
    for step in path:
        if not isinstance(node, Split):
            raise IndexError(f"path {path} runs past a leaf")
        node = node.children[step]
    return node


def replace_at(node: SplitNode, path: NodePath, new: SplitNode) -> SplitNode:
    if not path:
        return new
    if not isinstance(node, Split):
        raise IndexError(f"path {path} runs past a leaf")
    head, rest = path[0], path[1:]
    children = list(node.children)
    children[head] = replace_at(children[head], rest, new)
    return Split(node.orientation, tuple(children))


def validate(node: SplitNode, count: int) -> None:
    """Check that ``node`` is well formed and binds images ``0..count-1`` exactly once."""
    for path, n in iter_nodes(node):
        if isinstance(n, Split) and not n.children:
            raise DegenerateTreeError(f"split at {path} has no children")

    indices = leaf_indices(node)
    if sorted(indices) != list(range(count)):
        raise DegenerateTreeError(
            f"tree leaves {sorted(indices)} do not match the {count} input images"
        )


def aspect_ratio(node: SplitNode, images: Sequence) -> float:
    """Aspect ratio (w/h) a subtree wants when laid out without distortion."""
    if isinstance(node, Leaf):
        return images[node.index].aspect
    if isinstance(node, Split):
        if not node.children:
            raise DegenerateTreeError("split has no children")
        aspects = [aspect_ratio(c, images) for c in node.children]
        if node.orientation is Orientation.VERTICAL:
            return sum(aspects)
        return 1.0 / sum(1.0 / a for a in aspects)
    raise unknown_node(node)


def normalize(node: SplitNode) -> SplitNode:
    """Collapse single-child splits and list split children before leaf children.

    Neither change moves a rectangle's size, only its position inside the
    parent, so the normalized tree scores the same. Blueprints can only
    describe trees in this form.
    """
    if isinstance(node, Leaf):
        return node
    if isinstance(node, Split):
        children = [normalize(c) for c in node.children]
        if len(children) == 1:
            return children[0]
        splits = [c for c in children if isinstance(c, Split)]
        leaves = [c for c in children if isinstance(c, Leaf)]
        return Split(node.orientation, tuple(splits + leaves))
    raise unknown_node(node)


def row(indices: Sequence[int]) -> SplitNode:
    return _chain(indices, Orientation.VERTICAL)


def column(indices: Sequence[int]) -> SplitNode:
    return _chain(indices, Orientation.HORIZONTAL)


def _chain(indices: Sequence[int], orientation: Orientation) -> SplitNode:
    # binary chain so every canonical shape stays inside the search space
    if not indices:
        raise ValueError("no images")
    node: SplitNode = Leaf(indices[-1])
    for index in reversed(indices[:-1]):
        node = Split(orientation, (node, Leaf(index)))
    return node


def grid(indices: Sequence[int], orientation: Orientation = Orientation.VERTICAL) -> SplitNode:
    if not indices:
        raise ValueError("no images")
    if len(indices) == 1:
        return Leaf(indices[0])
    mid = (len(indices) + 1) // 2
    return Split(
        orientation,
        (grid(indices[:mid], orientation.flipped()), grid(indices[mid:], orientation.flipped())),
    )


def to_dot(node: SplitNode, images: Sequence | None = None) -> str:
    """Graphviz source for a tree, handy for eyeballing search results."""
    lines = ["digraph {"]
    ids: dict[NodePath, int] = {}
    for path, n in iter_nodes(node):
        ids[path] = len(ids)
        if isinstance(n, Leaf):
            label = f"Image {n.index}"
            if images is not None:
                label += f" ({images[n.index].width}x{images[n.index].height})"
        else:
            label = "Horizontal" if n.orientation is Orientation.HORIZONTAL else "Vertical"
        lines.append(f'    {ids[path]} [ label = "{label}" ]')
    for path, _ in iter_nodes(node):
        if path:
            lines.append(f"    {ids[path[:-1]]} -> {ids[path]} [ ]")
    lines.append("}")
    return "\n".join(lines)


@dataclass(frozen=True)
class Layout:
    tree: SplitNode
    width: int
    height: int
