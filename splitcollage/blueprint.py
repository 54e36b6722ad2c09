from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .errors import BlueprintError
from .tree import Layout, Leaf, Orientation, Split, SplitNode, iter_nodes, validate

KINDS = {o.value: o for o in Orientation}

NodeSpec = Tuple[str, Tuple[int, ...]]


@dataclass(frozen=True)
class Blueprint:
    """Shape of a layout without its pixels.

    ``graph_representation`` lists only the splits, root first. Each entry is
    ``(kind, child_indices)`` where the indices point at other entries. A
    split listing fewer than two children is topped up with image leaves,
    placed after the listed children. Images are bound to those leaves in
    entry order: entry 0's leaves take the first images, then entry 1's, and
    so on.

    For example ``[("V", [1, 2]), ("H", []), ("V", [])]`` puts two
    splits side by side; the left one stacks two images and the right one
    places two images side by side.
    """

    graph_representation: Tuple[NodeSpec, ...]
    width: int
    height: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "graph_representation": [[kind, list(children)] for kind, children in self.graph_representation],
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Blueprint":
        if not isinstance(data, Mapping):
            raise BlueprintError("blueprint must be a mapping")
        try:
            raw_nodes = data["graph_representation"]
            width = data["width"]
            height = data["height"]
        except KeyError as exc:
            raise BlueprintError(f"blueprint is missing {exc.args[0]!r}") from exc

        for name, value in (("width", width), ("height", height)):
            if not _is_int(value) or value <= 0:
                raise BlueprintError(f"{name} must be a positive integer, got {value!r}")

        if isinstance(raw_nodes, (str, bytes)) or not isinstance(raw_nodes, Sequence):
            raise BlueprintError("graph_representation must be a list")

        nodes: List[NodeSpec] = []
        for i, entry in enumerate(raw_nodes):
            if isinstance(entry, (str, bytes)) or not isinstance(entry, Sequence) or len(entry) != 2:
                raise BlueprintError(f"node {i} must be a [kind, children] pair")
            kind, children = entry
            if not isinstance(kind, str):
                raise BlueprintError(f"node {i} has a non-string kind {kind!r}")
            if isinstance(children, (str, bytes)) or not isinstance(children, Sequence):
                raise BlueprintError(f"node {i} children must be a list")
            for c in children:
                if not _is_int(c):
                    raise BlueprintError(f"node {i} has a non-integer child index {c!r}")
            nodes.append((kind, tuple(children)))

        return cls(graph_representation=tuple(nodes), width=int(width), height=int(height))


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def to_blueprint(layout: Layout) -> Blueprint:
    """Describe a layout's tree as a blueprint.

    The tree must be binary with split children listed before leaf children
    (what ``tree.normalize`` produces and what the optimizer returns).
    """
    tree = layout.tree
    if isinstance(tree, Leaf):
        raise BlueprintError("a single-image layout has no split to describe")

    splits = [(path, node) for path, node in iter_nodes(tree) if isinstance(node, Split)]
    number = {path: i for i, (path, _) in enumerate(splits)}

    nodes: List[NodeSpec] = []
    for path, node in splits:
        if len(node.children) != 2:
            raise BlueprintError(f"split at {path} has {len(node.children)} children; blueprints need 2")
        listed: List[int] = []
        seen_leaf = False
        for i, child in enumerate(node.children):
            if isinstance(child, Split):
                if seen_leaf:
                    raise BlueprintError(f"split at {path} lists a leaf before a split; normalize the tree first")
                listed.append(number[path + (i,)])
            else:
                seen_leaf = True
        nodes.append((node.orientation.value, tuple(listed)))

    return Blueprint(graph_representation=tuple(nodes), width=layout.width, height=layout.height)


def leaf_order(tree: SplitNode) -> List[int]:
    """Image indices in the order a blueprint of ``tree`` binds its leaves.

    Passing the images to ``from_blueprint`` in this order rebuilds ``tree``.
    """
    if isinstance(tree, Leaf):
        return [tree.index]
    order: List[int] = []
    for _, node in iter_nodes(tree):
        if isinstance(node, Split):
            order.extend(c.index for c in node.children if isinstance(c, Leaf))
    return order


def from_blueprint(blueprint: Blueprint, images: Sequence) -> SplitNode:
    nodes = blueprint.graph_representation
    count = len(nodes)
    if count == 0:
        raise BlueprintError("blueprint has no nodes")

    orientations: List[Orientation] = []
    for i, (kind, _) in enumerate(nodes):
        if kind not in KINDS:
            raise BlueprintError(f"node {i} has unknown kind {kind!r}")
        orientations.append(KINDS[kind])

    parent: Dict[int, int] = {}
    for i, (_, children) in enumerate(nodes):
        for c in children:
            if not _is_int(c) or not 0 <= c < count:
                raise BlueprintError(f"node {i} refers to node {c}, which is out of range (0..{count - 1})")
            if c == 0 or c == i:
                raise BlueprintError(f"cycle detected: node {i} refers to node {c}")
            if c in parent:
                raise BlueprintError(f"node {c} is a child of both node {parent[c]} and node {i}")
            parent[c] = i

    reached = set()
    stack = [0]
    while stack:
        i = stack.pop()
        reached.add(i)
        stack.extend(nodes[i][1])

    for i in range(count):
        if i in reached:
            continue
        # every node has at most one parent, so walking up either ends or loops
        seen = {i}
        j = i
        while j in parent:
            j = parent[j]
            if j in seen:
                raise BlueprintError(f"cycle detected through node {i}")
            seen.add(j)
        raise BlueprintError(f"node {i} is not reachable from the root")

    slots = [max(0, 2 - len(children)) for _, children in nodes]
    if sum(slots) != len(images):
        raise BlueprintError(f"blueprint has {sum(slots)} image slots but {len(images)} images were given")

    offsets: List[int] = []
    total = 0
    for s in slots:
        offsets.append(total)
        total += s

    def build(i: int) -> SplitNode:
        children: List[SplitNode] = [build(c) for c in nodes[i][1]]
        children.extend(Leaf(offsets[i] + k) for k in range(slots[i]))
        return Split(orientations[i], tuple(children))

    tree = build(0)
    validate(tree, len(images))
    return tree


def layout_from_blueprint(blueprint: Blueprint, images: Sequence) -> Layout:
    if not _is_int(blueprint.width) or not _is_int(blueprint.height) or blueprint.width <= 0 or blueprint.height <= 0:
        raise BlueprintError(f"canvas must be positive, got {blueprint.width!r}x{blueprint.height!r}")
    return Layout(from_blueprint(blueprint, images), blueprint.width, blueprint.height)
