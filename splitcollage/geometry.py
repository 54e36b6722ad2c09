from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .errors import DegenerateTreeError
from .tree import Leaf, NodePath, Orientation, Split, SplitNode, aspect_ratio, leaf_count, leaf_indices, unknown_node


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    w: int
    h: int

    @property
    def area(self) -> int:
        return self.w * self.h

    @property
    def aspect(self) -> float:
        return self.w / self.h if self.h else 1.0


def distribute_pixels(total: int, weights: Sequence[float]) -> List[int]:
    """Split ``total`` pixels into integer parts proportional to ``weights``.

    Parts always sum to ``total`` and are at least 1 pixel each. Rounding
    surplus goes to the largest remainders, earlier parts first on ties.
    """
    count = len(weights)
    if count == 0:
        raise DegenerateTreeError("cannot divide a rectangle among zero children")
    if total < count:
        raise DegenerateTreeError(f"{total}px cannot be divided among {count} children")

    denom = sum(weights)
    if denom <= 0:
        exact = [total / count] * count
    else:
        exact = [total * w / denom for w in weights]

    sizes = [max(1, int(math.floor(e))) for e in exact]
    diff = total - sum(sizes)
    if diff != 0:
        remainders = [e - math.floor(e) for e in exact]
        order = sorted(range(count), key=lambda i: remainders[i], reverse=(diff > 0))
        step = 1 if diff > 0 else -1
        k = 0
        while diff != 0:
            i = order[k % count]
            if step > 0 or sizes[i] > 1:
                sizes[i] += step
                diff -= step
            k += 1
    return sizes


def _aspects(node: SplitNode, images: Sequence, out: Dict[int, float]) -> float:
    if isinstance(node, Leaf):
        a = images[node.index].aspect
    elif isinstance(node, Split):
        if not node.children:
            raise DegenerateTreeError("split has no children")
        child_aspects = [_aspects(c, images, out) for c in node.children]
        if node.orientation is Orientation.VERTICAL:
            a = sum(child_aspects)
        else:
            a = 1.0 / sum(1.0 / ca for ca in child_aspects)
    else:
        raise unknown_node(node)
    out[id(node)] = a
    return a


def solve(node: SplitNode, width: int, height: int, images: Sequence) -> Dict[NodePath, Rect]:
    """Assign a pixel rectangle to every node of the tree.

    The root gets the whole ``width x height`` canvas. A vertical cut places
    children side by side and shares the width in proportion to their aspect
    ratios; a horizontal cut stacks them and shares the height in proportion
    to the inverse aspect ratios. Children always tile their parent exactly.
    """
    if width <= 0 or height <= 0:
        raise DegenerateTreeError(f"canvas must be positive, got {width}x{height}")

    aspects: Dict[int, float] = {}
    _aspects(node, images, aspects)

    rects: Dict[NodePath, Rect] = {}

    def rec(n: SplitNode, path: NodePath, r: Rect) -> None:
        rects[path] = r
        if isinstance(n, Leaf):
            return
        if not isinstance(n, Split):
            raise unknown_node(n)

        if len(n.children) == 1:
            rec(n.children[0], path + (0,), r)
            return

        child_aspects = [aspects[id(c)] for c in n.children]
        if n.orientation is Orientation.VERTICAL:
            x = r.x
            for i, (child, w) in enumerate(zip(n.children, distribute_pixels(r.w, child_aspects))):
                rec(child, path + (i,), Rect(x, r.y, w, r.h))
                x += w
        else:
            y = r.y
            inverse = [1.0 / a for a in child_aspects]
            for i, (child, h) in enumerate(zip(n.children, distribute_pixels(r.h, inverse))):
                rec(child, path + (i,), Rect(r.x, y, r.w, h))
                y += h

    rec(node, (), Rect(0, 0, width, height))
    return rects


def leaf_rects(node: SplitNode, rects: Dict[NodePath, Rect]) -> Dict[int, Rect]:
    out: Dict[int, Rect] = {}

    def rec(n: SplitNode, path: NodePath) -> None:
        if isinstance(n, Leaf):
            out[n.index] = rects[path]
        elif isinstance(n, Split):
            for i, child in enumerate(n.children):
                rec(child, path + (i,))
        else:
            raise unknown_node(n)

    rec(node, ())
    return out


def canvas_size(node: SplitNode, images: Sequence, target_area: float | None = None) -> Tuple[int, int]:
    """Canvas that matches the tree's own aspect ratio at roughly ``target_area`` pixels.

    The default area is the sum of the image areas, so images keep about
    their native resolution on average.
    """
    aspect = aspect_ratio(node, images)
    if target_area is None:
        target_area = float(sum(images[i].area for i in leaf_indices(node)))
    target_area = max(1.0, float(target_area))

    if isinstance(node, Leaf) and target_area == images[node.index].area:
        return images[node.index].width, images[node.index].height

    w = max(1, int(round(math.sqrt(target_area * aspect))))
    h = max(1, int(round(math.sqrt(target_area / aspect))))

    # every leaf needs at least one pixel along either axis
    n = leaf_count(node)
    if w < n or h < n:
        scale = max(n / w, n / h)
        w = max(n, int(math.ceil(w * scale)))
        h = max(n, int(math.ceil(h * scale)))
    return w, h
