import random

import pytest

from splitcollage.errors import DegenerateTreeError
from splitcollage.geometry import Rect, canvas_size, distribute_pixels, leaf_rects, solve
from splitcollage.images import Photo
from splitcollage.optimizer import random_tree
from splitcollage.tree import Leaf, Orientation, Split, aspect_ratio, iter_nodes

H = Orientation.HORIZONTAL
V = Orientation.VERTICAL


def random_photos(rng, n):
    return [Photo(rng.randint(200, 600), rng.randint(200, 600)) for _ in range(n)]


def test_distribute_pixels_sums_exactly():
    assert distribute_pixels(10, [1, 1, 1]) == [4, 3, 3]
    assert sum(distribute_pixels(1000, [0.3, 2.5, 1.1, 0.01])) == 1000


def test_distribute_pixels_gives_every_part_a_pixel():
    sizes = distribute_pixels(5, [100.0, 0.001, 0.001])
    assert sum(sizes) == 5
    assert min(sizes) >= 1


def test_distribute_pixels_rejects_too_few_pixels():
    with pytest.raises(DegenerateTreeError):
        distribute_pixels(2, [1, 1, 1])
    with pytest.raises(DegenerateTreeError):
        distribute_pixels(10, [])


@pytest.mark.parametrize("seed", range(20))
def test_leaf_rects_tile_the_canvas(seed):
    rng = random.Random(seed)
    n = rng.randint(1, 8)
    imgs = random_photos(rng, n)
    indices = list(range(n))
    rng.shuffle(indices)
    tree = random_tree(indices, rng)
    # a canvas near the natural shape, then stretched a little either way
    width, height = canvas_size(tree, imgs)
    width = int(width * rng.uniform(0.7, 1.5))
    height = int(height * rng.uniform(0.7, 1.5))

    rects = solve(tree, width, height, imgs)
    leaves = leaf_rects(tree, rects)

    assert sorted(leaves) == list(range(n))
    assert sum(r.area for r in leaves.values()) == width * height
    for r in leaves.values():
        assert r.w >= 1 and r.h >= 1
        assert 0 <= r.x and r.x + r.w <= width
        assert 0 <= r.y and r.y + r.h <= height

    # pairwise disjoint
    items = list(leaves.values())
    for i, a in enumerate(items):
        for b in items[i + 1 :]:
            overlap_w = min(a.x + a.w, b.x + b.w) - max(a.x, b.x)
            overlap_h = min(a.y + a.h, b.y + b.h) - max(a.y, b.y)
            assert overlap_w <= 0 or overlap_h <= 0

    # every split is tiled by its children
    for path, node in iter_nodes(tree):
        if isinstance(node, Split):
            parent = rects[path]
            kids = [rects[path + (i,)] for i in range(len(node.children))]
            assert sum(k.area for k in kids) == parent.area
            if node.orientation is V:
                assert all(k.h == parent.h and k.y == parent.y for k in kids)
            else:
                assert all(k.w == parent.w and k.x == parent.x for k in kids)


def test_matching_canvas_has_no_distortion():
    imgs = [Photo(400, 300), Photo(400, 300)]
    tree = Split(V, (Leaf(0), Leaf(1)))
    leaves = leaf_rects(tree, solve(tree, 800, 300, imgs))
    assert leaves[0] == Rect(0, 0, 400, 300)
    assert leaves[1] == Rect(400, 0, 400, 300)


def test_horizontal_cut_stacks_top_to_bottom():
    imgs = [Photo(400, 300), Photo(400, 100)]
    tree = Split(H, (Leaf(0), Leaf(1)))
    leaves = leaf_rects(tree, solve(tree, 400, 400, imgs))
    assert leaves[0] == Rect(0, 0, 400, 300)
    assert leaves[1] == Rect(0, 300, 400, 100)


def test_single_child_split_passes_rect_through():
    imgs = [Photo(10, 10)]
    tree = Split(V, (Leaf(0),))
    rects = solve(tree, 37, 11, imgs)
    assert rects[()] == rects[(0,)] == Rect(0, 0, 37, 11)


def test_empty_split_is_degenerate():
    with pytest.raises(DegenerateTreeError):
        solve(Split(H, ()), 10, 10, [])


def test_canvas_too_small_is_degenerate():
    imgs = [Photo(10, 10)] * 3
    tree = Split(V, (Leaf(0), Leaf(1), Leaf(2)))
    with pytest.raises(DegenerateTreeError):
        solve(tree, 2, 10, imgs)
    with pytest.raises(DegenerateTreeError):
        solve(tree, 0, 10, imgs)


def test_canvas_size_of_single_image_is_native():
    assert canvas_size(Leaf(0), [Photo(640, 480)]) == (640, 480)


def test_canvas_size_follows_tree_aspect():
    imgs = [Photo(400, 300), Photo(400, 300)]
    tree = Split(V, (Leaf(0), Leaf(1)))
    w, h = canvas_size(tree, imgs)
    assert w / h == pytest.approx(aspect_ratio(tree, imgs), rel=1e-2)
    assert w * h == pytest.approx(2 * 400 * 300, rel=1e-2)


def test_canvas_size_leaves_room_for_every_leaf():
    imgs = [Photo(1, 1000)] * 6
    tree = Split(V, tuple(Leaf(i) for i in range(6)))
    w, h = canvas_size(tree, imgs, target_area=4)
    assert w >= 6 and h >= 6
    solve(tree, w, h, imgs)
