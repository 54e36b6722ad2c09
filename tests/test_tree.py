import pytest

from splitcollage.errors import DegenerateTreeError
from splitcollage.images import Photo
from splitcollage.tree import (
    Leaf,
    Orientation,
    Split,
    aspect_ratio,
    column,
    grid,
    iter_nodes,
    leaf_count,
    leaf_indices,
    node_at,
    node_count,
    normalize,
    replace_at,
    row,
    to_dot,
    validate,
)

H = Orientation.HORIZONTAL
V = Orientation.VERTICAL


def photos(*sizes):
    return [Photo(w, h) for w, h in sizes]


def test_vertical_cut_adds_aspects():
    imgs = photos((400, 300), (300, 400))
    tree = Split(V, (Leaf(0), Leaf(1)))
    assert aspect_ratio(tree, imgs) == pytest.approx(4 / 3 + 3 / 4)


def test_horizontal_cut_adds_inverse_aspects():
    imgs = photos((400, 300), (400, 300))
    tree = Split(H, (Leaf(0), Leaf(1)))
    assert aspect_ratio(tree, imgs) == pytest.approx(2 / 3)


def test_validate_accepts_bijection():
    validate(Split(H, (Leaf(1), Split(V, (Leaf(0), Leaf(2))))), 3)


@pytest.mark.parametrize(
    "tree",
    [
        Split(H, (Leaf(0), Leaf(0))),
        Split(H, (Leaf(0), Leaf(2))),
        Split(H, (Leaf(0),)),
        Split(H, (Leaf(0), Leaf(1), Split(V, ()))),
    ],
)
def test_validate_rejects_bad_trees(tree):
    with pytest.raises(DegenerateTreeError):
        validate(tree, 2)


def test_aspect_of_empty_split_raises():
    with pytest.raises(DegenerateTreeError):
        aspect_ratio(Split(H, ()), [])


def test_unknown_node_is_a_type_error():
    with pytest.raises(TypeError):
        leaf_indices(Split(H, (Leaf(0), "leaf")))


def test_normalize_collapses_single_child_splits():
    tree = Split(H, (Split(V, (Leaf(0),)), Leaf(1)))
    assert normalize(tree) == Split(H, (Leaf(0), Leaf(1)))


def test_normalize_lists_splits_before_leaves():
    inner = Split(V, (Leaf(1), Leaf(2)))
    tree = Split(H, (Leaf(0), inner))
    assert normalize(tree) == Split(H, (inner, Leaf(0)))


def test_normalize_keeps_canvas_aspect():
    imgs = photos((400, 300), (300, 400), (500, 200))
    tree = Split(H, (Leaf(0), Split(V, (Split(H, (Leaf(1),)), Leaf(2)))))
    assert aspect_ratio(normalize(tree), imgs) == pytest.approx(aspect_ratio(tree, imgs))


def test_paths_address_nodes():
    tree = Split(H, (Leaf(0), Split(V, (Leaf(1), Leaf(2)))))
    paths = [p for p, _ in iter_nodes(tree)]
    assert paths == [(), (0,), (1,), (1, 0), (1, 1)]
    assert node_at(tree, (1, 1)) == Leaf(2)

    swapped = replace_at(tree, (1, 0), Leaf(7))
    assert leaf_indices(swapped) == [0, 7, 2]
    assert leaf_indices(tree) == [0, 1, 2]

    with pytest.raises(IndexError):
        node_at(tree, (0, 0))


@pytest.mark.parametrize("build", [row, column, grid])
def test_canonical_shapes_are_binary(build):
    tree = build(list(range(7)))
    validate(tree, 7)
    assert leaf_count(tree) == 7
    # a binary tree with n leaves has n - 1 splits
    assert node_count(tree) == 13
    for _, node in iter_nodes(tree):
        if isinstance(node, Split):
            assert len(node.children) == 2


def test_row_and_column_orientations():
    assert {n.orientation for _, n in iter_nodes(row([0, 1, 2])) if isinstance(n, Split)} == {V}
    assert {n.orientation for _, n in iter_nodes(column([0, 1, 2])) if isinstance(n, Split)} == {H}
    assert row([4]) == Leaf(4)


def test_grid_alternates_orientation():
    tree = grid([0, 1, 2, 3])
    assert tree == Split(V, (Split(H, (Leaf(0), Leaf(1))), Split(H, (Leaf(2), Leaf(3)))))


def test_to_dot_lists_nodes_and_edges():
    tree = Split(H, (Leaf(0), Split(V, (Leaf(1), Leaf(2)))))
    dot = to_dot(tree, photos((10, 20), (30, 40), (50, 60)))
    assert dot.startswith("digraph {")
    assert dot.endswith("}")
    assert 'label = "Horizontal"' in dot
    assert 'label = "Vertical"' in dot
    assert 'label = "Image 1 (30x40)"' in dot
    assert dot.count("->") == 4


def test_orientation_flip():
    assert H.flipped() is V
    assert V.flipped() is H
