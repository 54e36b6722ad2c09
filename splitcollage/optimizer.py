from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .errors import DegenerateTreeError
from .geometry import canvas_size, leaf_rects, solve
from .tree import (
    Layout,
    Leaf,
    NodePath,
    Orientation,
    Split,
    SplitNode,
    column,
    grid,
    iter_nodes,
    leaf_indices,
    node_at,
    node_count,
    normalize,
    replace_at,
    row,
    unknown_node,
    validate,
)

logger = logging.getLogger(__name__)

ORIENTATIONS = (Orientation.HORIZONTAL, Orientation.VERTICAL)


@dataclass(frozen=True)
class OptimizerConfig:
    population_size: int = 40
    generations: int = 300
    patience: int = 60
    tournament_size: int = 3
    replacement_ratio: float = 0.7
    crossover_rate: float = 0.9
    mutation_rate: float = 0.35
    # fitness weights
    distortion_weight: float = 1.0
    scale_weight: float = 0.25
    shape_weight: float = 0.5
    target_aspect: float = 1.0
    target_area: float | None = None

    def __post_init__(self) -> None:
        if self.population_size < 2:
            raise ValueError("population_size must be at least 2")
        if self.tournament_size < 1:
            raise ValueError("tournament_size must be at least 1")
        if not 0.0 < self.replacement_ratio <= 1.0:
            raise ValueError("replacement_ratio must be in (0, 1]")
        if self.target_aspect <= 0:
            raise ValueError("target_aspect must be positive")


@dataclass(frozen=True)
class Candidate:
    tree: SplitNode
    score: float
    nodes: int
    width: int
    height: int

    @property
    def rank(self) -> Tuple[float, int]:
        return (self.score, self.nodes)


def evaluate(tree: SplitNode, images: Sequence, config: OptimizerConfig | None = None) -> Candidate:
    """Score a tree on the canvas it implies; lower scores are better.

    Per leaf, the squared log ratio between the solved rectangle's aspect and
    the image's own aspect (distortion) plus the squared log ratio between the
    leaf's share of the canvas and the image's share of all input pixels
    (scale). On top of that, the squared log ratio between the canvas aspect
    and ``target_aspect`` keeps canvases from getting needlessly long.
    """
    config = config or OptimizerConfig()
    width, height = canvas_size(tree, images, config.target_area)
    rects = leaf_rects(tree, solve(tree, width, height, images))

    canvas_area = float(width * height)
    image_area = float(sum(images[i].area for i in rects))

    score = 0.0
    for index, r in rects.items():
        img = images[index]
        distortion = math.log(r.aspect / img.aspect)
        scale = math.log((r.area / canvas_area) / (img.area / image_area))
        score += config.distortion_weight * distortion * distortion
        score += config.scale_weight * scale * scale

    shape = math.log((width / height) / config.target_aspect)
    score += config.shape_weight * shape * shape

    return Candidate(tree=tree, score=score, nodes=node_count(tree), width=width, height=height)


def fitness(tree: SplitNode, images: Sequence, config: OptimizerConfig | None = None) -> float:
    return evaluate(tree, images, config).score


def random_tree(indices: Sequence[int], rng: random.Random) -> SplitNode:
    if len(indices) == 1:
        return Leaf(indices[0])
    half = len(indices) // 2
    if len(indices) % 2 and rng.random() < 0.5:
        half += 1
    orientation = rng.choice(ORIENTATIONS)
    return Split(orientation, (random_tree(indices[:half], rng), random_tree(indices[half:], rng)))


def initial_population(count: int, size: int, rng: random.Random) -> List[SplitNode]:
    indices = list(range(count))
    trees: List[SplitNode] = [
        row(indices),
        column(indices),
        grid(indices, Orientation.VERTICAL),
        grid(indices, Orientation.HORIZONTAL),
    ]
    while len(trees) < size:
        shuffled = list(indices)
        rng.shuffle(shuffled)
        trees.append(random_tree(shuffled, rng))
    return [normalize(t) for t in trees[:size]]


def _subtrees(tree: SplitNode) -> List[Tuple[NodePath, int]]:
    out: List[Tuple[NodePath, int]] = []
    for path, node in iter_nodes(tree):
        if path and isinstance(node, Split):
            out.append((path, len(leaf_indices(node))))
    return out


def _graft(tree: SplitNode, path: NodePath, sub: SplitNode) -> SplitNode:
    # leaves outside the graft that now appear twice take over the indices the
    # replaced subtree held and the graft does not
    inserted = set(leaf_indices(sub))
    missing = iter([i for i in leaf_indices(node_at(tree, path)) if i not in inserted])

    def rec(n: SplitNode, p: NodePath) -> SplitNode:
        if p == path:
            return sub
        if isinstance(n, Leaf):
            return Leaf(next(missing)) if n.index in inserted else n
        if isinstance(n, Split):
            return Split(n.orientation, tuple(rec(c, p + (i,)) for i, c in enumerate(n.children)))
        raise unknown_node(n)

    return normalize(rec(tree, ()))


def crossover(a: SplitNode, b: SplitNode, rng: random.Random) -> Tuple[SplitNode, SplitNode]:
    """Swap a random pair of subtrees holding the same number of leaves."""
    pairs = [
        (pa, pb)
        for pa, ca in _subtrees(a)
        for pb, cb in _subtrees(b)
        if ca == cb
    ]
    if not pairs:
        return a, b
    pa, pb = rng.choice(pairs)
    sub_a = node_at(a, pa)
    sub_b = node_at(b, pb)
    return _graft(a, pa, sub_b), _graft(b, pb, sub_a)


def flip_orientation(tree: SplitNode, rng: random.Random) -> SplitNode:
    splits = [(p, n) for p, n in iter_nodes(tree) if isinstance(n, Split)]
    if not splits:
        return tree
    path, node = rng.choice(splits)
    return replace_at(tree, path, Split(node.orientation.flipped(), node.children))


def swap_leaves(tree: SplitNode, rng: random.Random) -> SplitNode:
    leaves = [(p, n) for p, n in iter_nodes(tree) if isinstance(n, Leaf)]
    if len(leaves) < 2:
        return tree
    (pa, la), (pb, lb) = rng.sample(leaves, 2)
    tree = replace_at(tree, pa, Leaf(lb.index))
    return normalize(replace_at(tree, pb, Leaf(la.index)))


def move_leaf(tree: SplitNode, rng: random.Random) -> SplitNode:
    """Detach a leaf and split it off next to some other node."""
    leaves = [(p, n) for p, n in iter_nodes(tree) if isinstance(n, Leaf) and p]
    if len(leaves) < 3:
        return flip_orientation(tree, rng)

    path, leaf = rng.choice(leaves)
    parent = node_at(tree, path[:-1])
    if not isinstance(parent, Split):
        raise DegenerateTreeError(f"leaf at {path} has no parent split")
    remaining = tuple(c for i, c in enumerate(parent.children) if i != path[-1])
    pruned = normalize(replace_at(tree, path[:-1], Split(parent.orientation, remaining)))

    target_path, target = rng.choice(list(iter_nodes(pruned)))
    orientation = rng.choice(ORIENTATIONS)
    pair = (target, leaf) if rng.random() < 0.5 else (leaf, target)
    return normalize(replace_at(pruned, target_path, Split(orientation, pair)))


MUTATIONS = (flip_orientation, move_leaf, swap_leaves)


def mutate(tree: SplitNode, rng: random.Random) -> SplitNode:
    op = MUTATIONS[rng.randrange(len(MUTATIONS))]
    return op(tree, rng)


def _tournament(population: Sequence[Candidate], rng: random.Random, k: int) -> Candidate:
    picks = rng.sample(range(len(population)), k=min(k, len(population)))
    return min((population[i] for i in picks), key=lambda c: c.rank)


def optimize(images: Sequence, seed: int | None = None, config: OptimizerConfig | None = None) -> Layout:
    """Search for the split-tree that distorts ``images`` the least.

    All randomness comes from one ``random.Random(seed)``, so the same images
    and seed always give the same layout.
    """
    config = config or OptimizerConfig()
    n = len(images)
    if n == 0:
        raise ValueError("no images")

    started = time.perf_counter()

    if n == 1:
        best = evaluate(Leaf(0), images, config)
        return Layout(best.tree, best.width, best.height)

    if n == 2:
        options = [
            evaluate(Split(o, (Leaf(0), Leaf(1))), images, config) for o in ORIENTATIONS
        ]
        best = min(options, key=lambda c: c.rank)
        logger.debug(
            "two images: %s",
            ", ".join(f"{c.tree.orientation.value}={c.score:.6f}" for c in options),
        )
        return Layout(best.tree, best.width, best.height)

    rng = random.Random(seed)
    cache: Dict[SplitNode, Candidate] = {}

    def score(tree: SplitNode) -> Candidate:
        hit = cache.get(tree)
        if hit is None:
            try:
                hit = evaluate(tree, images, config)
            except DegenerateTreeError as exc:
                # canvas too small for this topology; never selected over a feasible tree
                logger.debug("discarding infeasible tree: %s", exc)
                hit = Candidate(tree=tree, score=math.inf, nodes=node_count(tree), width=0, height=0)
            cache[tree] = hit
        return hit

    population = [score(t) for t in initial_population(n, config.population_size, rng)]
    population.sort(key=lambda c: c.rank)
    best = population[0]
    stale = 0
    offspring_count = max(1, min(len(population) - 1, int(round(len(population) * config.replacement_ratio))))

    generation = 0
    for generation in range(1, config.generations + 1):
        offspring: List[SplitNode] = []
        while len(offspring) < offspring_count:
            a = _tournament(population, rng, config.tournament_size)
            b = _tournament(population, rng, config.tournament_size)
            if rng.random() < config.crossover_rate:
                children = crossover(a.tree, b.tree, rng)
            else:
                children = (a.tree, b.tree)
            for child in children:
                if rng.random() < config.mutation_rate:
                    child = mutate(child, rng)
                offspring.append(child)

        survivors = population[: len(population) - offspring_count]
        population = survivors + [score(t) for t in offspring[:offspring_count]]
        population.sort(key=lambda c: c.rank)

        if population[0].rank < best.rank:
            best = population[0]
            stale = 0
            logger.debug("generation %d: best score %.6f", generation, best.score)
        else:
            stale += 1
            if config.patience and stale >= config.patience:
                break

    if math.isinf(best.score):
        raise DegenerateTreeError(f"no layout gives each of the {n} images a visible rectangle")
    validate(best.tree, n)
    logger.info(
        "layout search: %d images, %d generations, %d trees scored, best %.6f (%dx%d) in %.2fs",
        n,
        generation,
        len(cache),
        best.score,
        best.width,
        best.height,
        time.perf_counter() - started,
    )
    return Layout(best.tree, best.width, best.height)
