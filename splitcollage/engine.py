"""Entry points for the host application.

Both calls are synchronous and keep no state between requests; callers that
want caching can key ``plan_layout`` results on the image bytes and seed and
replay them through ``render_specific_layout``.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Sequence, Tuple

from .blueprint import Blueprint, layout_from_blueprint, leaf_order, to_blueprint
from .images import decode_all
from .optimizer import OptimizerConfig, optimize
from .render import RenderConfig, render

logger = logging.getLogger(__name__)


def generate_layout(
    images: Sequence[bytes],
    seed: int | None = None,
    optimizer_config: OptimizerConfig | None = None,
    render_config: RenderConfig | None = None,
) -> bytes:
    render_config = render_config or RenderConfig()
    photos = decode_all(images, workers=render_config.workers)
    layout = optimize(photos, seed=seed, config=optimizer_config)
    logger.info("rendering %d images on a %dx%d canvas", len(photos), layout.width, layout.height)
    return render(layout, photos, render_config)


def render_specific_layout(
    blueprint: Blueprint | Mapping[str, Any],
    images: Sequence[bytes],
    render_config: RenderConfig | None = None,
) -> bytes:
    if not isinstance(blueprint, Blueprint):
        blueprint = Blueprint.from_dict(blueprint)
    render_config = render_config or RenderConfig()
    photos = decode_all(images, workers=render_config.workers)
    layout = layout_from_blueprint(blueprint, photos)
    return render(layout, photos, render_config)


def plan_layout(
    images: Sequence[bytes],
    seed: int | None = None,
    optimizer_config: OptimizerConfig | None = None,
) -> Tuple[Blueprint, List[int]]:
    """Run only the search.

    Returns the blueprint and the order in which the images have to be passed
    to ``render_specific_layout`` to reproduce the layout.
    """
    photos = decode_all(images)
    layout = optimize(photos, seed=seed, config=optimizer_config)
    return to_blueprint(layout), leaf_order(layout.tree)
