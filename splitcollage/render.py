from __future__ import annotations

import io
import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Sequence, Tuple

from PIL import Image

from .errors import DegenerateTreeError, EncodeError
from .geometry import Rect, leaf_rects, solve
from .images import Photo, effective_workers
from .tree import Layout, validate

logger = logging.getLogger(__name__)

# That seems to be the iOS <canvas> limit, and a sane ceiling anyway.
MAX_CANVAS_AREA = 4096 * 4096

# largest side a baseline JPEG can describe
JPEG_MAX_SIDE = 65500


@dataclass(frozen=True)
class RenderConfig:
    background: Tuple[int, int, int] = (255, 255, 255)
    quality: int = 92
    max_area: int = MAX_CANVAS_AREA
    workers: int = 1
    resample: Image.Resampling = Image.Resampling.LANCZOS


def safe_resize(
    img: Image.Image,
    size: Tuple[int, int],
    resample: Image.Resampling = Image.Resampling.LANCZOS,
) -> Image.Image:
    w, h = size
    if w <= 0 or h <= 0:
        raise ValueError("resize size must be positive")
    if img.size == (w, h):
        return img
    return img.resize((w, h), resample=resample)


def fit_canvas(width: int, height: int, max_area: int) -> Tuple[int, int]:
    """Shrink a canvas uniformly until its area fits into ``max_area``."""
    area = width * height
    if max_area <= 0 or area <= max_area:
        return width, height
    scale = math.sqrt(max_area / area)
    return max(1, int(math.floor(width * scale))), max(1, int(math.floor(height * scale)))


def render_image(layout: Layout, images: Sequence[Photo], config: RenderConfig | None = None) -> Image.Image:
    config = config or RenderConfig()
    validate(layout.tree, len(images))

    width, height = fit_canvas(layout.width, layout.height, config.max_area)
    if (width, height) != (layout.width, layout.height):
        logger.info(
            "canvas %dx%d exceeds %d px, drawing at %dx%d",
            layout.width,
            layout.height,
            config.max_area,
            width,
            height,
        )
    if width > JPEG_MAX_SIDE or height > JPEG_MAX_SIDE:
        raise EncodeError(f"canvas {width}x{height} is too large for JPEG")

    try:
        rects = leaf_rects(layout.tree, solve(layout.tree, width, height, images))
    except DegenerateTreeError as exc:
        raise EncodeError(f"cannot fit layout into a {width}x{height} canvas: {exc}") from exc

    def prepare_one(item: tuple[int, Rect]) -> tuple[Image.Image, int, int]:
        index, r = item
        pixels = images[index].pixels
        if pixels is None:
            raise EncodeError(f"image {index} has no pixel data")
        return safe_resize(pixels, (r.w, r.h), resample=config.resample), r.x, r.y

    items = sorted(rects.items())
    try:
        out = Image.new("RGB", (width, height), color=config.background)
        n_workers = effective_workers(config.workers)
        if n_workers <= 1 or len(items) <= 2:
            for item in items:
                img, x, y = prepare_one(item)
                out.paste(img, (x, y))
        else:
            with ThreadPoolExecutor(max_workers=n_workers) as ex:
                for img, x, y in ex.map(prepare_one, items):
                    out.paste(img, (x, y))
    except (OSError, ValueError, MemoryError) as exc:
        raise EncodeError(f"cannot draw {width}x{height} canvas: {exc}") from exc

    return out


def encode(img: Image.Image, quality: int = 92) -> bytes:
    buf = io.BytesIO()
    try:
        img.save(buf, format="JPEG", quality=quality, subsampling=1, optimize=True)
    except (OSError, ValueError) as exc:
        raise EncodeError(f"cannot encode JPEG: {exc}") from exc
    return buf.getvalue()


def render(layout: Layout, images: Sequence[Photo], config: RenderConfig | None = None) -> bytes:
    config = config or RenderConfig()
    started = time.perf_counter()
    data = encode(render_image(layout, images, config), quality=config.quality)
    logger.debug("rendered %d images into %d bytes in %.2fs", len(images), len(data), time.perf_counter() - started)
    return data
