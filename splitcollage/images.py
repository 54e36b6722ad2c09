from __future__ import annotations

import io
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Sequence

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import DecodeError

logger = logging.getLogger(__name__)

# allow large photos; the canvas cap in render.py bounds the output anyway
Image.MAX_IMAGE_PIXELS = max(int(getattr(Image, "MAX_IMAGE_PIXELS", 0) or 0), 250_000_000)

EXIF_ORIENTATION = 0x0112


def effective_workers(workers: int) -> int:
    if workers <= 0:
        cpu = os.cpu_count() or 4
        return min(32, max(1, cpu * 2))
    return max(1, int(workers))


@dataclass(frozen=True)
class Photo:
    """A decoded input image, already rotated into its display orientation.

    ``pixels`` may be left out when only the geometry is of interest (the
    solver and the optimizer never look at it).
    """

    width: int
    height: int
    pixels: Image.Image | None = None

    @property
    def aspect(self) -> float:
        return self.width / self.height if self.height else 1.0

    @property
    def area(self) -> int:
        return self.width * self.height


def decode(data: bytes) -> Photo:
    if not data:
        raise DecodeError("empty image buffer")

    started = time.perf_counter()
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            orientation = img.getexif().get(EXIF_ORIENTATION, 1)
            img = ImageOps.exif_transpose(img)
            if img.mode != "RGB":
                img = img.convert("RGB")
    except (Image.DecompressionBombError, UnidentifiedImageError, OSError, EOFError, SyntaxError, ValueError) as exc:
        raise DecodeError(f"cannot decode image: {exc}") from exc

    w, h = img.size
    if w <= 0 or h <= 0:
        raise DecodeError(f"image has no pixels ({w}x{h})")

    logger.debug(
        "decoded %dx%d image (exif orientation %s) in %.1f ms",
        w,
        h,
        orientation,
        (time.perf_counter() - started) * 1000.0,
    )
    return Photo(width=w, height=h, pixels=img)


def decode_all(buffers: Sequence[bytes], workers: int = 0) -> List[Photo]:
    def decode_one(item: tuple[int, bytes]) -> Photo:
        index, data = item
        try:
            return decode(data)
        except DecodeError as exc:
            raise DecodeError(str(exc), index=index) from exc

    items = list(enumerate(buffers))
    n_workers = effective_workers(workers)
    if n_workers <= 1 or len(items) <= 2:
        return [decode_one(item) for item in items]

    with ThreadPoolExecutor(max_workers=n_workers) as ex:
        return list(ex.map(decode_one, items))
