import io

import pytest
from PIL import Image

EXIF_ORIENTATION = 0x0112


def jpeg_bytes(width, height, color=(200, 40, 40), orientation=None, quality=95):
    img = Image.new("RGB", (width, height), color)
    buf = io.BytesIO()
    kwargs = {}
    if orientation is not None:
        exif = Image.Exif()
        exif[EXIF_ORIENTATION] = orientation
        kwargs["exif"] = exif.tobytes()
    img.save(buf, format="JPEG", quality=quality, **kwargs)
    return buf.getvalue()


@pytest.fixture
def make_jpeg():
    return jpeg_bytes


# Seven photos and a blueprint that arranges them on a 506x502 canvas.
FIXTURE_SIZES = [(200, 140), (175, 175), (306, 220), (202, 192), (200, 302), (170, 200), (170, 170)]
FIXTURE_COLORS = [
    (220, 30, 30),
    (30, 200, 30),
    (30, 30, 220),
    (230, 220, 30),
    (210, 30, 210),
    (30, 210, 210),
    (120, 120, 120),
]
FIXTURE_BLUEPRINT = {
    "graph_representation": [["H", [1, 3]], ["V", [2, 4]], ["H", []], ["V", []], ["V", [5]], ["H", []]],
    "width": 506,
    "height": 502,
}


@pytest.fixture
def fixture_blueprint():
    return {
        "graph_representation": [list(n) for n in FIXTURE_BLUEPRINT["graph_representation"]],
        "width": FIXTURE_BLUEPRINT["width"],
        "height": FIXTURE_BLUEPRINT["height"],
    }


@pytest.fixture
def fixture_jpegs():
    return [jpeg_bytes(w, h, c) for (w, h), c in zip(FIXTURE_SIZES, FIXTURE_COLORS)]


@pytest.fixture
def fixture_colors():
    return list(FIXTURE_COLORS)
