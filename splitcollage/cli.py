from __future__ import annotations

import argparse
import json
import logging
import math
import sys
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from .blueprint import Blueprint, layout_from_blueprint, leaf_order, to_blueprint
from .errors import CollageError
from .geometry import leaf_rects, solve
from .images import decode_all
from .optimizer import OptimizerConfig, evaluate, optimize
from .render import MAX_CANVAS_AREA, RenderConfig, render
from .tree import to_dot

SUPPORTED_EXTS = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".tif", ".tiff"}

logger = logging.getLogger("splitcollage")


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )
    root = logging.getLogger("splitcollage")
    root.handlers[:] = [handler]
    root.setLevel(level)


def iter_image_files(folder: Path, recursive: bool) -> List[Path]:
    if not folder.exists() or not folder.is_dir():
        raise FileNotFoundError(f"input folder not found: {folder}")

    files: List[Path] = []
    if recursive:
        walker: Iterable[Path] = folder.rglob("*")
    else:
        walker = folder.glob("*")

    for p in walker:
        if p.is_file() and p.suffix.lower() in SUPPORTED_EXTS:
            files.append(p)

    return sorted(files)


def parse_rgb(value: str) -> Tuple[int, int, int]:
    s = value.strip().lower()
    if s.startswith("#"):
        s = s[1:]
    if len(s) != 6 or any(c not in "0123456789abcdef" for c in s):
        raise ValueError("--background must be RRGGBB or #RRGGBB")
    r = int(s[0:2], 16)
    g = int(s[2:4], 16)
    b = int(s[4:6], 16)
    return (r, g, b)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="splitcollage",
        description="Arrange photos into a collage that fills its canvas exactly without cropping.",
    )

    parser.add_argument("files", nargs="*", help="Image files (in addition to --input)")
    parser.add_argument("--input", type=str, default=None, help="Input folder containing photos")
    parser.add_argument("--recursive", action="store_true", help="Scan input folder recursively")
    parser.add_argument("--output", type=str, default="collage.jpg", help="Output JPEG path")

    parser.add_argument("--seed", type=int, default=None, help="Random seed (for reproducible layouts)")
    parser.add_argument(
        "--blueprint",
        type=str,
        default=None,
        help="Replay a saved blueprint JSON instead of searching for a layout.",
    )
    parser.add_argument(
        "--save-blueprint",
        type=str,
        default=None,
        help="Write the chosen layout as blueprint JSON, with the image files in binding order.",
    )

    parser.add_argument("--population", type=int, default=40, help="Layouts kept per generation")
    parser.add_argument("--generations", type=int, default=300, help="Upper bound on generations")
    parser.add_argument(
        "--patience",
        type=int,
        default=60,
        help="Stop after this many generations without improvement (0 disables).",
    )

    parser.add_argument("--background", type=str, default="ffffff", help="Background color in RRGGBB or #RRGGBB")
    parser.add_argument("--quality", type=int, default=92, help="JPEG quality [1..95]")
    parser.add_argument(
        "--max-area",
        type=int,
        default=MAX_CANVAS_AREA,
        help="Largest canvas area in pixels; bigger layouts are scaled down before drawing.",
    )
    parser.add_argument("--workers", type=int, default=0, help="Thread workers for decoding/resizing. 0 means auto.")

    parser.add_argument("--dot", action="store_true", help="Print the layout tree as Graphviz source")
    parser.add_argument("--stats", action="store_true", help="Print layout score and tile statistics")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def collect_files(args: argparse.Namespace) -> List[Path]:
    files = [Path(f) for f in args.files]
    if args.input:
        files.extend(iter_image_files(Path(args.input), recursive=args.recursive))
    return files


def load_blueprint(path: Path) -> Tuple[Blueprint, List[Path]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    names = data.get("images") if isinstance(data, dict) else None
    files = [path.parent / n for n in names] if isinstance(names, list) else []
    return Blueprint.from_dict(data), files


def print_stats(layout, photos: Sequence, config: OptimizerConfig) -> None:
    rects = leaf_rects(layout.tree, solve(layout.tree, layout.width, layout.height, photos))
    areas = [r.area for r in rects.values()]
    n = len(areas)
    avg_a = sum(areas) / n
    min_a = min(areas)
    max_a = max(areas)
    var = sum((a - avg_a) ** 2 for a in areas) / n
    cv = (math.sqrt(var) / avg_a) if avg_a else 0.0
    worst = max(abs(math.log(r.aspect / photos[i].aspect)) for i, r in rects.items())
    print(f"canvas: {layout.width}x{layout.height}; score={evaluate(layout.tree, photos, config).score:.6f}")
    print(f"tiles: n={n}; max/min area={max_a / min_a:.2f}; area cv={cv:.2f}; worst aspect error={worst * 100.0:.2f}%")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        background = parse_rgb(args.background)
    except ValueError as exc:
        parser.error(str(exc))

    opt_config = OptimizerConfig(
        population_size=max(2, int(args.population)),
        generations=max(0, int(args.generations)),
        patience=max(0, int(args.patience)),
    )
    render_config = RenderConfig(
        background=background,
        quality=max(1, min(95, int(args.quality))),
        max_area=max(1, int(args.max_area)),
        workers=args.workers,
    )

    blueprint = None
    files = collect_files(args)
    if args.blueprint:
        try:
            blueprint, saved_files = load_blueprint(Path(args.blueprint))
        except (OSError, ValueError, CollageError) as exc:
            raise SystemExit(f"cannot read blueprint {args.blueprint}: {exc}") from exc
        if not files:
            files = saved_files

    if not files:
        raise SystemExit("No images given; pass files or --input")
    if blueprint is None and len(files) < 2:
        raise SystemExit("Need at least 2 images")

    try:
        photos = decode_all([p.read_bytes() for p in files], workers=args.workers)
        if blueprint is not None:
            layout = layout_from_blueprint(blueprint, photos)
        else:
            layout = optimize(photos, seed=args.seed, config=opt_config)

        if args.dot:
            print(to_dot(layout.tree, photos))
        if args.stats:
            print_stats(layout, photos, opt_config)

        if args.save_blueprint:
            out_bp = Path(args.save_blueprint)
            data = to_blueprint(layout).to_dict()
            data["images"] = [str(files[i].resolve()) for i in leaf_order(layout.tree)]
            out_bp.parent.mkdir(parents=True, exist_ok=True)
            out_bp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            logger.info("saved blueprint to %s", out_bp)

        data = render(layout, photos, render_config)
    except CollageError as exc:
        raise SystemExit(f"collage failed: {exc}") from exc

    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(data)
    logger.info("saved %s (%d images)", out_path, len(photos))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
