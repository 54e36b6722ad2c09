from .blueprint import Blueprint, from_blueprint, leaf_order, to_blueprint
from .engine import generate_layout, plan_layout, render_specific_layout
from .errors import BlueprintError, CollageError, DecodeError, DegenerateTreeError, EncodeError
from .geometry import Rect, solve
from .images import Photo, decode
from .optimizer import OptimizerConfig, optimize
from .render import RenderConfig, render
from .tree import Layout, Leaf, Orientation, Split, SplitNode

__version__ = "0.1.0"

__all__ = [
    "Blueprint",
    "BlueprintError",
    "CollageError",
    "DecodeError",
    "DegenerateTreeError",
    "EncodeError",
    "Layout",
    "Leaf",
    "OptimizerConfig",
    "Orientation",
    "Photo",
    "Rect",
    "RenderConfig",
    "Split",
    "SplitNode",
    "decode",
    "from_blueprint",
    "generate_layout",
    "leaf_order",
    "optimize",
    "plan_layout",
    "render",
    "render_specific_layout",
    "solve",
    "to_blueprint",
]
