"""Mapping of Visio shape cells to BPMN diagram coordinates.

Positions (``PinX``/``PinY``, connector begin/end points) are multiplied by
the scale factor. Widths and heights are only rounded, never scaled.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .shapes import RawShape

DEFAULT_X = 0.0
DEFAULT_Y = 0.0
DEFAULT_WIDTH = 100.0
DEFAULT_HEIGHT = 80.0

DEFAULT_BEGIN = (0.0, 0.0)
DEFAULT_END = (100.0, 100.0)


def _round(value: float) -> int:
    """Round half up, so 0.5 becomes 1 and -0.5 becomes 0."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class Bounds:
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class Point:
    x: int
    y: int


def _cell_or(shape: RawShape, name: str, default: float) -> float:
    value = shape.cell_float(name)
    return default if value is None else value


def shape_bounds(shape: RawShape, scale_factor: float) -> Bounds:
    """Diagram bounds of a shape. Missing cells fall back to 0, 0, 100, 80."""
    x = _cell_or(shape, 'PinX', DEFAULT_X)
    y = _cell_or(shape, 'PinY', DEFAULT_Y)
    width = _cell_or(shape, 'Width', DEFAULT_WIDTH)
    height = _cell_or(shape, 'Height', DEFAULT_HEIGHT)
    return Bounds(
        x=_round(x * scale_factor),
        y=_round(y * scale_factor),
        width=_round(width),
        height=_round(height),
    )


def _point(shape: RawShape, prefix: str, default: tuple[float, float], scale_factor: float) -> Point:
    x = shape.number(f'{prefix}X')
    y = shape.number(f'{prefix}Y')
    return Point(
        x=_round((default[0] if x is None else x) * scale_factor),
        y=_round((default[1] if y is None else y) * scale_factor),
    )


def connector_waypoints(shape: RawShape, scale_factor: float) -> tuple[Point, Point]:
    """Begin and end points of a connector shape."""
    return (
        _point(shape, 'Begin', DEFAULT_BEGIN, scale_factor),
        _point(shape, 'End', DEFAULT_END, scale_factor),
    )
