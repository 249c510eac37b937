"""
Slot shapes shared by both template families.

Whatever produced the layout (the parametric grid generator or a hexagon
SVG asset), the renderer only ever sees a ``SlotTemplate``: an ordered list
of ``ParsedSlot`` objects, center first, followed by the border slots in
member order, plus the ``ViewBox`` the coordinates live in.

This module also holds the classification and ordering rules for polygon
templates:

- the center is the polygon with the most vertices, provided it has more
  than ``CENTER_MIN_VERTICES`` of them
- border slots are ordered clockwise starting at 12 o'clock around the
  geometric center of the view box
"""

import math
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger


# Border hexagons have 6 vertices; the center shape is drawn with many more
CENTER_MIN_VERTICES = 15

Point = Tuple[float, float]


@dataclass
class BoundingBox:
    """Axis-aligned bounding box in view box units"""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass
class ViewBox:
    """Coordinate system of a template"""
    width: float
    height: float
    min_x: float = 0.0
    min_y: float = 0.0

    @property
    def center(self) -> Point:
        return (self.min_x + self.width / 2, self.min_y + self.height / 2)


@dataclass
class ParsedSlot:
    """A single closed slot shape ready for drawing"""
    id: str
    path_data: str
    points: List[Point]
    is_center: bool
    bbox: BoundingBox
    centroid: Point
    transform: Optional[str] = None

    @property
    def vertex_count(self) -> int:
        return len(self.points)

    def drawing_points(self) -> List[Point]:
        """Vertices with the slot's transform applied"""
        if not self.transform:
            return list(self.points)
        return apply_transform(self.points, parse_transform(self.transform))


@dataclass
class SlotTemplate:
    """Ordered slot list consumed by photo assignment and compositing"""
    slots: List[ParsedSlot]
    view_box: ViewBox
    family: str = "hexagonal"
    member_count: Optional[int] = None
    source: Optional[str] = None

    @property
    def center_slots(self) -> List[ParsedSlot]:
        return [s for s in self.slots if s.is_center]

    @property
    def border_slots(self) -> List[ParsedSlot]:
        return [s for s in self.slots if not s.is_center]

    def __len__(self) -> int:
        return len(self.slots)


def format_number(value: float) -> str:
    """Shortest textual form of a coordinate (10.0 -> '10', 2.5 -> '2.5')"""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def polygon_to_path(points: Sequence[Point]) -> str:
    """Convert a vertex list into an equivalent closed path: M x0 y0 L x1 y1 ... Z"""
    if not points:
        raise ValueError("Cannot build a path from an empty point list")

    parts = ['M', format_number(points[0][0]), format_number(points[0][1])]
    for x, y in points[1:]:
        parts.extend(['L', format_number(x), format_number(y)])
    parts.append('Z')
    return ' '.join(parts)


def centroid_and_bbox(points: Sequence[Point]) -> Tuple[Point, BoundingBox]:
    """Arithmetic mean of the vertices and their axis-aligned bounding box"""
    coords = np.asarray(points, dtype=float)
    cx, cy = coords.mean(axis=0)
    min_x, min_y = coords.min(axis=0)
    max_x, max_y = coords.max(axis=0)
    bbox = BoundingBox(
        x=float(min_x),
        y=float(min_y),
        width=float(max_x - min_x),
        height=float(max_y - min_y)
    )
    return (float(cx), float(cy)), bbox


def build_slot(slot_id: str, points: Sequence[Point], is_center: bool = False,
               transform: Optional[str] = None) -> ParsedSlot:
    """Create a ParsedSlot from raw vertices"""
    points = [(float(x), float(y)) for x, y in points]
    centroid, bbox = centroid_and_bbox(points)
    return ParsedSlot(
        id=slot_id,
        path_data=polygon_to_path(points),
        points=points,
        is_center=is_center,
        bbox=bbox,
        centroid=centroid,
        transform=transform
    )


def clockwise_angle(point: Point, origin: Point) -> float:
    """
    Angle of ``point`` around ``origin`` in [0, 2*pi).

    0 is straight up and the angle grows clockwise in screen coordinates
    (y pointing down). Quarter-turn offset applied before normalizing.
    """
    angle = math.atan2(point[1] - origin[1], point[0] - origin[0])
    return ((angle + math.pi / 2) + 2 * math.pi) % (2 * math.pi)


def classify_slots(slots: List[ParsedSlot]) -> Tuple[List[ParsedSlot], List[ParsedSlot]]:
    """
    Split polygon slots into (center, border).

    Every polygon whose vertex count equals the maximum and exceeds
    CENTER_MIN_VERTICES is a center; everything else is border.
    """
    if not slots:
        return [], []

    max_vertices = max(s.vertex_count for s in slots)
    center, border = [], []
    for slot in slots:
        slot.is_center = slot.vertex_count == max_vertices and slot.vertex_count > CENTER_MIN_VERTICES
        (center if slot.is_center else border).append(slot)

    if len(center) > 1:
        logger.warning(f"{len(center)} polygons tie for the center shape ({max_vertices} vertices)")

    return center, border


def sort_border_clockwise(border: List[ParsedSlot], view_box: ViewBox) -> List[ParsedSlot]:
    """Order border slots clockwise from the top around the view box center"""
    origin = view_box.center
    return sorted(border, key=lambda s: clockwise_angle(s.centroid, origin))


def order_polygon_slots(slots: List[ParsedSlot], view_box: ViewBox) -> List[ParsedSlot]:
    """Final slot order for polygon templates: [center, *clockwise border]"""
    center, border = classify_slots(slots)
    return center + sort_border_clockwise(border, view_box)


# SVG transform attribute support

_TRANSFORM_RE = re.compile(r'(matrix|translate|scale|rotate|skewX|skewY)\s*\(([^)]*)\)')
_NUMBER_SPLIT_RE = re.compile(r'[\s,]+')


def _transform_matrix(name: str, args: List[float]) -> np.ndarray:
    """3x3 affine matrix for a single SVG transform function"""
    m = np.identity(3)
    if name == 'matrix':
        if len(args) != 6:
            raise ValueError(f"matrix() expects 6 values, got {len(args)}")
        a, b, c, d, e, f = args
        m[0] = [a, c, e]
        m[1] = [b, d, f]
    elif name == 'translate':
        m[0, 2] = args[0]
        m[1, 2] = args[1] if len(args) > 1 else 0.0
    elif name == 'scale':
        m[0, 0] = args[0]
        m[1, 1] = args[1] if len(args) > 1 else args[0]
    elif name == 'rotate':
        theta = math.radians(args[0])
        rot = np.array([
            [math.cos(theta), -math.sin(theta), 0.0],
            [math.sin(theta), math.cos(theta), 0.0],
            [0.0, 0.0, 1.0]
        ])
        if len(args) == 3:
            cx, cy = args[1], args[2]
            to_origin = np.identity(3)
            to_origin[:2, 2] = [-cx, -cy]
            back = np.identity(3)
            back[:2, 2] = [cx, cy]
            return back @ rot @ to_origin
        return rot
    elif name == 'skewX':
        m[0, 1] = math.tan(math.radians(args[0]))
    elif name == 'skewY':
        m[1, 0] = math.tan(math.radians(args[0]))
    return m


def parse_transform(transform: str) -> np.ndarray:
    """Compose an SVG transform list (left to right) into one 3x3 matrix"""
    result = np.identity(3)
    matched = False
    for name, raw_args in _TRANSFORM_RE.findall(transform or ''):
        values = [v for v in _NUMBER_SPLIT_RE.split(raw_args.strip()) if v]
        if not values:
            raise ValueError(f"{name}() has no arguments")
        args = [float(v) for v in values]
        result = result @ _transform_matrix(name, args)
        matched = True

    if transform and transform.strip() and not matched:
        raise ValueError(f"Unsupported transform: {transform}")

    return result


def apply_transform(points: Sequence[Point], matrix: np.ndarray) -> List[Point]:
    """Apply a 3x3 affine matrix to a list of points"""
    coords = np.asarray(points, dtype=float)
    homogeneous = np.column_stack([coords, np.ones(len(coords))])
    transformed = homogeneous @ matrix.T
    return [(float(x), float(y)) for x, y in transformed[:, :2]]
