"""
Hexagon template resolver and slot extractor.

Each supported group size has one pre-authored SVG asset named ``<N>.svg``.
Every ``<polygon>`` in the document is a slot; the polygon with visibly more
vertices than the border hexagons is the center.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import defusedxml.ElementTree as ET
from defusedxml import DefusedXmlException
from loguru import logger

from .config import get_config
from .errors import SvgParseError
from .slots import ParsedSlot, SlotTemplate, ViewBox, build_slot, order_polygon_slots, parse_transform


_SPLIT_RE = re.compile(r'[\s,]+')
_NUMBER_RE = re.compile(r'[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?')
_SEPARATORS_RE = re.compile(r'^[\s,]*$')


@dataclass
class AssetHandle:
    """A resolved template asset"""
    member_count: int
    path: Path

    def read_text(self) -> str:
        return self.path.read_text(encoding='utf-8')


def _local_name(tag: str) -> str:
    """Strip the XML namespace from an element tag"""
    return tag.rsplit('}', 1)[-1] if isinstance(tag, str) else ''


def parse_view_box(value: Optional[str], fallback: Tuple[float, float]) -> ViewBox:
    """Parse a viewBox attribute, falling back to a fixed width/height"""
    if value:
        try:
            parts = [float(p) for p in _SPLIT_RE.split(value.strip()) if p]
        except ValueError:
            parts = []
        if len(parts) >= 4:
            return ViewBox(width=parts[2], height=parts[3], min_x=parts[0], min_y=parts[1])
        logger.warning(f"Ignoring malformed viewBox '{value}'")

    return ViewBox(width=float(fallback[0]), height=float(fallback[1]))


def parse_points(points: str, asset: str) -> List[Tuple[float, float]]:
    """Parse a polygon points attribute into (x, y) tuples"""
    leftover = _NUMBER_RE.sub(' ', points)
    if not _SEPARATORS_RE.match(leftover):
        raise SvgParseError(asset, f"non-numeric polygon points ({leftover.split()[0]!r})")
    coords = [float(p) for p in _NUMBER_RE.findall(points)]

    if len(coords) % 2:
        raise SvgParseError(asset, f"odd number of polygon coordinates ({len(coords)})")

    return list(zip(coords[0::2], coords[1::2]))


def parse_svg_text(svg_text: str, asset: str = '<string>',
                   fallback_view_box: Tuple[float, float] = None,
                   member_count: int = None) -> SlotTemplate:
    """
    Parse a hexagon template document into an ordered SlotTemplate.

    Raises SvgParseError when the document is not well-formed SVG, has no
    usable polygons, or has no center polygon.
    """
    if fallback_view_box is None:
        config = get_config()
        fallback_view_box = (config.FALLBACK_VIEWBOX_WIDTH, config.FALLBACK_VIEWBOX_HEIGHT)

    try:
        root = ET.fromstring(svg_text)
    except (ET.ParseError, DefusedXmlException) as e:
        raise SvgParseError(asset, f"invalid XML ({e})")

    if _local_name(root.tag) != 'svg':
        raise SvgParseError(asset, f"root element is <{_local_name(root.tag)}>, expected <svg>")

    view_box = parse_view_box(root.get('viewBox'), fallback_view_box)

    raw_slots: List[ParsedSlot] = []
    for element in root.iter():
        if _local_name(element.tag) != 'polygon':
            continue
        points_attr = element.get('points')
        if not points_attr:
            continue

        points = parse_points(points_attr, asset)
        if len(points) < 3:
            logger.debug(f"Skipping degenerate polygon with {len(points)} point(s) in {asset}")
            continue

        transform = element.get('transform')
        if transform:
            try:
                parse_transform(transform)
            except ValueError as e:
                raise SvgParseError(asset, f"bad polygon transform ({e})")

        raw_slots.append(build_slot(f"slot-{len(raw_slots)}", points, transform=transform))

    if not raw_slots:
        raise SvgParseError(asset, "no polygon slots found")

    slots = order_polygon_slots(raw_slots, view_box)
    if not slots[0].is_center:
        raise SvgParseError(asset, "no center polygon (largest shape must have more than 15 vertices)")

    logger.debug(f"Parsed {asset}: {len(slots)} slots, viewBox {view_box.width}x{view_box.height}")
    return SlotTemplate(
        slots=slots,
        view_box=view_box,
        family='hexagonal',
        member_count=member_count,
        source=asset
    )


def resolve(member_count: int, registry=None) -> AssetHandle:
    """
    Find the hexagon asset for a member count.

    Raises TemplateNotFoundError when no asset is registered for it.
    """
    if registry is None:
        from .templates import get_registry
        registry = get_registry()
    return registry.resolve_hexagon(member_count)


def extract(handle: AssetHandle) -> SlotTemplate:
    """Load and parse a resolved hexagon asset"""
    try:
        svg_text = handle.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise SvgParseError(str(handle.path), f"unreadable asset ({e})")

    return parse_svg_text(svg_text, asset=str(handle.path), member_count=handle.member_count)


def load_hexagon_template(member_count: int, registry=None) -> SlotTemplate:
    """Resolve and extract in one step"""
    return extract(resolve(member_count, registry))
