"""
Slot geometry generator for the square (grid) template family.

A layout is a center block of ``row_span x col_span`` cells surrounded by
an innermost perimeter (top row, left flank, right flank, bottom row) and,
when the group is larger than that perimeter, by extension bands stacked
above and below it.

Extension bands:
- Up to three bands' worth of extra cells, each new band goes on the side
  with fewer extension cells so far, and ties go to the bottom.
- Beyond that, both sides get the same number of bands (the bottom takes
  the odd cell) and each side tapers outward: the outermost band is two
  cells narrower than the perimeter where the count allows it.
- A band is never wider than the innermost perimeter or than the previous
  band on the same side.
- Bands are centered horizontally, so narrower bands get half-integer
  column offsets.

Index contract (consumed by photo assignment):
    top, left (row-major), right (row-major), bottom,
    bottom extension bands inner -> outer,
    top extension bands inner -> outer

The slot list itself is emitted in visual order, top row to bottom row.
Indices are not stable across member counts; every N gets its own layout.
"""

import math
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import List, Optional, Tuple

from loguru import logger

from .errors import TemplateNotFoundError
from .slots import SlotTemplate, ViewBox, build_slot


class SlotKind(str, Enum):
    TOP_EXT_MOST = 'topExtMost'
    TOP_EXT = 'topExt'
    TOP = 'top'
    LEFT = 'left'
    CENTER = 'center'
    RIGHT = 'right'
    BOTTOM = 'bottom'
    BOTTOM_EXT = 'bottomExt'
    BOTTOM_MOST_EXT = 'bottomMostExt'


CENTER_INDEX = -1


@dataclass(frozen=True)
class SlotSpec:
    """One cell of a grid layout in virtual grid coordinates"""
    kind: SlotKind
    index: int
    row: float
    col: float
    row_span: int = 1
    col_span: int = 1

    @property
    def is_center(self) -> bool:
        return self.index == CENTER_INDEX


@dataclass(frozen=True)
class CenterBlock:
    """Center block size used for every group size up to ``max_members``"""
    max_members: int
    row_span: int
    col_span: int
    flank: int = 1
    corners: bool = True
    top_cells: Optional[int] = None
    bottom_cells: Optional[int] = None
    flank_rows: Optional[int] = None

    @property
    def grid_cols(self) -> int:
        return self.col_span + 2 * self.flank

    @property
    def band_width(self) -> int:
        """Width the innermost top/bottom rows are centered against"""
        return self.grid_cols if self.corners else self.col_span

    @property
    def band_origin(self) -> int:
        """First column of the innermost top/bottom rows"""
        return 0 if self.corners else self.flank

    @property
    def top_width(self) -> int:
        return self.top_cells or self.band_width

    @property
    def bottom_width(self) -> int:
        return self.bottom_cells or self.band_width

    @property
    def flank_height(self) -> int:
        return self.flank_rows or self.row_span

    @property
    def extension_width(self) -> int:
        """Widest allowed extension band"""
        return min(self.band_width, self.top_width, self.bottom_width)

    @property
    def perimeter(self) -> int:
        return self.top_width + self.bottom_width + 2 * self.flank * self.flank_height


# Ordered by max_members; a group uses the first block that can hold it.
CENTER_BLOCKS: Tuple[CenterBlock, ...] = (
    CenterBlock(15, row_span=4, col_span=4, corners=False, top_cells=3, bottom_cells=3, flank_rows=3),
    CenterBlock(17, row_span=4, col_span=4, corners=False),
    CenterBlock(18, row_span=5, col_span=4, corners=False),
    CenterBlock(19, row_span=5, col_span=4, corners=False, bottom_cells=5),
    CenterBlock(23, row_span=5, col_span=5, corners=False),
    CenterBlock(27, row_span=4, col_span=6),
    CenterBlock(40, row_span=6, col_span=6),
    CenterBlock(50, row_span=5, col_span=6),
    CenterBlock(75, row_span=5, col_span=5, flank=2),
    CenterBlock(100, row_span=5, col_span=5, flank=3),
)

MIN_MEMBERS = CENTER_BLOCKS[0].perimeter
MAX_MEMBERS = CENTER_BLOCKS[-1].max_members


@dataclass(frozen=True)
class GridLayout:
    """Result of ``generate``: slots in visual order plus the virtual grid size"""
    member_count: int
    slots: Tuple[SlotSpec, ...]
    cols: int
    rows: int

    @property
    def center(self) -> SlotSpec:
        return next(s for s in self.slots if s.is_center)

    def ordered_border_slots(self) -> List[SlotSpec]:
        """Border slots sorted by member index"""
        return sorted((s for s in self.slots if not s.is_center), key=lambda s: s.index)

    def slots_of_kind(self, kind: SlotKind) -> List[SlotSpec]:
        return [s for s in self.slots if s.kind == kind]


@dataclass(frozen=True)
class CellPosition:
    """Pixel rectangle for a slot on a concrete canvas"""
    spec: SlotSpec
    x: int
    y: int
    width: int
    height: int


def supports(member_count: int) -> bool:
    """True when the grid family has a layout for this member count"""
    return isinstance(member_count, int) and MIN_MEMBERS <= member_count <= MAX_MEMBERS


def center_block_for(member_count: int) -> CenterBlock:
    """Look up the center block family for a member count"""
    if not supports(member_count):
        raise TemplateNotFoundError(member_count, family='square')
    for block in CENTER_BLOCKS:
        if member_count <= block.max_members:
            return block
    raise TemplateNotFoundError(member_count, family='square')


def plan_extension_bands(extra: int, max_width: int) -> List[Tuple[str, int]]:
    """
    Split ``extra`` cells into extension bands.

    Returns (side, width) tuples in creation order, side being 'top' or
    'bottom'.
    """
    if extra > 3 * max_width:
        bottom_total = extra - extra // 2
        count = max(2, math.ceil(bottom_total / max_width))
        bottom = _tapered_widths(bottom_total, max_width, count)
        top = _tapered_widths(extra // 2, max_width, count)
        bands = []
        for bottom_width, top_width in zip(bottom, top):
            bands.extend([('bottom', bottom_width), ('top', top_width)])
        return bands

    bands = []
    totals = {'top': 0, 'bottom': 0}
    last_width = {'top': max_width, 'bottom': max_width}
    remaining = extra

    while remaining > 0:
        side = 'top' if totals['top'] < totals['bottom'] else 'bottom'
        width = min(max_width, remaining, last_width[side])
        bands.append((side, width))
        totals[side] += width
        last_width[side] = width
        remaining -= width

    return bands


def _tapered_widths(total: int, max_width: int, count: int) -> List[int]:
    """Widths for one side's bands, innermost first, narrowing outward"""
    widths = [max_width] * (count - 2)
    rest = total - sum(widths)
    outer = max(rest - max_width, min(max_width - 2, rest // 2))
    return widths + [rest - outer, outer]


def _band_kinds(side: str, count: int) -> List[SlotKind]:
    """Kinds for ``count`` bands on one side, innermost first"""
    if side == 'bottom':
        return [SlotKind.BOTTOM_EXT] + [SlotKind.BOTTOM_MOST_EXT] * (count - 1)
    return [SlotKind.TOP_EXT] * (count - 1) + [SlotKind.TOP_EXT_MOST]


def _row_cells(kind, first_index, width, row, first_col):
    return [
        SlotSpec(kind=kind, index=first_index + i, row=row, col=first_col + i)
        for i in range(width)
    ]


def _flank_cells(kind, first_index, block, first_row, first_col):
    cells = []
    index = first_index
    for r in range(block.flank_height):
        for c in range(block.flank):
            cells.append(SlotSpec(kind=kind, index=index, row=first_row + r, col=first_col + c))
            index += 1
    return cells


@lru_cache(maxsize=None)
def _build_layout(member_count: int) -> GridLayout:
    block = center_block_for(member_count)
    width = block.band_width
    bands = plan_extension_bands(member_count - block.perimeter, block.extension_width)

    top_widths = [w for side, w in bands if side == 'top']
    bottom_widths = [w for side, w in bands if side == 'bottom']

    top_row = len(top_widths)
    first_body_row = top_row + 1
    bottom_row = first_body_row + block.row_span

    def band_col(band_width: int) -> float:
        return block.band_origin + (width - band_width) / 2

    flank_row = first_body_row + (block.row_span - block.flank_height) / 2

    # Innermost perimeter indices
    next_index = 0
    top = _row_cells(SlotKind.TOP, next_index, block.top_width, top_row, band_col(block.top_width))
    next_index += block.top_width

    left = _flank_cells(SlotKind.LEFT, next_index, block, flank_row, 0)
    next_index += len(left)

    right = _flank_cells(SlotKind.RIGHT, next_index, block, flank_row, block.flank + block.col_span)
    next_index += len(right)

    bottom = _row_cells(SlotKind.BOTTOM, next_index, block.bottom_width, bottom_row, band_col(block.bottom_width))
    next_index += block.bottom_width

    bottom_bands = []
    for depth, (kind, band_width) in enumerate(zip(_band_kinds('bottom', len(bottom_widths)), bottom_widths), start=1):
        bottom_bands.append(_row_cells(kind, next_index, band_width, bottom_row + depth, band_col(band_width)))
        next_index += band_width

    top_bands = []
    for depth, (kind, band_width) in enumerate(zip(_band_kinds('top', len(top_widths)), top_widths), start=1):
        top_bands.append(_row_cells(kind, next_index, band_width, top_row - depth, band_col(band_width)))
        next_index += band_width

    center = SlotSpec(
        kind=SlotKind.CENTER,
        index=CENTER_INDEX,
        row=first_body_row,
        col=block.flank,
        row_span=block.row_span,
        col_span=block.col_span
    )

    slots = []
    for band in reversed(top_bands):
        slots.extend(band)
    slots.extend(top)
    slots.extend(left)
    slots.append(center)
    slots.extend(right)
    slots.extend(bottom)
    for band in bottom_bands:
        slots.extend(band)

    layout = GridLayout(
        member_count=member_count,
        slots=tuple(slots),
        cols=block.grid_cols,
        rows=bottom_row + len(bottom_widths) + 1
    )
    logger.debug(f"Generated grid layout for {member_count} members: "
                 f"{layout.cols}x{layout.rows}, {len(bands)} extension band(s)")
    return layout


def generate(member_count: int) -> GridLayout:
    """
    Deterministic slot layout for a group of ``member_count`` members.

    Raises TemplateNotFoundError outside the supported range.
    """
    if not supports(member_count):
        logger.warning(f"No square template for {member_count} members")
        raise TemplateNotFoundError(member_count, family='square')
    return _build_layout(member_count)


def _js_round(value: float) -> int:
    """Round half up (2.5 -> 3, -2.5 -> -2)"""
    return int(math.floor(value + 0.5))


def calculate_cell_positions(layout: GridLayout, canvas_width: float, canvas_height: float,
                             gap: float = 4) -> List[CellPosition]:
    """Pixel rectangles for every slot of a layout, in layout order"""
    cell_w = (canvas_width - (layout.cols + 1) * gap) / layout.cols
    cell_h = (canvas_height - (layout.rows + 1) * gap) / layout.rows

    positions = []
    for spec in layout.slots:
        x = gap + spec.col * (cell_w + gap)
        y = gap + spec.row * (cell_h + gap)
        w = spec.col_span * cell_w + (spec.col_span - 1) * gap
        h = spec.row_span * cell_h + (spec.row_span - 1) * gap
        positions.append(CellPosition(
            spec=spec,
            x=_js_round(x),
            y=_js_round(y),
            width=_js_round(w),
            height=_js_round(h)
        ))
    return positions


def grid_template(member_count: int, canvas_size: Tuple[int, int], gap: float = 4) -> SlotTemplate:
    """
    Grid layout converted into the common slot contract.

    Slot order is [center, border index 0, 1, ..., N-1].
    """
    layout = generate(member_count)
    width, height = canvas_size
    positions = {p.spec: p for p in calculate_cell_positions(layout, width, height, gap)}

    ordered = [layout.center] + layout.ordered_border_slots()
    slots = []
    for spec in ordered:
        cell = positions[spec]
        x0, y0 = cell.x, cell.y
        x1, y1 = cell.x + cell.width, cell.y + cell.height
        slot_id = 'slot-center' if spec.is_center else f"slot-{spec.index}"
        slots.append(build_slot(slot_id, [(x0, y0), (x1, y0), (x1, y1), (x0, y1)], is_center=spec.is_center))

    return SlotTemplate(
        slots=slots,
        view_box=ViewBox(width=float(width), height=float(height)),
        family='square',
        member_count=member_count
    )
