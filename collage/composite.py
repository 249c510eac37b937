"""
Composite module for the collage render service.

This module handles:
- Allocating the supersampled drawing surface
- Drawing every slot shape with its placeholder fill and stroke
- Clipping member photos to their slot and scaling them to cover it
- Encoding the finished collage as PNG
"""

import io
from typing import Dict, List, Optional, Tuple

from PIL import Image, ImageDraw
from loguru import logger

from .assignment import SlotAssignment
from .config import AppConfig, get_config
from .errors import CanvasContextError, ImageLoadError
from .photos import PhotoLoader, PhotoResult
from .slots import BoundingBox, SlotTemplate, ViewBox


# Hard ceiling on the backing surface, in pixels
MAX_CANVAS_PIXELS = 16384 * 16384


class CompositeSettings:
    """Settings for composite operations."""

    def __init__(self,
                 scale: float = 2,
                 background_color: str = '#ffffff',
                 fill_color: str = '#00c1f3',
                 stroke_color: str = '#231f20',
                 stroke_width: float = 1.0,
                 compress_level: int = 6):
        self.scale = scale
        self.background_color = background_color
        self.fill_color = fill_color
        self.stroke_color = stroke_color
        self.stroke_width = stroke_width
        self.compress_level = compress_level

    @classmethod
    def from_config(cls, config: AppConfig) -> 'CompositeSettings':
        return cls(
            scale=config.RENDER_SCALE,
            fill_color=config.SLOT_FILL_COLOR,
            stroke_color=config.SLOT_STROKE_COLOR,
            stroke_width=config.SLOT_STROKE_WIDTH
        )


def cover_box(bbox: BoundingBox, image_size: Tuple[int, int]) -> Tuple[float, float, float, float]:
    """
    Placement (x, y, width, height) that covers a slot's bounding box.

    The photo is fitted to a square of side max(bw, bh) centered on the box:
    its shorter side matches the square and the longer side overflows
    equally on both ends, to be cropped by the slot clip.
    """
    img_size = max(bbox.width, bbox.height)
    img_x = bbox.x + (bbox.width - img_size) / 2
    img_y = bbox.y + (bbox.height - img_size) / 2

    aspect_ratio = image_size[0] / image_size[1]
    draw_w, draw_h = img_size, img_size
    draw_x, draw_y = img_x, img_y

    if aspect_ratio > 1:
        draw_w = img_size * aspect_ratio
        draw_x = img_x - (draw_w - img_size) / 2
    else:
        draw_h = img_size / aspect_ratio
        draw_y = img_y - (draw_h - img_size) / 2

    return draw_x, draw_y, draw_w, draw_h


def _points_bbox(points: List[Tuple[float, float]]) -> BoundingBox:
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return BoundingBox(x=min(xs), y=min(ys), width=max(xs) - min(xs), height=max(ys) - min(ys))


class Compositor:
    """Draws a slot template and its assigned photos onto one raster image."""

    def __init__(self, config: AppConfig = None, loader: PhotoLoader = None,
                 settings: CompositeSettings = None):
        self.config = config or get_config()
        self.loader = loader or PhotoLoader(self.config)
        self.settings = settings or CompositeSettings.from_config(self.config)

    def create_canvas(self, view_box: ViewBox, scale: float) -> Image.Image:
        """Allocate the backing surface; CanvasContextError if impossible."""
        width = int(round(view_box.width * scale))
        height = int(round(view_box.height * scale))

        if width <= 0 or height <= 0:
            raise CanvasContextError(width, height, "surface must have a positive size")
        if width * height > MAX_CANVAS_PIXELS:
            raise CanvasContextError(width, height, f"exceeds {MAX_CANVAS_PIXELS} pixels")

        try:
            canvas = Image.new('RGB', (width, height), self.settings.background_color)
        except (MemoryError, ValueError, OSError) as e:
            raise CanvasContextError(width, height, str(e))

        logger.debug(f"Created canvas: {width}x{height} (scale {scale})")
        return canvas

    def _to_canvas(self, points, view_box: ViewBox, scale: float) -> List[Tuple[float, float]]:
        return [((x - view_box.min_x) * scale, (y - view_box.min_y) * scale) for x, y in points]

    def draw_slot_background(self, canvas: Image.Image, points: List[Tuple[float, float]], scale: float) -> None:
        """Placeholder fill and stroke so a slot stays visible without its photo."""
        draw = ImageDraw.Draw(canvas)
        width = max(1, int(round(self.settings.stroke_width * scale)))
        draw.polygon(points, fill=self.settings.fill_color, outline=self.settings.stroke_color, width=width)

    def draw_photo(self, canvas: Image.Image, photo: Image.Image, slot_points: List[Tuple[float, float]],
                   bbox: BoundingBox, view_box: ViewBox, scale: float) -> None:
        """Cover-fit a photo to the slot's box and paste it clipped to the slot shape."""
        draw_x, draw_y, draw_w, draw_h = cover_box(bbox, photo.size)

        left = int(round((draw_x - view_box.min_x) * scale))
        top = int(round((draw_y - view_box.min_y) * scale))
        target_w = max(1, int(round(draw_w * scale)))
        target_h = max(1, int(round(draw_h * scale)))

        resized = photo.resize((target_w, target_h), Image.Resampling.LANCZOS)

        # Clip mask in the resized photo's own coordinates
        mask = Image.new('L', (target_w, target_h), 0)
        ImageDraw.Draw(mask).polygon([(x - left, y - top) for x, y in slot_points], fill=255)

        canvas.paste(resized, (left, top), mask)

    def draw(self, template: SlotTemplate, photo_map: Dict[int, SlotAssignment],
             scale: Optional[float] = None, photos: Dict[str, PhotoResult] = None) -> Image.Image:
        """
        Draw every slot and photo; returns the composited image.

        ``photos`` may hold preloaded results keyed by source. Missing sources
        are loaded on demand. Photo failures only affect their own slot.
        """
        scale = scale or self.settings.scale
        view_box = template.view_box
        canvas = self.create_canvas(view_box, scale)
        photos = dict(photos or {})

        failures = 0
        for position, slot in enumerate(template.slots):
            shape = slot.drawing_points()
            slot_points = self._to_canvas(shape, view_box, scale)
            self.draw_slot_background(canvas, slot_points, scale)

            assignment = photo_map.get(position)
            if assignment is None:
                continue

            result = photos.get(assignment.source)
            if result is None:
                result = self._load(assignment.source)
                photos[assignment.source] = result

            if isinstance(result, ImageLoadError):
                failures += 1
                logger.warning(f"Failed to load image for slot {position} ({slot.id}): {result.message}")
                continue

            self.draw_photo(canvas, result, slot_points, _points_bbox(shape), view_box, scale)

        logger.info(f"Composited {len(template.slots)} slots onto {canvas.size[0]}x{canvas.size[1]} canvas "
                    f"({failures} photo failures)")
        return canvas

    def _load(self, source: str) -> PhotoResult:
        try:
            return self.loader.load(source)
        except ImageLoadError as e:
            return e

    def encode_png(self, image: Image.Image) -> bytes:
        """Encode the finished image as PNG bytes."""
        buffer = io.BytesIO()
        image.save(buffer, format='PNG', optimize=False, compress_level=self.settings.compress_level)
        return buffer.getvalue()

    def composite(self, template: SlotTemplate, photo_map: Dict[int, SlotAssignment],
                  scale: Optional[float] = None, photos: Dict[str, PhotoResult] = None) -> bytes:
        """Draw and encode in one step."""
        return self.encode_png(self.draw(template, photo_map, scale=scale, photos=photos))


def create_compositor(config: AppConfig = None) -> Compositor:
    """Factory function to create a Compositor instance."""
    return Compositor(config)
