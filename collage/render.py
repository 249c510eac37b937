"""
Variant rendering for the collage render service.

This module handles:
- Building the slot template for a variant (grid or hexagon family)
- Assigning member photos to slots
- Compositing and DPI-stamping the output PNG
- Rendering many variants concurrently, at most once each
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from . import grid, svg_template
from .assignment import CenterVariant, assign
from .composite import Compositor
from .config import AppConfig, get_config
from .errors import CollageError, TemplateError, ValidationError
from .photos import PhotoLoader
from .png import embed_dpi, png_to_data_uri
from .slots import SlotTemplate
from .templates import HEXAGONAL, SQUARE, TemplateRegistry, get_registry


@dataclass
class RenderedVariant:
    """Output of one variant render; output_image is None when the render failed"""
    variant_id: str
    output_image: Optional[bytes] = None
    center_member_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.output_image)

    def data_uri(self) -> Optional[str]:
        return png_to_data_uri(self.output_image) if self.ok else None

    def to_dict(self):
        return {
            'variant_id': self.variant_id,
            'center_member_id': self.center_member_id,
            'image': self.data_uri(),
            'error': self.error
        }


def build_slot_template(template: str, member_count: int, config: AppConfig = None,
                        registry: TemplateRegistry = None) -> SlotTemplate:
    """Fresh slot template for a family and member count"""
    config = config or get_config()

    if template == SQUARE:
        canvas_size = config.GRID_CANVAS_LARGE if member_count >= config.GRID_LARGE_FROM_MEMBERS \
            else config.GRID_CANVAS_SMALL
        return grid.grid_template(member_count, canvas_size, gap=config.GRID_CELL_GAP)

    if template == HEXAGONAL:
        return svg_template.load_hexagon_template(member_count, registry or get_registry())

    raise ValidationError(f"Unknown template type: {template}", details={'template': template})


class VariantRenderer:
    """Renders one variant; repeated calls return the first result."""

    def __init__(self, variant: CenterVariant, config: AppConfig = None,
                 registry: TemplateRegistry = None, compositor: Compositor = None,
                 dpi: Optional[int] = None):
        self.variant = variant
        self.config = config or get_config()
        self.registry = registry or get_registry()
        self.compositor = compositor or Compositor(self.config)
        self.dpi = dpi or self.config.OUTPUT_DPI

        self._lock = threading.Lock()
        self._has_rendered = False
        self._result: Optional[RenderedVariant] = None

    @property
    def has_rendered(self) -> bool:
        return self._has_rendered

    def render(self) -> RenderedVariant:
        """Render the variant once. Never raises."""
        with self._lock:
            if self._has_rendered:
                logger.debug(f"Variant {self.variant.id} already rendered, reusing result")
                return self._result
            self._has_rendered = True
            self._result = self._render()
            return self._result

    def _render(self) -> RenderedVariant:
        variant = self.variant
        logger.info(f"Rendering variant {variant.id} with center member {variant.center_member.id}")

        try:
            members = variant.members
            template = build_slot_template(variant.template, len(members), self.config, self.registry)

            placeholders = (self.config.PLACEHOLDER_EVEN, self.config.PLACEHOLDER_ODD)
            photo_map = assign(len(template.slots), members, variant.center_member.id, placeholders)

            photos = self.compositor.loader.load_many(a.source for a in photo_map.values())
            png_bytes = self.compositor.composite(template, photo_map, photos=photos)
            output = embed_dpi(png_bytes, self.dpi)

        except TemplateError as e:
            logger.warning(f"Variant {variant.id} has no usable template: {e.message}")
            return self._failed(e.message)
        except CollageError as e:
            logger.error(f"Variant {variant.id} failed: {e.message}")
            return self._failed(e.message)
        except Exception as e:
            logger.exception(f"Unexpected error rendering variant {variant.id}: {e}")
            return self._failed(str(e))

        logger.info(f"Rendered variant {variant.id} ({len(output):,} bytes)")
        return RenderedVariant(
            variant_id=variant.id,
            output_image=output,
            center_member_id=variant.center_member.id
        )

    def _failed(self, reason: str) -> RenderedVariant:
        return RenderedVariant(
            variant_id=self.variant.id,
            output_image=None,
            center_member_id=self.variant.center_member.id,
            error=reason
        )


def render_variants(variants: List[CenterVariant], config: AppConfig = None,
                    registry: TemplateRegistry = None, dpi: Optional[int] = None,
                    max_workers: Optional[int] = None) -> List[RenderedVariant]:
    """Render independent variants concurrently; results keep the input order."""
    config = config or get_config()
    registry = registry or get_registry()
    if not variants:
        return []

    loader = PhotoLoader(config)
    renderers = [
        VariantRenderer(v, config=config, registry=registry,
                        compositor=Compositor(config, loader=loader), dpi=dpi)
        for v in variants
    ]

    workers = max(1, min(max_workers or config.MAX_CONCURRENT_VARIANTS, len(renderers)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(executor.map(lambda r: r.render(), renderers))

    rendered = sum(1 for r in results if r.ok)
    logger.info(f"Rendered {rendered}/{len(results)} variants")
    return results
