"""
Template registry and caller-facing selection helpers.

The registry is an explicit mapping from member count to a template source:
the parametric grid generator (square family) or a pre-authored SVG asset
(hexagonal family). It is built once from configuration; lookups never scan
the filesystem.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from . import grid
from .config import AppConfig, get_config
from .errors import TemplateNotFoundError, ValidationError
from .svg_template import AssetHandle


SQUARE = 'square'
HEXAGONAL = 'hexagonal'
TEMPLATE_TYPES = (SQUARE, HEXAGONAL)


@dataclass
class TemplateOption:
    """A template variant compatible with a member count"""
    type: str
    path: str

    def to_dict(self) -> Dict[str, str]:
        return {'type': self.type, 'path': self.path}


class TemplateRegistry:
    """Maps member counts to grid generators and hexagon assets"""

    def __init__(self, hexagon_assets: Dict[int, Path] = None, grid_enabled: bool = True):
        self.hexagon_assets: Dict[int, Path] = dict(hexagon_assets or {})
        self.grid_enabled = grid_enabled

    @classmethod
    def from_directory(cls, template_dir, grid_enabled: bool = True) -> 'TemplateRegistry':
        """Register every ``<N>.svg`` file in a directory"""
        directory = Path(template_dir)
        assets = {}

        if not directory.is_dir():
            logger.warning(f"Hexagon template directory not found: {directory}")
            return cls(assets, grid_enabled)

        for svg_file in directory.glob('*.svg'):
            try:
                member_count = int(svg_file.stem)
            except ValueError:
                logger.debug(f"Ignoring non-template asset {svg_file.name}")
                continue
            assets[member_count] = svg_file

        logger.info(f"Registered {len(assets)} hexagon templates from {directory}")
        return cls(assets, grid_enabled)

    @classmethod
    def from_config(cls, config: AppConfig = None) -> 'TemplateRegistry':
        config = config or get_config()
        return cls.from_directory(config.HEXAGON_TEMPLATE_DIR)

    def register_hexagon(self, member_count: int, path) -> None:
        self.hexagon_assets[member_count] = Path(path)

    def has_square(self, member_count: int) -> bool:
        return self.grid_enabled and grid.supports(member_count)

    def has_hexagon(self, member_count: int) -> bool:
        return member_count in self.hexagon_assets

    def resolve_hexagon(self, member_count: int) -> AssetHandle:
        """Exact lookup of the hexagon asset for a member count"""
        path = self.hexagon_assets.get(member_count)
        if path is None:
            logger.warning(f"No hexagon template for {member_count} members")
            raise TemplateNotFoundError(member_count, family=HEXAGONAL)
        return AssetHandle(member_count=member_count, path=path)

    def ensure_available(self, template: str, member_count: int) -> None:
        """Raise TemplateNotFoundError unless the family covers the member count"""
        if template == HEXAGONAL:
            self.resolve_hexagon(member_count)
        elif not self.has_square(member_count):
            logger.warning(f"No square template for {member_count} members")
            raise TemplateNotFoundError(member_count, family=SQUARE)

    def available(self, member_count: int) -> List[TemplateOption]:
        """Template variants for a member count, square first"""
        templates = []
        if self.has_square(member_count):
            templates.append(TemplateOption(type=SQUARE, path=f"grid:{member_count}"))
        if self.has_hexagon(member_count):
            templates.append(TemplateOption(type=HEXAGONAL, path=str(self.hexagon_assets[member_count])))
        return templates


# Global registry instance
_registry = None


def get_registry() -> TemplateRegistry:
    """Get the process-wide registry, building it from config on first use"""
    global _registry
    if _registry is None:
        _registry = TemplateRegistry.from_config()
    return _registry


def set_registry(registry: Optional[TemplateRegistry]) -> None:
    """Replace the process-wide registry (None rebuilds it on next use)"""
    global _registry
    _registry = registry


def get_available_templates(member_count: int, registry: TemplateRegistry = None) -> List[TemplateOption]:
    """Get available templates (square, hexagonal) for a given member count"""
    return (registry or get_registry()).available(member_count)


def get_initial_template_index(templates: List[TemplateOption], preferred: Optional[str] = None) -> int:
    """Get initial template index, preferring the given template type if available"""
    if not templates:
        return 0
    if preferred:
        for i, option in enumerate(templates):
            if option.type == preferred:
                return i
    return 0


def validate_template_type(template: str) -> str:
    """Normalize a caller-supplied template type"""
    value = (template or '').strip().lower()
    if value == 'hexagon':
        value = HEXAGONAL
    if value not in TEMPLATE_TYPES:
        raise ValidationError(
            f"Unknown template type: {template}",
            details={'template': template, 'allowed': list(TEMPLATE_TYPES)}
        )
    return value
