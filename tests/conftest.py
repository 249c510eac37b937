"""
Pytest configuration and fixtures for Collage Render Service tests.

Provides the Flask app, generated hexagon template assets, member photos
and small PNG buffers shared across the test suite.
"""

import io
import math
from pathlib import Path
from typing import Dict, List, Tuple

import pytest
from PIL import Image

from collage import create_app
from collage.config import AppConfig
from collage.templates import TemplateRegistry


HEXAGON_VIEW_BOX = (600, 900)
HEXAGON_CENTER = (300, 450)
HEXAGON_RING_RADIUS = 220

PHOTO_COLORS = [
    (255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0),
    (255, 0, 255), (0, 255, 255), (128, 64, 0), (64, 0, 128)
]


def regular_polygon(cx: float, cy: float, radius: float, sides: int) -> List[Tuple[float, float]]:
    """Vertices of a regular polygon, first vertex straight up"""
    return [
        (round(cx + radius * math.sin(2 * math.pi * k / sides), 3),
         round(cy - radius * math.cos(2 * math.pi * k / sides), 3))
        for k in range(sides)
    ]


def points_attr(points) -> str:
    return ' '.join(f"{x},{y}" for x, y in points)


def ring_centers(count: int = 6) -> List[Tuple[float, float]]:
    """Border hexagon centers, clockwise from just past 12 o'clock"""
    cx, cy = HEXAGON_CENTER
    angles = [2 * math.pi * k / count + math.radians(10) for k in range(count)]
    return [
        (round(cx + HEXAGON_RING_RADIUS * math.sin(a), 3),
         round(cy - HEXAGON_RING_RADIUS * math.cos(a), 3))
        for a in angles
    ]


def make_hexagon_svg(border_order: List[int] = None, with_view_box: bool = True,
                     center_sides: int = 24) -> str:
    """
    Hexagon template document: one many-sided center shape plus six border
    hexagons, written in ``border_order`` (indices into the clockwise ring).
    """
    centers = ring_centers()
    border_order = border_order if border_order is not None else [3, 0, 5, 1, 4, 2]

    polygons = [
        f'<polygon class="cls-1" points="{points_attr(regular_polygon(*centers[i], 60, 6))}"/>'
        for i in border_order
    ]
    # Center shape in the middle of the document order
    polygons.insert(2, f'<polygon class="cls-1" points="{points_attr(regular_polygon(*HEXAGON_CENTER, 100, center_sides))}"/>')

    view_box = f' viewBox="0 0 {HEXAGON_VIEW_BOX[0]} {HEXAGON_VIEW_BOX[1]}"' if with_view_box else ''
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<svg xmlns="http://www.w3.org/2000/svg"{view_box}>'
        '<defs><style>.cls-1{fill:#00c1f3;stroke:#231f20;}</style></defs>'
        '<g id="Layer_1">' + ''.join(polygons) + '</g></svg>'
    )


def solid_png_bytes(color=(255, 0, 0), size=(40, 60)) -> bytes:
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture(scope='session')
def asset_dir(tmp_path_factory) -> Path:
    """Placeholder photos and hexagon templates for the whole session"""
    root = tmp_path_factory.mktemp('assets')

    placeholders = root / 'placeholders'
    placeholders.mkdir()
    Image.new('RGB', (30, 30), (200, 120, 160)).save(placeholders / 'placeholder-female.png')
    Image.new('RGB', (30, 30), (90, 120, 200)).save(placeholders / 'placeholder-male.png')

    hexagon = root / 'hexagon'
    hexagon.mkdir()
    (hexagon / '7.svg').write_text(make_hexagon_svg(), encoding='utf-8')
    (hexagon / '8.svg').write_text('<svg xmlns="http://www.w3.org/2000/svg"><rect/></svg>', encoding='utf-8')
    (hexagon / 'notes.svg').write_text(make_hexagon_svg(), encoding='utf-8')

    return root


@pytest.fixture(scope='session')
def photo_dir(tmp_path_factory) -> Path:
    return tmp_path_factory.mktemp('photos')


@pytest.fixture(scope='session')
def test_config(asset_dir, photo_dir, tmp_path_factory) -> AppConfig:
    """Configuration shared by unit tests and the app"""
    return AppConfig(
        SECRET_KEY='test-key',
        FLASK_ENV='testing',
        DEBUG=False,
        TESTING=True,
        LOG_LEVEL='DEBUG',
        LOG_FILE=str(tmp_path_factory.mktemp('logs') / 'test.log'),
        HEXAGON_TEMPLATE_DIR=str(asset_dir / 'hexagon'),
        PLACEHOLDER_EVEN=str(asset_dir / 'placeholders' / 'placeholder-female.png'),
        PLACEHOLDER_ODD=str(asset_dir / 'placeholders' / 'placeholder-male.png'),
        LOCAL_PHOTO_DIRS=[str(photo_dir)],
        RENDER_SCALE=1,
        MAX_CONCURRENT_FETCHES=3,
        MAX_CONCURRENT_VARIANTS=2
    )


@pytest.fixture(scope='session')
def registry(test_config) -> TemplateRegistry:
    return TemplateRegistry.from_config(test_config)


@pytest.fixture(scope='session')
def app(test_config):
    """Create and configure a test Flask application."""
    app = create_app(test_config.model_dump())
    yield app


@pytest.fixture
def client(app):
    """Create a test client for the Flask application."""
    return app.test_client()


@pytest.fixture(scope='session')
def photo_files(photo_dir) -> List[Path]:
    """One solid-color PNG per entry of PHOTO_COLORS"""
    paths = []
    for i, color in enumerate(PHOTO_COLORS):
        path = photo_dir / f"member-{i}.png"
        Image.new('RGB', (40 + 10 * i, 60), color).save(path)
        paths.append(path)
    return paths


@pytest.fixture
def member_dicts(photo_files) -> List[Dict]:
    """Caller JSON for a seven-member group with photos on local paths"""
    return [
        {'id': f"m{i}", 'photo': str(photo_files[i]), 'display_order': i}
        for i in range(7)
    ]


@pytest.fixture
def minimal_png() -> bytes:
    """Smallest useful PNG: 1x1 white pixel"""
    return solid_png_bytes((255, 255, 255), (1, 1))
