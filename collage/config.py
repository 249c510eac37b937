"""
Configuration management for the collage render service
Loads settings from YAML files with environment variable overrides
"""

import os
import yaml
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, Field
from loguru import logger


class AppConfig(BaseModel):
    """Main application configuration"""

    # Flask settings
    SECRET_KEY: str = Field(default_factory=lambda: os.urandom(24).hex())
    FLASK_ENV: str = "development"
    DEBUG: bool = True
    TESTING: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    # Template assets
    HEXAGON_TEMPLATE_DIR: str = "assets/hexagon"
    PLACEHOLDER_EVEN: str = "assets/placeholders/placeholder-female.jpg"
    PLACEHOLDER_ODD: str = "assets/placeholders/placeholder-male.jpg"
    # Directories member photos may be read from by local path
    LOCAL_PHOTO_DIRS: List[str] = Field(default_factory=list)

    # Hexagon family canvas, used when an asset has no viewBox
    FALLBACK_VIEWBOX_WIDTH: float = 595.3
    FALLBACK_VIEWBOX_HEIGHT: float = 936.0

    # Grid family canvas (unscaled units)
    GRID_CANVAS_SMALL: Tuple[int, int] = (1200, 2025)
    GRID_CANVAS_LARGE: Tuple[int, int] = (1275, 2025)
    GRID_LARGE_FROM_MEMBERS: int = 24
    GRID_CELL_GAP: int = 4

    # Output
    RENDER_SCALE: int = 2
    OUTPUT_DPI: int = 300

    # Slot drawing
    SLOT_FILL_COLOR: str = "#00c1f3"
    SLOT_STROKE_COLOR: str = "#231f20"
    SLOT_STROKE_WIDTH: float = 1.0

    # Photo loading
    IMAGE_FETCH_TIMEOUT: float = 30.0
    MAX_CONCURRENT_FETCHES: int = 5
    MAX_CONCURRENT_VARIANTS: int = 4
    USER_AGENT: str = "Collage-Renderer/1.0"


def load_yaml_config(file_path: str) -> Dict:
    """Load configuration from YAML file"""
    path = Path(file_path)
    if not path.exists():
        logger.warning(f"Config file not found: {file_path}")
        return {}

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config file {file_path}: {e}")
        return {}


def load_config(environment: str = "development", overrides: Optional[Dict] = None) -> AppConfig:
    """Load configuration with environment-specific overrides"""

    # Load base settings
    base_config = load_yaml_config("config/settings.yaml")

    # Load environment-specific settings
    env_config = load_yaml_config(f"config/settings_{environment}.yaml")

    # Merge configurations (env overrides base)
    config_dict = {**base_config, **env_config}

    # Apply environment variable overrides
    env_overrides = {
        'HEXAGON_TEMPLATE_DIR': os.getenv('COLLAGE_TEMPLATE_DIR'),
        'FLASK_ENV': os.getenv('FLASK_ENV', environment),
        'LOG_LEVEL': os.getenv('LOG_LEVEL'),
        'SECRET_KEY': os.getenv('SECRET_KEY'),
        'OUTPUT_DPI': os.getenv('OUTPUT_DPI'),
    }

    # Only include non-None values
    env_overrides = {k: v for k, v in env_overrides.items() if v is not None}
    config_dict.update(env_overrides)

    # Special handling for boolean DEBUG flag
    if 'FLASK_ENV' in config_dict:
        config_dict['DEBUG'] = config_dict['FLASK_ENV'] == 'development'

    # Explicit overrides (app factory, tests) win over everything
    if overrides:
        config_dict.update(overrides)

    try:
        return AppConfig(**config_dict)
    except ValueError as e:
        logger.error(f"Configuration validation error: {e}")
        # Return default config on validation error
        return AppConfig()


# Global config instance
_config_instance = None


def get_config() -> AppConfig:
    """Get the global configuration instance"""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config(os.getenv('FLASK_ENV', 'development'))
    return _config_instance


def set_config(config: AppConfig) -> None:
    """Replace the global configuration instance (used by the app factory)"""
    global _config_instance
    _config_instance = config
