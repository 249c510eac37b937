"""
Collage Render Service - Flask Application Factory
Renders group photo collages onto square-grid and hexagon slot templates
"""

import os
from pathlib import Path
from typing import Dict, Optional

from flask import Flask
from loguru import logger
from dotenv import load_dotenv

from .config import load_config, set_config
from .templates import TemplateRegistry, set_registry


def create_app(overrides: Optional[Dict] = None):
    """Flask application factory"""

    # Load environment variables
    load_dotenv()

    app = Flask(__name__)

    # Load configuration
    environment = (overrides or {}).get('FLASK_ENV') or os.getenv('FLASK_ENV', 'development')
    config = load_config(environment, overrides=overrides)
    set_config(config)
    app.config.update(config.model_dump())

    # Configure logging
    setup_logging(app)

    # Template registry is scanned once per app
    set_registry(TemplateRegistry.from_config(config))

    # Register blueprints
    from . import routes
    app.register_blueprint(routes.bp)

    logger.info(f"Collage Render Service initialized in {environment} mode")

    return app


def setup_logging(app):
    """Configure loguru logging"""
    log_level = app.config.get('LOG_LEVEL', 'INFO')
    log_file = app.config.get('LOG_FILE', 'logs/app.log')

    # Ensure logs directory exists
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_file,
        rotation="1 day",
        retention="30 days",
        level=log_level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}"
    )
