#!/usr/bin/env python3
"""
Collage Render Service - Development Runner
Run this script to start the development server
"""

import os
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

# Set environment defaults
os.environ.setdefault('FLASK_APP', 'collage')
os.environ.setdefault('FLASK_ENV', 'development')

try:
    from collage import create_app
    from collage.templates import get_registry

    def main():
        """Main entry point"""
        print("=" * 60)
        print("Collage Render Service - Development Server")
        print("=" * 60)

        # Create and configure the app
        app = create_app()

        # Print startup info
        print(f"Environment: {app.config.get('FLASK_ENV', 'unknown')}")
        print(f"Debug mode: {app.config.get('DEBUG', False)}")
        print(f"Log level: {app.config.get('LOG_LEVEL', 'INFO')}")

        # Check for required directories
        Path('logs').mkdir(parents=True, exist_ok=True)

        template_dir = Path(app.config['HEXAGON_TEMPLATE_DIR'])
        hexagon_counts = sorted(get_registry().hexagon_assets)
        if hexagon_counts:
            print(f"Hexagon templates: {', '.join(str(n) for n in hexagon_counts)}")
        else:
            print(f"⚠️  No hexagon templates found in {template_dir}/")
            print("   Add <N>.svg files to enable the hexagonal family.")

        for key in ('PLACEHOLDER_EVEN', 'PLACEHOLDER_ODD'):
            if not Path(app.config[key]).exists():
                print(f"⚠️  Placeholder photo missing: {app.config[key]}")

        print("-" * 60)
        print("Starting development server...")
        print("API root: http://localhost:5000/api")
        print("Press Ctrl+C to stop")
        print("-" * 60)

        # Run the development server
        app.run(
            host='0.0.0.0',
            port=5000,
            debug=app.config.get('DEBUG', True),
            use_reloader=True,
            threaded=True
        )

    if __name__ == '__main__':
        main()

except ImportError as e:
    print(f"❌ Import error: {e}")
    print("\nPlease install the required dependencies:")
    print("  pip install -e .[test]")
    sys.exit(1)
