"""
Test suite for Collage Render Service.

This package contains unit tests, integration tests, and test utilities
for validating slot geometry, compositing and the render API.
"""

import sys
from pathlib import Path

# Add the project root to the Python path for imports
project_dir = Path(__file__).parent.parent
if str(project_dir) not in sys.path:
    sys.path.insert(0, str(project_dir))
