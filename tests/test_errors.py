"""
Unit tests for the error handling system.

Tests custom exception classes, the error hierarchy used by the HTTP
layer, and recovery suggestions.
"""

import pytest
from collage.errors import (
    CollageError, ValidationError, TemplateError, RenderError,
    TemplateNotFoundError, SvgParseError, ImageLoadError,
    CanvasContextError, PngChunkInsertionError, NotEnoughPhotosError,
    create_error_recovery_suggestions
)


class TestCollageError:
    """Test the base CollageError class."""

    def test_basic_error_creation(self):
        """Test creating a basic error with message only."""
        error = CollageError("Test error message")

        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.details == {}
        assert error.suggestions == []

    def test_error_to_dict(self):
        """Test converting error to dictionary."""
        error = CollageError("Test", details={'key': 'value'}, suggestions=['suggestion'])

        result = error.to_dict()

        assert result['error_type'] == 'CollageError'
        assert result['message'] == 'Test'
        assert result['details'] == {'key': 'value'}
        assert result['suggestions'] == ['suggestion']


class TestErrorHierarchy:
    """The HTTP layer maps errors to status codes by class."""

    @pytest.mark.parametrize('error, parent', [
        (TemplateNotFoundError(12), TemplateError),
        (SvgParseError('12.svg', 'bad'), TemplateError),
        (ImageLoadError('http://x/a.jpg', 'timeout'), RenderError),
        (CanvasContextError(10, 10, 'oom'), RenderError),
        (PngChunkInsertionError('short'), RenderError),
        (NotEnoughPhotosError(1), ValidationError),
    ])
    def test_parent_classes(self, error, parent):
        assert isinstance(error, parent)
        assert isinstance(error, CollageError)


class TestSpecificErrorTypes:
    """Test specific error type implementations."""

    def test_template_not_found_error(self):
        error = TemplateNotFoundError(12, family='hexagonal')

        assert "template coming soon" in str(error)
        assert "hexagonal" in str(error)
        assert error.details == {'member_count': 12, 'family': 'hexagonal'}
        assert len(error.suggestions) > 0

    def test_template_not_found_without_family(self):
        error = TemplateNotFoundError(5)

        assert "No template available for 5 members" in str(error)

    def test_svg_parse_error(self):
        error = SvgParseError('assets/hexagon/21.svg', 'no polygon slots found')

        assert 'assets/hexagon/21.svg' in str(error)
        assert error.details['reason'] == 'no polygon slots found'

    def test_image_load_error_truncates_long_sources(self):
        """Data URIs are not copied into messages in full."""
        source = 'data:image/png;base64,' + 'A' * 5000
        error = ImageLoadError(source, 'corrupt')

        assert len(error.details['source']) == 80
        assert error.details['source'].endswith('...')
        assert len(str(error)) < 200

    def test_canvas_context_error(self):
        error = CanvasContextError(40000, 40000, 'too large')

        assert '40000x40000' in str(error)
        assert error.details['width'] == 40000

    def test_png_chunk_insertion_error(self):
        error = PngChunkInsertionError('missing PNG signature', length=12)

        assert 'pHYs' in str(error)
        assert error.details['length'] == 12

    def test_not_enough_photos_error(self):
        error = NotEnoughPhotosError(found=1, required=2)

        assert "found 1" in str(error)
        assert error.details == {'found': 1, 'required': 2}


class TestRecoverySuggestions:
    """Test create_error_recovery_suggestions."""

    def test_uses_error_suggestions(self):
        error = NotEnoughPhotosError(0)

        assert create_error_recovery_suggestions(error) == error.suggestions

    def test_generic_fallback(self):
        suggestions = create_error_recovery_suggestions(RuntimeError("boom"))

        assert any("again" in s for s in suggestions)

    def test_collage_error_without_suggestions_gets_fallback(self):
        suggestions = create_error_recovery_suggestions(CollageError("plain"))

        assert len(suggestions) == 2
