"""
Error handling for the collage template & compositing engine.

Provides specific exception types for each failure mode of the render
pipeline, with enough context for logging and for JSON error responses.
"""

from typing import Dict, List, Any


class CollageError(Exception):
    """Base exception for all collage engine errors."""

    def __init__(self, message: str, details: Dict[str, Any] = None, suggestions: List[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.suggestions = suggestions or []

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'details': self.details,
            'suggestions': self.suggestions
        }


class ValidationError(CollageError):
    """Raised when caller input validation fails."""
    pass


class ConfigurationError(CollageError):
    """Raised when configuration is invalid or missing."""
    pass


class TemplateError(CollageError):
    """Raised when a slot layout cannot be produced."""
    pass


class RenderError(CollageError):
    """Raised when a variant image cannot be rendered."""
    pass


# Specific error classes for the pipeline stages

class TemplateNotFoundError(TemplateError):
    """Raised when no geometry or asset exists for the requested member count."""

    def __init__(self, member_count: int, family: str = None):
        family_label = f"{family} " if family else ""
        super().__init__(
            f"No {family_label}template available for {member_count} members (template coming soon)",
            details={
                'member_count': member_count,
                'family': family
            },
            suggestions=[
                "Choose a different collage style for this group size",
                "Add or remove members to reach a supported group size",
                "Check back later, new templates are added regularly"
            ]
        )


class SvgParseError(TemplateError):
    """Raised when a template asset exists but cannot be parsed."""

    def __init__(self, asset: str, reason: str):
        super().__init__(
            f"Could not parse template asset {asset}: {reason}",
            details={
                'asset': asset,
                'reason': reason
            },
            suggestions=[
                "Re-export the template from the design tool as plain SVG",
                "Ensure every slot is a <polygon> with a points attribute"
            ]
        )


class ImageLoadError(RenderError):
    """Raised when a single member photo is unreachable or corrupt."""

    def __init__(self, source: str, reason: str):
        # Data URIs can be megabytes long
        display = source if len(source) <= 80 else source[:77] + '...'
        super().__init__(
            f"Failed to load photo {display}: {reason}",
            details={
                'source': display,
                'reason': reason
            },
            suggestions=[
                "Ask the member to upload the photo again",
                "Verify the photo URL is publicly reachable"
            ]
        )


class CanvasContextError(RenderError):
    """Raised when the drawing surface cannot be allocated."""

    def __init__(self, width: int, height: int, reason: str):
        super().__init__(
            f"Could not allocate a {width}x{height} drawing surface: {reason}",
            details={
                'width': width,
                'height': height,
                'reason': reason
            },
            suggestions=[
                "Lower RENDER_SCALE in settings.yaml",
                "Render fewer variants concurrently"
            ]
        )


class PngChunkInsertionError(RenderError):
    """Raised when the encoded PNG does not have the expected structure."""

    def __init__(self, reason: str, length: int = None):
        super().__init__(
            f"Cannot insert pHYs chunk: {reason}",
            details={
                'reason': reason,
                'length': length
            }
        )


class NotEnoughPhotosError(ValidationError):
    """Raised when too few members have photos to build center variants."""

    def __init__(self, found: int, required: int = 2):
        super().__init__(
            f"Not enough members with photos (found {found}, need at least {required})",
            details={
                'found': found,
                'required': required
            },
            suggestions=[
                "Remind group members to upload their photos",
                "Render a single variant with an explicit center member"
            ]
        )


def create_error_recovery_suggestions(error: Exception) -> List[str]:
    """Generate recovery suggestions for any error raised while rendering."""
    suggestions = []

    if isinstance(error, CollageError):
        suggestions.extend(error.suggestions)

    if not suggestions:
        suggestions = [
            "Try rendering the collage again",
            "Contact support if the problem persists"
        ]

    return suggestions
