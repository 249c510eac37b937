"""
Flask routes for the Collage Render Service
Template discovery and variant rendering over JSON
"""

from flask import Blueprint, request, jsonify
from loguru import logger

from .assignment import Member, build_variant, generate_variants
from .config import get_config
from .errors import (
    CollageError, ValidationError, TemplateNotFoundError,
    create_error_recovery_suggestions
)
from .render import render_variants
from .templates import (
    SQUARE, get_available_templates, get_initial_template_index,
    get_registry, validate_template_type
)


bp = Blueprint('api', __name__, url_prefix='/api')


@bp.errorhandler(CollageError)
def handle_collage_error(error: CollageError):
    """Map engine errors onto JSON responses"""
    if isinstance(error, ValidationError):
        status = 400
    elif isinstance(error, TemplateNotFoundError):
        status = 404
    else:
        status = 500
        logger.error(f"Unhandled render error: {error.message}")

    payload = error.to_dict()
    payload['suggestions'] = create_error_recovery_suggestions(error)
    return jsonify(payload), status


@bp.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok'})


@bp.route('/templates/<int:member_count>', methods=['GET'])
def templates(member_count):
    """List the template variants available for a group size"""
    preferred = request.args.get('preferred')
    if preferred:
        preferred = validate_template_type(preferred)

    options = get_available_templates(member_count)
    return jsonify({
        'member_count': member_count,
        'templates': [option.to_dict() for option in options],
        'initial_index': get_initial_template_index(options, preferred)
    })


@bp.route('/render', methods=['POST'])
def render():
    """Render one variant per photo-bearing member, or a single chosen center"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    raw_members = data.get('members')
    if not isinstance(raw_members, list) or not raw_members:
        raise ValidationError("members must be a non-empty list")

    members = [Member.from_dict(item, position) for position, item in enumerate(raw_members)]
    ids = [m.id for m in members]
    if len(set(ids)) != len(ids):
        raise ValidationError("Member ids must be unique")

    template = validate_template_type(data.get('template') or SQUARE)
    dpi = parse_dpi(data.get('dpi'))

    # Unsupported group sizes are reported before any photo is fetched
    get_registry().ensure_available(template, len(members))

    center_member_id = data.get('center_member_id')
    if center_member_id:
        variants = [build_variant(members, str(center_member_id), template)]
    else:
        variants = generate_variants(members, template)

    logger.info(f"Render request: {len(members)} members, {len(variants)} {template} variants")

    results = render_variants(variants, dpi=dpi)
    return jsonify({'variants': [result.to_dict() for result in results]})


def parse_dpi(value) -> int:
    """Requested output DPI, defaulting to the configured value"""
    if value is None:
        return get_config().OUTPUT_DPI
    try:
        dpi = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"dpi must be an integer, got {value!r}")
    if dpi <= 0 or dpi > 2400:
        raise ValidationError(f"dpi must be between 1 and 2400, got {dpi}")
    return dpi
