"""
Validation service for visitor attribution submissions.
"""
import logging
from typing import Optional, Tuple

from django.conf import settings

logger = logging.getLogger(__name__)

# Rejection codes (configurable in settings)
MISSING_ANONYMOUS_ID = getattr(settings, 'MISSING_ANONYMOUS_ID', 'MISSING_ANONYMOUS_ID')
MISSING_WIDGET_VISITOR_ID = getattr(settings, 'MISSING_WIDGET_VISITOR_ID', 'MISSING_WIDGET_VISITOR_ID')
IDENTIFIER_TOO_LONG = getattr(settings, 'IDENTIFIER_TOO_LONG', 'IDENTIFIER_TOO_LONG')

MAX_IDENTIFIER_LENGTH = 255


def validate_attribution(payload: dict) -> Tuple[bool, Optional[str]]:
    """
    Validates a normalized attribution submission before any store write.

    Rules:
    1. anonymous_id (analytics anonymous id) is required
    2. widget_visitor_id (widget visitor uuid) is required
    3. Identifiers must fit the store's 255 character key columns

    Args:
        payload: Normalized submission (see normalize_attribution)

    Returns:
        Tuple of (is_valid, rejection_reason)
    """
    if not payload or not payload.get('anonymous_id'):
        logger.debug("Validation failed: missing anonymous_id")
        return False, MISSING_ANONYMOUS_ID

    if not payload.get('widget_visitor_id'):
        logger.debug("Validation failed: missing widget_visitor_id")
        return False, MISSING_WIDGET_VISITOR_ID

    for field in ('anonymous_id', 'widget_visitor_id', 'session_key'):
        value = payload.get(field)
        if value and len(value) > MAX_IDENTIFIER_LENGTH:
            logger.debug(f"Validation failed: {field} longer than {MAX_IDENTIFIER_LENGTH}")
            return False, IDENTIFIER_TOO_LONG

    logger.debug("Validation passed")
    return True, None
