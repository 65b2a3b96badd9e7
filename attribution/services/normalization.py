"""
Normalization service for visitor attribution submissions.
"""
import logging
from typing import Any

logger = logging.getLogger(__name__)

# Field names sent by the browser collector script.
FIELD_ALIASES = {
    'ajs_anonymous_id': 'anonymous_id',
    'anonymousId': 'anonymous_id',
    'gubagoo_visitor_uuid': 'widget_visitor_id',
    'widgetVisitorId': 'widget_visitor_id',
    'sd_session_id': 'session_key',
    'sessionKey': 'session_key',
    'gubagoo_user_id': 'widget_user_id',
    'gubagoo_session_id': 'widget_session_id',
}

ATTRIBUTION_SUBMISSION_FIELDS = (
    'anonymous_id',
    'widget_visitor_id',
    'session_key',
    'widget_user_id',
    'widget_session_id',
    'utm_source',
    'utm_medium',
    'utm_campaign',
    'utm_term',
    'utm_content',
    'gclid',
    'fbclid',
    'referrer',
    'landing_page',
    'page_url',
    'user_agent',
    'ip_address',
)


def normalize_value(value: Any) -> Any:
    """
    Normalize a single value.

    - Strings: trim whitespace; blank strings become None
    - Numbers: converted to strings (identifiers are stored as text)
    - Anything else (lists, dicts, booleans): dropped as None
    """
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def normalize_attribution(payload: dict) -> dict:
    """
    Normalizes an attribution submission.

    Operations:
    - Map collector aliases (e.g. 'gubagoo_visitor_uuid') to canonical names;
      a non-blank canonical key wins over its alias
    - Trim whitespace from all values
    - Drop unknown keys and blank values, so a later page view without
      campaign parameters leaves stored ones untouched

    Args:
        payload: Raw submission data

    Returns:
        Normalized payload keyed by canonical field names
    """
    if not payload:
        return {}

    normalized = {}
    for key, value in payload.items():
        canonical = FIELD_ALIASES.get(key, key)
        if canonical not in ATTRIBUTION_SUBMISSION_FIELDS:
            continue
        if canonical != key and normalize_value(payload.get(canonical)) is not None:
            continue
        value = normalize_value(value)
        if value is not None:
            normalized[canonical] = value

    logger.debug(f"Normalized attribution submission: {normalized}")
    return normalized
