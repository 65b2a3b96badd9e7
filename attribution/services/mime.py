"""
MIME part selection for inbound lead emails.

Webhook providers hand us either a decoded body or the raw multipart message.
For the latter the candidate text parts are returned in strategy order
(plain text first, then HTML); add a content type to PART_STRATEGIES to
consider more parts without touching the parser.
"""
import email
from email.message import Message
import logging
import re
from typing import List, Tuple

logger = logging.getLogger(__name__)

PART_STRATEGIES: Tuple[str, ...] = ('text/plain', 'text/html')

BOUNDARY_PARAM = re.compile(r'boundary\s*=\s*(?:"([^"]+)"|([^\s;"]+))', re.IGNORECASE)
BOUNDARY_LINE = re.compile(r'^--([^\s-][^\s]{5,}?)(?:--)?\s*$', re.MULTILINE)
PART_CONTENT_TYPE = re.compile(r'^Content-Type:', re.IGNORECASE | re.MULTILINE)
HEADER_BREAK = re.compile(r'\r?\n[ \t]*\r?\n')


def find_boundaries(payload: str) -> List[str]:
    """
    Return the multipart boundaries declared (or, failing that, used) in ``payload``.
    """
    boundaries = []
    for quoted, bare in BOUNDARY_PARAM.findall(payload):
        boundary = quoted or bare
        if boundary not in boundaries:
            boundaries.append(boundary)

    if not boundaries:
        match = BOUNDARY_LINE.search(payload)
        if match and PART_CONTENT_TYPE.search(payload, match.end()):
            boundaries.append(match.group(1))
    return boundaries


def is_multipart(payload: str) -> bool:
    return bool(payload) and bool(find_boundaries(payload)) and bool(PART_CONTENT_TYPE.search(payload))


def _decode_part(part: Message) -> str:
    """Decode a leaf part, undoing quoted-printable/base64 transfer encodings."""
    raw = part.get_payload(decode=True)
    if raw is None:
        body = part.get_payload()
        return body if isinstance(body, str) else ''

    charset = part.get_content_charset() or 'utf-8'
    try:
        return raw.decode(charset, errors='replace')
    except LookupError:
        logger.debug(f"Unknown charset {charset!r}, falling back to utf-8")
        return raw.decode('utf-8', errors='replace')


def split_parts(payload: str) -> List[Tuple[str, str]]:
    """
    Split a multipart payload into ``(content_type, decoded_body)`` leaf parts.

    Nested multiparts are flattened because every declared boundary acts as a
    separator. Chunks without a Content-Type header are skipped.
    """
    boundaries = find_boundaries(payload)
    if not boundaries:
        return []

    separator = re.compile(
        r'^--(?:' + '|'.join(re.escape(b) for b in boundaries) + r')(?:--)?[ \t]*\r?$',
        re.MULTILINE,
    )

    parts = []
    for chunk in separator.split(payload):
        chunk = chunk.strip('\r\n')
        headers = HEADER_BREAK.split(chunk, 1)[0]
        if not PART_CONTENT_TYPE.search(headers):
            continue

        part = email.message_from_string(chunk)
        if part.is_multipart() or part.get_content_maintype() == 'multipart':
            continue
        parts.append((part.get_content_type(), _decode_part(part)))
    return parts


def select_parts(payload: str, strategies: Tuple[str, ...] = PART_STRATEGIES) -> List[str]:
    """
    Candidate bodies of a multipart payload in strategy order.

    Args:
        payload: Raw email text
        strategies: Content types to consider, most preferred first

    Returns:
        Decoded bodies; empty when the payload is not multipart or has no
        part of a listed type
    """
    if not is_multipart(payload):
        return []

    parts = split_parts(payload)
    selected = []
    for content_type in strategies:
        selected.extend(body for part_type, body in parts if part_type == content_type)

    logger.debug(
        f"MIME payload with {len(parts)} parts, {len(selected)} selected "
        f"for content types {list(strategies)}"
    )
    return selected
