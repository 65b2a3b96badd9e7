"""
ADF document parser.

Locates the ADF (Auto-lead Data Format) block inside an inbound email body of
unknown shape and turns it into a ParsedLead. Parsing is best effort: absent
sub-blocks and unparsable or out-of-range numbers become None, over-long text is
clipped to its column, and only a missing ADF block (or a block without a
usable lead id) makes the whole document unusable.
"""
import logging
import quopri
import re
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List, Optional, Tuple

from django.utils.dateparse import parse_date, parse_datetime

from attribution.services.extraction import (
    extract_attribute,
    extract_block,
    extract_text,
    unescape_entities,
)
from attribution.services.mime import select_parts

logger = logging.getLogger(__name__)

ADF_BLOCK = re.compile(r'<adf\b[^>]*>.*?</adf\s*>', re.IGNORECASE | re.DOTALL)
QUOTED_PRINTABLE_MARKERS = re.compile(r'=3D|=\r?\n|=20')
NUMERIC_NOISE = re.compile(r'[^\d.\-]')

LEAD_ID_SOURCE = 'LeadId'
SESSION_KEY_SOURCE = 'sdSessionId'
FORM_TYPE_SOURCE = 'FormType'

PRIMARY_VEHICLE_INTERESTS = ('buy', 'lease')
TRADE_IN_INTEREST = 'trade-in'

# Column bounds of FinalizedLead; values outside them are not storable.
IDENTIFIER_MAX_LENGTH = 255
TEXT_MAX_LENGTH = 255
FIELD_MAX_LENGTHS = {
    'phone': 64,
    'state': 64,
    'zip_code': 32,
    'vehicle_vin': 64,
    'vehicle_stock': 64,
    'vehicle_status': 32,
    'trade_in_vin': 64,
}
INTEGER_RANGE = (-2 ** 31, 2 ** 31 - 1)
YEAR_RANGE = (1900, 2100)
MONEY_INTEGER_DIGITS = 10
CENTS = Decimal('0.01')


@dataclass(frozen=True)
class ParsedLead:
    """One inbound lead document, immutable once parsed."""

    lead_id: str
    session_key: Optional[str] = None
    form_type: Optional[str] = None
    request_date: Optional[datetime] = None

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    comments: Optional[str] = None

    vehicle_year: Optional[int] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_trim: Optional[str] = None
    vehicle_vin: Optional[str] = None
    vehicle_stock: Optional[str] = None
    vehicle_status: Optional[str] = None

    monthly_payment: Optional[Decimal] = None
    down_payment: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None

    trade_in_year: Optional[int] = None
    trade_in_make: Optional[str] = None
    trade_in_model: Optional[str] = None
    trade_in_vin: Optional[str] = None
    trade_in_value: Optional[Decimal] = None
    trade_in_mileage: Optional[int] = None

    raw_document: str = ''

    def to_dict(self) -> dict:
        """JSON-safe representation (decimals and dates as strings)."""
        data = {}
        for key, value in asdict(self).items():
            if isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, (datetime, date)):
                value = value.isoformat()
            data[key] = value
        return data


def parse_number(text: Optional[str]) -> Optional[Decimal]:
    if text is None:
        return None
    cleaned = NUMERIC_NOISE.sub('', text)
    if not cleaned:
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def parse_decimal(text: Optional[str]) -> Optional[Decimal]:
    """
    Parse a money-ish string such as "$1,234.50" or "USD 300".

    The result is rounded to cents. Returns None for blank or unparsable
    input and for amounts of more than ten integer digits, never zero.
    """
    value = parse_number(text)
    if value is None or abs(value) >= 10 ** MONEY_INTEGER_DIGITS:
        return None
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_int(text: Optional[str], bounds: Tuple[int, int] = INTEGER_RANGE) -> Optional[int]:
    """Parse an integer field, truncating fractions; None outside ``bounds``."""
    value = parse_number(text)
    if value is None:
        return None
    low, high = bounds
    if not low <= value <= high:
        logger.debug(f"Numeric value {text!r} out of range, dropped")
        return None
    return int(value)


def parse_year(text: Optional[str]) -> Optional[int]:
    return parse_int(text, YEAR_RANGE)


def clip(field: str, text: Optional[str]) -> Optional[str]:
    """Cut a text value down to the width of its column."""
    limit = FIELD_MAX_LENGTHS.get(field, TEXT_MAX_LENGTH)
    if text is None or len(text) <= limit:
        return text
    logger.debug(f"Field {field} longer than {limit} characters, clipped")
    return text[:limit]


def identifier(text: Optional[str]) -> Optional[str]:
    """An id too long to store cannot be joined on, so it counts as absent."""
    if text is not None and len(text) > IDENTIFIER_MAX_LENGTH:
        logger.warning(f"Identifier of {len(text)} characters dropped")
        return None
    return text


def parse_request_date(text: Optional[str]) -> datetime:
    """Parse an ADF requestdate, defaulting to now (UTC) when missing or unparsable."""
    parsed = None
    if text:
        try:
            parsed = parse_datetime(text)
            if parsed is None:
                day = parse_date(text)
                if day is not None:
                    parsed = datetime(day.year, day.month, day.day)
        except ValueError:
            parsed = None

    if parsed is None:
        if text:
            logger.debug(f"Unparsable requestdate {text!r}, using current time")
        return datetime.now(timezone.utc)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def looks_escaped(text: str) -> bool:
    """True when the ADF markers themselves are HTML-entity escaped."""
    lowered = text.lower()
    if '&lt;adf' in lowered:
        return True
    return '<adf' not in lowered and '&lt;' in lowered


def prepare(text: str) -> str:
    return unescape_entities(text) if looks_escaped(text) else text


def candidate_texts(payload: str) -> List[str]:
    """
    Texts to search for an ADF block, most preferred first.

    The escaped-markup check runs before anything structural; selected MIME
    parts come next, then the payload itself, then a quoted-printable decoding
    of it for bodies handed over without their transfer encoding undone.
    """
    prepared = prepare(payload)
    candidates = [prepare(part) for part in select_parts(prepared)]
    candidates.append(prepared)

    if QUOTED_PRINTABLE_MARKERS.search(payload):
        decoded = quopri.decodestring(payload.encode('utf-8', errors='replace'))
        candidates.append(prepare(decoded.decode('utf-8', errors='replace')))
    return candidates


def locate_adf(payload: Optional[str]) -> Optional[str]:
    """
    Return the ``<adf>...</adf>`` block in ``payload``, or None.

    The first candidate block carrying a LeadId wins; failing that, the first
    block found at all.
    """
    if not isinstance(payload, str) or not payload.strip():
        return None

    fallback = None
    for text in candidate_texts(payload):
        match = ADF_BLOCK.search(text)
        if match is None:
            continue
        if extract_text(match.group(0), 'id', 'source', LEAD_ID_SOURCE):
            return match.group(0)
        if fallback is None:
            fallback = match.group(0)
    return fallback


def _primary_vehicle(document: str) -> Optional[str]:
    for interest in PRIMARY_VEHICLE_INTERESTS:
        block = extract_block(document, 'vehicle', 'interest', interest)
        if block is not None:
            return block
    return None


def _vehicle_status(document: str) -> Optional[str]:
    for interest in PRIMARY_VEHICLE_INTERESTS:
        status = extract_attribute(document, 'vehicle', 'status', 'interest', interest)
        if status is not None:
            return status
    return None


def _customer_names(contact: str):
    first = extract_text(contact, 'name', 'part', 'first')
    last = extract_text(contact, 'name', 'part', 'last')
    if first is None and last is None:
        full = extract_text(contact, 'name', 'part', 'full')
        if full:
            pieces = full.split(None, 1)
            first = pieces[0]
            last = pieces[1] if len(pieces) > 1 else None
    return first, last


def parse_adf(payload: Optional[str]) -> Optional[ParsedLead]:
    """
    Parse an inbound email body into a ParsedLead.

    Args:
        payload: Raw email body (plain XML, HTML-escaped XML or multipart MIME)

    Returns:
        ParsedLead, or None when no ADF block (or no lead id) is present
    """
    document = locate_adf(payload)
    if document is None:
        logger.info("No ADF block found in payload")
        return None

    lead_id = identifier(extract_text(document, 'id', 'source', LEAD_ID_SOURCE))
    if not lead_id:
        logger.info("ADF block carries no usable LeadId")
        return None

    customer = extract_block(document, 'customer') or document
    contact = extract_block(customer, 'contact') or customer
    address = extract_block(contact, 'address') or contact
    first_name, last_name = _customer_names(contact)

    vehicle = _primary_vehicle(document)
    finance = extract_block(vehicle, 'finance') or vehicle
    trade_in = extract_block(document, 'vehicle', 'interest', TRADE_IN_INTEREST)

    text_fields = {
        'form_type': extract_text(document, 'id', 'source', FORM_TYPE_SOURCE),
        'first_name': first_name,
        'last_name': last_name,
        'email': extract_text(contact, 'email'),
        'phone': extract_text(contact, 'phone'),
        'street': extract_text(address, 'street'),
        'city': extract_text(address, 'city'),
        'state': extract_text(address, 'regioncode'),
        'zip_code': extract_text(address, 'postalcode'),
        'vehicle_make': extract_text(vehicle, 'make'),
        'vehicle_model': extract_text(vehicle, 'model'),
        'vehicle_trim': extract_text(vehicle, 'trim'),
        'vehicle_vin': extract_text(vehicle, 'vin'),
        'vehicle_stock': extract_text(vehicle, 'stock'),
        'vehicle_status': _vehicle_status(document),
        'trade_in_make': extract_text(trade_in, 'make'),
        'trade_in_model': extract_text(trade_in, 'model'),
        'trade_in_vin': extract_text(trade_in, 'vin'),
    }

    lead = ParsedLead(
        lead_id=lead_id,
        session_key=identifier(extract_text(document, 'id', 'source', SESSION_KEY_SOURCE)),
        request_date=parse_request_date(extract_text(document, 'requestdate')),
        comments=extract_text(customer, 'comments'),
        vehicle_year=parse_year(extract_text(vehicle, 'year')),
        monthly_payment=parse_decimal(extract_text(finance, 'amount', 'type', 'monthly')),
        down_payment=parse_decimal(extract_text(finance, 'amount', 'type', 'downpayment')),
        total_amount=parse_decimal(extract_text(finance, 'amount', 'type', 'total')),
        trade_in_year=parse_year(extract_text(trade_in, 'year')),
        trade_in_value=parse_decimal(extract_text(trade_in, 'price', 'type', 'appraisal')),
        trade_in_mileage=parse_int(extract_text(trade_in, 'odometer')),
        raw_document=document,
        **{field: clip(field, value) for field, value in text_fields.items()},
    )

    logger.debug(
        f"Parsed ADF lead {lead.lead_id}: session_key={lead.session_key}, "
        f"trade_in={'yes' if trade_in is not None else 'no'}"
    )
    return lead
