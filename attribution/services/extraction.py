"""
Tolerant field extraction for ADF/XML fragments.

Every lookup goes through one case-insensitive pattern builder parameterized by
tag name and an optional attribute predicate, so plain text and CDATA-wrapped
text are handled in one place. Nothing here validates markup: a missing or
malformed element simply yields None.
"""
import re
from functools import lru_cache
from typing import Dict, NamedTuple, Optional

CDATA_SECTION = re.compile(r'<!\[CDATA\[(.*?)\]\]>', re.DOTALL)
ATTRIBUTE = re.compile(r'([\w:.-]+)\s*=\s*(["\'])(.*?)\2', re.DOTALL)

# Applied in order; &amp; must come last so "&amp;lt;" decodes to "&lt;".
ENTITIES = (
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&quot;', '"'),
    ('&#39;', "'"),
    ('&apos;', "'"),
    ('&amp;', '&'),
)


class Element(NamedTuple):
    """A matched element: its attributes (lower-cased names) and raw inner markup."""
    attributes: Dict[str, str]
    content: str

    @property
    def text(self) -> Optional[str]:
        return element_text(self.content)


def unescape_entities(text: str) -> str:
    """Decode the handful of entities that show up in escaped ADF payloads."""
    for entity, char in ENTITIES:
        text = re.sub(re.escape(entity), char, text, flags=re.IGNORECASE)
    return text


def element_text(content: Optional[str]) -> Optional[str]:
    """
    Convert raw inner markup to text.

    CDATA sections are unwrapped verbatim; text outside CDATA is entity-decoded.
    Blank results become None.
    """
    if content is None:
        return None

    parts = []
    position = 0
    for match in CDATA_SECTION.finditer(content):
        parts.append(unescape_entities(content[position:match.start()]))
        parts.append(match.group(1))
        position = match.end()
    parts.append(unescape_entities(content[position:]))

    text = ''.join(parts).strip()
    return text or None


@lru_cache(maxsize=256)
def tag_pattern(tag: str, attr: Optional[str] = None, value: Optional[str] = None) -> re.Pattern:
    """
    Build the pattern for ``<tag ...>content</tag>``.

    With ``attr``/``value`` the opening tag must carry that attribute with that
    value (quoted with either quote style). Self-closing tags never match.
    """
    if attr is None:
        opening = r'<' + re.escape(tag) + r'(?P<attrs>\s[^>]*?)?(?<!/)>'
    else:
        predicate = re.escape(attr) + r'\s*=\s*(?P<quote>["\'])' + re.escape(value or '') + r'(?P=quote)'
        opening = (
            r'<' + re.escape(tag)
            + r'(?P<attrs>\s[^>]*?\b' + predicate + r'[^>]*?)(?<!/)>'
        )
    closing = r'</' + re.escape(tag) + r'\s*>'
    return re.compile(opening + r'(?P<content>.*?)' + closing, re.IGNORECASE | re.DOTALL)


def parse_attributes(attrs: Optional[str]) -> Dict[str, str]:
    if not attrs:
        return {}
    return {name.lower(): val for name, _quote, val in ATTRIBUTE.findall(attrs)}


def find_element(fragment: Optional[str], tag: str, attr: Optional[str] = None,
                 value: Optional[str] = None) -> Optional[Element]:
    """
    Find the first ``tag`` element in ``fragment``.

    Args:
        fragment: Markup to search; None or non-string input yields None
        tag: Tag name, matched case-insensitively
        attr: Optional attribute name the element must carry
        value: Required value of ``attr``, matched case-insensitively

    Returns:
        Element with attributes and raw inner markup, or None
    """
    if not isinstance(fragment, str) or not tag:
        return None

    match = tag_pattern(tag, attr, value).search(fragment)
    if match is None:
        return None
    return Element(parse_attributes(match.group('attrs')), match.group('content'))


def extract_text(fragment: Optional[str], tag: str, attr: Optional[str] = None,
                 value: Optional[str] = None) -> Optional[str]:
    """Text content of the first matching element, or None."""
    element = find_element(fragment, tag, attr, value)
    return element.text if element else None


def extract_block(fragment: Optional[str], tag: str, attr: Optional[str] = None,
                  value: Optional[str] = None) -> Optional[str]:
    """Raw inner markup of the first matching element, or None."""
    element = find_element(fragment, tag, attr, value)
    return element.content if element else None


def extract_attribute(fragment: Optional[str], tag: str, name: str,
                      attr: Optional[str] = None, value: Optional[str] = None) -> Optional[str]:
    """Value of attribute ``name`` on the first matching element, or None."""
    element = find_element(fragment, tag, attr, value)
    if element is None:
        return None
    found = element.attributes.get(name.lower(), '').strip()
    return found or None
