"""
Unit and property-based tests for the field extractor.
"""
from hypothesis import given, settings
import hypothesis.strategies as st

from attribution.services.extraction import (
    element_text,
    extract_attribute,
    extract_block,
    extract_text,
    find_element,
    unescape_entities,
)

identifiers = st.text(
    alphabet=st.characters(whitelist_categories=('Lu', 'Ll', 'Nd'), whitelist_characters='-_.'),
    min_size=1,
    max_size=40,
)


class TestExtractText:
    """Tests for extract_text."""

    def test_plain_text(self):
        assert extract_text('<make>Subaru</make>', 'make') == 'Subaru'

    def test_cdata_text(self):
        assert extract_text('<make><![CDATA[Subaru]]></make>', 'make') == 'Subaru'

    def test_whitespace_trimmed(self):
        assert extract_text('<make>\n   Subaru  \n</make>', 'make') == 'Subaru'

    def test_tag_name_case_insensitive(self):
        assert extract_text('<MAKE>Subaru</Make>', 'make') == 'Subaru'

    def test_tag_with_unrelated_attributes(self):
        assert extract_text('<phone type="voice" time="day">555-0100</phone>', 'phone') == '555-0100'

    def test_missing_tag_returns_none(self):
        assert extract_text('<make>Subaru</make>', 'model') is None

    def test_empty_tag_returns_none(self):
        assert extract_text('<model></model>', 'model') is None
        assert extract_text('<model><![CDATA[  ]]></model>', 'model') is None

    def test_self_closing_tag_returns_none(self):
        assert extract_text('<model/><make>Subaru</make>', 'model') is None
        assert extract_text('<model /><make>Subaru</make>', 'model') is None

    def test_does_not_match_longer_tag_name(self):
        assert extract_text('<identity>x</identity>', 'id') is None

    def test_unclosed_tag_returns_none(self):
        assert extract_text('<make>Subaru', 'make') is None

    def test_non_string_fragment_returns_none(self):
        assert extract_text(None, 'make') is None
        assert extract_text(123, 'make') is None

    def test_entities_decoded_outside_cdata(self):
        assert extract_text('<name>Smith &amp; Sons</name>', 'name') == 'Smith & Sons'

    def test_cdata_content_returned_verbatim(self):
        assert extract_text('<name><![CDATA[Smith &amp; Sons]]></name>', 'name') == 'Smith &amp; Sons'

    def test_first_match_wins(self):
        fragment = '<phone>111</phone><phone>222</phone>'
        assert extract_text(fragment, 'phone') == '111'


class TestAttributeQualifiedLookup:
    """Tests for attribute-qualified lookups."""

    def test_attribute_value_match(self):
        fragment = '<id sequence="1" source="LeadId">L100</id><id source="sdSessionId">S9</id>'
        assert extract_text(fragment, 'id', 'source', 'LeadId') == 'L100'
        assert extract_text(fragment, 'id', 'source', 'sdSessionId') == 'S9'

    def test_attribute_value_case_insensitive(self):
        fragment = '<ID SOURCE="leadid">L100</ID>'
        assert extract_text(fragment, 'id', 'source', 'LeadId') == 'L100'

    def test_single_quoted_attribute(self):
        assert extract_text("<name part='first'>Dana</name>", 'name', 'part', 'first') == 'Dana'

    def test_attribute_value_must_match_exactly(self):
        fragment = '<id source="LeadIdentifier">X</id>'
        assert extract_text(fragment, 'id', 'source', 'LeadId') is None

    def test_attribute_name_must_match_whole_word(self):
        fragment = '<id datasource="LeadId">X</id>'
        assert extract_text(fragment, 'id', 'source', 'LeadId') is None

    def test_skips_elements_with_other_values(self):
        fragment = '<amount type="monthly">500</amount><amount type="total">30000</amount>'
        assert extract_text(fragment, 'amount', 'type', 'total') == '30000'


class TestBlocksAndAttributes:
    """Tests for extract_block, extract_attribute and find_element."""

    def test_extract_block_returns_raw_markup(self):
        fragment = '<vehicle interest="buy"><year>2024</year></vehicle>'
        assert extract_block(fragment, 'vehicle', 'interest', 'buy') == '<year>2024</year>'

    def test_extract_block_missing(self):
        assert extract_block('<vehicle interest="buy"></vehicle>', 'vehicle', 'interest', 'trade-in') is None

    def test_extract_attribute(self):
        fragment = '<vehicle interest="buy" status="new"><year>2024</year></vehicle>'
        assert extract_attribute(fragment, 'vehicle', 'status', 'interest', 'buy') == 'new'

    def test_extract_attribute_missing(self):
        fragment = '<vehicle interest="buy"><year>2024</year></vehicle>'
        assert extract_attribute(fragment, 'vehicle', 'status', 'interest', 'buy') is None

    def test_find_element_lowercases_attribute_names(self):
        element = find_element('<Vehicle Interest="buy" STATUS="used">x</Vehicle>', 'vehicle')
        assert element.attributes == {'interest': 'buy', 'status': 'used'}
        assert element.text == 'x'


class TestUnescapeEntities:

    def test_known_entities(self):
        assert unescape_entities('&lt;adf&gt; &quot;a&quot; &#39;b&#39; &amp;') == '<adf> "a" \'b\' &'

    def test_double_escaped_ampersand_decodes_once(self):
        assert unescape_entities('&amp;lt;') == '&lt;'

    def test_element_text_none(self):
        assert element_text(None) is None


class TestExtractorProperties:
    """Property-based tests for the extractor."""

    @settings(max_examples=100)
    @given(value=identifiers, wrap_cdata=st.booleans())
    def test_recovers_value_plain_or_cdata(self, value, wrap_cdata):
        inner = f'<![CDATA[{value}]]>' if wrap_cdata else value
        fragment = f'<prospect><id sequence="1" source="LeadId">{inner}</id></prospect>'

        assert extract_text(fragment, 'id', 'source', 'LeadId') == value

    @settings(max_examples=100)
    @given(fragment=st.text(max_size=200), tag=st.sampled_from(['id', 'make', 'vehicle', 'amount']))
    def test_idempotent_and_never_raises(self, fragment, tag):
        first = extract_text(fragment, tag)
        second = extract_text(fragment, tag)

        assert first == second
        assert first is None or isinstance(first, str)

    @settings(max_examples=50)
    @given(fragment=st.text(max_size=200))
    def test_attribute_lookup_never_raises(self, fragment):
        assert extract_text(fragment, 'id', 'source', 'LeadId') == extract_text(fragment, 'id', 'source', 'LeadId')
