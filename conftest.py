import os
import sys
from unittest.mock import Mock

import pytest

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'attribution_gateway.settings')


TRADE_IN_BLOCK = """
    <vehicle interest="trade-in" status="used">
      <year>2015</year>
      <make>Honda</make>
      <model>Civic</model>
      <vin>2HGFB2F59FH123456</vin>
      <odometer status="original" units="mi">84,250</odometer>
      <price type="appraisal" currency="USD">$9,500.00</price>
    </vehicle>"""


def build_adf(lead_id='L100', session_key='S9', form_type='Buy Online', trade_in=True,
              request_date='2024-03-05T14:22:10-05:00'):
    """Build a realistic ADF document; pass None to leave an id out."""
    ids = []
    if lead_id is not None:
        ids.append(f'<id sequence="1" source="LeadId">{lead_id}</id>')
    if session_key is not None:
        ids.append(f'<id sequence="2" source="sdSessionId"><![CDATA[{session_key}]]></id>')
    if form_type is not None:
        ids.append(f'<id sequence="3" source="FormType">{form_type}</id>')

    return f"""<?xml version="1.0" encoding="UTF-8"?>
<?adf version="1.0"?>
<adf>
  <prospect status="new">
    {' '.join(ids)}
    <requestdate>{request_date}</requestdate>
    <vehicle interest="buy" status="new">
      <year>2024</year>
      <make>Subaru</make>
      <model>Outback</model>
      <trim>Premium</trim>
      <vin>4S4BTAFC5R3123456</vin>
      <stock>S24117</stock>
      <finance>
        <method>finance</method>
        <amount type="monthly" limit="exact" currency="USD">$512.34</amount>
        <amount type="downpayment" limit="exact" currency="USD">3,000</amount>
        <amount type="total" limit="exact" currency="USD">$36,210.50</amount>
      </finance>
    </vehicle>{TRADE_IN_BLOCK if trade_in else ''}
    <customer>
      <contact>
        <name part="first">Dana</name>
        <name part="last"><![CDATA[O'Neil]]></name>
        <email>dana.oneil@example.com</email>
        <phone type="voice">(555) 010-2233</phone>
        <address>
          <street line="1">12 Harbor Way</street>
          <city>Cherry Hill</city>
          <regioncode>NJ</regioncode>
          <postalcode>08002</postalcode>
        </address>
      </contact>
      <comments>Interested in the Outback with a trade.</comments>
    </customer>
    <vendor>
      <contact primarycontact="1">
        <name part="full">Sport Subaru South</name>
        <email>sales@dealer.example.com</email>
      </contact>
    </vendor>
  </prospect>
</adf>"""


@pytest.fixture
def adf_builder():
    return build_adf


@pytest.fixture
def adf_document():
    """A complete ADF document with lead id L100 and session key S9."""
    return build_adf()


@pytest.fixture
def attribution_payload():
    """A visitor attribution submission as sent by the browser collector."""
    return {
        'ajs_anonymous_id': 'anon-123',
        'gubagoo_visitor_uuid': 'visitor-abc',
        'sd_session_id': 'S9',
        'utm_source': 'google',
        'utm_medium': 'cpc',
        'utm_campaign': 'spring-outback',
        'utm_term': 'subaru outback deals',
        'utm_content': 'ad-variant-b',
        'gclid': 'Cj0KCQ-test',
        'referrer': 'https://www.google.com/',
        'landing_page': 'https://dealer.example.com/new/outback?utm_source=google',
        'page_url': 'https://dealer.example.com/new/outback',
    }


@pytest.fixture
def attribution_record():
    """A normalized attribution record ready for the store."""
    return {
        'anonymous_id': 'anon-123',
        'widget_visitor_id': 'visitor-abc',
        'session_key': 'S9',
        'utm_source': 'google',
        'utm_medium': 'cpc',
        'utm_campaign': 'spring-outback',
        'utm_term': 'subaru outback deals',
        'utm_content': 'ad-variant-b',
        'gclid': 'Cj0KCQ-test',
        'referrer': 'https://www.google.com/',
        'landing_page': 'https://dealer.example.com/new/outback?utm_source=google',
    }


@pytest.fixture
def recording_sink():
    """An event sink double that records events and answers 200."""
    sink = Mock()
    sink.events = []

    def send(event):
        sink.events.append(event)
        response = Mock()
        response.status_code = 200
        response.text = '{"success": true}'
        return response

    sink.send.side_effect = send
    return sink
