import httpx
import pytest

from app.core.exceptions import CollaboratorError, CollaboratorTimeout
from app.services.authority_service import AuthorityClient, parse_invoice_page
from helpers import AUTHORITY_URL

INVOICE_PAGE = """
<html><body>
<h2>Invoice is valid</h2>
<div class="row">
  <label class="col">TAXPAYER NAME</label>
  <div class="result-text">Farm and City Centre (Pvt) Ltd</div>
</div>
<div class="row">
  <label class="col">TRADE NAME</label>
  <div class="result-text">Farm &amp; City</div>
</div>
<div class="row">
  <label class="col">INVOICE NUMBER</label>
  <div class="result-text">FC-9921</div>
</div>
<div class="row">
  <label class="col">INVOICE DATE AND TIME</label>
  <div class="result-text">05/03/2025 09:14</div>
</div>
<div class="row">
  <label class="col">INVOICE TOTAL AMOUNT</label>
  <div class="result-text">45.00</div>
</div>
<div class="row">
  <label class="col">CURRENCY</label>
  <div class="result-text">ZWG</div>
</div>
</body></html>
"""


def test_parse_invoice_page():
    invoice = parse_invoice_page(INVOICE_PAGE)

    assert invoice.is_valid
    assert invoice.taxpayer_name == "Farm and City Centre (Pvt) Ltd"
    assert invoice.invoice_number == "FC-9921"
    assert invoice.invoice_date == "05/03/2025 09:14"
    assert invoice.invoice_total == "45.00"
    assert invoice.currency == "ZWG"
    assert invoice.address is None


def test_parse_page_without_validity_phrase():
    invoice = parse_invoice_page("<html><body>Invoice not found</body></html>")
    assert not invoice.is_valid
    assert invoice.invoice_number is None
    assert invoice.currency == "USD"


@pytest.mark.parametrize(
    "url,expected",
    [
        (AUTHORITY_URL, True),
        ("https://zimra.co.zw/receipt/1", True),
        ("https://zimra.co.zw.evil.com/receipt/1", False),
        ("https://example.com/?next=zimra.co.zw", False),
        ("not a url", False),
        (None, False),
    ],
)
def test_is_authority_url(url, expected):
    assert AuthorityClient().is_authority_url(url) is expected


async def test_lookup_fetches_and_parses():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text=INVOICE_PAGE)

    client = AuthorityClient(transport=httpx.MockTransport(handler))
    invoice = await client.lookup(AUTHORITY_URL)

    assert invoice.invoice_number == "FC-9921"
    assert str(seen[0].url) == AUTHORITY_URL
    assert "Mozilla" in seen[0].headers["user-agent"]


async def test_non_200_is_a_collaborator_error():
    client = AuthorityClient(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
    with pytest.raises(CollaboratorError, match="503"):
        await client.lookup(AUTHORITY_URL)


async def test_timeout_is_reported():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    client = AuthorityClient(transport=httpx.MockTransport(handler))
    with pytest.raises(CollaboratorTimeout):
        await client.fetch(AUTHORITY_URL)
