"""
app/services/authority_service.py

Purpose: Fiscal authority (ZIMRA) invoice lookup

- Checks that a QR payload points at the authority domain
- Fetches the invoice verification page behind the QR code
- Parses the label/value blocks into an AuthorityInvoice
"""

import re
import httpx
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from app.core.config import settings
from app.core.exceptions import CollaboratorError, CollaboratorTimeout
from app.core.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
VALIDITY_PHRASE = "invoice is valid"


@dataclass
class AuthorityInvoice:
    is_valid: bool
    taxpayer_name: Optional[str] = None
    trade_name: Optional[str] = None
    address: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[str] = None
    invoice_total: Optional[str] = None
    currency: str = "USD"

    @property
    def retailer_name(self) -> Optional[str]:
        return self.trade_name or self.taxpayer_name


def _field(html: str, label: str) -> Optional[str]:
    """
    Reads `<label ...>LABEL</label> ... <div class="result-text">VALUE</div>`.
    """
    pattern = re.compile(
        rf"<label[^>]*>\s*{re.escape(label)}\s*</label>[\s\S]*?<div class=\"result-text\">([^<]+)</div>",
        re.IGNORECASE,
    )
    match = pattern.search(html)
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


def parse_invoice_page(html: str) -> AuthorityInvoice:
    """
    Parses the authority's invoice verification page.

    Args:
        html: Page body

    Returns:
        AuthorityInvoice (currency defaults to USD)
    """
    return AuthorityInvoice(
        is_valid=VALIDITY_PHRASE in html.lower(),
        taxpayer_name=_field(html, "TAXPAYER NAME"),
        trade_name=_field(html, "TRADE NAME"),
        address=_field(html, "ADDRESS"),
        invoice_number=_field(html, "INVOICE NUMBER"),
        invoice_date=_field(html, "INVOICE DATE AND TIME"),
        invoice_total=_field(html, "INVOICE TOTAL AMOUNT"),
        currency=_field(html, "CURRENCY") or "USD",
    )


class AuthorityClient:
    """
    Client for the authority's public invoice verification pages.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.domain = settings.AUTHORITY_DOMAIN.lower()
        self._timeout = settings.AUTHORITY_TIMEOUT_SECONDS
        self._transport = transport

    def is_authority_url(self, url: Optional[str]) -> bool:
        if not url:
            return False
        host = (urlparse(url.strip()).hostname or "").lower()
        return host == self.domain or host.endswith(f".{self.domain}")

    async def fetch(self, url: str) -> str:
        """
        Fetches the page behind a QR code.

        Raises:
            CollaboratorTimeout: no answer within the timeout
            CollaboratorError: transport failure or non-2xx response
        """
        try:
            logger.info(f"📥 Fetching invoice from: {url}")
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self._timeout,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
            ) as client:
                response = await client.get(url)

            if response.status_code != 200:
                raise CollaboratorError(
                    f"Authority returned {response.status_code}",
                    details={"url": url}
                )
            return response.text

        except httpx.TimeoutException as e:
            logger.error(f"⏱️ Authority timeout for {url}")
            raise CollaboratorTimeout("Invoice lookup is taking too long to respond") from e
        except httpx.RequestError as e:
            logger.error(f"❌ Authority request error: {e}")
            raise CollaboratorError("Unable to connect to the invoice lookup service") from e

    async def lookup(self, url: str) -> AuthorityInvoice:
        html = await self.fetch(url)
        invoice = parse_invoice_page(html)
        logger.info(
            f"✅ Invoice parsed: number={invoice.invoice_number}, "
            f"retailer={invoice.retailer_name}, valid={invoice.is_valid}"
        )
        return invoice
