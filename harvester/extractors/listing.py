"""Generic listing extractor driven by per-source selector rules.

One extractor serves every directory site: the ``ScrapingSource`` record
says which CSS selector locates a listing block and which selectors inside
the block hold the name, address, services, prices and contact fields.

Extraction is total over its input. Blocks without a name are dropped,
selectors that match nothing leave their field unset, and a page with no
matching blocks yields nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from bs4 import BeautifulSoup, ParserRejectedMarkup, Tag

from harvester.config.sources import ScrapingSource
from harvester.extractors.taxonomy import classify_services, parse_prices
from harvester.models.company import Contact, PartialCompanyRecord

logger = logging.getLogger(__name__)


def _text(block: Tag, selector: str | None) -> str | None:
    """Whitespace-normalized text of every match of *selector* inside *block*."""
    if not selector:
        return None
    parts = [el.get_text(" ", strip=True) for el in block.select(selector)]
    text = " ".join(" ".join(parts).split())
    return text or None


def _href(block: Tag, selector: str | None, scheme: str | None = None) -> str | None:
    """``href`` of the first match of *selector*, with an optional scheme prefix stripped."""
    if not selector:
        return None
    element = block.select_one(selector)
    if element is None:
        return None
    href = element.get("href")
    if not isinstance(href, str) or not href.strip():
        return None
    href = href.strip()
    if scheme:
        if not href.lower().startswith(scheme):
            return None
        href = href[len(scheme):].split("?")[0]
    return href or None


class ListingExtractor:
    """Turns a directory page into ``PartialCompanyRecord`` objects.

    Stateless: ``extract`` is a pure function of the source rules and the
    page markup, so it can be re-run at any time.
    """

    def extract(self, source: ScrapingSource, page_content: str) -> Iterator[PartialCompanyRecord]:
        """Yield one record per named listing block in *page_content*."""
        try:
            soup = BeautifulSoup(page_content, "html.parser")
        except ParserRejectedMarkup as exc:
            logger.warning("Unparseable page from %s: %s", source.name, exc, extra={"source": source.name})
            return
        selectors = source.selectors
        blocks = soup.select(selectors.company)

        if not blocks:
            logger.info(
                "No listing blocks matched %r on %s",
                selectors.company,
                source.name,
                extra={"source": source.name},
            )
            return

        for block in blocks:
            name = _text(block, selectors.name)
            if not name:
                continue

            block_text = " ".join(block.get_text(" ", strip=True).split())
            services_text = _text(block, selectors.services) or block_text
            prices_text = _text(block, selectors.prices) or block_text

            yield PartialCompanyRecord(
                name=name,
                address=_text(block, selectors.address),
                services=classify_services(services_text),
                prices=parse_prices(prices_text),
                contact=self._contact(block, source),
            )

    @staticmethod
    def _contact(block: Tag, source: ScrapingSource) -> Contact:
        rules = source.selectors.contact
        if rules is None:
            return Contact()
        return Contact(
            phone=_text(block, rules.phone) or _href(block, rules.phone, "tel:"),
            email=_text(block, rules.email) or _href(block, rules.email, "mailto:"),
            website=_href(block, rules.website) or _text(block, rules.website),
        )
