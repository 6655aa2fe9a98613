"""Unit tests for the selector-driven listing extractor and the service taxonomy."""

import logging

from harvester.config.sources import (
    DEFAULT_SOURCES,
    ContactSelectors,
    ScrapingSource,
    SourceSelectors,
)
from harvester.extractors.listing import ListingExtractor
from harvester.extractors.taxonomy import classify_services, parse_prices
from harvester.models.company import Prices

OFERTEO = next(s for s in DEFAULT_SOURCES if s.name == "oferteo")
PANORAMA = next(s for s in DEFAULT_SOURCES if s.name == "panoramafirm")

OFERTEO_PAGE = """
<html><body>
  <div class="company-box">
    <div class="company-name"><h2>Clean Co</h2></div>
    <div class="company-address">ul. Floriańska 1, Kraków</div>
    <ul class="services-list"><li>Sprzątanie biur</li><li>Mycie okien</li></ul>
    <div class="price-info">od 200 zł, 45 zł/h</div>
    <span class="company-phone">+48 600 100 200</span>
    <a class="company-email" href="mailto:biuro@cleanco.pl"></a>
    <a class="company-website" href="https://cleanco.pl">cleanco.pl</a>
  </div>
  <div class="company-box">
    <div class="company-address">ul. Długa 5, Kraków</div>
  </div>
</body></html>
"""


def _extract(source, html):
    return list(ListingExtractor().extract(source, html))


class TestListingExtractor:
    """Test ListingExtractor.extract()."""

    def test_nameless_block_is_dropped(self):
        records = _extract(OFERTEO, OFERTEO_PAGE)
        assert len(records) == 1
        assert records[0].name == "Clean Co"

    def test_fields_extracted(self):
        record = _extract(OFERTEO, OFERTEO_PAGE)[0]
        assert record.address == "ul. Floriańska 1, Kraków"
        assert record.services == {"office cleaning", "window washing"}
        assert record.prices == Prices(base_price=200, price_per_hour=45)

    def test_contact_fields(self):
        contact = _extract(OFERTEO, OFERTEO_PAGE)[0].contact
        assert contact.phone == "+48 600 100 200"
        assert contact.email == "biuro@cleanco.pl"
        assert contact.website == "https://cleanco.pl"

    def test_website_falls_back_to_text(self):
        html = '<div class="company-item"><h2 class="company-name">A</h2><span class="website">a.pl</span></div>'
        assert _extract(PANORAMA, html)[0].contact.website == "a.pl"

    def test_services_fall_back_to_block_text(self):
        html = (
            '<div class="company-item"><h2 class="company-name">Dezynfekcja Plus</h2>'
            "<p>Profesjonalna dezynfekcja pomieszczeń</p></div>"
        )
        record = _extract(PANORAMA, html)[0]
        assert record.services == {"disinfection"}
        assert record.prices is None

    def test_no_matching_blocks_is_empty(self, caplog):
        with caplog.at_level(logging.INFO, logger="harvester.extractors.listing"):
            assert _extract(OFERTEO, "<html><body><p>Maintenance</p></body></html>") == []
        assert "No listing blocks matched" in caplog.text

    def test_empty_document(self):
        assert _extract(OFERTEO, "") == []

    def test_missing_optional_selectors(self):
        source = ScrapingSource(
            name="bare",
            url="https://bare.example",
            selectors=SourceSelectors(company=".c", name=".n"),
        )
        record = _extract(source, '<div class="c"><b class="n">Solo</b></div>')[0]
        assert record.address is None
        assert record.contact.to_dict() == {}

    def test_email_prefers_text(self):
        source = ScrapingSource(
            name="s",
            url="https://s.example",
            selectors=SourceSelectors(
                company=".c", name=".n", contact=ContactSelectors(email=".e")
            ),
        )
        html = '<div class="c"><b class="n">X</b><a class="e" href="mailto:a@b.pl">kontakt@x.pl</a></div>'
        assert _extract(source, html)[0].contact.email == "kontakt@x.pl"


class TestClassifyServices:
    """Test keyword classification."""

    def test_polish_keywords(self):
        assert classify_services("Pranie tapicerki i dywanów") == {"upholstery cleaning"}

    def test_english_keywords(self):
        assert classify_services("Office and window cleaning") == {"office cleaning", "window washing"}

    def test_case_insensitive(self):
        assert "post-renovation cleaning" in classify_services("SPRZĄTANIE PO REMONCIE")

    def test_no_match(self):
        assert classify_services("Catering i eventy") == set()


class TestParsePrices:
    """Test price hint parsing."""

    def test_hourly_only(self):
        assert parse_prices("Stawka 35 zł/h") == Prices(base_price=0, price_per_hour=35)

    def test_base_only(self):
        assert parse_prices("Ceny od 150 PLN") == Prices(base_price=150, price_per_hour=0)

    def test_both(self):
        assert parse_prices("od 300 zł lub 50zł / h") == Prices(base_price=300, price_per_hour=50)

    def test_none(self):
        assert parse_prices("Zadzwoń po wycenę") is None
