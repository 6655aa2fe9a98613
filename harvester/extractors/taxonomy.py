"""Service keyword taxonomy and price-hint patterns for cleaning-company listings.

Keywords are lowercase stems matched as substrings of the lowercased listing
text, so inflected Polish forms ("biura", "biurowe") match a single stem.
"""

from __future__ import annotations

import re

from harvester.models.company import Prices

SERVICE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "office cleaning": ("biur", "office", "powierzchnie biurowe"),
    "house cleaning": ("dom", "mieszkani", "apartament", "house", "home"),
    "post-renovation cleaning": ("remont", "remonc", "budow", "renovation", "construction"),
    "window washing": ("okn", "okien", "witryn", "window"),
    "upholstery cleaning": ("prani", "tapicerk", "mebl", "dywan", "wykładzin", "upholstery", "carpet"),
    "industrial cleaning": ("przemysłow", "hal", "magazyn", "fabryk", "industrial", "warehouse"),
    "disinfection": ("dezynfekc", "odkażani", "sterylizacj", "disinfect"),
}

# "45 zł/h", "45PLN/h"
HOURLY_RATE_RE = re.compile(r"(\d+)\s?(?:zł|pln)\s?/\s?h", re.IGNORECASE)
# "od 200 zł", "od200PLN"
BASE_PRICE_RE = re.compile(r"od\s?(\d+)\s?(?:zł|pln)", re.IGNORECASE)


def classify_services(text: str) -> set[str]:
    """Every category with at least one keyword in *text*. Empty when none match."""
    lowered = text.lower()
    return {
        service
        for service, keywords in SERVICE_KEYWORDS.items()
        if any(keyword in lowered for keyword in keywords)
    }


def parse_prices(text: str) -> Prices | None:
    """Read hourly and "starting from" prices out of *text*.

    None when neither pattern matches; a pattern that does not match leaves
    its field at 0.
    """
    hourly = HOURLY_RATE_RE.search(text)
    base = BASE_PRICE_RE.search(text)
    if hourly is None and base is None:
        return None
    return Prices(
        base_price=int(base.group(1)) if base else 0,
        price_per_hour=int(hourly.group(1)) if hourly else 0,
    )
