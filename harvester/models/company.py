"""Company data produced by extraction and enriched by the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass
class Prices:
    """Price hints; a field the listing did not mention is 0."""

    base_price: int = 0
    price_per_hour: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"base_price": self.base_price, "price_per_hour": self.price_per_hour}


@dataclass
class Contact:
    phone: str | None = None
    email: str | None = None
    website: str | None = None

    def to_dict(self) -> dict[str, str]:
        """Only the fields that were found."""
        return {
            key: value
            for key, value in (
                ("phone", self.phone),
                ("email", self.email),
                ("website", self.website),
            )
            if value
        }


@dataclass
class PartialCompanyRecord:
    """One listing as read from a directory page.

    Ephemeral: produced by the extractor, consumed by the pipeline.
    """

    name: str
    address: str | None = None
    services: set[str] = field(default_factory=set)
    prices: Prices | None = None
    contact: Contact = field(default_factory=Contact)
