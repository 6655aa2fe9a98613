"""Public models for the harvester service."""

from harvester.models.company import Contact, Coordinates, PartialCompanyRecord, Prices
from harvester.models.responses import ApiResponse

__all__ = [
    "ApiResponse",
    "Contact",
    "Coordinates",
    "PartialCompanyRecord",
    "Prices",
]
