"""Outbound HTTP — rotating identities and the resilient client."""

from harvester.client.http import ResilientClient
from harvester.client.identity import IdentityRotator

__all__ = ["IdentityRotator", "ResilientClient"]
