"""Rotating request identities for anti-detection.

Each outbound request presents a realistic desktop browser signature. The
signature pool is shuffled once at construction and then cycled, so
consecutive requests never share a User-Agent while the pool is larger
than one.
"""

from __future__ import annotations

import random

# ---------------------------------------------------------------------------
# Curated user agent list: real desktop browser UA strings
# ---------------------------------------------------------------------------

CURATED_USER_AGENTS: list[str] = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/120.0",
    "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:109.0) Gecko/20100101 Firefox/120.0",
]

# Headers sent with every identity alongside the rotating User-Agent.
BASE_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "pl,en-US;q=0.7,en;q=0.3",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


class IdentityRotator:
    """Cycles through a shuffled pool of browser signatures.

    Parameters
    ----------
    user_agents:
        Signature pool. Defaults to :data:`CURATED_USER_AGENTS`.
    rng:
        Random source used for the initial shuffle.
    """

    def __init__(
        self,
        user_agents: list[str] | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._agents = list(CURATED_USER_AGENTS if user_agents is None else user_agents)
        if not self._agents:
            raise ValueError("IdentityRotator needs at least one user agent")
        self._rng.shuffle(self._agents)
        self._index = 0

    def next_user_agent(self) -> str:
        """Return the next signature in the shuffled cycle."""
        agent = self._agents[self._index]
        self._index = (self._index + 1) % len(self._agents)
        return agent

    def next_headers(self) -> dict[str, str]:
        """Return a full header set for the next request."""
        return {"User-Agent": self.next_user_agent(), **BASE_HEADERS}
