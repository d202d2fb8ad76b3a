"""
Error taxonomy for looking-glass lookups.

Primary lookups (routes, AS info, ping/traceroute/mtr) let these propagate
to the command dispatcher. Enrichment lookups (zone, PTR, NS addresses) go
through best_effort() and degrade to a default value instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LookingGlassError(Exception):
    """Base class for every failure surfaced by the lookup core."""


class InputInvalidError(LookingGlassError):
    """Token or command line rejected by the grammar. Never hits the network."""


class InvalidAddressError(InputInvalidError):
    pass


class UnknownRouterError(InputInvalidError):
    def __init__(self, router: str):
        super().__init__(f"Unknown router: {router}")
        self.router = router


class UpstreamHTTPError(LookingGlassError):
    """Non-2xx response from a router API or DoH endpoint."""

    def __init__(self, status: int, url: str = ""):
        super().__init__(f"HTTP error! status: {status}")
        self.status = status
        self.url = url


class ResolutionError(LookingGlassError):
    """The DoH transport rejected the query (network, timeout, bad wire data)."""


class RouterUnreachableError(LookingGlassError):
    """The router API could not be reached at all (connect error, timeout)."""


class MalformedPayloadError(LookingGlassError):
    """Response decoded fine but does not have the expected shape."""


@dataclass(frozen=True)
class Lookup(Generic[T]):
    """Outcome of a best-effort sub-query: either a value or a substituted default."""
    ok: bool
    value: T
    error: Optional[LookingGlassError] = None


async def best_effort(aw: Awaitable[T], default: T, what: str = "") -> Lookup[T]:
    try:
        return Lookup(ok=True, value=await aw)
    except LookingGlassError as e:
        logger.warning("Best-effort lookup %s failed: %s", what or "?", e)
        return Lookup(ok=False, value=default, error=e)
