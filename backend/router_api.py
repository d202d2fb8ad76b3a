"""
Router API client: per-router looking-glass endpoints over HTTPS.

  GET /api/v1/{ping|traceroute|mtr}?host=<token>   → {"result": "<text>"}
  GET /api/v1/bgp/json?address=<token>              → prefix-shaped route JSON
  GET /api/v1/bgp/asn/{v4,v6}/json?asn=<token>      → ASN-shaped route JSON
  GET /api/v1/as_info?asn=<n>                       → {"result": {as_name, ...}}

Non-2xx is an UpstreamHTTPError carrying the status. No retries.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Union

import httpx
from pydantic import ValidationError

from errors import InputInvalidError, MalformedPayloadError, RouterUnreachableError, UpstreamHTTPError
from models import AsInfo, Route, RouteOrigin, RouteSummary
from route_normalizer import convert_route, get_origin_asns
from token_classifier import classify_token

logger = logging.getLogger(__name__)

PACKET_COMMANDS = ("ping", "traceroute", "mtr")


class RouterApiClient:
    """Calls the looking-glass API of one router, selected per call by catalog key."""

    def __init__(
        self,
        url_template: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url_template = url_template
        self.timeout = timeout
        self.transport = transport   # injectable for tests (httpx.MockTransport)

    def base_url(self, router: str) -> str:
        return self.url_template.format(router=router).rstrip("/")

    async def call(self, router: str, endpoint: str, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url(router)}/api/{endpoint}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.error(f"[{router}] {endpoint} unreachable: {e}")
            raise RouterUnreachableError(f"{router}: {e}") from e

        if not response.is_success:
            raise UpstreamHTTPError(response.status_code, url)
        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedPayloadError(f"Invalid JSON from {endpoint}") from e
        logger.debug(f"[{router}] {endpoint} {params}: {response.status_code}")
        return payload

    async def _result(self, router: str, endpoint: str, params: dict) -> Any:
        payload = await self.call(router, endpoint, params)
        if not isinstance(payload, dict):
            raise MalformedPayloadError(f"Invalid response from {endpoint}")
        return payload.get("result")

    # --- ping / traceroute / mtr ---

    async def send_packet(self, router: str, command: str, host: str) -> str:
        if command not in PACKET_COMMANDS:
            raise InputInvalidError(f"Unknown packet command: {command}")
        result = await self._result(router, f"v1/{command}", {"host": host})
        if not isinstance(result, str):
            raise MalformedPayloadError(f"Invalid {command} result")
        return result

    async def ping(self, router: str, host: str) -> str:
        return await self.send_packet(router, "ping", host)

    async def traceroute(self, router: str, host: str) -> str:
        return await self.send_packet(router, "traceroute", host)

    async def mtr(self, router: str, host: str) -> str:
        return await self.send_packet(router, "mtr", host)

    # --- BGP ---

    async def get_route(self, router: str, address: str) -> list[Union[Route, RouteSummary]]:
        routes = convert_route(await self._result(router, "v1/bgp/json", {"address": address}))
        logger.info(f"[{router}] bgp {address}: {len(routes)} paths")
        return routes

    async def get_route_v4_by_asn(self, router: str, asn: str) -> list[Union[Route, RouteSummary]]:
        return convert_route(await self._result(router, "v1/bgp/asn/v4/json", {"asn": asn}))

    async def get_route_v6_by_asn(self, router: str, asn: str) -> list[Union[Route, RouteSummary]]:
        return convert_route(await self._result(router, "v1/bgp/asn/v6/json", {"asn": asn}))

    async def resolve_routes(self, router: str, token: str) -> list[list[Union[Route, RouteSummary]]]:
        """One route table per lookup: addresses/prefixes give one, ASNs give v4 and v6."""
        c = classify_token(token)
        if c.is_prefix:
            return [await self.get_route(router, c.value)]
        if c.asn:
            v4, v6 = await asyncio.gather(
                self.get_route_v4_by_asn(router, c.value),
                self.get_route_v6_by_asn(router, c.value),
            )
            return [v4, v6]
        raise InputInvalidError("Invalid IP address or ASN")

    async def get_origin_asns(self, router: str, address: str) -> list[RouteOrigin]:
        return get_origin_asns(await self._result(router, "v1/bgp/json", {"address": address}))

    # --- AS info ---

    async def get_as_info(self, router: str, asn: int) -> AsInfo:
        result = await self._result(router, "v1/as_info", {"asn": str(asn)})
        if not isinstance(result, dict):
            raise MalformedPayloadError(f"No AS information for AS{asn}")
        try:
            fields = {k: v for k, v in result.items() if v is not None}
            return AsInfo.model_validate({"as_number": asn, **fields})
        except ValidationError as e:
            raise MalformedPayloadError(f"Invalid AS information for AS{asn}") from e
