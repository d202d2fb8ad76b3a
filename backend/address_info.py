"""
Address Info: whois/ipinfo reports for hostnames, IPs/prefixes and ASNs.

Within one token, calls that need an earlier answer run in sequence
(PTR → reverse hostname addresses, origin ASNs → AS info). Independent
calls run concurrently. Route and AS-info lookups are fatal to the
report; PTR and zone lookups only leave gaps.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from dns_client import DnsClient, build_reverse_name
from errors import InputInvalidError, best_effort
from models import (
    AddressInfo,
    AsInfo,
    AsnAddressInfo,
    DnsZoneInfo,
    HostnameInfo,
    IpAddressInfo,
)
from router_api import RouterApiClient
from token_classifier import TokenClassification, classify_token
from zone_resolver import ZoneResolver

logger = logging.getLogger(__name__)


def _unique(items: list) -> list:
    out = []
    for item in items:
        if item not in out:
            out.append(item)
    return out


class AddressInfoOrchestrator:
    def __init__(self, dns: DnsClient, zones: ZoneResolver, api: RouterApiClient):
        self.dns = dns
        self.zones = zones
        self.api = api

    async def resolve_address_info(self, router: str, token: str) -> AddressInfo:
        c = classify_token(token)
        if c.hostname:
            return await self.hostname_info(router, c.value)
        if c.is_prefix:
            return await self.ip_info(router, c.value, c)
        if c.asn:
            return await self.asn_info(router, int(c.value))
        raise InputInvalidError("invalid DNS name, IP address or ASN")

    async def hostname_info(self, router: str, hostname: str) -> HostnameInfo:
        addresses, zone = await asyncio.gather(
            self.dns.resolve_simple(hostname),
            self.zones.resolve_zone_info(hostname),
        )
        ips = addresses.get("A", []) + addresses.get("AAAA", [])
        ip_infos = await asyncio.gather(*(self.ip_info(router, ip) for ip in ips))
        return HostnameInfo(hostname=hostname, ip_addresses=list(ip_infos), zone=zone)

    async def ip_info(
        self, router: str, address: str, c: Optional[TokenClassification] = None
    ) -> IpAddressInfo:
        c = c or classify_token(address)
        if not c.is_prefix:
            raise InputInvalidError(f"Invalid IP address or prefix: {address}")

        if c.is_address:
            origins, (reverse_hostname, reverse_addresses), reverse_zone = await asyncio.gather(
                self.api.get_origin_asns(router, address),
                self._reverse_hostname(address),
                self._reverse_zone(address),
            )
        else:
            origins = await self.api.get_origin_asns(router, address)
            reverse_hostname, reverse_addresses, reverse_zone = None, [], DnsZoneInfo()

        asns = _unique([o.asn for o in origins])
        as_info = await asyncio.gather(*(self.api.get_as_info(router, asn) for asn in asns))
        return IpAddressInfo(
            kind="ipv4" if c.ipv4_prefix else "ipv6",
            address=address,
            prefixes=_unique([o.network for o in origins]),
            reverse_hostname=reverse_hostname,
            reverse_hostname_addresses=reverse_addresses,
            reverse_zone=reverse_zone,
            as_info=_unique(list(as_info)),
        )

    async def _reverse_hostname(self, address: str) -> tuple[Optional[str], list[str]]:
        """PTR name of an address plus the addresses that name resolves back to."""
        ptr = await best_effort(self.dns.first_ptr(address), None, f"PTR {address}")
        if not ptr.value:
            return None, []

        forward = await best_effort(self.dns.resolve_simple(ptr.value), {}, f"A/AAAA {ptr.value}")
        addresses = _unique(forward.value.get("A", []) + forward.value.get("AAAA", []))
        return ptr.value, addresses

    async def _reverse_zone(self, address: str) -> DnsZoneInfo:
        """Zone of the in-addr.arpa/ip6.arpa name; empty when that name cannot be built."""
        zone = await best_effort(
            self._zone_of_reverse_name(address), DnsZoneInfo(), f"reverse zone {address}"
        )
        return zone.value

    async def _zone_of_reverse_name(self, address: str) -> DnsZoneInfo:
        return await self.zones.resolve_zone_info(build_reverse_name(address))

    async def asn_info(self, router: str, asn: int) -> AsnAddressInfo:
        info: AsInfo = await self.api.get_as_info(router, asn)
        return AsnAddressInfo(**info.model_dump())
