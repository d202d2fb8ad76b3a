"""
Zone Resolver: SOA/NS metadata for the zone a name lives in.

Every query here is enrichment: a failed lookup leaves the corresponding
part of DnsZoneInfo empty instead of failing the report.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from dns_client import DnsClient
from errors import best_effort
from models import DnsAnswer, DnsResponse, DnsZoneInfo, NameServerInfo

logger = logging.getLogger(__name__)

SOA_FIELDS = ("primary_name_server", "admin_contact", "serial", "refresh", "retry", "expire", "minimum")
_SOA_NAME_FIELDS = ("primary_name_server", "admin_contact")


def _to_int(text: str) -> int:
    try:
        return int(text, 10)
    except ValueError:
        return 0


def pick_soa(response: Optional[DnsResponse]) -> Optional[DnsAnswer]:
    """SOA from the answer section, else from the authority section (NODATA replies)."""
    if response is None:
        return None
    for section in (response.answers, response.authorities):
        for record in section:
            if record.rdtype == "SOA":
                return record
    return None


def parse_soa(record: DnsAnswer) -> DnsZoneInfo:
    parts = record.data.split()
    values: dict = {}
    for i, field_name in enumerate(SOA_FIELDS):
        text = parts[i] if i < len(parts) else ""
        if field_name in _SOA_NAME_FIELDS:
            values[field_name] = text.rstrip(".")
        else:
            values[field_name] = _to_int(text)
    return DnsZoneInfo(zone_name=record.name.rstrip("."), **values)


class ZoneResolver:
    def __init__(self, dns: DnsClient):
        self.dns = dns

    async def resolve_zone_info(self, domain: str) -> DnsZoneInfo:
        soa = await best_effort(self.dns.resolve(domain, "SOA"), None, f"SOA {domain}")
        record = pick_soa(soa.value)
        if record is None:
            return DnsZoneInfo()

        zone = parse_soa(record)
        if zone.zone_name:
            zone.name_servers = await self.resolve_name_servers(zone.zone_name)
        return zone

    async def resolve_name_servers(self, zone_name: str) -> list[NameServerInfo]:
        ns = await best_effort(self.dns.resolve(zone_name, "NS"), None, f"NS {zone_name}")
        if not ns.ok:
            return []

        targets: list[str] = []
        for target in ns.value.data_of("NS"):
            if target not in targets:
                targets.append(target)
        return list(await asyncio.gather(*(self._name_server(t) for t in targets)))

    async def _name_server(self, target: str) -> NameServerInfo:
        a, aaaa = await asyncio.gather(
            best_effort(self.dns.resolve(target, "A"), None, f"A {target}"),
            best_effort(self.dns.resolve(target, "AAAA"), None, f"AAAA {target}"),
        )
        return NameServerInfo(
            name=target,
            ipv4=a.value.data_of("A") if a.ok else [],
            ipv6=aaaa.value.data_of("AAAA") if aaaa.ok else [],
        )
