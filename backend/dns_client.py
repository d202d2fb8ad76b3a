"""
DNS Client: typed name resolution on top of a DoH transport.

resolve() is the only place where a transport packet is turned into a
DnsResponse, and the only place a malformed record surfaces as an error.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from dns_transport import DohTransport
from errors import InvalidAddressError, MalformedPayloadError
from models import DnsAnswer, DnsQuestion, DnsResponse
from token_classifier import classify_token

logger = logging.getLogger(__name__)


# --- Reverse names ---

def build_reverse_name4(ip: str) -> str:
    parts = ip.split(".")
    if len(parts) != 4:
        raise InvalidAddressError("Invalid IPv4 address")
    return ".".join(reversed(parts)) + ".in-addr.arpa"


def build_reverse_name6(ip: str) -> str:
    """Expand '::', pad each group to 4 nibbles, reverse all 32 nibbles."""
    groups = ip.split(":")
    if "::" in ip:
        if ip.count("::") > 1:
            raise InvalidAddressError("Invalid IPv6 address")
        left, right = ip.split("::")
        left_groups = left.split(":") if left else []
        right_groups = right.split(":") if right else []
        missing = 8 - (len(left_groups) + len(right_groups))
        groups = left_groups + ["0"] * missing + right_groups

    nibbles = [n for group in groups for n in group.rjust(4, "0")]
    if len(groups) != 8 or len(nibbles) != 32:
        raise InvalidAddressError("Invalid IPv6 address")
    return ".".join(reversed(nibbles)) + ".ip6.arpa"


def build_reverse_name(ip: str) -> str:
    c = classify_token(ip)
    if c.ipv4_address:
        return build_reverse_name4(ip)
    if c.ipv6_address:
        return build_reverse_name6(ip)
    raise InvalidAddressError("Invalid IP address")


# --- Record validation ---

def _to_answer(record: dict, rcode: str) -> DnsAnswer:
    cls = record.get("class")
    rdtype = record.get("type")
    name = record.get("name")
    ttl = record.get("ttl")
    if not isinstance(cls, str) or not isinstance(rdtype, str) or not isinstance(name, str):
        raise MalformedPayloadError("Invalid answer format")
    if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl < 0:
        raise MalformedPayloadError("Invalid answer format")
    data = record.get("data")
    return DnsAnswer(
        rdclass=cls,
        rdtype=rdtype,
        name=name,
        ttl=ttl,
        data="" if data is None else str(data),
        rcode=rcode,
    )


def _dedupe(answers: list[DnsAnswer]) -> list[DnsAnswer]:
    out: list[DnsAnswer] = []
    for a in answers:
        if a not in out:
            out.append(a)
    return out


def group_by_type(answers: list[DnsAnswer]) -> dict[str, list[DnsAnswer]]:
    grouped: dict[str, list[DnsAnswer]] = {}
    for a in answers:
        grouped.setdefault(a.rdtype, []).append(a)
    return grouped


class DnsClient:
    """Name → records resolution through a DoH resolver."""

    def __init__(self, transport: DohTransport, method: str = "GET"):
        self.transport = transport
        self.method = method

    async def resolve(self, name: str, rdtype: str) -> DnsResponse:
        t0 = time.monotonic()
        packet = await self.transport.query(name, rdtype, self.method)
        query_time = int((time.monotonic() - t0) * 1000)

        if not isinstance(packet, dict):
            raise MalformedPayloadError("Invalid answer format")
        rcode = packet.get("rcode") or "NOERROR"
        answers = [_to_answer(r, rcode) for r in packet.get("answers") or []]
        authorities = [_to_answer(r, rcode) for r in packet.get("authority") or []]

        logger.debug(f"[dns] {name} {rdtype}: {rcode}, {len(answers)} answers")
        return DnsResponse(
            rcode=rcode,
            questions=[DnsQuestion(rdtype=rdtype, name=name)],
            answers=answers,
            authorities=authorities,
            id=packet.get("id") or 0,
            time=time.time(),
            query_time=query_time,
        )

    async def resolve_auto(self, name: str) -> dict[str, DnsResponse]:
        """Hostname → A and AAAA responses; address → the PTR response."""
        c = classify_token(name)
        if c.hostname:
            a, aaaa = await asyncio.gather(self.resolve(name, "A"), self.resolve(name, "AAAA"))
            return {"A": a, "AAAA": aaaa}
        if c.is_address:
            return {"PTR": await self.resolve(build_reverse_name(name), "PTR")}
        raise InvalidAddressError("Invalid hostname or IP address")

    async def resolve_simple(self, name: str) -> dict[str, list[str]]:
        """Like resolve_auto() but keeps only the data strings of the asked-for type."""
        responses = await self.resolve_auto(name)
        return {rdtype: resp.data_of(rdtype) for rdtype, resp in responses.items()}

    async def resolve_full(self, name: str, rdtypes: list[str]) -> DnsResponse:
        """Query every type concurrently and merge into one response with duplicate records dropped."""
        responses = await asyncio.gather(*(self.resolve(name, t) for t in rdtypes))
        rcode = next((r.rcode for r in responses if r.rcode != "NOERROR"), "NOERROR")
        answers = [a for r in responses for a in r.answers]
        authorities = [a for r in responses for a in r.authorities]
        grouped = group_by_type(_dedupe(answers))
        return DnsResponse(
            rcode=rcode,
            questions=[q for r in responses for q in r.questions],
            answers=[a for group in grouped.values() for a in group],
            authorities=_dedupe(authorities),
            id=responses[0].id if responses else 0,
            time=max((r.time for r in responses if r.time is not None), default=None),
            query_time=max((r.query_time for r in responses if r.query_time is not None), default=None),
        )

    async def resolve_full_by_ptr(self, address: str) -> DnsResponse:
        return await self.resolve_full(build_reverse_name(address), ["PTR"])

    async def resolve_full_auto(self, name: str) -> DnsResponse:
        c = classify_token(name)
        if c.hostname:
            return await self.resolve_full(name, ["A", "AAAA"])
        if c.is_address:
            return await self.resolve_full_by_ptr(name)
        raise InvalidAddressError("Invalid hostname or IP address")

    async def first_ptr(self, address: str) -> Optional[str]:
        ptrs = (await self.resolve_simple(address)).get("PTR", [])
        return ptrs[0] if ptrs else None
