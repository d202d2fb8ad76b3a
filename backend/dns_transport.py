"""
DoH transport: send one DNS question over HTTPS, get back a plain packet dict.

The packet mirrors what a JSON DoH client hands back:
  {"id": int, "rcode": str, "answers": [record], "authority": [record]}
  record = {"class": str, "type": str, "name": str, "ttl": int, "data": str}

Record data is always rendered to text here; callers never see rdata bytes.
"""

from __future__ import annotations

import base64
import logging
from abc import ABC, abstractmethod
from typing import Optional

import dns.exception
import dns.message
import dns.rcode
import dns.rdataclass
import dns.rdatatype
import dns.rrset
import httpx

from errors import ResolutionError, UpstreamHTTPError

logger = logging.getLogger(__name__)

# Record types whose data is a single domain name
_NAME_TYPES = {"CNAME", "DNAME", "NS", "PTR"}

DNS_MESSAGE = "application/dns-message"


class DohTransport(ABC):
    """Base class for DNS-over-HTTPS transports."""

    @abstractmethod
    async def query(self, name: str, rdtype: str, method: str = "GET") -> dict:
        """Resolve one name/type. Raises UpstreamHTTPError on a non-2xx reply, ResolutionError otherwise."""
        ...


def _rdata_text(rdtype: str, rd) -> str:
    if rdtype in _NAME_TYPES:
        return rd.target.to_text(omit_final_dot=True)
    return rd.to_text()


def _rrsets_to_records(rrsets: list[dns.rrset.RRset]) -> list[dict]:
    records = []
    for rrset in rrsets:
        rdtype = dns.rdatatype.to_text(rrset.rdtype)
        rdclass = dns.rdataclass.to_text(rrset.rdclass)
        name = rrset.name.to_text(omit_final_dot=True)
        for rd in rrset:
            records.append({
                "class": rdclass,
                "type": rdtype,
                "name": name,
                "ttl": rrset.ttl,
                "data": _rdata_text(rdtype, rd),
            })
    return records


def message_to_packet(response: dns.message.Message) -> dict:
    return {
        "id": response.id,
        "rcode": dns.rcode.to_text(response.rcode()),
        "answers": _rrsets_to_records(response.answer),
        "authority": _rrsets_to_records(response.authority),
    }


class DnsOverHttpsTransport(DohTransport):
    """RFC 8484 transport: dnspython builds and parses the wire message, httpx carries it."""

    def __init__(
        self,
        url: str,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport   # injectable for tests (httpx.MockTransport)

    async def _send(self, wire: bytes, method: str) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            if method.upper() == "POST":
                return await client.post(
                    self.url, content=wire,
                    headers={"accept": DNS_MESSAGE, "content-type": DNS_MESSAGE},
                )
            encoded = base64.urlsafe_b64encode(wire).rstrip(b"=").decode("ascii")
            return await client.get(self.url, params={"dns": encoded}, headers={"accept": DNS_MESSAGE})

    async def query(self, name: str, rdtype: str, method: str = "GET") -> dict:
        q = dns.message.make_query(name, rdtype)
        try:
            response = await self._send(q.to_wire(), method)
        except httpx.HTTPError as e:
            logger.debug(f"[doh] {name} {rdtype} failed: {e}")
            raise ResolutionError(f"{name} {rdtype}: {e}") from e

        if not response.is_success:
            raise UpstreamHTTPError(response.status_code, self.url)
        try:
            reply = dns.message.from_wire(response.content)
        except dns.exception.DNSException as e:
            raise ResolutionError(f"{name} {rdtype}: bad DNS message: {e}") from e
        if not q.is_response(reply):
            raise ResolutionError(f"{name} {rdtype}: reply does not match the query")
        return message_to_packet(reply)
