"""Tests for turning DoH wire replies into plain packet dicts."""

import base64
import sys
from pathlib import Path

import dns.message
import dns.rcode
import dns.rrset
import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from dns_client import DnsClient
from dns_transport import DnsOverHttpsTransport, message_to_packet
from errors import ResolutionError, UpstreamHTTPError
from fakes import run


def make_reply(qname: str, rdtype: str, *rrsets, authority=()):
    reply = dns.message.make_response(dns.message.make_query(qname, rdtype))
    reply.answer.extend(rrsets)
    reply.authority.extend(authority)
    return reply


class TestMessageToPacket:
    def test_a_record(self):
        reply = make_reply("example.com", "A", dns.rrset.from_text("example.com.", 300, "IN", "A", "192.0.2.1"))
        p = message_to_packet(reply)
        assert p["rcode"] == "NOERROR"
        assert p["id"] == reply.id
        assert p["answers"] == [
            {"class": "IN", "type": "A", "name": "example.com", "ttl": 300, "data": "192.0.2.1"},
        ]

    def test_ptr_target_without_final_dot(self):
        reply = make_reply(
            "1.2.0.192.in-addr.arpa", "PTR",
            dns.rrset.from_text("1.2.0.192.in-addr.arpa.", 60, "IN", "PTR", "host.example.com."),
        )
        assert message_to_packet(reply)["answers"][0]["data"] == "host.example.com"

    def test_soa_in_authority(self):
        soa = dns.rrset.from_text(
            "example.com.", 900, "IN", "SOA",
            "ns1.example.com. hostmaster.example.com. 2024010101 7200 3600 1209600 300",
        )
        reply = make_reply("www.example.com", "SOA", authority=[soa])
        p = message_to_packet(reply)
        assert p["answers"] == []
        record = p["authority"][0]
        assert record["type"] == "SOA"
        assert record["name"] == "example.com"
        assert record["data"].split()[2:] == ["2024010101", "7200", "3600", "1209600", "300"]

    def test_multiple_rdata_in_one_rrset(self):
        rrset = dns.rrset.from_text("example.com.", 300, "IN", "A", "192.0.2.1", "192.0.2.2")
        p = message_to_packet(make_reply("example.com", "A", rrset))
        assert sorted(r["data"] for r in p["answers"]) == ["192.0.2.1", "192.0.2.2"]

    def test_nxdomain_rcode(self):
        reply = make_reply("nx.example", "A")
        reply.set_rcode(dns.rcode.NXDOMAIN)
        assert message_to_packet(reply)["rcode"] == "NXDOMAIN"


def doh_server(reply_for=None, status=200, seen=None):
    """MockTransport handler that decodes the DoH query and answers it."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if status != 200:
            return httpx.Response(status)
        if request.method == "POST":
            wire = request.content
        else:
            encoded = request.url.params["dns"]
            wire = base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))
        q = dns.message.from_wire(wire)
        reply = reply_for(q) if reply_for else dns.message.make_response(q)
        return httpx.Response(200, content=reply.to_wire(),
                              headers={"content-type": "application/dns-message"})

    return handler


def a_record_reply(q):
    reply = dns.message.make_response(q)
    reply.answer.append(dns.rrset.from_text(q.question[0].name, 60, "IN", "A", "192.0.2.7"))
    return reply


def doh(handler):
    return DnsOverHttpsTransport("https://resolver.example/dns-query", timeout=5,
                                 transport=httpx.MockTransport(handler))


class TestDnsOverHttpsTransport:
    def test_get_encodes_query_in_url(self):
        seen = []
        p = run(doh(doh_server(a_record_reply, seen=seen)).query("example.com", "A", "GET"))
        assert p["answers"][0]["data"] == "192.0.2.7"
        assert seen[0].method == "GET"
        assert "=" not in seen[0].url.params["dns"]
        assert seen[0].headers["accept"] == "application/dns-message"

    def test_post_sends_wire_body(self):
        seen = []
        p = run(doh(doh_server(a_record_reply, seen=seen)).query("example.com", "A", "POST"))
        assert p["answers"][0]["name"] == "example.com"
        assert seen[0].method == "POST"
        assert seen[0].headers["content-type"] == "application/dns-message"

    def test_non_2xx_carries_status(self):
        with pytest.raises(UpstreamHTTPError) as exc:
            run(doh(doh_server(status=503)).query("example.com", "A"))
        assert exc.value.status == 503
        assert exc.value.url == "https://resolver.example/dns-query"

    def test_status_survives_dns_client(self):
        with pytest.raises(UpstreamHTTPError) as exc:
            run(DnsClient(doh(doh_server(status=502))).resolve("example.com", "A"))
        assert exc.value.status == 502

    def test_connect_failure_becomes_resolution_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ResolutionError):
            run(doh(handler).query("example.com", "A"))

    def test_garbage_body_becomes_resolution_error(self):
        t = doh(lambda request: httpx.Response(200, content=b"\x00\x01"))
        with pytest.raises(ResolutionError):
            run(t.query("example.com", "A"))

    def test_reply_to_another_query_is_rejected(self):
        def other_reply(q):
            return dns.message.make_response(dns.message.make_query("other.example", "A"))

        with pytest.raises(ResolutionError):
            run(doh(doh_server(other_reply)).query("example.com", "A"))
