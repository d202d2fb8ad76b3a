"""Tests for command dispatch and session history."""

import sys
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from address_info import AddressInfoOrchestrator
from command_grammar import parse_command_line
from dispatcher import CommandDispatcher, display_command, pick_command
from dns_client import DnsClient
from errors import InputInvalidError, UnknownRouterError, UpstreamHTTPError
from fakes import AS_INFO_13335, ASN_PAYLOAD, FakeDoh, FakeRouterApi, PREFIX_PAYLOAD, packet, rr, run
from formatters import NOT_IN_TABLE
from router_catalog import RouterCatalog
from zone_resolver import ZoneResolver

CATALOG = {"routers": {"tokyo1": {"name": "tokyo1"}, "osaka1": {"name": "osaka1"}}}


def make_dispatcher(responses=None, records=None, catalog=CATALOG):
    dns = DnsClient(FakeDoh(records or {
        ("example.com", "A"): packet(rr("example.com", "A", "192.0.2.10")),
        ("example.com", "AAAA"): packet(),
    }))
    api = FakeRouterApi(responses or {
        ("v1/ping", "192.0.2.1"): {"result": "PING 192.0.2.1: 56 data bytes"},
        ("v1/ping", "192.0.2.2"): {"result": "PING 192.0.2.2: 56 data bytes"},
        ("v1/bgp/json", "1.1.1.1"): {"result": PREFIX_PAYLOAD},
        ("v1/bgp/asn/v4/json", "13335"): {"result": ASN_PAYLOAD},
        ("v1/bgp/asn/v6/json", "13335"): {"result": {"routes": {}}},
        ("v1/as_info", "13335"): AS_INFO_13335,
    })
    orchestrator = AddressInfoOrchestrator(dns, ZoneResolver(dns), api)
    return CommandDispatcher(RouterCatalog.from_dict(catalog), api, dns, orchestrator, "resolver.test")


class TestPickCommand:
    def test_explicit(self):
        assert pick_command(parse_command_line("mtr 192.0.2.1")) == "mtr"

    def test_conflicting_request(self):
        with pytest.raises(InputInvalidError):
            pick_command(parse_command_line("ping 192.0.2.1"), "bgp")

    def test_default_order(self):
        assert pick_command(parse_command_line("192.0.2.1")) == "ipinfo"
        assert pick_command(parse_command_line("10.0.0.0/8")) == "ipinfo"

    def test_requested_must_fit_purposes(self):
        parsed = parse_command_line("10.0.0.0/8")
        assert pick_command(parsed, "bgp") == "bgp"
        with pytest.raises(InputInvalidError):
            pick_command(parsed, "ping")

    def test_display(self):
        assert display_command("bgp", ["1.1.1.0/24", "13335"]) == "show bgp 1.1.1.0/24 AS13335"
        assert display_command("ping", ["192.0.2.1"]) == "ping 192.0.2.1"


class TestExecute:
    def test_ping_defaults_to_first_router(self):
        d = make_dispatcher()
        entry = run(d.execute("ping 192.0.2.1"))
        assert entry.command == "ping 192.0.2.1"
        assert entry.hostname == "tokyo1"
        assert entry.result == "PING 192.0.2.1: 56 data bytes"
        assert entry.is_error is False
        assert d.history() == [entry]

    def test_several_tokens_make_one_entry(self):
        d = make_dispatcher()
        entry = run(d.execute("ping 192.0.2.1 192.0.2.2", router="osaka1"))
        assert entry.hostname == "osaka1"
        assert entry.result == "PING 192.0.2.1: 56 data bytes\n\nPING 192.0.2.2: 56 data bytes"
        assert len(d.history()) == 1

    def test_show_bgp_asn(self):
        d = make_dispatcher()
        entry = run(d.execute("sh bgp as13335"))
        assert entry.command == "show bgp AS13335"
        assert "1.1.1.0/24, version 42" in entry.result
        assert entry.result.endswith(NOT_IN_TABLE)

    def test_upstream_failure_is_an_error_entry(self):
        d = make_dispatcher(responses={("v1/ping", "192.0.2.1"): UpstreamHTTPError(503)})
        entry = run(d.execute("ping 192.0.2.1"))
        assert entry.is_error is True
        assert entry.result == "HTTP error! status: 503"
        assert d.history() == [entry]

    def test_one_failing_token_fails_the_line(self):
        d = make_dispatcher()
        entry = run(d.execute("ping 192.0.2.1 192.0.2.99"))
        assert entry.is_error is True
        assert len(d.history()) == 1

    def test_transport_error_is_an_error_entry(self):
        d = make_dispatcher(responses={("v1/ping", "192.0.2.1"): httpx.ReadTimeout("timed out")})
        entry = run(d.execute("ping 192.0.2.1"))
        assert entry.is_error is True
        assert entry.result == "timed out"
        assert len(d.history()) == 1

    def test_programming_error_propagates(self):
        d = make_dispatcher(responses={("v1/ping", "192.0.2.1"): KeyError("result")})
        with pytest.raises(KeyError):
            run(d.execute("ping 192.0.2.1"))
        assert d.history() == []

    def test_bgp_hostname_is_an_error_entry(self):
        d = make_dispatcher()
        entry = run(d.execute("show bgp example.com"))
        assert entry.is_error is True
        assert entry.result == "Invalid IP address or ASN"

    def test_token_only_runs_ipinfo(self):
        d = make_dispatcher()
        entry = run(d.execute("1.1.1.1"))
        assert entry.command == "ipinfo 1.1.1.1"
        assert entry.result.startswith("IP Info for 1.1.1.1:")
        assert "Origin AS: AS13335 CLOUDFLARENET" in entry.result

    def test_requested_nslookup(self):
        d = make_dispatcher()
        entry = run(d.execute("example.com", command="nslookup"))
        assert entry.command == "nslookup example.com"
        assert "example.com  300  IN  A  192.0.2.10" in entry.result
        assert ";; SERVER: resolver.test (HTTPS)" in entry.result

    def test_nslookup_without_routers(self):
        d = make_dispatcher(catalog={})
        entry = run(d.execute("nslookup example.com"))
        assert entry.hostname == ""
        assert entry.is_error is False

    def test_unknown_router(self):
        d = make_dispatcher()
        with pytest.raises(UnknownRouterError):
            run(d.execute("ping 192.0.2.1", router="paris1"))
        assert d.history() == []

    def test_invalid_line_records_nothing(self):
        d = make_dispatcher()
        with pytest.raises(InputInvalidError):
            run(d.execute("ping 10.0.0.0/8"))
        assert d.history() == []


class TestHelpAndClear:
    def test_help_is_recorded(self):
        d = make_dispatcher()
        entry = run(d.execute("?"))
        assert entry.command == "help"
        assert "Available commands" in entry.result
        assert d.history() == [entry]

    def test_clear_empties_history(self):
        d = make_dispatcher()
        run(d.execute("ping 192.0.2.1"))
        entry = run(d.execute("clear"))
        assert entry.cleared is True
        assert d.history() == []
