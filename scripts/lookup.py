#!/usr/bin/env python3
"""
Live lookup: run one looking-glass command line against the real resolver and routers.

Usage: python3 scripts/lookup.py [--router KEY] <command line...>
Example: python3 scripts/lookup.py whois 1.1.1.1
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))
from address_info import AddressInfoOrchestrator
from dispatcher import CommandDispatcher
from dns_client import DnsClient
from dns_transport import DnsOverHttpsTransport
from errors import InputInvalidError
from router_api import RouterApiClient
from router_catalog import load_catalog
from settings import DOH_URL, HTTP_TIMEOUT, ROUTER_CATALOG, ROUTER_URL_TEMPLATE
from zone_resolver import ZoneResolver


def build_dispatcher() -> CommandDispatcher:
    dns = DnsClient(DnsOverHttpsTransport(DOH_URL, timeout=HTTP_TIMEOUT))
    api = RouterApiClient(ROUTER_URL_TEMPLATE, timeout=HTTP_TIMEOUT)
    orchestrator = AddressInfoOrchestrator(dns, ZoneResolver(dns), api)
    return CommandDispatcher(load_catalog(ROUTER_CATALOG), api, dns, orchestrator)


def main():
    parser = argparse.ArgumentParser(description="Run a looking-glass command")
    parser.add_argument("--router", default=None, help="router key from the catalog")
    parser.add_argument("command", nargs="+")
    args = parser.parse_args()

    text = " ".join(args.command)
    try:
        entry = asyncio.run(build_dispatcher().execute(text, args.router))
    except InputInvalidError as e:
        print(f"{text}: {e}", file=sys.stderr)
        sys.exit(2)

    print(f"{entry.hostname} > {entry.command}")
    print(entry.result)
    sys.exit(1 if entry.is_error else 0)


if __name__ == "__main__":
    main()
