"""
Command Dispatcher: run one parsed command line and record one history entry.

Every accepted line ends up as exactly one HistoryEntry: the formatted
result, or the stringified lookup failure flagged as an error. Lines the
grammar rejects raise InputInvalidError before any network call is made.
Anything that is not a lookup failure propagates to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from address_info import AddressInfoOrchestrator
from command_grammar import COMMAND_PURPOSES, ParseResult, parse_command_line
from dns_client import DnsClient
from errors import InputInvalidError, LookingGlassError
from formatters import format_address_info, format_dns_response, format_help, format_route
from models import HistoryEntry
from router_api import PACKET_COMMANDS, RouterApiClient
from router_catalog import RouterCatalog
from settings import DNS_SERVER_LABEL
from token_classifier import classify_token

logger = logging.getLogger(__name__)

# Command chosen for a bare token list, first purpose that survived wins
DEFAULT_COMMAND_ORDER = ("ipinfo", "ping", "bgp", "nslookup")


def display_command(command: str, tokens: list[str]) -> str:
    shown = "show bgp" if command == "bgp" else command
    args = []
    for token in tokens:
        c = classify_token(token)
        args.append(f"AS{c.value}" if c.asn else token)
    return " ".join([shown, *args])


def pick_command(parsed: ParseResult, requested: Optional[str] = None) -> str:
    if parsed.command_name:
        if requested and requested != parsed.command_name:
            raise InputInvalidError(f"'{requested}' conflicts with '{parsed.command_name}'")
        return parsed.command_name

    if requested:
        purpose = COMMAND_PURPOSES.get(requested)
        if purpose is None or not getattr(parsed.valid_purpose, purpose):
            raise InputInvalidError(f"'{requested}' is not valid for these arguments")
        return requested

    for command in DEFAULT_COMMAND_ORDER:
        if getattr(parsed.valid_purpose, COMMAND_PURPOSES[command]):
            return command
    raise InputInvalidError("not valid")


class CommandDispatcher:
    def __init__(
        self,
        catalog: RouterCatalog,
        api: RouterApiClient,
        dns: DnsClient,
        address_info: AddressInfoOrchestrator,
        server_label: str = DNS_SERVER_LABEL,
    ):
        self.catalog = catalog
        self.api = api
        self.dns = dns
        self.address_info = address_info
        self.server_label = server_label
        self._history: list[HistoryEntry] = []

    def history(self) -> list[HistoryEntry]:
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()

    def _router_for(self, command: str, router: Optional[str]) -> str:
        # nslookup goes straight to the resolver and can run with no router configured
        if command == "nslookup" and not router and not self.catalog.routers:
            return ""
        return self.catalog.select(router)

    async def execute(self, text: str, router: Optional[str] = None,
                      command: Optional[str] = None) -> HistoryEntry:
        parsed = parse_command_line(text)
        if not parsed.is_valid:
            raise InputInvalidError(f"not valid: {text.strip()}")

        if parsed.is_clear:
            self.clear()
            return HistoryEntry(command="clear", result="", cleared=True)
        if parsed.is_help:
            entry = HistoryEntry(command="help", result=format_help(), hostname=router or "")
            self._history.append(entry)
            return entry

        command_name = pick_command(parsed, command)
        hostname = self._router_for(command_name, router)
        shown = display_command(command_name, parsed.validated_tokens)

        try:
            result = await self.run(command_name, hostname, parsed.validated_tokens)
            entry = HistoryEntry(command=shown, result=result, hostname=hostname)
        except (LookingGlassError, httpx.HTTPError) as e:
            logger.error(f"[{hostname}] {shown} failed: {e}")
            entry = HistoryEntry(command=shown, result=str(e), hostname=hostname, is_error=True)

        self._history.append(entry)
        return entry

    async def run(self, command: str, router: str, tokens: list[str]) -> str:
        if command == "nslookup":
            responses = await asyncio.gather(*(self.dns.resolve_full_auto(t) for t in tokens))
            return "\n".join(format_dns_response(r, self.server_label) for r in responses)

        if command == "bgp":
            results = await asyncio.gather(*(self.api.resolve_routes(router, t) for t in tokens))
            return "\n\n".join(format_route(table) for tables in results for table in tables)

        if command in PACKET_COMMANDS:
            results = await asyncio.gather(*(self.api.send_packet(router, command, t) for t in tokens))
            return "\n\n".join(results)

        if command in ("whois", "ipinfo"):
            infos = await asyncio.gather(
                *(self.address_info.resolve_address_info(router, t) for t in tokens)
            )
            return "\n\n".join(format_address_info(t, info) for t, info in zip(tokens, infos))

        raise InputInvalidError(f"Unknown command: {command}")
