"""Plain-text renderers: dig-style DNS output, 'show ip bgp'-style routes, whois reports."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Union

from models import (
    AsInfo,
    AsnAddressInfo,
    DnsAnswer,
    DnsResponse,
    DnsZoneInfo,
    HostnameInfo,
    IpAddressInfo,
    Route,
    RouteSummary,
)
from settings import DNS_SERVER_LABEL

HELP_TEXT = """\
Available commands:
  ping | traceroute | mtr  <address | hostname> ...
  nslookup                 <address | hostname> ...
  [show | sh] bgp | route  <address | prefix | ASN> ...
  whois | ipinfo           <address | prefix | hostname | ASN> ...
  help | ?                 show this help
  clear | cls              clear the console

Without a command word, the tokens alone pick a command they all support.
ASNs may be written as 65000 or AS65000.
"""

NOT_IN_TABLE = "% Network not in table\n"


def format_help() -> str:
    return HELP_TEXT


# --- DNS ---

def format_answer_list(answers: list[DnsAnswer]) -> str:
    rows = [[a.name, str(a.ttl), a.rdclass, a.rdtype, a.data] for a in answers]
    widths = [0] * 5
    for row in rows:
        for i, part in enumerate(row):
            widths[i] = max(widths[i], len(part))
    lines = ["  ".join(part.ljust(widths[i]) for i, part in enumerate(row)).strip() for row in rows]
    return "\n".join(lines) + "\n"


def _format_when(ts: Optional[float]) -> str:
    d = datetime.fromtimestamp(ts, tz=timezone.utc) if ts is not None else datetime.now(timezone.utc)
    return f"{d:%a %b} {d.day} {d:%H:%M:%S} UTC {d.year}"


def format_dns_response(response: DnsResponse, server_label: str = DNS_SERVER_LABEL) -> str:
    questions = "\n".join(f"; {q.name}  {q.rdclass}  {q.rdtype}" for q in response.questions)
    text = (
        "\n"
        f";; ->>HEADER<<- status: {response.rcode}, id: {response.id}\n"
        "\n"
        ";; QUESTION SECTION:\n"
        f"{questions}\n"
        "\n"
        ";; ANSWER SECTION:\n"
        f"{format_answer_list(response.answers)}"
    )
    if response.authorities:
        text += "\n;; AUTHORITY SECTION:\n" + format_answer_list(response.authorities)
    text += (
        "\n"
        f";; Query time: {response.query_time or 0} msec\n"
        f";; SERVER: {server_label} (HTTPS)\n"
        f";; WHEN: {_format_when(response.time)}\n"
    )
    return text


# --- BGP ---

def _or_unknown(value) -> str:
    return "?" if value is None else str(value)


def format_route(routes: list[Union[Route, RouteSummary]]) -> str:
    """Group consecutive paths under one '<network>, version <n>' header, keeping input order."""
    if not routes:
        return NOT_IN_TABLE

    blocks = []
    prev_network = None
    for route in routes:
        text = ""
        if route.network != prev_network:
            text += f"{route.network}, version {_or_unknown(route.version)}\n"
        text += f"  {route.as_path}\n"

        text += f"    {', '.join(route.nexthops)} from {route.peer_id}"
        if route.used:
            text += " (used)"
        if route.best:
            text += f", best ({route.selection_reason})"
        text += "\n"

        validity = "valid" if route.valid else "invalid"
        text += (f"      Origin {_or_unknown(route.origin)}, localpref {_or_unknown(route.loc_prf)}, "
                 f"MED {route.metric}, {validity}, {route.path_from}\n")

        if isinstance(route, Route):
            text += f"    RPKI State: {route.rpki_state}\n"
            text += f"    Community: {', '.join(route.community)}\n"
            text += f"    Extended Community: {', '.join(route.ext_community)}\n"

        blocks.append(text)
        prev_network = route.network

    return "\n".join(blocks)


# --- Zone / whois ---

def format_zone_info(zone: DnsZoneInfo, indent: str = "  ") -> str:
    if zone.is_empty:
        return f"{indent}(no zone information)\n"
    text = (
        f"{indent}Zone: {zone.zone_name}\n"
        f"{indent}  Primary NS: {zone.primary_name_server}\n"
        f"{indent}  Admin: {zone.admin_contact}\n"
        f"{indent}  Serial: {zone.serial}  Refresh: {zone.refresh}  Retry: {zone.retry}"
        f"  Expire: {zone.expire}  Minimum: {zone.minimum}\n"
    )
    for ns in zone.name_servers:
        addresses = ", ".join(ns.ipv4 + ns.ipv6) or "-"
        text += f"{indent}  NS {ns.name} ({addresses})\n"
    return text


def format_as_line(info: AsInfo) -> str:
    return f"AS{info.as_number} {info.as_name} {info.as_description} ({info.as_country})"


def _format_ip_info(info: IpAddressInfo) -> str:
    text = f"\n  IP Address: {info.address}\n"
    if info.reverse_hostname:
        text += f"  Reverse Hostname: {info.reverse_hostname}\n"
        text += f"  Reverse Hostname Addresses: {', '.join(info.reverse_hostname_addresses)}\n"
    if not info.reverse_zone.is_empty:
        text += "  Reverse Zone:\n" + format_zone_info(info.reverse_zone, indent="    ")
    text += f"  Prefixes: {', '.join(info.prefixes)}\n"
    if info.as_info:
        text += "  AS Information:\n"
        lines: list[str] = []
        for a in info.as_info:
            line = format_as_line(a)
            if line not in lines:
                lines.append(line)
        for line in lines:
            text += f"    Origin AS: {line}\n"
    return text


def format_address_info(query: str, info: Union[HostnameInfo, IpAddressInfo, AsnAddressInfo]) -> str:
    if isinstance(info, HostnameInfo):
        text = f"Hostname Info for {query}:\n"
        text += format_zone_info(info.zone)
        for ip in info.ip_addresses:
            text += _format_ip_info(ip)
        if not info.ip_addresses:
            text += "\n  (no addresses)\n"
        return text
    if isinstance(info, IpAddressInfo):
        return f"IP Info for {query}:\n" + _format_ip_info(info)
    return f"AS Info for {query}:\n\n  {format_as_line(info)}\n"
