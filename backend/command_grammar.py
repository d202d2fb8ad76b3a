"""
Command Grammar: finite-state parser for the looking-glass command line.

Accepted forms:
  ( ping | traceroute | mtr ) ( <ipv4address> | <ipv6address> | <hostname> )+
  nslookup ( <ipv4address> | <ipv6address> | <hostname> )+
  ( show | sh )? ( bgp | route ) ( <address> | <prefix> | <hostname> | <asn> )+
  ( whois | ipinfo )? ( <address> | <prefix> | <hostname> | <asn> )+
  ( help | ? )
  ( clear | cls )

Without a command word every token narrows the set of purposes the line is
still good for. Each transition is a pure function of (state, token) that
returns a new immutable GrammarState.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable

from token_classifier import TokenClassification, classify_token

_SPLIT_RE = re.compile(r'[\s,]+')

_SEND_PACKET_RE = re.compile(r'^(ping|traceroute|mtr)$')
_NSLOOKUP_RE = re.compile(r'^nslookup$')
_SHOW_RE = re.compile(r'^(show|sh)$')
_BGP_RE = re.compile(r'^(bgp|route)$')
_WHOIS_RE = re.compile(r'^(whois|ipinfo)$')
_HELP_RE = re.compile(r'^(help|\?)$')
_CLEAR_RE = re.compile(r'^(clear|cls)$')


class ParseState(str, Enum):
    START = "start"
    SEND_PACKET = "sendPacket"
    DNS_LOOKUP = "dnsLookup"
    GET_ROUTE = "getRoute"
    GET_ROUTE_START = "getRoute-start"
    WHOIS = "whois"
    TOKEN_ONLY = "token-only"
    INVALID = "invalid"
    END = "end"


@dataclass(frozen=True)
class ValidPurpose:
    send_packet: bool = False    # ping, traceroute, mtr
    get_route: bool = False      # bgp
    dns_lookup: bool = False     # nslookup
    whois: bool = False          # whois, ipinfo

    def any(self) -> bool:
        return self.send_packet or self.get_route or self.dns_lookup or self.whois


NO_PURPOSE = ValidPurpose()

# Command name → the purpose flag it needs
COMMAND_PURPOSES: dict[str, str] = {
    "ping": "send_packet",
    "traceroute": "send_packet",
    "mtr": "send_packet",
    "bgp": "get_route",
    "nslookup": "dns_lookup",
    "whois": "whois",
    "ipinfo": "whois",
}


@dataclass(frozen=True)
class GrammarState:
    state: ParseState = ParseState.START
    is_valid: bool = False
    purpose: ValidPurpose = NO_PURPOSE
    tokens: tuple[str, ...] = ()
    command_name: str = ""
    is_help: bool = False
    is_clear: bool = False


@dataclass(frozen=True)
class ParseResult:
    is_valid: bool
    command_name: str = ""
    valid_purpose: ValidPurpose = NO_PURPOSE
    validated_tokens: list[str] = field(default_factory=list)
    is_help: bool = False
    is_clear: bool = False


# --- Token kind checks ---

def _packet_target(c: TokenClassification) -> bool:
    return c.hostname or c.is_address


def _route_target(c: TokenClassification) -> bool:
    return c.hostname or c.is_address or c.is_prefix or c.asn


def _seed_purpose(c: TokenClassification) -> ValidPurpose | None:
    """Purposes a first bare token can still serve, or None if the token is unusable."""
    if c.is_address:
        return ValidPurpose(send_packet=True, get_route=True, dns_lookup=True, whois=True)
    if c.hostname:
        return ValidPurpose(send_packet=True, dns_lookup=True, whois=True)
    if c.is_prefix or c.asn:
        return ValidPurpose(get_route=True, whois=True)
    return None


def _narrow_purpose(p: ValidPurpose, c: TokenClassification) -> ValidPurpose | None:
    if c.is_address:
        return p
    if c.hostname:
        return replace(p, get_route=False)
    if c.is_prefix or c.asn:
        return replace(p, send_packet=False, dns_lookup=False)
    return None


# --- Transitions ---

def _invalid(gs: GrammarState) -> GrammarState:
    return replace(gs, state=ParseState.INVALID, is_valid=False)


def _step_start(gs: GrammarState, token: str) -> GrammarState:
    if _SEND_PACKET_RE.match(token):
        return replace(gs, state=ParseState.SEND_PACKET, command_name=token,
                       purpose=ValidPurpose(send_packet=True))
    if _NSLOOKUP_RE.match(token):
        return replace(gs, state=ParseState.DNS_LOOKUP, command_name="nslookup",
                       purpose=ValidPurpose(dns_lookup=True))
    if _SHOW_RE.match(token):
        return replace(gs, state=ParseState.GET_ROUTE_START, purpose=ValidPurpose(get_route=True))
    if _BGP_RE.match(token):
        return replace(gs, state=ParseState.GET_ROUTE, command_name="bgp",
                       purpose=ValidPurpose(get_route=True))
    if _WHOIS_RE.match(token):
        return replace(gs, state=ParseState.WHOIS, command_name=token,
                       purpose=ValidPurpose(whois=True))
    if _HELP_RE.match(token):
        return replace(gs, state=ParseState.END, is_valid=True, is_help=True)
    if _CLEAR_RE.match(token):
        return replace(gs, state=ParseState.END, is_valid=True, is_clear=True)

    c = classify_token(token)
    purpose = _seed_purpose(c)
    if purpose is None:
        return _invalid(gs)
    return replace(gs, state=ParseState.TOKEN_ONLY, is_valid=True, purpose=purpose,
                   tokens=gs.tokens + (c.value,))


def _expect(accepts: Callable[[TokenClassification], bool]):
    """Transition for an explicit command: every token must be of an accepted kind."""
    def step(gs: GrammarState, token: str) -> GrammarState:
        c = classify_token(token)
        if not accepts(c):
            return _invalid(gs)
        return replace(gs, is_valid=True, tokens=gs.tokens + (c.value,))
    return step


def _step_get_route_start(gs: GrammarState, token: str) -> GrammarState:
    if _BGP_RE.match(token):
        return replace(gs, state=ParseState.GET_ROUTE, command_name="bgp")
    return _invalid(gs)


def _step_token_only(gs: GrammarState, token: str) -> GrammarState:
    c = classify_token(token)
    purpose = _narrow_purpose(gs.purpose, c)
    if purpose is None or not purpose.any():
        return _invalid(gs)
    return replace(gs, is_valid=True, purpose=purpose, tokens=gs.tokens + (c.value,))


_TRANSITIONS: dict[ParseState, Callable[[GrammarState, str], GrammarState]] = {
    ParseState.START: _step_start,
    ParseState.SEND_PACKET: _expect(_packet_target),
    ParseState.DNS_LOOKUP: _expect(_packet_target),
    ParseState.GET_ROUTE: _expect(_route_target),
    ParseState.WHOIS: _expect(_route_target),
    ParseState.GET_ROUTE_START: _step_get_route_start,
    ParseState.TOKEN_ONLY: _step_token_only,
}


def step(gs: GrammarState, token: str) -> GrammarState:
    """Consume one token. INVALID and END absorb everything as INVALID."""
    transition = _TRANSITIONS.get(gs.state)
    if transition is None:
        return _invalid(gs)
    return transition(gs, token)


def split_tokens(text: str) -> list[str]:
    return [t for t in _SPLIT_RE.split(text.strip()) if t]


def parse_command_line(text: str) -> ParseResult:
    """
    Run the grammar over a raw input line.

    On failure the token list and purpose set are reset, so callers never
    see a partial parse.
    """
    gs = GrammarState()
    for token in split_tokens(text):
        gs = step(gs, token)
        if gs.state is ParseState.INVALID:
            break

    if not gs.is_valid:
        return ParseResult(is_valid=False)
    return ParseResult(
        is_valid=True,
        command_name=gs.command_name,
        valid_purpose=gs.purpose,
        validated_tokens=list(gs.tokens),
        is_help=gs.is_help,
        is_clear=gs.is_clear,
    )
