"""
Token Classifier: decide what a single command-line token can stand for.

Checks run in a fixed order: ASN, IPv4 address, IPv4 CIDR, IPv6 address,
IPv6 CIDR, DNS hostname. The first match wins, so a bare number is always
an ASN and never a hostname label. An address is also a valid /32 or /128
prefix.
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass

_ASN_RE = re.compile(r'^(?:AS)?([0-9]+)$', re.IGNORECASE)
_LABEL_RE = re.compile(r'^[a-z0-9]([-a-z0-9]{0,61}[a-z0-9])?$', re.IGNORECASE)
_WHITESPACE_RE = re.compile(r'\s')


@dataclass(frozen=True)
class TokenClassification:
    hostname: bool = False
    ipv4_address: bool = False
    ipv6_address: bool = False
    ipv4_prefix: bool = False
    ipv6_prefix: bool = False
    asn: bool = False
    value: str = ""          # normalized: lower-cased hostname, ASN digits, else as typed

    @property
    def is_address(self) -> bool:
        return self.ipv4_address or self.ipv6_address

    @property
    def is_prefix(self) -> bool:
        return self.ipv4_prefix or self.ipv6_prefix

    @property
    def is_valid(self) -> bool:
        return self.hostname or self.is_prefix or self.asn


INVALID = TokenClassification()


def _is_ipv4(token: str) -> bool:
    try:
        ipaddress.IPv4Address(token)
    except ValueError:
        return False
    return True


def _is_ipv6(token: str) -> bool:
    try:
        ipaddress.IPv6Address(token)
    except ValueError:
        return False
    return True


def _split_cidr(token: str, max_len: int) -> str | None:
    """Return the address part of '<addr>/<len>' if len is a plain integer in range."""
    addr, sep, length = token.partition('/')
    if not sep or not length.isdigit() or int(length) > max_len:
        return None
    return addr


def _is_ipv4_cidr(token: str) -> bool:
    addr = _split_cidr(token, 32)
    return addr is not None and _is_ipv4(addr)


def _is_ipv6_cidr(token: str) -> bool:
    addr = _split_cidr(token, 128)
    return addr is not None and _is_ipv6(addr)


def _hostname_value(token: str) -> str | None:
    labels = re.sub(r'\.$', '', token).split('.')
    if all(_LABEL_RE.match(label) for label in labels):
        return '.'.join(labels).lower()
    return None


def classify_token(token: str) -> TokenClassification:
    """Classify one whitespace-free token. Never raises; unknown tokens get all flags False."""
    if _WHITESPACE_RE.search(token):
        return INVALID

    m = _ASN_RE.match(token)
    if m:
        return TokenClassification(asn=True, value=m.group(1))
    if _is_ipv4(token):
        return TokenClassification(ipv4_address=True, ipv4_prefix=True, value=token)
    if _is_ipv4_cidr(token):
        return TokenClassification(ipv4_prefix=True, value=token)
    if _is_ipv6(token):
        return TokenClassification(ipv6_address=True, ipv6_prefix=True, value=token)
    if _is_ipv6_cidr(token):
        return TokenClassification(ipv6_prefix=True, value=token)

    hostname = _hostname_value(token)
    if hostname is not None:
        return TokenClassification(hostname=True, value=hostname)
    return INVALID
