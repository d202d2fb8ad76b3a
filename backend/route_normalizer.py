"""
Route Normalizer: map router-API BGP JSON onto the canonical Route model.

Two payload shapes come back from the routers:
- prefix lookup:  {"prefix": ..., "paths": [...]}
  structured aspath/peer/bestpath objects, RPKI state and communities → Route
- ASN lookup:     {"routes": {"<prefix>": [...]}}
  flat path/pathFrom/peerId strings, best marked by a selectionReason key → RouteSummary

The shape is decided once in decode_route_payload(); everything after that
works on typed payload models.
"""

from __future__ import annotations

import re
from typing import Any, Union

from pydantic import ValidationError

from errors import MalformedPayloadError
from models import (
    AsnPath,
    AsnRoutesPayload,
    PrefixPath,
    PrefixPathsPayload,
    RawNexthop,
    Route,
    RouteOrigin,
    RoutePayload,
    RouteSummary,
)

_AS_SET_RE = re.compile(r'^\{([\d,\s]+)\}$')


def decode_route_payload(raw: Any) -> RoutePayload:
    """Decide the payload shape. A null or non-object result is an error, not an empty table."""
    if raw is None:
        raise MalformedPayloadError("No route found")
    if not isinstance(raw, dict):
        raise MalformedPayloadError("Invalid route format")
    try:
        if raw.get("prefix"):
            return PrefixPathsPayload.model_validate(raw)
        return AsnRoutesPayload.model_validate(raw)
    except ValidationError as e:
        raise MalformedPayloadError(f"Invalid route format: {e.error_count()} errors") from e


def _nexthop_ips(nexthops: list[RawNexthop | None]) -> list[str]:
    return [(n.ip if n is not None and n.ip else "?") for n in nexthops]


def _nexthops_used(nexthops: list[RawNexthop | None]) -> bool:
    return any(n is not None and n.used for n in nexthops)


def _split_attr(text: str | None) -> list[str]:
    return text.split() if text else []


def _from_prefix_path(network: str, path: PrefixPath) -> Route:
    bestpath = path.bestpath
    return Route(
        network=network,
        loc_prf=path.loc_prf,
        metric=path.metric or 0,
        as_path=(path.aspath.string if path.aspath and path.aspath.string else "?"),
        nexthops=_nexthop_ips(path.nexthops),
        used=_nexthops_used(path.nexthops),
        origin=path.origin,
        path_from=(path.peer.type if path.peer and path.peer.type else "?"),
        peer_id=(path.peer.peer_id if path.peer and path.peer.peer_id else "?"),
        valid=path.valid,
        version=path.version,
        best=bool(bestpath and bestpath.overall),
        selection_reason=(bestpath.selection_reason or "") if bestpath else "",
        rpki_state=path.rpki_validation_state or "?",
        community=_split_attr(path.community.string if path.community else None),
        ext_community=_split_attr(path.extended_community.string if path.extended_community else None),
    )


def _from_asn_path(network: str, path: AsnPath) -> RouteSummary:
    return RouteSummary(
        network=network,
        loc_prf=path.loc_prf,
        metric=path.metric or 0,
        as_path=path.path or "?",
        nexthops=_nexthop_ips(path.nexthops),
        used=_nexthops_used(path.nexthops),
        origin=path.origin,
        path_from=path.path_from or "?",
        peer_id=path.peer_id or "?",
        valid=path.valid,
        version=path.version,
        best=path.is_best,
        selection_reason=path.selection_reason or "",
    )


def normalize_routes(payload: RoutePayload) -> list[Union[Route, RouteSummary]]:
    if isinstance(payload, PrefixPathsPayload):
        return [_from_prefix_path(payload.prefix, p) for p in payload.paths]
    return [
        _from_asn_path(network, p)
        for network, paths in payload.routes.items()
        for p in paths
    ]


def convert_route(raw: Any) -> list[Union[Route, RouteSummary]]:
    """Raw route JSON → routes in payload order. Empty list means the table really was empty."""
    return normalize_routes(decode_route_payload(raw))


# --- Origin AS extraction ---

def _add_origin(origins: list[RouteOrigin], network: str, asn: int) -> None:
    origin = RouteOrigin(network=network, asn=asn)
    if origin not in origins:
        origins.append(origin)


def _origin_asns_from_string(as_path: str) -> list[int]:
    """Origin of a flat 'a b c' or 'a b {c,d}' path string."""
    tokens = as_path.split()
    if not tokens:
        return []
    last = tokens[-1]
    m = _AS_SET_RE.match(last)
    if m:
        return [int(x) for x in m.group(1).replace(" ", "").split(",") if x]
    return [int(last)] if last.isdigit() else []


def get_origin_asns(raw: Any) -> list[RouteOrigin]:
    """
    Originating ASNs of every path, deduplicated by (asn, network).

    The origin is taken from the last AS-path segment: every member of an
    as-set, otherwise the last ASN of the sequence. Paths without an AS
    path contribute nothing.
    """
    payload = decode_route_payload(raw)
    origins: list[RouteOrigin] = []

    if isinstance(payload, PrefixPathsPayload):
        for path in payload.paths:
            if path.aspath is None or not path.aspath.segments:
                continue
            last = path.aspath.segments[-1]
            if last.type == "as-set":
                for asn in last.members:
                    _add_origin(origins, payload.prefix, asn)
            elif last.members:
                _add_origin(origins, payload.prefix, last.members[-1])
        return origins

    for network, paths in payload.routes.items():
        for path in paths:
            if not path.path:
                continue
            for asn in _origin_asns_from_string(path.path):
                _add_origin(origins, network, asn)
    return origins
