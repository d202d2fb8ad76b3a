"""
Data models for the Looking Glass backend.

Three groups:
- DNS results (responses, answers, zone metadata) as shown to the user
- Canonical BGP route model shared by both router-API backends
- Raw router-API payloads, decoded once at the JSON boundary
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


# --- DNS Models ---

class DnsQuestion(BaseModel):
    rdclass: str = "IN"
    rdtype: str
    name: str


class DnsAnswer(BaseModel):
    rdclass: str
    rdtype: str
    name: str
    ttl: int = Field(ge=0)
    data: str                # always display text, never raw rdata bytes
    rcode: str = "NOERROR"


class DnsResponse(BaseModel):
    rcode: str = "NOERROR"
    questions: list[DnsQuestion] = Field(default_factory=list)
    answers: list[DnsAnswer] = Field(default_factory=list)
    authorities: list[DnsAnswer] = Field(default_factory=list)
    id: int = 0
    time: Optional[float] = None         # epoch seconds when the answer arrived
    query_time: Optional[int] = None     # msec

    def data_of(self, rdtype: str) -> list[str]:
        return [a.data for a in self.answers if a.rdtype == rdtype]


class NameServerInfo(BaseModel):
    name: str
    ipv4: list[str] = Field(default_factory=list)
    ipv6: list[str] = Field(default_factory=list)


class DnsZoneInfo(BaseModel):
    """SOA fields plus the zone's NS set. All empty when no SOA was found."""
    zone_name: str = ""
    primary_name_server: str = ""
    admin_contact: str = ""
    serial: int = 0
    refresh: int = 0
    retry: int = 0
    expire: int = 0
    minimum: int = 0
    name_servers: list[NameServerInfo] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.zone_name


# --- Route Models ---

class RouteSummary(BaseModel):
    network: str
    loc_prf: Optional[int] = None
    metric: int = 0
    as_path: str = "?"
    nexthops: list[str] = Field(default_factory=list)
    origin: Optional[str] = None
    path_from: str = "?"
    peer_id: str = "?"
    valid: bool = False
    version: Optional[int] = None
    used: bool = False
    best: bool = False
    selection_reason: str = ""


class Route(RouteSummary):
    """Extended route; only the prefix lookup (paths under a prefix) carries these."""
    rpki_state: str = "?"
    community: list[str] = Field(default_factory=list)
    ext_community: list[str] = Field(default_factory=list)


class RouteOrigin(BaseModel):
    network: str
    asn: int


# --- AS / Address Info Models ---

class AsInfo(BaseModel):
    as_number: int
    as_name: str = ""
    as_description: str = ""
    as_country: str = ""


class IpAddressInfo(BaseModel):
    kind: Literal["ipv4", "ipv6"]
    address: str                                 # address or prefix as typed
    prefixes: list[str] = Field(default_factory=list)
    reverse_hostname: Optional[str] = None
    reverse_hostname_addresses: list[str] = Field(default_factory=list)
    reverse_zone: DnsZoneInfo = Field(default_factory=DnsZoneInfo)
    as_info: list[AsInfo] = Field(default_factory=list)


class HostnameInfo(BaseModel):
    kind: Literal["hostname"] = "hostname"
    hostname: str
    ip_addresses: list[IpAddressInfo] = Field(default_factory=list)
    zone: DnsZoneInfo = Field(default_factory=DnsZoneInfo)


class AsnAddressInfo(AsInfo):
    kind: Literal["as"] = "as"


AddressInfo = Annotated[
    Union[HostnameInfo, IpAddressInfo, AsnAddressInfo],
    Field(discriminator="kind"),
]


# --- Console Models ---

class HistoryEntry(BaseModel):
    command: str
    result: str
    hostname: str = ""       # router the command ran against
    is_error: bool = False
    cleared: bool = False


# --- Router API Payloads ---
# Prefix lookups return paths under a single prefix (with structured
# aspath/peer/bestpath objects); ASN lookups return routes keyed by prefix
# with flat path/pathFrom/peerId strings.

class RawNexthop(BaseModel):
    ip: Optional[str] = None
    used: bool = False


class RawAsPathSegment(BaseModel):
    type: str = ""
    members: list[int] = Field(default_factory=list, alias="list")


class RawAsPath(BaseModel):
    string: Optional[str] = None
    segments: list[RawAsPathSegment] = Field(default_factory=list)


class RawPeer(BaseModel):
    type: Optional[str] = None
    peer_id: Optional[str] = Field(None, alias="peerId")


class RawStringAttr(BaseModel):
    string: Optional[str] = None


class RawBestpath(BaseModel):
    overall: bool = False
    selection_reason: Optional[str] = Field(None, alias="selectionReason")


class RawPathFields(BaseModel):
    loc_prf: Optional[int] = Field(None, alias="locPrf")
    metric: Optional[int] = None
    nexthops: list[Optional[RawNexthop]] = Field(default_factory=list)
    origin: Optional[str] = None
    valid: bool = False
    version: Optional[int] = None


class PrefixPath(RawPathFields):
    aspath: Optional[RawAsPath] = None
    peer: Optional[RawPeer] = None
    rpki_validation_state: Optional[str] = Field(None, alias="rpkiValidationState")
    community: Optional[RawStringAttr] = None
    extended_community: Optional[RawStringAttr] = Field(None, alias="extendedCommunity")
    bestpath: Optional[RawBestpath] = None


class AsnPath(RawPathFields):
    path: Optional[str] = None
    path_from: Optional[str] = Field(None, alias="pathFrom")
    peer_id: Optional[str] = Field(None, alias="peerId")
    selection_reason: Optional[str] = Field(None, alias="selectionReason")

    @property
    def is_best(self) -> bool:
        # The backend marks the best path only by including the key at all
        return "selection_reason" in self.model_fields_set


class PrefixPathsPayload(BaseModel):
    prefix: str
    paths: list[PrefixPath] = Field(default_factory=list)


class AsnRoutesPayload(BaseModel):
    routes: dict[str, list[AsnPath]] = Field(default_factory=dict)


RoutePayload = Union[PrefixPathsPayload, AsnRoutesPayload]
