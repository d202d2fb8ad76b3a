"""Tests for route payload normalization and origin-ASN extraction."""

import copy
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from errors import MalformedPayloadError
from fakes import ASN_PAYLOAD, PREFIX_PAYLOAD
from models import AsnRoutesPayload, PrefixPathsPayload, Route, RouteOrigin, RouteSummary
from route_normalizer import convert_route, decode_route_payload, get_origin_asns

COMMON_FIELDS = ("network", "loc_prf", "metric", "as_path", "nexthops", "origin",
                 "path_from", "peer_id", "valid", "version", "used", "best", "selection_reason")


class TestDecode:
    def test_prefix_shape(self):
        assert isinstance(decode_route_payload(PREFIX_PAYLOAD), PrefixPathsPayload)

    def test_asn_shape(self):
        assert isinstance(decode_route_payload(ASN_PAYLOAD), AsnRoutesPayload)

    def test_none_is_error(self):
        with pytest.raises(MalformedPayloadError, match="No route found"):
            decode_route_payload(None)

    @pytest.mark.parametrize("raw", ["1.1.1.0/24", [], 42])
    def test_non_object_is_error(self, raw):
        with pytest.raises(MalformedPayloadError, match="Invalid route format"):
            decode_route_payload(raw)

    def test_wrong_field_types(self):
        with pytest.raises(MalformedPayloadError):
            decode_route_payload({"prefix": "1.1.1.0/24", "paths": "nope"})


class TestConvertRoute:
    def test_prefix_paths_become_routes(self):
        routes = convert_route(PREFIX_PAYLOAD)
        assert len(routes) == 2
        first = routes[0]
        assert isinstance(first, Route)
        assert first.network == "1.1.1.0/24"
        assert first.as_path == "13335"
        assert first.nexthops == ["192.0.2.1"]
        assert first.path_from == "external"
        assert first.peer_id == "192.0.2.1"
        assert first.best is True
        assert first.used is True
        assert first.selection_reason == "First path received"
        assert first.rpki_state == "valid"
        assert first.community == ["13335:10020", "65000:100"]
        assert first.ext_community == ["RT:65000:1"]

    def test_missing_optional_fields_get_placeholders(self):
        second = convert_route(PREFIX_PAYLOAD)[1]
        assert second.best is False
        assert second.used is False
        assert second.metric == 0
        assert second.rpki_state == "?"
        assert second.community == []
        assert second.selection_reason == ""

    def test_asn_routes_become_summaries(self):
        routes = convert_route(ASN_PAYLOAD)
        assert len(routes) == 2
        assert all(type(r) is RouteSummary for r in routes)
        assert routes[0].best is True
        assert routes[1].best is False
        assert not hasattr(routes[0], "rpki_state")

    def test_both_shapes_agree_on_shared_fields(self):
        a = convert_route(PREFIX_PAYLOAD)
        b = convert_route(ASN_PAYLOAD)
        for ra, rb in zip(a, b):
            for name in COMMON_FIELDS:
                assert getattr(ra, name) == getattr(rb, name), name

    def test_empty_selection_reason_still_marks_best(self):
        raw = {"routes": {"10.0.0.0/8": [{"path": "65000", "selectionReason": ""}]}}
        assert convert_route(raw)[0].best is True

    def test_empty_tables(self):
        assert convert_route({"prefix": "1.1.1.0/24", "paths": []}) == []
        assert convert_route({"routes": {}}) == []
        assert convert_route({}) == []

    def test_missing_aspath_and_nexthop_ip(self):
        raw = {"prefix": "10.0.0.0/8", "paths": [{"nexthops": [{"afi": "ipv4"}, None]}]}
        route = convert_route(raw)[0]
        assert route.as_path == "?"
        assert route.nexthops == ["?", "?"]
        assert route.peer_id == "?"

    def test_payload_order_is_kept(self):
        raw = {"routes": {
            "10.1.0.0/16": [{"path": "1"}],
            "10.0.0.0/16": [{"path": "2"}],
        }}
        assert [r.network for r in convert_route(raw)] == ["10.1.0.0/16", "10.0.0.0/16"]


class TestOriginAsns:
    def test_last_asn_of_sequence(self):
        assert get_origin_asns(PREFIX_PAYLOAD) == [RouteOrigin(network="1.1.1.0/24", asn=13335)]

    def test_as_set_contributes_every_member(self):
        raw = copy.deepcopy(PREFIX_PAYLOAD)
        raw["paths"][1]["aspath"]["segments"].append({"type": "as-set", "list": [100, 200]})
        origins = get_origin_asns(raw)
        assert [o.asn for o in origins] == [13335, 100, 200]

    def test_path_without_aspath_is_skipped(self):
        raw = {"prefix": "10.0.0.0/8", "paths": [{"origin": "IGP"}, {"aspath": {"segments": []}}]}
        assert get_origin_asns(raw) == []

    def test_asn_shape_from_path_string(self):
        assert get_origin_asns(ASN_PAYLOAD) == [RouteOrigin(network="1.1.1.0/24", asn=13335)]

    def test_asn_shape_trailing_set(self):
        raw = {"routes": {"10.0.0.0/8": [{"path": "64500 {65001,65002}"}]}}
        assert [o.asn for o in get_origin_asns(raw)] == [65001, 65002]

    def test_same_asn_different_networks(self):
        raw = {"routes": {"10.0.0.0/8": [{"path": "65000"}], "10.1.0.0/16": [{"path": "65000"}]}}
        assert len(get_origin_asns(raw)) == 2

    def test_none_propagates(self):
        with pytest.raises(MalformedPayloadError):
            get_origin_asns(None)
