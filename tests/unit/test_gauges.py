"""Unit tests for the peer and route gauge store."""

import pytest
from exabgpmon.models.rib import NeighborSummary
from exabgpmon.monitoring.gauges import ROUTE_LABELS, RouteGauges
from exabgpmon.protocol.json_parser import parse_event
from exabgpmon.protocol.text_parser import rib_entry_from_string

RIB_PREFIX = (
    "neighbor 192.168.1.2 local-ip 192.168.1.184 local-as 64496 peer-as 64511 "
    "router-id 192.168.1.184 family-allowed in-open"
)


def route_labels(nlri, family="ipv4 unicast", **overrides):
    """Labels of a route sent to 192.168.1.2 without attributes."""
    labels = {
        "peer_ip": "192.168.1.2",
        "peer_asn": 64511,
        "local_ip": "192.168.1.184",
        "local_asn": 64496,
        "nlri": nlri,
        "family": family,
        "med": 0,
        "local_preference": 0,
        "as_path": "",
        "communities": "",
    }
    labels.update(overrides)
    return labels


class TestObserveEvent:
    """Test applying stream events to the gauges."""

    def test_announce_sets_route_to_one(self, make_line, tracker):
        """Test that a sent announce marks the route active."""
        gauges = RouteGauges()
        update = '{ "announce": { "ipv4 unicast": { "192.168.1.184": [ "10.0.0.0/24" ] } } }'

        gauges.observe_event(parse_event(make_line(update=update), tracker=tracker))

        assert gauges.route_value(**route_labels("10.0.0.0/24")) == 1.0
        assert gauges.peer_value("192.168.1.2", 64511) == 1.0

    def test_withdraw_sets_route_to_zero(self, make_line, tracker):
        """Test that a withdraw keeps the route with value 0."""
        gauges = RouteGauges()
        announce = '{ "announce": { "ipv4 unicast": { "192.168.1.184": [ "10.0.0.0/24" ] } } }'
        withdraw = '{ "withdraw": { "ipv4 unicast": [ "10.0.0.0/24" ] } }'

        gauges.observe_event(parse_event(make_line(update=announce), tracker=tracker))
        gauges.observe_event(parse_event(make_line(update=withdraw), tracker=tracker))

        assert gauges.route_value(**route_labels("10.0.0.0/24")) == 0.0

    def test_attributes_in_labels(self, make_line, tracker):
        """Test that MED, local preference, AS path and communities label routes."""
        gauges = RouteGauges()
        update = (
            '{ "attribute": { "med": 10, "local-preference": 200, "as-path": [ 64496, 1 ], '
            '"community": [ [ 64496, 1 ], [ 64496, 2 ] ] }, '
            '"announce": { "ipv6 unicast": { "2001:db8::1": [ "2001:db8:1::/48" ] } } }'
        )

        gauges.observe_event(parse_event(make_line(update=update), tracker=tracker))

        labels = route_labels(
            "2001:db8:1::/48",
            family="ipv6 unicast",
            med=10,
            local_preference=200,
            as_path="64496 1",
            communities="64496:1 64496:2",
        )
        assert gauges.route_value(**labels) == 1.0

    def test_received_updates_not_tracked(self, make_line, tracker):
        """Test that only updates ExaBGP sent become route gauges."""
        gauges = RouteGauges()
        update = '{ "announce": { "ipv4 unicast": { "192.168.1.2": [ "10.0.0.0/24" ] } } }'

        gauges.observe_event(
            parse_event(make_line(update=update, direction="receive"), tracker=tracker)
        )

        assert gauges.route_value(**route_labels("10.0.0.0/24")) is None
        assert gauges.peer_value("192.168.1.2", 64511) == 1.0

    def test_flows_not_tracked(self, make_line, tracker):
        """Test that flow routes do not become route gauges."""
        gauges = RouteGauges()
        update = (
            '{ "announce": { "ipv4 flow": { "no-nexthop": [ '
            '{ "destination-ipv4": [ "10.0.0.1/32" ], "string": "flow" } ] } } }'
        )

        gauges.observe_event(parse_event(make_line(update=update), tracker=tracker))

        assert [s.name for s in gauges.samples()] == ["exabgp_up", "exabgp_state_peer"]

    def test_peer_down_sets_peer_to_zero(self, make_line, tracker):
        """Test that a down state marks the peer down."""
        gauges = RouteGauges()

        gauges.observe_event(parse_event(make_line("state", state="up"), tracker=tracker))
        assert gauges.peer_value("192.168.1.2", 64511) == 1.0

        gauges.observe_event(
            parse_event(make_line("state", state="down", reason="x"), tracker=tracker)
        )
        assert gauges.peer_value("192.168.1.2", 64511) == 0.0


class TestObserveRib:
    """Test replacing gauges from an exabgpcli scrape."""

    def test_replaces_previous_gauges(self, make_line, tracker):
        """Test that a scrape drops routes that are no longer present."""
        gauges = RouteGauges()
        update = '{ "announce": { "ipv4 unicast": { "192.168.1.184": [ "10.9.9.0/24" ] } } }'
        gauges.observe_event(parse_event(make_line(update=update), tracker=tracker))

        ribs = [
            rib_entry_from_string(
                f"{RIB_PREFIX} ipv4 unicast 0.0.0.0/0 next-hop self local-preference 100"
            )
        ]
        summaries = [
            NeighborSummary(
                ip_address="192.168.1.2",
                asn=64511,
                up_down="0:01:00",
                state="established",
            )
        ]

        skipped = gauges.observe_rib(ribs, summaries)

        assert skipped == 0
        assert gauges.route_value(**route_labels("10.9.9.0/24")) is None
        assert gauges.route_value(**route_labels("0.0.0.0/0", local_preference=100)) == 1.0
        assert gauges.peer_value("192.168.1.2", 64511) == 1.0

    def test_down_neighbor(self):
        """Test that a neighbor shown as down gets value 0."""
        gauges = RouteGauges()
        summaries = [
            NeighborSummary(ip_address="192.0.2.9", asn=65000, up_down="down", state="idle")
        ]

        gauges.observe_rib([], summaries)

        assert gauges.peer_value("192.0.2.9", 65000) == 0.0

    def test_flow_entries_skipped(self):
        """Test that families other than unicast are skipped and counted."""
        gauges = RouteGauges()
        ribs = [
            rib_entry_from_string(f"{RIB_PREFIX} ipv4 unicast 10.0.0.0/8 next-hop self"),
            rib_entry_from_string(f"{RIB_PREFIX} ipv4 flow flow destination-ipv4 10.0.0.1/32"),
        ]

        skipped = gauges.observe_rib(ribs, [])

        assert skipped == 1
        routes = [s for s in gauges.samples() if s.name == "exabgp_state_route"]
        assert len(routes) == 1
        assert routes[0].labels["nlri"] == "10.0.0.0/8"

    def test_bad_details_skipped(self):
        """Test that an entry whose details do not parse is skipped."""
        gauges = RouteGauges()
        ribs = [rib_entry_from_string(f"{RIB_PREFIX} ipv4 unicast 10.0.0.0/8 origin igp")]

        assert gauges.observe_rib(ribs, []) == 1


class TestSamples:
    """Test reading the gauges."""

    def test_exabgp_up_always_present(self):
        """Test that the exabgp_up gauge is always reported."""
        gauges = RouteGauges()

        assert gauges.samples()[0].name == "exabgp_up"
        assert gauges.samples()[0].value == 0.0

        gauges.set_exabgp_up(1.0)

        assert gauges.exabgp_up == 1.0
        assert gauges.samples()[0].value == 1.0

    def test_route_sample_labels(self, make_line, tracker):
        """Test that route samples carry every route label."""
        gauges = RouteGauges()
        update = '{ "announce": { "ipv4 unicast": { "192.168.1.184": [ "10.0.0.0/24" ] } } }'
        gauges.observe_event(parse_event(make_line(update=update), tracker=tracker))

        route = [s for s in gauges.samples() if s.name == "exabgp_state_route"][0]

        assert tuple(route.labels) == ROUTE_LABELS
        assert route.labels["peer_asn"] == "64511"
        assert route.value == 1.0

    def test_clear(self, make_line, tracker):
        """Test that clear drops peers and routes but keeps exabgp_up."""
        gauges = RouteGauges()
        gauges.set_exabgp_up(1.0)
        gauges.observe_event(parse_event(make_line("state", state="up"), tracker=tracker))

        gauges.clear()

        assert [s.name for s in gauges.samples()] == ["exabgp_up"]

    def test_route_value_requires_all_labels(self):
        """Test that a lookup without every label is rejected."""
        with pytest.raises(KeyError):
            RouteGauges().route_value(nlri="10.0.0.0/8")
