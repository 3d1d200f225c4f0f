"""ExaBGP JSON API event parser."""

import json
from typing import Any

from pydantic import ValidationError

from exabgpmon.models.attribute import Attribute
from exabgpmon.models.event import (
    Announcements,
    Event,
    Flow,
    FlowAnnouncement,
    Local,
    Peer,
    UnicastAnnouncement,
    UnicastWithdrawal,
    Withdrawals,
)
from exabgpmon.peer_status import PeerStatusTracker, peer_status
from exabgpmon.protocol.exabgp import (
    CONTROL_BYTES,
    DecodeError,
    EventType,
    Family,
    FlowPayload,
    JSONEvent,
    RouteShapeError,
    SchemaError,
    UnknownEventTypeError,
    UpdateBody,
)

# Event types that are recognized but carry nothing we decode yet
_PASSIVE_EVENT_TYPES = frozenset(
    {
        EventType.NOTIFICATION.value,
        EventType.OPEN.value,
        EventType.KEEPALIVE.value,
        EventType.SIGNAL.value,
    }
)


def strip_control_bytes(data: bytes) -> bytes:
    """
    Remove the control bytes some ExaBGP versions emit inside JSON.

    Args:
        data: Raw API line

    Returns:
        Line with every 0x01, 0x00 and 0x04 byte removed
    """
    for seq in CONTROL_BYTES:
        data = data.replace(seq, b"")
    return data


def _load_envelope(data: bytes | str) -> JSONEvent:
    return JSONEvent.model_validate(json.loads(data))


def safe_load(data: bytes | str) -> JSONEvent:
    """
    Decode one API line into the JSON envelope.

    A line that fails strict decoding gets one repair pass (control bytes
    removed, invalid UTF-8 replaced with U+FFFD) and is decoded again.

    Args:
        data: One line of the API stream

    Returns:
        Decoded envelope

    Raises:
        DecodeError: If the line is not valid JSON or does not match the
            envelope, even after repair. Chained from the first failure.
    """
    if isinstance(data, str):
        data = data.encode("utf-8", errors="surrogateescape")

    try:
        return _load_envelope(data)
    except (ValueError, ValidationError) as original:
        try:
            repaired = strip_control_bytes(data).decode("utf-8", errors="replace")
            return _load_envelope(repaired)
        except (ValueError, ValidationError):
            raise DecodeError(f"Invalid event JSON: {original}") from original


def _route_from_element(element: Any) -> list[str]:
    """
    Decode one unicast route element.

    ExaBGP emits either a bare prefix string or an object whose values are
    strings, e.g. ``{"nlri": "10.0.0.0/24", "path-information": "0.0.0.1"}``.
    Every value must be a string. When an ``nlri`` key is present only its
    value is a route; upstream exporters emit every string value, which
    would count the path identifier as a prefix. Objects without ``nlri``
    yield all their values in key order.

    Args:
        element: Decoded JSON value of one list element

    Returns:
        Prefixes carried by the element

    Raises:
        RouteShapeError: If the element is neither shape, or an object
            value is not a string
    """
    if isinstance(element, str):
        return [element]

    if isinstance(element, dict):
        for key, value in element.items():
            if not isinstance(value, str):
                raise RouteShapeError(
                    f"Got a non-string value for {key}: {value!r}", key=key
                )
        if "nlri" in element:
            return [element["nlri"]]
        return list(element.values())

    raise RouteShapeError(f"Unable to parse route: {element!r}")


def _routes_from_list(family: Family, elements: Any) -> list[str]:
    if not isinstance(elements, list):
        raise RouteShapeError(f"Expected a list of routes for {family.value}")

    routes: list[str] = []
    for element in elements:
        routes.extend(_route_from_element(element))
    return routes


def _flow_from_element(family: Family, element: Any, attributes: Attribute) -> Flow:
    if not isinstance(element, dict):
        raise RouteShapeError(f"Unable to parse flow: {element!r}")

    try:
        payload = FlowPayload.model_validate(element)
    except ValidationError as e:
        raise RouteShapeError(f"Unable to parse flow: {e}") from e

    if family == Family.IPV4_FLOW:
        destination, source = payload.destination_ipv4, payload.source_ipv4
    else:
        destination, source = payload.destination_ipv6, payload.source_ipv6

    return Flow(
        attributes=attributes,
        destination=destination,
        source=source,
        string=payload.string,
    )


def _next_hops(family: Family, announce: dict[str, Any]) -> dict[str, Any]:
    by_next_hop = announce.get(family.value, {})
    if not isinstance(by_next_hop, dict):
        raise RouteShapeError(f"Expected next-hop mapping for {family.value}")
    return by_next_hop


def _parse_unicast(
    family: Family, update: UpdateBody
) -> tuple[dict[str, UnicastAnnouncement], list[UnicastWithdrawal]]:
    announced: dict[str, UnicastAnnouncement] = {}
    for next_hop, elements in _next_hops(family, update.announce).items():
        announced[next_hop] = UnicastAnnouncement(
            attributes=update.attribute,
            nlri=_routes_from_list(family, elements),
        )

    withdrawn: list[UnicastWithdrawal] = []
    if family.value in update.withdraw:
        # One block per family, duplicates kept
        withdrawn.append(
            UnicastWithdrawal(
                attributes=update.attribute,
                nlri=_routes_from_list(family, update.withdraw[family.value]),
            )
        )

    return announced, withdrawn


def _parse_flow(
    family: Family, update: UpdateBody
) -> tuple[dict[str, FlowAnnouncement], list[Flow]]:
    announced: dict[str, FlowAnnouncement] = {}
    for next_hop, elements in _next_hops(family, update.announce).items():
        if not isinstance(elements, list):
            raise RouteShapeError(f"Expected a list of flows for {family.value}")
        announced[next_hop] = FlowAnnouncement(
            attributes=update.attribute,
            flows=[
                _flow_from_element(family, element, update.attribute)
                for element in elements
            ],
        )

    elements = update.withdraw.get(family.value, [])
    if not isinstance(elements, list):
        raise RouteShapeError(f"Expected a list of flows for {family.value}")
    withdrawn = [
        _flow_from_element(family, element, update.attribute) for element in elements
    ]

    return announced, withdrawn


def parse_update_message(update: UpdateBody) -> tuple[Announcements, Withdrawals]:
    """
    Normalize an update body into announcements and withdrawals.

    Families are processed in a fixed order and the first malformed
    element aborts the whole update. Families other than ipv4/ipv6
    unicast and flow are ignored.

    Args:
        update: Decoded ``neighbor.message.update`` object

    Returns:
        Tuple of (announcements, withdrawals)

    Raises:
        RouteShapeError: If a route or flow element has an unexpected shape
    """
    v4_announced, v4_withdrawn = _parse_unicast(Family.IPV4_UNICAST, update)
    v4_flows, v4_flow_withdrawn = _parse_flow(Family.IPV4_FLOW, update)
    v6_announced, v6_withdrawn = _parse_unicast(Family.IPV6_UNICAST, update)
    v6_flows, v6_flow_withdrawn = _parse_flow(Family.IPV6_FLOW, update)

    announcements = Announcements(
        ipv4_unicast=v4_announced,
        ipv4_flow=v4_flows,
        ipv6_unicast=v6_announced,
        ipv6_flow=v6_flows,
    )
    withdrawals = Withdrawals(
        ipv4_unicast=v4_withdrawn,
        ipv4_flow=v4_flow_withdrawn,
        ipv6_unicast=v6_withdrawn,
        ipv6_flow=v6_flow_withdrawn,
    )
    return announcements, withdrawals


def parse_event(
    data: bytes | str, tracker: PeerStatusTracker | None = None
) -> Event:
    """
    Parse one line of the ExaBGP JSON API.

    Args:
        data: One line of the API stream, without the trailing newline
        tracker: Peer status tracker updated by state events (defaults to
            the process-wide tracker)

    Returns:
        Fully built event

    Raises:
        DecodeError: If the line is not decodable JSON
        UnknownEventTypeError: If the event type is not recognized
        RouteShapeError: If an update carries malformed routes. The
            exception's ``event`` holds the event without route data.
    """
    if tracker is None:
        tracker = peer_status

    envelope = safe_load(data)
    neighbor = envelope.neighbor

    fields: dict[str, Any] = {
        "version": envelope.exabgp,
        "time": envelope.time,
        "host": envelope.host,
        "pid": envelope.pid,
        "ppid": envelope.ppid,
        "counter": envelope.counter,
        "type": envelope.type,
        "peer": Peer(ip=neighbor.address.peer, asn=neighbor.asn.peer),
        "local": Local(ip=neighbor.address.local, asn=neighbor.asn.local),
        "direction": neighbor.direction,
    }

    if envelope.type == EventType.UPDATE.value:
        update = UpdateBody()
        if neighbor.message is not None and neighbor.message.update is not None:
            update = neighbor.message.update
        try:
            announcements, withdrawals = parse_update_message(update)
        except SchemaError as e:
            e.event = Event(**fields)
            raise
        return Event(**fields, announcements=announcements, withdrawals=withdrawals)

    if envelope.type == EventType.STATE.value:
        fields["peer"] = Peer(
            ip=neighbor.address.peer,
            asn=neighbor.asn.peer,
            state=neighbor.state,
            reason=neighbor.reason,
        )
        tracker.publish(neighbor.state, neighbor.reason)
        return Event(**fields)

    if envelope.type in _PASSIVE_EVENT_TYPES:
        return Event(**fields)

    raise UnknownEventTypeError(f"Cannot handle event type: {envelope.type}")
