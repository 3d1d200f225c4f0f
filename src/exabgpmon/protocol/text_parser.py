"""Parser for exabgpcli text output (adj-rib dumps and neighbor summaries)."""

import re
from collections.abc import Callable
from typing import NamedTuple

from exabgpmon.models.attribute import Attribute
from exabgpmon.models.rib import FlowRouteEntry, NeighborSummary, UnicastRouteEntry
from exabgpmon.protocol.exabgp import Family, FamilyMismatchError, ParseError

# neighbor <ip> local-ip <ip> local-as <int> peer-as <int> router-id <ip>
# family-allowed in-open <afi> <safi> <details>
RIB_LINE_RE = re.compile(
    r"^neighbor (?P<neighbor>\S+) local-ip (?P<local_ip>\S+)"
    r" local-as (?P<local_as>\d+) peer-as (?P<peer_as>\d+)"
    r" router-id (?P<router_id>\S+)"
    r" family-allowed in-open (?P<afi>\S+) (?P<safi>\S+) (?P<details>.*)$",
    re.ASCII,
)
UNICAST_RE = re.compile(
    r"^(?P<nlri>\S+) next-hop (?P<next_hop>\S+)(?: (?P<attributes>.*))?$"
)

# <ip> <asn> <up/down> <state> <#sent> <#recvd>
SUMMARY_LINE_RE = re.compile(
    r"^(?P<peer>\S+)\s+(?P<asn>\d+)\s+(?P<up_down>\S+)\s+(?P<state>\S+)"
    r"\s+(?:\|\s+)?(?P<sent>\d+)\s+(?P<received>\d+)\s*$",
    re.ASCII,
)
SUMMARY_HEADER_PREFIX = "Peer"

MED_RE = re.compile(r"(?:^|\s+)med (?P<med>\d+)", re.ASCII)
ORIGIN_RE = re.compile(r"(?:^|\s+)origin (?P<origin>\S+)")
AS_PATH_RE = re.compile(r"(?:^|\s+)as-path \[ (?P<as_path>[^\]]+) \]")
CLUSTER_LIST_RE = re.compile(r"(?:^|\s+)cluster-list \[ (?P<cluster_list>[^\]]+) \]")
COMMUNITIES_RE = re.compile(r"(?:^|\s+)community \[ (?P<communities>[^\]]+) \]")
COMMUNITY_RE = re.compile(r"(?:^|\s+)community (?P<community>\S+)")
EXTENDED_COMMUNITIES_RE = re.compile(
    r"(?:^|\s+)extended-community \[ (?P<communities>[^\]]+) \]"
)
EXTENDED_COMMUNITY_RE = re.compile(r"(?:^|\s+)extended-community (?P<community>\S+)")
ORIGINATOR_ID_RE = re.compile(r"(?:^|\s+)originator-id (?P<originator_id>\S+)")
LOCAL_PREF_RE = re.compile(
    r"(?:^|\s+)local-preference (?P<local_pref>\d+)", re.ASCII
)

INT64_MAX = 2**63 - 1
ASN_MAX = 2**32 - 1

# Called with (field name, offending token) for numbers that were dropped
SlipHandler = Callable[[str, str], None]


def _to_int(
    value: str, maximum: int, field: str, on_slip: SlipHandler | None
) -> int | None:
    # int() would also take non-ASCII digits
    number = int(value) if value.isascii() and value.isdigit() else None
    if number is None or number > maximum:
        if on_slip is not None:
            on_slip(field, value)
        return None
    return number


def _list_or_single(
    fragment: str, list_re: re.Pattern[str], single_re: re.Pattern[str]
) -> list[str]:
    match = list_re.search(fragment)
    if match:
        return match.group(1).split(" ")
    match = single_re.search(fragment)
    if match:
        return [match.group(1)]
    return []


def parse_attributes(fragment: str, on_slip: SlipHandler | None = None) -> Attribute:
    """
    Parse the attribute part of a unicast RIB entry.

    Every attribute is matched on its own, so order does not matter and
    a missing attribute just keeps its zero value. Numbers that do not
    fit their field are dropped rather than raising.

    Args:
        fragment: Text after the next-hop, e.g. ``origin igp med 100``
        on_slip: Optional callback receiving (field, token) for each
            dropped number

    Returns:
        Parsed attributes
    """
    med = 0
    match = MED_RE.search(fragment)
    if match:
        med = _to_int(match.group("med"), INT64_MAX, "med", on_slip) or 0

    match = ORIGIN_RE.search(fragment)
    origin = match.group("origin") if match else ""

    as_path: list[int] = []
    match = AS_PATH_RE.search(fragment)
    if match:
        for token in match.group("as_path").split(" "):
            asn = _to_int(token, ASN_MAX, "as-path", on_slip)
            if asn is not None:
                as_path.append(asn)

    match = CLUSTER_LIST_RE.search(fragment)
    cluster_list = match.group("cluster_list").split(" ") if match else []

    community = _list_or_single(fragment, COMMUNITIES_RE, COMMUNITY_RE)
    extended_community = _list_or_single(
        fragment, EXTENDED_COMMUNITIES_RE, EXTENDED_COMMUNITY_RE
    )

    match = ORIGINATOR_ID_RE.search(fragment)
    originator_id = match.group("originator_id") if match else ""

    local_preference = 0
    match = LOCAL_PREF_RE.search(fragment)
    if match:
        local_preference = (
            _to_int(match.group("local_pref"), INT64_MAX, "local-preference", on_slip)
            or 0
        )

    return Attribute(
        med=med,
        origin=origin,
        as_path=as_path,
        local_preference=local_preference,
        community=community,
        extended_community=extended_community,
        cluster_list=cluster_list,
        originator_id=originator_id,
    )


def parse_unicast_details(
    details: str, on_slip: SlipHandler | None = None
) -> UnicastRouteEntry:
    """
    Parse the details of a unicast RIB entry.

    Args:
        details: ``<nlri> next-hop <token>[ <attributes>]``
        on_slip: Passed on to parse_attributes

    Returns:
        Route entry

    Raises:
        ParseError: If the details do not match the unicast grammar
    """
    match = UNICAST_RE.match(details)
    if not match:
        raise ParseError(f"Unable to parse unicast entry: {details}")

    return UnicastRouteEntry(
        nlri=match.group("nlri"),
        next_hop=match.group("next_hop"),
        attributes=parse_attributes(match.group("attributes") or "", on_slip),
    )


class RIBMessage(NamedTuple):
    """
    One line of ``show adj-rib out extensive``.

    The family specific details are left undecoded until one of the
    projection methods is called; projections do not modify the message.
    """

    peer_ip: str
    peer_as: int
    local_ip: str
    local_as: int
    router_id: str
    afi: str
    safi: str
    details: str

    @property
    def family(self) -> str:
        """Family as ExaBGP spells it, e.g. ``ipv4 unicast``."""
        return f"{self.afi} {self.safi}"

    def _unicast(
        self, family: Family, on_slip: SlipHandler | None
    ) -> UnicastRouteEntry:
        if self.family != family.value:
            raise FamilyMismatchError(f"Wrong entry family: {self.family}")
        return parse_unicast_details(self.details, on_slip)

    def ipv4_unicast(self, on_slip: SlipHandler | None = None) -> UnicastRouteEntry:
        """Decode the details as an ipv4 unicast route."""
        return self._unicast(Family.IPV4_UNICAST, on_slip)

    def ipv6_unicast(self, on_slip: SlipHandler | None = None) -> UnicastRouteEntry:
        """Decode the details as an ipv6 unicast route."""
        return self._unicast(Family.IPV6_UNICAST, on_slip)

    def ipv4_flow(self) -> FlowRouteEntry | None:
        """Not implemented yet: always None, never raises."""
        return None

    def ipv6_flow(self) -> FlowRouteEntry | None:
        """Not implemented yet: always None, never raises."""
        return None


def _lines(data: bytes) -> list[str]:
    # Only \n ends a line (\r\n tolerated); str.splitlines would also split on
    # \x0b, \x1c, \x85 and friends
    lines = [
        line.rstrip("\r")
        for line in data.decode("utf-8", errors="replace").split("\n")
    ]
    if lines and not lines[-1]:
        lines.pop()
    return lines


def rib_entry_from_string(line: str) -> RIBMessage:
    """
    Parse one adj-rib line.

    Args:
        line: Line without trailing newline

    Returns:
        RIB message with undecoded details

    Raises:
        ParseError: If the line does not match the adj-rib grammar
    """
    match = RIB_LINE_RE.match(line)
    if not match:
        raise ParseError(f"Unable to parse RIB line: {line}")

    return RIBMessage(
        peer_ip=match.group("neighbor"),
        peer_as=int(match.group("peer_as")),
        local_ip=match.group("local_ip"),
        local_as=int(match.group("local_as")),
        router_id=match.group("router_id"),
        afi=match.group("afi"),
        safi=match.group("safi"),
        details=match.group("details"),
    )


def rib_from_bytes(data: bytes) -> list[RIBMessage]:
    """
    Parse a complete adj-rib dump.

    Args:
        data: exabgpcli output

    Returns:
        One RIB message per line

    Raises:
        ParseError: On the first line that does not parse; no partial
            result is returned
    """
    return [rib_entry_from_string(line) for line in _lines(data)]


def parse_neighbor_summary(line: str) -> NeighborSummary:
    """
    Parse one row of ``show neighbor summary``.

    Args:
        line: Row without trailing newline

    Returns:
        Neighbor summary

    Raises:
        ParseError: If the row does not match
    """
    match = SUMMARY_LINE_RE.match(line)
    if not match:
        raise ParseError(f"Unable to parse neighbor summary: {line}")

    return NeighborSummary(
        ip_address=match.group("peer"),
        asn=int(match.group("asn")),
        up_down=match.group("up_down"),
        state=match.group("state"),
        sent=int(match.group("sent")),
        received=int(match.group("received")),
    )


def summaries_from_bytes(data: bytes) -> list[NeighborSummary]:
    """
    Parse ``show neighbor summary`` output, skipping the header and blank lines.

    Raises:
        ParseError: On the first row that does not parse
    """
    summaries: list[NeighborSummary] = []
    for line in _lines(data):
        if not line.strip() or line.startswith(SUMMARY_HEADER_PREFIX):
            continue
        summaries.append(parse_neighbor_summary(line))
    return summaries
