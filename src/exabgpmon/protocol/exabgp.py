"""ExaBGP API definitions: event types, families and the JSON envelope."""

from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from exabgpmon.models.attribute import Attribute

if TYPE_CHECKING:
    from exabgpmon.models.event import Event


class EventType(str, Enum):
    """Values of the top-level ``type`` key."""

    UPDATE = "update"
    STATE = "state"
    NOTIFICATION = "notification"
    OPEN = "open"
    KEEPALIVE = "keepalive"
    SIGNAL = "signal"


class Family(str, Enum):
    """Address families, spelled the way ExaBGP keys them."""

    IPV4_UNICAST = "ipv4 unicast"
    IPV4_FLOW = "ipv4 flow"
    IPV6_UNICAST = "ipv6 unicast"
    IPV6_FLOW = "ipv6 flow"


class Direction(str, Enum):
    """Direction of an update relative to the ExaBGP speaker."""

    SEND = "send"
    RECEIVE = "receive"


class PeerState(str, Enum):
    """BGP session states reported by state events."""

    UP = "up"
    DOWN = "down"
    CONNECTED = "connected"
    UNKNOWN = "unknown"


# Bytes some ExaBGP versions interleave into otherwise valid JSON
CONTROL_BYTES = (b"\x01", b"\x00", b"\x04")

# Reported by the peer status tracker before any state event was seen
UNKNOWN_STATUS_REASON = "no known last status"


class NeighborAddress(BaseModel):
    """``neighbor.address``."""

    local: str = ""
    peer: str = ""


class NeighborASN(BaseModel):
    """``neighbor.asn``."""

    local: int = 0
    peer: int = 0


class UpdateBody(BaseModel):
    """
    ``neighbor.message.update``.

    Route payloads are kept undecoded: route elements change shape between
    ExaBGP versions and are normalized by the update parser.
    """

    attribute: Attribute = Field(default_factory=Attribute)
    announce: dict[str, Any] = Field(default_factory=dict)
    withdraw: dict[str, Any] = Field(default_factory=dict)


class NeighborMessage(BaseModel):
    """``neighbor.message``; only updates are decoded."""

    model_config = ConfigDict(extra="ignore")

    update: UpdateBody | None = None


class Neighbor(BaseModel):
    """``neighbor`` envelope common to every event type."""

    model_config = ConfigDict(extra="ignore")

    address: NeighborAddress = Field(default_factory=NeighborAddress)
    asn: NeighborASN = Field(default_factory=NeighborASN)
    direction: str = ""
    message: NeighborMessage | None = None
    state: str = ""
    reason: str = ""


class FlowPayload(BaseModel):
    """One flow-spec rule as ExaBGP renders it."""

    model_config = ConfigDict(extra="ignore")

    destination_ipv4: list[str] = Field(default_factory=list, alias="destination-ipv4")
    source_ipv4: list[str] = Field(default_factory=list, alias="source-ipv4")
    destination_ipv6: list[str] = Field(default_factory=list, alias="destination-ipv6")
    source_ipv6: list[str] = Field(default_factory=list, alias="source-ipv6")
    string: str = ""


class JSONEvent(BaseModel):
    """Top-level JSON object of one API line."""

    model_config = ConfigDict(extra="ignore")

    exabgp: str = ""
    time: float = 0.0
    host: str = ""
    pid: int = 0
    ppid: int = 0
    counter: int = 0
    type: str
    neighbor: Neighbor = Field(default_factory=Neighbor)


class ExaBGPParseError(Exception):
    """Base exception for input that could not be decoded."""

    def __init__(self, message: str, event: "Event | None" = None) -> None:
        super().__init__(message)
        # Partially decoded event, when the envelope itself was readable
        self.event = event


class DecodeError(ExaBGPParseError):
    """JSON line could not be decoded, even after removing control bytes."""


class SchemaError(ExaBGPParseError):
    """JSON decoded but does not have a shape we accept."""


class UnknownEventTypeError(SchemaError):
    """Event ``type`` is not one of EventType."""


class RouteShapeError(SchemaError):
    """A route or flow element has an unexpected JSON shape."""

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class ParseError(ExaBGPParseError):
    """Text line does not match the expected grammar."""


class FamilyMismatchError(ParseError):
    """RIB entry projected as a family it does not belong to."""
