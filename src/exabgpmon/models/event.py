"""Pydantic models for events decoded from the ExaBGP JSON stream."""

from pydantic import BaseModel, ConfigDict, Field

from exabgpmon.models.attribute import Attribute


class Peer(BaseModel):
    """Remote side of a BGP session."""

    model_config = ConfigDict(frozen=True)

    ip: str = Field("", description="Peer IP address")
    asn: int = Field(0, description="Peer ASN")
    state: str = Field(
        "", description="Session state (up, down, connected), set on state events"
    )
    reason: str = Field("", description="Reason for the state, usually only on down")


class Local(BaseModel):
    """Local side of a BGP session (the ExaBGP speaker itself)."""

    model_config = ConfigDict(frozen=True)

    ip: str = Field("", description="Local IP address")
    asn: int = Field(0, description="Local ASN")


class UnicastAnnouncement(BaseModel):
    """Unicast routes announced under one next-hop."""

    model_config = ConfigDict(frozen=True)

    attributes: Attribute = Field(default_factory=Attribute)
    nlri: list[str] = Field(default_factory=list, description="Announced prefixes")


class UnicastWithdrawal(BaseModel):
    """Unicast routes withdrawn by one update."""

    model_config = ConfigDict(frozen=True)

    attributes: Attribute = Field(default_factory=Attribute)
    nlri: list[str] = Field(default_factory=list, description="Withdrawn prefixes")


class Flow(BaseModel):
    """One flow-spec rule."""

    model_config = ConfigDict(frozen=True)

    attributes: Attribute = Field(default_factory=Attribute)
    destination: list[str] = Field(default_factory=list)
    source: list[str] = Field(default_factory=list)
    string: str = Field("", description="Rule as rendered by ExaBGP")


class FlowAnnouncement(BaseModel):
    """Flow-spec rules announced under one next-hop."""

    model_config = ConfigDict(frozen=True)

    attributes: Attribute = Field(default_factory=Attribute)
    flows: list[Flow] = Field(default_factory=list)


class Announcements(BaseModel):
    """All routes announced by one update, per family, keyed by next-hop."""

    model_config = ConfigDict(frozen=True)

    ipv4_unicast: dict[str, UnicastAnnouncement] = Field(default_factory=dict)
    ipv4_flow: dict[str, FlowAnnouncement] = Field(default_factory=dict)
    ipv6_unicast: dict[str, UnicastAnnouncement] = Field(default_factory=dict)
    ipv6_flow: dict[str, FlowAnnouncement] = Field(default_factory=dict)


class Withdrawals(BaseModel):
    """All routes withdrawn by one update, per family."""

    model_config = ConfigDict(frozen=True)

    ipv4_unicast: list[UnicastWithdrawal] = Field(default_factory=list)
    ipv4_flow: list[Flow] = Field(default_factory=list)
    ipv6_unicast: list[UnicastWithdrawal] = Field(default_factory=list)
    ipv6_flow: list[Flow] = Field(default_factory=list)


class Event(BaseModel):
    """
    One message from the ExaBGP JSON API.

    Built completely by the decoder before it is handed to anything else,
    so it can be shared between tasks without locking.
    """

    model_config = ConfigDict(frozen=True)

    version: str = Field("", description="ExaBGP version that emitted the event")
    time: float = Field(0.0, description="Emission time (epoch seconds)")
    host: str = Field("", description="Host running ExaBGP")
    pid: int = Field(0, description="ExaBGP process ID")
    ppid: int = Field(0, description="ExaBGP parent process ID")
    counter: int = Field(0, description="Per-process message counter")
    type: str = Field(..., description="Event type (update, state, ...)")
    peer: Peer = Field(default_factory=Peer)
    local: Local = Field(default_factory=Local)
    direction: str = Field("", description="send or receive")
    announcements: Announcements | None = None
    withdrawals: Withdrawals | None = None
