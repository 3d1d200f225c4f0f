"""Pydantic models for entries decoded from exabgpcli text output."""

from pydantic import BaseModel, ConfigDict, Field

from exabgpmon.models.attribute import Attribute


class UnicastRouteEntry(BaseModel):
    """
    One unicast route from ``show adj-rib out extensive``.

    Used for both ipv4 unicast and ipv6 unicast entries.
    """

    model_config = ConfigDict(frozen=True)

    nlri: str = Field(..., description="Prefix")
    next_hop: str = Field(..., description="Next hop, may be the literal 'self'")
    attributes: Attribute = Field(default_factory=Attribute)


class FlowRouteEntry(BaseModel):
    """One flow-spec rule from ``show adj-rib out extensive``."""

    model_config = ConfigDict(frozen=True)

    destination: str = ""
    source: str = ""
    protocol: str = ""
    source_port: str = ""
    destination_port: str = ""
    extended_community: str = ""


class NeighborSummary(BaseModel):
    """One row of ``show neighbor summary``."""

    model_config = ConfigDict(frozen=True)

    ip_address: str = Field(..., description="Peer IP address")
    asn: int = Field(..., description="Peer ASN")
    up_down: str = Field(..., description="Session uptime, or 'down'")
    state: str = Field(..., description="FSM state (idle, active, established, ...)")
    sent: int = Field(0, description="Updates sent")
    received: int = Field(0, description="Updates received")

    @property
    def is_up(self) -> bool:
        """Whether the session is up."""
        return self.up_down != "down"
