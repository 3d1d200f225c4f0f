"""Pydantic model for BGP path attributes."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Attribute(BaseModel):
    """
    BGP path attributes shared by every route of one announcement.

    Built both from the JSON ``attribute`` object and from the text
    attribute fragment. Zero values mean "absent": a MED or local
    preference of 0 and empty lists are never distinguished from a
    missing attribute.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    med: int = Field(0, description="Multi-Exit Discriminator")
    origin: str = Field("", description="Origin (igp, egp, incomplete)")
    as_path: list[int] = Field(
        default_factory=list, alias="as-path", description="AS_PATH"
    )
    local_preference: int = Field(
        0, alias="local-preference", description="Local preference"
    )
    community: list[str] = Field(
        default_factory=list, description="Communities as asn:value"
    )
    extended_community: list[str] = Field(
        default_factory=list,
        alias="extended-community",
        description="Extended communities",
    )
    cluster_list: list[str] = Field(
        default_factory=list, alias="cluster-list", description="Cluster list"
    )
    originator_id: str = Field("", alias="originator-id", description="Originator ID")

    @field_validator("as_path", mode="before")
    @classmethod
    def _flatten_as_path(cls, value: Any) -> Any:
        # AS_SET segments arrive as nested lists
        if not isinstance(value, list):
            return value
        flat: list[Any] = []
        for asn in value:
            if isinstance(asn, list):
                flat.extend(asn)
            else:
                flat.append(asn)
        return flat

    @field_validator("community", mode="before")
    @classmethod
    def _render_communities(cls, value: Any) -> Any:
        # JSON encodes each community as an [asn, value] pair
        if not isinstance(value, list):
            return value
        return [
            ":".join(str(part) for part in c) if isinstance(c, list) else c
            for c in value
        ]

    @field_validator("extended_community", mode="before")
    @classmethod
    def _render_extended_communities(cls, value: Any) -> Any:
        # JSON encodes each extended community as {"value": ..., "string": ...}
        if not isinstance(value, list):
            return value
        return [
            c.get("string", str(c.get("value", ""))) if isinstance(c, dict) else c
            for c in value
        ]
