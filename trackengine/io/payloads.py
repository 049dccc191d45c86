"""
Pydantic Models for inbound editor payloads

Shape-checks the {stations, lines} snapshot and the change-notification
payload handed over by the editor. Field aliases follow the editor's
camelCase document keys; snake_case names are accepted as well.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StationPayload(BaseModel):
    """
    Station record as stored by the editor.

    lat/lng are left untyped here: they may arrive as text and are coerced
    by trackengine.core.validation.parse_coordinate in the loader.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    lat: Any = None
    lng: Any = None
    name: str = ""
    is_waypoint: bool = Field(default=False, alias="isWaypoint")

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        """Treat a missing name as empty."""
        return "" if v is None else str(v)


class LinePayload(BaseModel):
    """Line record as stored by the editor."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    name: str = ""
    color: str = "#000000"
    station_ids: List[str] = Field(default_factory=list, alias="stationIds")
    waypoint_overrides: List[str] = Field(default_factory=list, alias="waypointOverrides")
    mode: Optional[str] = None
    icon: Optional[str] = None
    line_group_id: Optional[str] = Field(default=None, alias="lineGroupId")

    @field_validator("station_ids", "waypoint_overrides", mode="before")
    @classmethod
    def validate_id_list(cls, v: Any) -> List[str]:
        """Treat null lists as empty."""
        return [] if v is None else v

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        """Normalize hex colors to lowercase so palette lookups match."""
        return v.strip().lower()


class SnapshotPayload(BaseModel):
    """
    Read-only {stations, lines} snapshot, keyed by id.

    Records are left untyped so one malformed record is rejected on its own
    by the loader instead of failing the whole document.
    """
    model_config = ConfigDict(extra="ignore")

    stations: Dict[str, Any] = Field(default_factory=dict)
    lines: Dict[str, Any] = Field(default_factory=dict)


class ChangeSetPayload(BaseModel):
    """Change notification naming what changed since the last render."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    all: bool = False
    station_ids: List[str] = Field(default_factory=list, alias="stationIds")
    line_ids: List[str] = Field(default_factory=list, alias="lineKeys")
    segment_keys: List[str] = Field(default_factory=list, alias="segmentKeys")

    @field_validator("all", mode="before")
    @classmethod
    def validate_all(cls, v: Any) -> bool:
        """The editor bumps a counter instead of a flag; any truthy value means all."""
        return bool(v)
