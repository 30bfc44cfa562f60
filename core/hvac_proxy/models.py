"""
HVAC Data Models

Typed view of the status document the thermostat posts to ``/status``.
Field aliases map the device's terse XML element names; serialization aliases
give the JSON names used when the document is published.
"""

import xml.etree.ElementTree as ET
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ParseFailureError

STATUS_ROOT = "status"


class Zone(BaseModel):
    """One climate zone reported by the thermostat."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = 0
    current_temp: float = Field(0.0, validation_alias="rt", serialization_alias="currentTemp")
    relative_humidity: int = Field(0, validation_alias="rh", serialization_alias="relativeHumidity")
    heat_set_point: float = Field(0.0, validation_alias="htsp", serialization_alias="heatSetPoint")
    cool_set_point: float = Field(0.0, validation_alias="clsp", serialization_alias="coolSetPoint")


class IndoorUnit(BaseModel):
    """Indoor unit (furnace / air handler) section."""

    cfm: int = 0  # Fan speed in cubic feet per minute
    opstat: str = ""  # Operation status, numeric stage or a token like "off"


class TelemetryDocument(BaseModel):
    """Parsed ``<status>`` document."""

    model_config = ConfigDict(populate_by_name=True)

    local_time: str = Field("", validation_alias="localTime", serialization_alias="localTime")
    outdoor_air_temp: float = Field(0.0, validation_alias="oat", serialization_alias="outdoorAirTemp")
    filter_level: int = Field(0, validation_alias="filtrlvl", serialization_alias="filterLevel")
    idu: IndoorUnit = Field(default_factory=IndoorUnit)
    zones: list[Zone] = Field(default_factory=list)

    @property
    def fan_cfm(self) -> int:
        return self.idu.cfm

    @property
    def operation_status(self) -> str:
        return self.idu.opstat

    @property
    def first_zone(self) -> Optional[Zone]:
        return self.zones[0] if self.zones else None

    def to_json(self) -> str:
        """Serialize with the published (camelCase) field names."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_xml(cls, data: bytes) -> "TelemetryDocument":
        """Decode a status document.

        Missing or empty elements keep their zero value.

        Raises:
            ParseFailureError: If the XML is malformed, the root element is
                not <status>, or a value has the wrong type
        """
        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            raise ParseFailureError(f"failed to parse XML: {e}") from e

        if _local_name(root.tag) != STATUS_ROOT:
            raise ParseFailureError(
                f"expected element type <{STATUS_ROOT}> but have <{_local_name(root.tag)}>"
            )

        try:
            return cls.model_validate(_status_fields(root))
        except ValidationError as e:
            raise ParseFailureError(f"invalid status document: {e}") from e


def _local_name(tag: str) -> str:
    """Strip the '{namespace}' prefix ElementTree puts on tags."""
    return tag.rpartition("}")[2]


def _text(elem: ET.Element) -> Optional[str]:
    text = (elem.text or "").strip()
    return text or None


def _leaf_fields(elem: ET.Element) -> dict[str, Any]:
    fields = {}
    for child in elem:
        value = _text(child)
        if value is not None:
            fields[_local_name(child.tag)] = value
    return fields


def _zone_fields(elem: ET.Element) -> dict[str, Any]:
    fields = _leaf_fields(elem)
    zone_id = (elem.get("id") or "").strip()
    if zone_id:
        fields["id"] = zone_id
    return fields


def _status_fields(root: ET.Element) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for child in root:
        name = _local_name(child.tag)
        if name == "idu":
            fields["idu"] = _leaf_fields(child)
        elif name == "zones":
            # Repeated <zones> elements accumulate, in document order
            fields.setdefault("zones", []).extend(
                _zone_fields(zone) for zone in child if _local_name(zone.tag) == "zone"
            )
        else:
            value = _text(child)
            if value is not None:
                fields[name] = value
    return fields
