"""Enumerations used by plant model component properties.

Selection properties hold a member of one of these enums. The string values
are the ones written to both file formats, so they must stay stable.

Categories:
    - Component kinds: ComponentKind
    - Points and paths: PointType, LinerType
    - Vehicles: EnergyState, ProcState, VehicleState, IntegrationLevel
    - Blocks: BlockType
    - Locations: LocationRepresentation
"""

from enum import Enum
from typing import Dict, Optional, Type


class ComponentKind(str, Enum):
    """Closed set of component kinds in a plant model.

    The value doubles as the element tag in legacy documents.
    """
    POINT = "point"
    PATH = "path"
    LOCATION = "location"
    LOCATION_TYPE = "locationType"
    LINK = "link"
    BLOCK = "block"
    GROUP = "group"
    STATIC_ROUTE = "staticRoute"
    VEHICLE = "vehicle"
    LAYOUT = "layout"


class PointType(str, Enum):
    """Role of a point in the driving course."""
    HALT = "HALT_POSITION"
    REPORT = "REPORT_POSITION"
    PARK = "PARK_POSITION"


class LinerType(str, Enum):
    """How a path is drawn between its two points."""
    DIRECT = "DIRECT"
    ELBOW = "ELBOW"
    SLANTED = "SLANTED"
    POLYPATH = "POLYPATH"
    BEZIER = "BEZIER"
    BEZIER_3 = "BEZIER_3"

    @property
    def needs_control_points(self) -> bool:
        return self in (LinerType.BEZIER, LinerType.BEZIER_3)


class EnergyState(str, Enum):
    CRITICAL = "CRITICAL"
    DEGRADED = "DEGRADED"
    GOOD = "GOOD"


class ProcState(str, Enum):
    """Order processing state of a vehicle."""
    UNAVAILABLE = "UNAVAILABLE"
    IDLE = "IDLE"
    AWAITING_ORDER = "AWAITING_ORDER"
    PROCESSING_ORDER = "PROCESSING_ORDER"


class VehicleState(str, Enum):
    UNKNOWN = "UNKNOWN"
    UNAVAILABLE = "UNAVAILABLE"
    ERROR = "ERROR"
    IDLE = "IDLE"
    EXECUTING = "EXECUTING"
    CHARGING = "CHARGING"


class IntegrationLevel(str, Enum):
    TO_BE_IGNORED = "TO_BE_IGNORED"
    TO_BE_NOTICED = "TO_BE_NOTICED"
    TO_BE_RESPECTED = "TO_BE_RESPECTED"
    TO_BE_UTILIZED = "TO_BE_UTILIZED"


class BlockType(str, Enum):
    SINGLE_VEHICLE_ONLY = "SINGLE_VEHICLE_ONLY"
    SAME_DIRECTION_ONLY = "SAME_DIRECTION_ONLY"


class LocationRepresentation(str, Enum):
    """Default symbol drawn for a location or location type."""
    NONE = "NONE"
    DEFAULT = "DEFAULT"
    LOAD_TRANSFER_GENERIC = "LOAD_TRANSFER_GENERIC"
    LOAD_TRANSFER_ALT_1 = "LOAD_TRANSFER_ALT_1"
    LOAD_TRANSFER_ALT_2 = "LOAD_TRANSFER_ALT_2"
    WORKING_GENERIC = "WORKING_GENERIC"
    WORKING_ALT_1 = "WORKING_ALT_1"
    RECHARGE_GENERIC = "RECHARGE_GENERIC"
    RECHARGE_ALT_1 = "RECHARGE_ALT_1"


# Enums that may appear in selection properties, by class name
SELECTION_ENUMS: Dict[str, Type[Enum]] = {
    cls.__name__: cls
    for cls in (
        PointType,
        LinerType,
        EnergyState,
        ProcState,
        VehicleState,
        IntegrationLevel,
        BlockType,
        LocationRepresentation,
    )
}


def parse_enum(enum_cls: Type[Enum], text: Optional[str]):
    """Return the member of enum_cls with the given value or name.

    Unknown text is returned unchanged so that callers can keep it for
    reporting. None stays None.
    """
    if text is None or isinstance(text, enum_cls):
        return text
    try:
        return enum_cls(text)
    except ValueError:
        pass
    try:
        return enum_cls[text]
    except KeyError:
        return text


__all__ = [
    "ComponentKind",
    "PointType",
    "LinerType",
    "EnergyState",
    "ProcState",
    "VehicleState",
    "IntegrationLevel",
    "BlockType",
    "LocationRepresentation",
    "SELECTION_ENUMS",
    "parse_enum",
]
