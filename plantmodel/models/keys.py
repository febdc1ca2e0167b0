"""Property keys shared by components, converters and the validator.

Component property keys identify properties inside a component. Overlay keys
are the stable vocabulary of the visual layout model elements in the unified
format; they are also used as property keys on the components that carry
presentation data.
"""


class PropKeys:
    """Keys of first-class component properties."""

    NAME = "Name"
    MISCELLANEOUS = "Miscellaneous"
    TYPE = "Type"

    # Points and locations
    MODEL_X_POSITION = "modelXPosition"
    MODEL_Y_POSITION = "modelYPosition"
    VEHICLE_ORIENTATION_ANGLE = "vehicleOrientationAngle"

    # Paths and links
    START_COMPONENT = "startComponent"
    END_COMPONENT = "endComponent"
    LENGTH = "length"
    ROUTING_COST = "cost"
    MAX_VELOCITY = "maxVelocity"
    MAX_REVERSE_VELOCITY = "maxReverseVelocity"
    LOCKED = "locked"
    ALLOWED_OPERATIONS = "AllowedOperations"

    # Locations and location types
    DEFAULT_REPRESENTATION = "defaultRepresentation"

    # Blocks, groups, static routes
    BLOCK_ELEMENTS = "blockElements"
    GROUP_ELEMENTS = "groupElements"
    STATIC_ROUTE_ELEMENTS = "staticRouteElements"

    # Vehicles
    ENERGY_LEVEL_CRITICAL = "energyLevelCritical"
    ENERGY_LEVEL_GOOD = "energyLevelGood"
    ENERGY_LEVEL_FULLY_RECHARGED = "energyLevelFullyRecharged"
    ENERGY_LEVEL_SUFFICIENTLY_RECHARGED = "energyLevelSufficientlyRecharged"
    ENERGY_LEVEL = "energyLevel"
    ENERGY_STATE = "energyState"
    LOADED = "loaded"
    STATE = "state"
    PROC_STATE = "procState"
    INTEGRATION_LEVEL = "integrationLevel"
    POINT = "point"
    NEXT_POINT = "nextPoint"
    PRECISE_POSITION = "precisePosition"
    ORIENTATION_ANGLE = "orientationAngle"

    # Layout
    SCALE_X = "scaleX"
    SCALE_Y = "scaleY"


class OverlayKeys:
    """Keys of presentation properties kept in the visual layout."""

    POSITION_X = "POSITION_X"
    POSITION_Y = "POSITION_Y"
    LABEL_OFFSET_X = "LABEL_OFFSET_X"
    LABEL_OFFSET_Y = "LABEL_OFFSET_Y"
    LABEL_ORIENTATION_ANGLE = "LABEL_ORIENTATION_ANGLE"
    CONN_TYPE = "CONN_TYPE"
    CONTROL_POINTS = "CONTROL_POINTS"
    COLOR = "COLOR"
    ROUTE_COLOR = "ROUTE_COLOR"


class MiscKeys:
    """Well-known keys of the miscellaneous property bag."""

    DEFAULT_LOCATION_SYMBOL = "tcs:defaultLocationSymbol"
    DEFAULT_LOCATION_TYPE_SYMBOL = "tcs:defaultLocationTypeSymbol"


# Values that mean "no point referenced" for vehicle point references
NO_REFERENCE = (None, "", "null")


def is_no_reference(value) -> bool:
    """Return True if value is one of the 'no reference' sentinels."""
    return value in NO_REFERENCE


__all__ = ["PropKeys", "OverlayKeys", "MiscKeys", "NO_REFERENCE", "is_no_reference"]
