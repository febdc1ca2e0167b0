"""Plant model components.

One class per ComponentKind. A component is a name plus an ordered mapping of
typed properties (see properties.py). Components are constructed either with
the full default property set, as an editor creates them, or bare (name and
miscellaneous bag only) when a reader populates them property by property:

    point = PointModel("P1")                         # all defaults
    bare = PointModel("P1", with_defaults=False)     # properties added later
    bare.set_property(PropKeys.TYPE, SelectionProperty(PointType, PointType.HALT))

Use create_component() to build a component from its kind.
"""

import math
from typing import ClassVar, Dict, List, Optional, Type

from plantmodel.config.settings import get_default
from plantmodel.models.enums import (
    BlockType,
    ComponentKind,
    EnergyState,
    IntegrationLevel,
    LinerType,
    PointType,
    ProcState,
    VehicleState,
)
from plantmodel.models.keys import OverlayKeys, PropKeys
from plantmodel.models.properties import (
    AngleProperty,
    BooleanProperty,
    ColorProperty,
    CoordinateProperty,
    IntegerProperty,
    KeyValueSetProperty,
    LengthProperty,
    LocationTypeProperty,
    PercentProperty,
    Property,
    SelectionProperty,
    SpeedProperty,
    StringProperty,
    StringSetProperty,
    SymbolProperty,
    TripleProperty,
)


class ModelComponent:
    """Base class for all plant model components."""

    kind: ClassVar[ComponentKind]

    def __init__(self, name: Optional[str] = "", with_defaults: bool = True):
        self._properties: Dict[str, Property] = {
            PropKeys.NAME: StringProperty(name),
            PropKeys.MISCELLANEOUS: KeyValueSetProperty(),
        }
        if with_defaults:
            self._create_properties()

    def _create_properties(self) -> None:
        """Add the kind-specific default properties."""

    @property
    def name(self) -> Optional[str]:
        prop = self._properties.get(PropKeys.NAME)
        return prop.value if prop is not None else None

    @name.setter
    def name(self, name: str) -> None:
        prop = self._properties.get(PropKeys.NAME)
        if prop is None:
            self._properties[PropKeys.NAME] = StringProperty(name)
        else:
            prop.value = name

    @property
    def miscellaneous(self) -> KeyValueSetProperty:
        prop = self._properties.get(PropKeys.MISCELLANEOUS)
        if prop is None:
            prop = KeyValueSetProperty()
            self._properties[PropKeys.MISCELLANEOUS] = prop
        return prop

    @property
    def properties(self) -> Dict[str, Property]:
        """Copy of the property mapping, in insertion order."""
        return dict(self._properties)

    def get_property(self, key: str) -> Optional[Property]:
        return self._properties.get(key)

    def set_property(self, key: str, prop: Property) -> None:
        self._properties[key] = prop

    def remove_property(self, key: str) -> Optional[Property]:
        return self._properties.pop(key, None)

    def has_property(self, key: str) -> bool:
        return key in self._properties

    def property_value(self, key: str, default=None):
        """Value of the property with the given key, or default if missing."""
        prop = self._properties.get(key)
        return prop.value if prop is not None else default

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


def _label_defaults() -> Dict[str, Property]:
    return {
        OverlayKeys.LABEL_OFFSET_X: StringProperty(str(get_default('label_offset_x'))),
        OverlayKeys.LABEL_OFFSET_Y: StringProperty(str(get_default('label_offset_y'))),
        OverlayKeys.LABEL_ORIENTATION_ANGLE: StringProperty(""),
    }


class PointModel(ModelComponent):
    kind = ComponentKind.POINT

    def _create_properties(self) -> None:
        self._properties.update({
            PropKeys.MODEL_X_POSITION: CoordinateProperty(0, "mm"),
            PropKeys.MODEL_Y_POSITION: CoordinateProperty(0, "mm"),
            PropKeys.VEHICLE_ORIENTATION_ANGLE: AngleProperty(math.nan, "deg"),
            PropKeys.TYPE: SelectionProperty(PointType, PointType.HALT),
            OverlayKeys.POSITION_X: StringProperty("0"),
            OverlayKeys.POSITION_Y: StringProperty("0"),
        })
        self._properties.update(_label_defaults())


class PathModel(ModelComponent):
    kind = ComponentKind.PATH

    def _create_properties(self) -> None:
        self._properties.update({
            PropKeys.LENGTH: LengthProperty(1000.0, "mm"),
            PropKeys.ROUTING_COST: IntegerProperty(1),
            PropKeys.MAX_VELOCITY: SpeedProperty(1000.0, "mm/s"),
            PropKeys.MAX_REVERSE_VELOCITY: SpeedProperty(0.0, "mm/s"),
            PropKeys.START_COMPONENT: StringProperty(""),
            PropKeys.END_COMPONENT: StringProperty(""),
            PropKeys.LOCKED: BooleanProperty(False),
            OverlayKeys.CONN_TYPE: SelectionProperty(LinerType, LinerType.DIRECT),
            OverlayKeys.CONTROL_POINTS: StringProperty(""),
        })


class LocationTypeModel(ModelComponent):
    kind = ComponentKind.LOCATION_TYPE

    def _create_properties(self) -> None:
        self._properties.update({
            PropKeys.ALLOWED_OPERATIONS: StringSetProperty(),
            PropKeys.DEFAULT_REPRESENTATION: SymbolProperty(None),
        })


class LocationModel(ModelComponent):
    kind = ComponentKind.LOCATION

    def _create_properties(self) -> None:
        self._properties.update({
            PropKeys.MODEL_X_POSITION: CoordinateProperty(0, "mm"),
            PropKeys.MODEL_Y_POSITION: CoordinateProperty(0, "mm"),
            PropKeys.TYPE: LocationTypeProperty(""),
            PropKeys.DEFAULT_REPRESENTATION: SymbolProperty(None),
            OverlayKeys.POSITION_X: StringProperty("0"),
            OverlayKeys.POSITION_Y: StringProperty("0"),
        })
        self._properties.update(_label_defaults())


class LinkModel(ModelComponent):
    """Connection between a point (start) and a location (end)."""

    kind = ComponentKind.LINK

    def _create_properties(self) -> None:
        self._properties.update({
            PropKeys.START_COMPONENT: StringProperty(""),
            PropKeys.END_COMPONENT: StringProperty(""),
            PropKeys.ALLOWED_OPERATIONS: StringSetProperty(),
        })

    @staticmethod
    def link_name(point_name: str, location_name: str) -> str:
        return f"{point_name} --- {location_name}"


class MemberListModel(ModelComponent):
    """Component whose main content is an ordered list of member names."""

    ELEMENTS_KEY: ClassVar[str]

    @property
    def members(self) -> List[str]:
        prop = self._properties.get(self.ELEMENTS_KEY)
        return list(prop.items) if prop is not None else []


class BlockModel(MemberListModel):
    kind = ComponentKind.BLOCK
    ELEMENTS_KEY = PropKeys.BLOCK_ELEMENTS

    def _create_properties(self) -> None:
        self._properties.update({
            PropKeys.BLOCK_ELEMENTS: StringSetProperty(),
            PropKeys.TYPE: SelectionProperty(BlockType, BlockType.SINGLE_VEHICLE_ONLY),
            OverlayKeys.COLOR: ColorProperty(get_default('color')),
        })


class GroupModel(MemberListModel):
    kind = ComponentKind.GROUP
    ELEMENTS_KEY = PropKeys.GROUP_ELEMENTS

    def _create_properties(self) -> None:
        self._properties[PropKeys.GROUP_ELEMENTS] = StringSetProperty()


class StaticRouteModel(MemberListModel):
    kind = ComponentKind.STATIC_ROUTE
    ELEMENTS_KEY = PropKeys.STATIC_ROUTE_ELEMENTS

    def _create_properties(self) -> None:
        self._properties.update({
            PropKeys.STATIC_ROUTE_ELEMENTS: StringSetProperty(),
            OverlayKeys.COLOR: ColorProperty(get_default('color')),
        })


class VehicleModel(ModelComponent):
    kind = ComponentKind.VEHICLE

    def _create_properties(self) -> None:
        self._properties.update({
            PropKeys.LENGTH: LengthProperty(1000.0, "mm"),
            PropKeys.ENERGY_LEVEL_CRITICAL: PercentProperty(30),
            PropKeys.ENERGY_LEVEL_GOOD: PercentProperty(90),
            PropKeys.ENERGY_LEVEL_FULLY_RECHARGED: PercentProperty(90),
            PropKeys.ENERGY_LEVEL_SUFFICIENTLY_RECHARGED: PercentProperty(30),
            PropKeys.ENERGY_LEVEL: PercentProperty(100),
            PropKeys.ENERGY_STATE: SelectionProperty(EnergyState, EnergyState.GOOD),
            PropKeys.LOADED: BooleanProperty(False),
            PropKeys.STATE: SelectionProperty(VehicleState, VehicleState.UNKNOWN),
            PropKeys.PROC_STATE: SelectionProperty(ProcState, ProcState.UNAVAILABLE),
            PropKeys.INTEGRATION_LEVEL: SelectionProperty(
                IntegrationLevel, IntegrationLevel.TO_BE_RESPECTED
            ),
            PropKeys.POINT: StringProperty(""),
            PropKeys.NEXT_POINT: StringProperty(""),
            PropKeys.PRECISE_POSITION: TripleProperty(None),
            PropKeys.ORIENTATION_ANGLE: AngleProperty(math.nan, "deg"),
            PropKeys.MAX_VELOCITY: SpeedProperty(1000.0, "mm/s"),
            PropKeys.MAX_REVERSE_VELOCITY: SpeedProperty(1000.0, "mm/s"),
            OverlayKeys.ROUTE_COLOR: ColorProperty(get_default('color')),
        })


class LayoutModel(ModelComponent):
    """Visual layout settings. There is one per system model."""

    kind = ComponentKind.LAYOUT

    def __init__(self, name: Optional[str] = None, with_defaults: bool = True):
        super().__init__(get_default('layout_name') if name is None else name, with_defaults)

    def _create_properties(self) -> None:
        scale = get_default('scale')
        self._properties.update({
            PropKeys.SCALE_X: LengthProperty(scale, "mm"),
            PropKeys.SCALE_Y: LengthProperty(scale, "mm"),
        })


COMPONENT_TYPES: Dict[ComponentKind, Type[ModelComponent]] = {
    ComponentKind.POINT: PointModel,
    ComponentKind.PATH: PathModel,
    ComponentKind.LOCATION: LocationModel,
    ComponentKind.LOCATION_TYPE: LocationTypeModel,
    ComponentKind.LINK: LinkModel,
    ComponentKind.BLOCK: BlockModel,
    ComponentKind.GROUP: GroupModel,
    ComponentKind.STATIC_ROUTE: StaticRouteModel,
    ComponentKind.VEHICLE: VehicleModel,
    ComponentKind.LAYOUT: LayoutModel,
}


def create_component(
    kind: ComponentKind,
    name: Optional[str] = "",
    with_defaults: bool = True,
) -> ModelComponent:
    """Create a component of the given kind.

    Args:
        kind: Component kind
        name: Component name
        with_defaults: Whether to add the default property set

    Returns:
        New component instance
    """
    return COMPONENT_TYPES[ComponentKind(kind)](name, with_defaults=with_defaults)


__all__ = [
    "ModelComponent",
    "PointModel",
    "PathModel",
    "LocationTypeModel",
    "LocationModel",
    "LinkModel",
    "MemberListModel",
    "BlockModel",
    "GroupModel",
    "StaticRouteModel",
    "VehicleModel",
    "LayoutModel",
    "COMPONENT_TYPES",
    "create_component",
]
