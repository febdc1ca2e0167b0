"""Unified Converter - Components ⇄ plant model transfer objects.

Import direction: one function per component kind turns a TO plus the
visual layout overlay into a component with explicit units:

    overlay = LayoutOverlay(plant_model.visual_layouts[0])
    point = import_point(point_to, overlay)
    links = import_links(location_to)

Export direction: export_plant_model() builds a complete PlantModelTO from a
system model, including one visual layout that carries the presentation
properties of points, paths, locations, blocks, static routes and vehicles.

Miscellaneous properties are copied verbatim and in order. The default
location symbol is a first-class SymbolProperty; on export it is written into
the miscellaneous bag (or removed from it when unset), on import it is read
back from there.
"""

import logging
from typing import Callable, Dict, List, Optional

from plantmodel.config.settings import get_default
from plantmodel.core.system_model import SystemModel
from plantmodel.models.components import (
    BlockModel,
    GroupModel,
    LayoutModel,
    LinkModel,
    LocationModel,
    LocationTypeModel,
    ModelComponent,
    PathModel,
    PointModel,
    StaticRouteModel,
    VehicleModel,
)
from plantmodel.models.enums import (
    BlockType,
    ComponentKind,
    LinerType,
    LocationRepresentation,
    PointType,
    parse_enum,
)
from plantmodel.models.keys import MiscKeys, OverlayKeys, PropKeys
from plantmodel.models.properties import (
    KeyValueProperty,
    KeyValueSetProperty,
    StringSetProperty,
)
from plantmodel.models.transfer import (
    BlockTO,
    GroupTO,
    LinkTO,
    LocationTO,
    LocationTypeTO,
    ModelLayoutElementTO,
    PathTO,
    PlantModelTO,
    PointTO,
    PropertyTO,
    StaticRouteTO,
    VehicleTO,
    VisualLayoutTO,
)

logger = logging.getLogger(__name__)


class LayoutOverlay:
    """Name-indexed presentation properties of a visual layout.

    When several model layout elements share a name, the first one wins.
    """

    def __init__(self, visual_layout: Optional[VisualLayoutTO] = None):
        self._elements: Dict[str, Dict[str, str]] = {}
        if visual_layout is not None:
            for element in visual_layout.model_layout_elements:
                self._elements.setdefault(
                    element.visualized_object_name, element.properties_dict()
                )

    def get(self, name: str, key: str, default: Optional[str] = None) -> Optional[str]:
        """Value of key in the layout element for name, or default."""
        element = self._elements.get(name)
        if element is None:
            return default
        return element.get(key, default)

    def __contains__(self, name: str) -> bool:
        return name in self._elements

    def __len__(self) -> int:
        return len(self._elements)


# ============================================================================
# Import
# ============================================================================

def _copy_properties(source, component: ModelComponent) -> None:
    misc = component.miscellaneous
    for prop in source.properties:
        misc.entries.append(KeyValueProperty(prop.name, prop.value))


def _apply_label_overlay(component: ModelComponent, overlay: LayoutOverlay) -> None:
    name = component.name
    component.get_property(OverlayKeys.LABEL_OFFSET_X).value = overlay.get(
        name, OverlayKeys.LABEL_OFFSET_X, str(get_default('label_offset_x')))
    component.get_property(OverlayKeys.LABEL_OFFSET_Y).value = overlay.get(
        name, OverlayKeys.LABEL_OFFSET_Y, str(get_default('label_offset_y')))
    component.get_property(OverlayKeys.LABEL_ORIENTATION_ANGLE).value = overlay.get(
        name, OverlayKeys.LABEL_ORIENTATION_ANGLE, "")


def _apply_position_overlay(component: ModelComponent, x: int, y: int,
                            overlay: LayoutOverlay) -> None:
    name = component.name
    component.get_property(OverlayKeys.POSITION_X).value = overlay.get(
        name, OverlayKeys.POSITION_X, str(x))
    component.get_property(OverlayKeys.POSITION_Y).value = overlay.get(
        name, OverlayKeys.POSITION_Y, str(y))


def _symbol_from_misc(component: ModelComponent, key: str) -> None:
    text = component.miscellaneous.get(key)
    if text is not None:
        component.get_property(PropKeys.DEFAULT_REPRESENTATION).value = \
            parse_enum(LocationRepresentation, text)


def import_point(point_to: PointTO, overlay: LayoutOverlay) -> PointModel:
    point = PointModel(point_to.name)
    point.get_property(PropKeys.MODEL_X_POSITION).set_value_and_unit(point_to.x_position, "mm")
    point.get_property(PropKeys.MODEL_Y_POSITION).set_value_and_unit(point_to.y_position, "mm")
    point.get_property(PropKeys.VEHICLE_ORIENTATION_ANGLE).set_value_and_unit(
        point_to.vehicle_orientation_angle, "deg")
    point.get_property(PropKeys.TYPE).value = parse_enum(PointType, point_to.type)
    _copy_properties(point_to, point)
    _apply_position_overlay(point, point_to.x_position, point_to.y_position, overlay)
    _apply_label_overlay(point, overlay)
    return point


def import_path(path_to: PathTO, overlay: LayoutOverlay) -> PathModel:
    path = PathModel(path_to.name)
    path.get_property(PropKeys.LENGTH).set_value_and_unit(path_to.length, "mm")
    path.get_property(PropKeys.ROUTING_COST).value = path_to.routing_cost
    path.get_property(PropKeys.MAX_VELOCITY).set_value_and_unit(path_to.max_velocity, "mm/s")
    path.get_property(PropKeys.MAX_REVERSE_VELOCITY).set_value_and_unit(
        path_to.max_reverse_velocity, "mm/s")
    path.get_property(PropKeys.START_COMPONENT).value = path_to.source_point
    path.get_property(PropKeys.END_COMPONENT).value = path_to.destination_point
    path.get_property(PropKeys.LOCKED).value = path_to.locked
    _copy_properties(path_to, path)
    path.get_property(OverlayKeys.CONN_TYPE).value = parse_enum(
        LinerType, overlay.get(path.name, OverlayKeys.CONN_TYPE, LinerType.DIRECT.value))
    path.get_property(OverlayKeys.CONTROL_POINTS).value = overlay.get(
        path.name, OverlayKeys.CONTROL_POINTS, "")
    return path


def import_vehicle(vehicle_to: VehicleTO, overlay: LayoutOverlay) -> VehicleModel:
    vehicle = VehicleModel(vehicle_to.name)
    vehicle.get_property(PropKeys.LENGTH).set_value_and_unit(vehicle_to.length, "mm")
    vehicle.get_property(PropKeys.MAX_VELOCITY).set_value_and_unit(vehicle_to.max_velocity, "mm/s")
    vehicle.get_property(PropKeys.MAX_REVERSE_VELOCITY).set_value_and_unit(
        vehicle_to.max_reverse_velocity, "mm/s")
    vehicle.get_property(PropKeys.ENERGY_LEVEL_CRITICAL).value = vehicle_to.energy_level_critical
    vehicle.get_property(PropKeys.ENERGY_LEVEL_GOOD).value = vehicle_to.energy_level_good
    vehicle.get_property(PropKeys.ENERGY_LEVEL_FULLY_RECHARGED).value = \
        vehicle_to.energy_level_fully_recharged
    vehicle.get_property(PropKeys.ENERGY_LEVEL_SUFFICIENTLY_RECHARGED).value = \
        vehicle_to.energy_level_sufficiently_recharged
    # Sentinels such as "null" are kept verbatim
    vehicle.get_property(PropKeys.POINT).value = vehicle_to.current_point
    vehicle.get_property(PropKeys.NEXT_POINT).value = vehicle_to.next_point
    _copy_properties(vehicle_to, vehicle)
    vehicle.get_property(OverlayKeys.ROUTE_COLOR).value = overlay.get(
        vehicle.name, OverlayKeys.ROUTE_COLOR, get_default('color'))
    return vehicle


def import_location_type(location_type_to: LocationTypeTO,
                         overlay: LayoutOverlay) -> LocationTypeModel:
    location_type = LocationTypeModel(location_type_to.name)
    location_type.set_property(
        PropKeys.ALLOWED_OPERATIONS, StringSetProperty(location_type_to.allowed_operations))
    _copy_properties(location_type_to, location_type)
    _symbol_from_misc(location_type, MiscKeys.DEFAULT_LOCATION_TYPE_SYMBOL)
    return location_type


def import_location(location_to: LocationTO, overlay: LayoutOverlay) -> LocationModel:
    location = LocationModel(location_to.name)
    location.get_property(PropKeys.MODEL_X_POSITION).set_value_and_unit(location_to.x_position, "mm")
    location.get_property(PropKeys.MODEL_Y_POSITION).set_value_and_unit(location_to.y_position, "mm")
    location.get_property(PropKeys.TYPE).value = location_to.type
    _copy_properties(location_to, location)
    _symbol_from_misc(location, MiscKeys.DEFAULT_LOCATION_SYMBOL)
    _apply_position_overlay(location, location_to.x_position, location_to.y_position, overlay)
    _apply_label_overlay(location, overlay)
    return location


def import_links(location_to: LocationTO) -> List[LinkModel]:
    """One link per entry of the location's links, named '<point> --- <location>'."""
    links = []
    for link_to in location_to.links:
        link = LinkModel(LinkModel.link_name(link_to.point, location_to.name))
        link.get_property(PropKeys.START_COMPONENT).value = link_to.point
        link.get_property(PropKeys.END_COMPONENT).value = location_to.name
        link.set_property(PropKeys.ALLOWED_OPERATIONS, StringSetProperty(link_to.allowed_operations))
        links.append(link)
    return links


def import_block(block_to: BlockTO, overlay: LayoutOverlay) -> BlockModel:
    block = BlockModel(block_to.name)
    block.set_property(PropKeys.BLOCK_ELEMENTS, StringSetProperty(block_to.members))
    block.get_property(PropKeys.TYPE).value = parse_enum(BlockType, block_to.type)
    _copy_properties(block_to, block)
    block.get_property(OverlayKeys.COLOR).value = overlay.get(
        block.name, OverlayKeys.COLOR, get_default('color'))
    return block


def import_static_route(route_to: StaticRouteTO, overlay: LayoutOverlay) -> StaticRouteModel:
    route = StaticRouteModel(route_to.name)
    route.set_property(PropKeys.STATIC_ROUTE_ELEMENTS, StringSetProperty(route_to.hops))
    _copy_properties(route_to, route)
    route.get_property(OverlayKeys.COLOR).value = overlay.get(
        route.name, OverlayKeys.COLOR, get_default('color'))
    return route


def import_group(group_to: GroupTO, overlay: LayoutOverlay) -> GroupModel:
    group = GroupModel(group_to.name)
    group.set_property(PropKeys.GROUP_ELEMENTS, StringSetProperty(group_to.members))
    _copy_properties(group_to, group)
    return group


def import_layout(layout_to: VisualLayoutTO) -> LayoutModel:
    layout = LayoutModel(layout_to.name)
    layout.get_property(PropKeys.SCALE_X).set_value_and_unit(layout_to.scale_x, "mm")
    layout.get_property(PropKeys.SCALE_Y).set_value_and_unit(layout_to.scale_y, "mm")
    _copy_properties(layout_to, layout)
    return layout


# ============================================================================
# Export
# ============================================================================

def _mm(component: ModelComponent, key: str) -> int:
    return int(round(component.get_property(key).get_value_by_unit("mm")))


def _mm_s(component: ModelComponent, key: str) -> int:
    return int(round(component.get_property(key).get_value_by_unit("mm/s")))


def _int(component: ModelComponent, key: str, default: int = 0) -> int:
    return int(round(float(component.property_value(key, default))))


def _enum_text(value) -> str:
    return value.value if hasattr(value, "value") else str(value)


def _properties_to(misc: KeyValueSetProperty) -> List[PropertyTO]:
    return [PropertyTO(name=key, value=value) for key, value in misc.items()]


def _component_properties(component: ModelComponent, symbol_key: Optional[str] = None) -> List[PropertyTO]:
    """Miscellaneous bag of component, with the default symbol written into it.

    NONE is written like any other symbol. Unrecognised symbol text keeps the
    bag entry it was read from.
    """
    misc = KeyValueSetProperty([KeyValueProperty(k, v) for k, v in component.miscellaneous.items()])
    if symbol_key is not None:
        symbol = component.property_value(PropKeys.DEFAULT_REPRESENTATION)
        if isinstance(symbol, LocationRepresentation):
            misc.set(symbol_key, symbol.value)
        elif symbol is None:
            misc.remove(symbol_key)
    return _properties_to(misc)


def _layout_element(component: ModelComponent, keys: List[str]) -> ModelLayoutElementTO:
    properties = []
    for key in keys:
        prop = component.get_property(key)
        if prop is not None and prop.value is not None:
            properties.append(PropertyTO(name=key, value=_enum_text(prop.value)))
    return ModelLayoutElementTO(visualized_object_name=component.name, properties=properties)


class _Exporter:
    """Accumulates the TOs of one export run."""

    LABEL_KEYS = [
        OverlayKeys.LABEL_OFFSET_X,
        OverlayKeys.LABEL_OFFSET_Y,
        OverlayKeys.LABEL_ORIENTATION_ANGLE,
    ]

    def __init__(self, model: SystemModel):
        self.model = model
        self.plant_model = PlantModelTO(name=model.name, properties=_properties_to(model.properties))
        self.layout_elements: List[ModelLayoutElementTO] = []
        self.links_by_location: Dict[str, List[LinkTO]] = {}
        for link in model.components(ComponentKind.LINK):
            self.links_by_location.setdefault(
                link.property_value(PropKeys.END_COMPONENT), []
            ).append(LinkTO(
                point=link.property_value(PropKeys.START_COMPONENT),
                allowed_operations=list(link.property_value(PropKeys.ALLOWED_OPERATIONS, [])),
            ))

    def point(self, point: ModelComponent) -> None:
        self.plant_model.points.append(PointTO(
            name=point.name,
            x_position=_mm(point, PropKeys.MODEL_X_POSITION),
            y_position=_mm(point, PropKeys.MODEL_Y_POSITION),
            vehicle_orientation_angle=point.get_property(
                PropKeys.VEHICLE_ORIENTATION_ANGLE).get_value_by_unit("deg"),
            type=_enum_text(point.property_value(PropKeys.TYPE)),
            properties=_component_properties(point),
        ))
        self.layout_elements.append(_layout_element(
            point, [OverlayKeys.POSITION_X, OverlayKeys.POSITION_Y] + self.LABEL_KEYS))

    def path(self, path: ModelComponent) -> None:
        self.plant_model.paths.append(PathTO(
            name=path.name,
            source_point=path.property_value(PropKeys.START_COMPONENT),
            destination_point=path.property_value(PropKeys.END_COMPONENT),
            length=_mm(path, PropKeys.LENGTH),
            routing_cost=_int(path, PropKeys.ROUTING_COST, 1),
            max_velocity=_mm_s(path, PropKeys.MAX_VELOCITY),
            max_reverse_velocity=_mm_s(path, PropKeys.MAX_REVERSE_VELOCITY),
            locked=bool(path.property_value(PropKeys.LOCKED, False)),
            properties=_component_properties(path),
        ))
        keys = [OverlayKeys.CONN_TYPE]
        liner_type = parse_enum(LinerType, path.property_value(OverlayKeys.CONN_TYPE))
        if isinstance(liner_type, LinerType) and liner_type.needs_control_points:
            keys.append(OverlayKeys.CONTROL_POINTS)
        self.layout_elements.append(_layout_element(path, keys))

    def vehicle(self, vehicle: ModelComponent) -> None:
        self.plant_model.vehicles.append(VehicleTO(
            name=vehicle.name,
            length=_mm(vehicle, PropKeys.LENGTH),
            energy_level_critical=_int(vehicle, PropKeys.ENERGY_LEVEL_CRITICAL),
            energy_level_good=_int(vehicle, PropKeys.ENERGY_LEVEL_GOOD),
            energy_level_fully_recharged=_int(vehicle, PropKeys.ENERGY_LEVEL_FULLY_RECHARGED, 90),
            energy_level_sufficiently_recharged=_int(
                vehicle, PropKeys.ENERGY_LEVEL_SUFFICIENTLY_RECHARGED, 30),
            max_velocity=_mm_s(vehicle, PropKeys.MAX_VELOCITY),
            max_reverse_velocity=_mm_s(vehicle, PropKeys.MAX_REVERSE_VELOCITY),
            current_point=vehicle.property_value(PropKeys.POINT),
            next_point=vehicle.property_value(PropKeys.NEXT_POINT),
            properties=_component_properties(vehicle),
        ))
        self.layout_elements.append(_layout_element(vehicle, [OverlayKeys.ROUTE_COLOR]))

    def location_type(self, location_type: ModelComponent) -> None:
        self.plant_model.location_types.append(LocationTypeTO(
            name=location_type.name,
            allowed_operations=list(location_type.property_value(PropKeys.ALLOWED_OPERATIONS, [])),
            properties=_component_properties(location_type, MiscKeys.DEFAULT_LOCATION_TYPE_SYMBOL),
        ))

    def location(self, location: ModelComponent) -> None:
        self.plant_model.locations.append(LocationTO(
            name=location.name,
            x_position=_mm(location, PropKeys.MODEL_X_POSITION),
            y_position=_mm(location, PropKeys.MODEL_Y_POSITION),
            type=location.property_value(PropKeys.TYPE),
            links=self.links_by_location.get(location.name, []),
            properties=_component_properties(location, MiscKeys.DEFAULT_LOCATION_SYMBOL),
        ))
        self.layout_elements.append(_layout_element(
            location, [OverlayKeys.POSITION_X, OverlayKeys.POSITION_Y] + self.LABEL_KEYS))

    def link(self, link: ModelComponent) -> None:
        # Exported as part of the location it ends at
        pass

    def block(self, block: ModelComponent) -> None:
        self.plant_model.blocks.append(BlockTO(
            name=block.name,
            type=_enum_text(block.property_value(PropKeys.TYPE, BlockType.SINGLE_VEHICLE_ONLY)),
            members=list(block.property_value(PropKeys.BLOCK_ELEMENTS, [])),
            properties=_component_properties(block),
        ))
        self.layout_elements.append(_layout_element(block, [OverlayKeys.COLOR]))

    def group(self, group: ModelComponent) -> None:
        self.plant_model.groups.append(GroupTO(
            name=group.name,
            members=list(group.property_value(PropKeys.GROUP_ELEMENTS, [])),
            properties=_component_properties(group),
        ))

    def static_route(self, route: ModelComponent) -> None:
        self.plant_model.static_routes.append(StaticRouteTO(
            name=route.name,
            hops=list(route.property_value(PropKeys.STATIC_ROUTE_ELEMENTS, [])),
            properties=_component_properties(route),
        ))
        self.layout_elements.append(_layout_element(route, [OverlayKeys.COLOR]))

    def layout(self, layout: ModelComponent) -> None:
        self.plant_model.visual_layouts.append(VisualLayoutTO(
            name=layout.name,
            scale_x=layout.get_property(PropKeys.SCALE_X).get_value_by_unit("mm"),
            scale_y=layout.get_property(PropKeys.SCALE_Y).get_value_by_unit("mm"),
            properties=_component_properties(layout),
        ))

    def dispatch(self) -> Dict[ComponentKind, Callable[[ModelComponent], None]]:
        return {
            ComponentKind.POINT: self.point,
            ComponentKind.PATH: self.path,
            ComponentKind.VEHICLE: self.vehicle,
            ComponentKind.LOCATION_TYPE: self.location_type,
            ComponentKind.LOCATION: self.location,
            ComponentKind.LINK: self.link,
            ComponentKind.BLOCK: self.block,
            ComponentKind.GROUP: self.group,
            ComponentKind.STATIC_ROUTE: self.static_route,
            ComponentKind.LAYOUT: self.layout,
        }


def export_plant_model(model: SystemModel) -> PlantModelTO:
    """Build the transfer object graph of model.

    Args:
        model: System model to export; should pass validate_model()

    Returns:
        PlantModelTO with exactly one visual layout
    """
    if model is None:
        raise ValueError("model must not be None")
    exporter = _Exporter(model)
    handlers = exporter.dispatch()
    for component in model.components():
        handlers[component.kind](component)

    exporter.plant_model.visual_layouts[0].model_layout_elements = exporter.layout_elements
    logger.info(
        f"Exported plant model '{model.name}': {len(exporter.plant_model.points)} points, "
        f"{len(exporter.plant_model.paths)} paths, {len(exporter.plant_model.locations)} locations"
    )
    return exporter.plant_model


__all__ = [
    "LayoutOverlay",
    "import_point",
    "import_path",
    "import_vehicle",
    "import_location_type",
    "import_location",
    "import_links",
    "import_block",
    "import_static_route",
    "import_group",
    "import_layout",
    "export_plant_model",
]
