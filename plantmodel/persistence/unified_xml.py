"""Unified XML codec - PlantModelTO ⇄ XML document.

Document shape:

    <model version="0.0.2" name="demo">
      <point name="P1" xPosition="0" yPosition="0" zPosition="0"
             vehicleOrientationAngle="NaN" type="HALT_POSITION">
        <property name="key" value="value"/>
      </point>
      <path name="P1 --- P2" sourcePoint="P1" destinationPoint="P2" length="1000"
            routingCost="5" maxVelocity="1000" maxReverseVelocity="0" locked="false"/>
      <vehicle name="V1" length="1000" ... currentPoint="null" nextPoint="null"/>
      <locationType name="LT1"><allowedOperation name="LOAD"/></locationType>
      <location name="L1" xPosition="0" yPosition="0" zPosition="0" type="LT1">
        <link point="P1"><allowedOperation name="LOAD"/></link>
      </location>
      <block name="B1" type="SINGLE_VEHICLE_ONLY"><member name="P1"/></block>
      <staticRoute name="R1"><hop name="P1"/></staticRoute>
      <group name="G1"><member name="P1"/></group>
      <visualLayout name="VLayout" scaleX="50.0" scaleY="50.0">
        <modelLayoutElement visualizedObjectName="P1" layer="0">
          <property name="POSITION_X" value="0"/>
        </modelLayoutElement>
      </visualLayout>
      <property name="key" value="value"/>
    </model>

Optional attributes that are absent stay None (vehicle current/next point).
"""

import logging
import math
from typing import Any, Callable, Dict, List, Optional

from lxml import etree
from pydantic import ValidationError

from plantmodel.core.errors import ModelFormatError
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

ROOT_TAG = "model"


# ============================================================================
# Writing
# ============================================================================

def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isnan(value):
        return "NaN"
    return str(value)


def _set_attributes(element: etree._Element, attributes: Dict[str, Any]) -> None:
    for key, value in attributes.items():
        if value is not None:
            element.set(key, _text(value))


def _write_properties(parent: etree._Element, properties: List[PropertyTO]) -> None:
    for prop in properties:
        etree.SubElement(parent, "property", name=prop.name, value=prop.value)


def _write_names(parent: etree._Element, tag: str, names: List[str]) -> None:
    for name in names:
        etree.SubElement(parent, tag, name=name)


def plant_model_to_element(plant_model: PlantModelTO) -> etree._Element:
    """Build the XML tree of a plant model."""
    root = etree.Element(ROOT_TAG)
    _set_attributes(root, {"version": plant_model.version, "name": plant_model.name})

    for point in plant_model.points:
        element = etree.SubElement(root, "point")
        _set_attributes(element, {
            "name": point.name,
            "xPosition": point.x_position,
            "yPosition": point.y_position,
            "zPosition": point.z_position,
            "vehicleOrientationAngle": point.vehicle_orientation_angle,
            "type": point.type,
        })
        _write_properties(element, point.properties)

    for path in plant_model.paths:
        element = etree.SubElement(root, "path")
        _set_attributes(element, {
            "name": path.name,
            "sourcePoint": path.source_point,
            "destinationPoint": path.destination_point,
            "length": path.length,
            "routingCost": path.routing_cost,
            "maxVelocity": path.max_velocity,
            "maxReverseVelocity": path.max_reverse_velocity,
            "locked": path.locked,
        })
        _write_properties(element, path.properties)

    for vehicle in plant_model.vehicles:
        element = etree.SubElement(root, "vehicle")
        _set_attributes(element, {
            "name": vehicle.name,
            "length": vehicle.length,
            "energyLevelCritical": vehicle.energy_level_critical,
            "energyLevelGood": vehicle.energy_level_good,
            "energyLevelFullyRecharged": vehicle.energy_level_fully_recharged,
            "energyLevelSufficientlyRecharged": vehicle.energy_level_sufficiently_recharged,
            "maxVelocity": vehicle.max_velocity,
            "maxReverseVelocity": vehicle.max_reverse_velocity,
            "currentPoint": vehicle.current_point,
            "nextPoint": vehicle.next_point,
        })
        _write_properties(element, vehicle.properties)

    for location_type in plant_model.location_types:
        element = etree.SubElement(root, "locationType", name=location_type.name)
        _write_names(element, "allowedOperation", location_type.allowed_operations)
        _write_properties(element, location_type.properties)

    for location in plant_model.locations:
        element = etree.SubElement(root, "location")
        _set_attributes(element, {
            "name": location.name,
            "xPosition": location.x_position,
            "yPosition": location.y_position,
            "zPosition": location.z_position,
            "type": location.type,
        })
        for link in location.links:
            link_element = etree.SubElement(element, "link", point=link.point)
            _write_names(link_element, "allowedOperation", link.allowed_operations)
        _write_properties(element, location.properties)

    for block in plant_model.blocks:
        element = etree.SubElement(root, "block", name=block.name, type=block.type)
        _write_names(element, "member", block.members)
        _write_properties(element, block.properties)

    for route in plant_model.static_routes:
        element = etree.SubElement(root, "staticRoute", name=route.name)
        _write_names(element, "hop", route.hops)
        _write_properties(element, route.properties)

    for group in plant_model.groups:
        element = etree.SubElement(root, "group", name=group.name)
        _write_names(element, "member", group.members)
        _write_properties(element, group.properties)

    for layout in plant_model.visual_layouts:
        element = etree.SubElement(root, "visualLayout")
        _set_attributes(element, {
            "name": layout.name, "scaleX": layout.scale_x, "scaleY": layout.scale_y,
        })
        for layout_element in layout.model_layout_elements:
            child = etree.SubElement(element, "modelLayoutElement")
            _set_attributes(child, {
                "visualizedObjectName": layout_element.visualized_object_name,
                "layer": layout_element.layer,
            })
            _write_properties(child, layout_element.properties)
        _write_properties(element, layout.properties)

    _write_properties(root, plant_model.properties)
    return root


def plant_model_to_bytes(plant_model: PlantModelTO) -> bytes:
    """Serialize a plant model to UTF-8 encoded XML."""
    return etree.tostring(
        plant_model_to_element(plant_model),
        encoding="UTF-8",
        xml_declaration=True,
        pretty_print=True,
    )


# ============================================================================
# Parsing
# ============================================================================

def _properties(element: etree._Element) -> List[Dict[str, str]]:
    return [
        {"name": child.get("name"), "value": child.get("value", "")}
        for child in element.findall("property")
    ]


def _names(element: etree._Element, tag: str) -> List[str]:
    return [child.get("name") for child in element.findall(tag)]


def _bool(text: Optional[str]) -> bool:
    return (text or "").strip().lower() == "true"


def _integer(text: Optional[str], default: int) -> Any:
    """Whole number of an attribute, rounding fractional values.

    Text that is not a finite number is returned unchanged so that the TO
    reports it.
    """
    if text is None:
        return default
    try:
        return round(float(text))
    except (ValueError, OverflowError):
        return text


def _point(element: etree._Element) -> PointTO:
    return PointTO(
        name=element.get("name"),
        x_position=_integer(element.get("xPosition"), 0),
        y_position=_integer(element.get("yPosition"), 0),
        z_position=_integer(element.get("zPosition"), 0),
        vehicle_orientation_angle=element.get("vehicleOrientationAngle", "NaN"),
        type=element.get("type", "HALT_POSITION"),
        properties=_properties(element),
    )


def _path(element: etree._Element) -> PathTO:
    return PathTO(
        name=element.get("name"),
        source_point=element.get("sourcePoint"),
        destination_point=element.get("destinationPoint"),
        length=_integer(element.get("length"), 1),
        routing_cost=_integer(element.get("routingCost"), 1),
        max_velocity=_integer(element.get("maxVelocity"), 0),
        max_reverse_velocity=_integer(element.get("maxReverseVelocity"), 0),
        locked=_bool(element.get("locked")),
        properties=_properties(element),
    )


def _vehicle(element: etree._Element) -> VehicleTO:
    values = {
        "name": element.get("name"),
        "current_point": element.get("currentPoint"),
        "next_point": element.get("nextPoint"),
        "properties": _properties(element),
    }
    for attribute, field_name in (
        ("length", "length"),
        ("energyLevelCritical", "energy_level_critical"),
        ("energyLevelGood", "energy_level_good"),
        ("energyLevelFullyRecharged", "energy_level_fully_recharged"),
        ("energyLevelSufficientlyRecharged", "energy_level_sufficiently_recharged"),
        ("maxVelocity", "max_velocity"),
        ("maxReverseVelocity", "max_reverse_velocity"),
    ):
        if element.get(attribute) is not None:
            values[field_name] = _integer(element.get(attribute), 0)
    return VehicleTO(**values)


def _location_type(element: etree._Element) -> LocationTypeTO:
    return LocationTypeTO(
        name=element.get("name"),
        allowed_operations=_names(element, "allowedOperation"),
        properties=_properties(element),
    )


def _location(element: etree._Element) -> LocationTO:
    return LocationTO(
        name=element.get("name"),
        x_position=_integer(element.get("xPosition"), 0),
        y_position=_integer(element.get("yPosition"), 0),
        z_position=_integer(element.get("zPosition"), 0),
        type=element.get("type"),
        links=[
            LinkTO(point=link.get("point"), allowed_operations=_names(link, "allowedOperation"))
            for link in element.findall("link")
        ],
        properties=_properties(element),
    )


def _block(element: etree._Element) -> BlockTO:
    return BlockTO(
        name=element.get("name"),
        type=element.get("type", "SINGLE_VEHICLE_ONLY"),
        members=_names(element, "member"),
        properties=_properties(element),
    )


def _static_route(element: etree._Element) -> StaticRouteTO:
    return StaticRouteTO(
        name=element.get("name"), hops=_names(element, "hop"), properties=_properties(element),
    )


def _group(element: etree._Element) -> GroupTO:
    return GroupTO(
        name=element.get("name"), members=_names(element, "member"), properties=_properties(element),
    )


def _visual_layout(element: etree._Element) -> VisualLayoutTO:
    return VisualLayoutTO(
        name=element.get("name"),
        scale_x=element.get("scaleX", 50.0),
        scale_y=element.get("scaleY", 50.0),
        model_layout_elements=[
            ModelLayoutElementTO(
                visualized_object_name=child.get("visualizedObjectName"),
                layer=_integer(child.get("layer"), 0),
                properties=_properties(child),
            )
            for child in element.findall("modelLayoutElement")
        ],
        properties=_properties(element),
    )


def _describe(error: ValidationError) -> str:
    fields = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        fields.append(f"{location} ({detail['msg']})")
    return "invalid " + ", ".join(fields)


_PARSERS: Dict[str, Callable[[etree._Element], Any]] = {
    "point": _point,
    "path": _path,
    "vehicle": _vehicle,
    "locationType": _location_type,
    "location": _location,
    "block": _block,
    "staticRoute": _static_route,
    "group": _group,
    "visualLayout": _visual_layout,
}

_COLLECTIONS = {
    "point": "points",
    "path": "paths",
    "vehicle": "vehicles",
    "locationType": "location_types",
    "location": "locations",
    "block": "blocks",
    "staticRoute": "static_routes",
    "group": "groups",
    "visualLayout": "visual_layouts",
}


def plant_model_from_element(root: etree._Element,
                             errors: Optional[List[str]] = None) -> PlantModelTO:
    """Build a PlantModelTO from a parsed document.

    Args:
        root: Document root element
        errors: If given, malformed elements are skipped and described here
            instead of raising

    Raises:
        ModelFormatError: If the root tag is wrong, or an element is malformed
            and no error list was given
    """
    if root.tag != ROOT_TAG:
        raise ModelFormatError(f"Unexpected root element <{root.tag}>", root.sourceline)

    plant_model = PlantModelTO(
        name=root.get("name", ""),
        version=root.get("version", "0.0.2"),
        properties=_properties(root),
    )
    for element in root:
        if not isinstance(element.tag, str) or element.tag == "property":
            continue
        parser = _PARSERS.get(element.tag)
        if parser is None:
            logger.warning(f"Ignoring unknown element <{element.tag}> at line {element.sourceline}")
            continue
        try:
            transfer_object = parser(element)
        except ValidationError as e:
            error = ModelFormatError(
                f"Malformed <{element.tag}> '{element.get('name', '')}': {_describe(e)}",
                element.sourceline,
            )
            if errors is None:
                raise error from e
            logger.warning(f"Skipping element: {error}")
            errors.append(str(error))
            continue
        getattr(plant_model, _COLLECTIONS[element.tag]).append(transfer_object)
    return plant_model


def plant_model_from_bytes(data: bytes, errors: Optional[List[str]] = None) -> PlantModelTO:
    """Parse UTF-8 encoded XML into a PlantModelTO.

    Malformed elements are handled as in plant_model_from_element().

    Raises:
        ModelFormatError: If the document is not well-formed or malformed
    """
    try:
        root = etree.fromstring(data)
    except etree.XMLSyntaxError as e:
        raise ModelFormatError(f"Not a well-formed document: {e.msg}", e.lineno) from e
    return plant_model_from_element(root, errors)


__all__ = [
    "plant_model_to_element",
    "plant_model_to_bytes",
    "plant_model_from_element",
    "plant_model_from_bytes",
]
