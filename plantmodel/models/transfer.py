"""Plant model transfer objects (TOs).

These pydantic models are the serialization-oriented shape of a plant model.
The unified converter produces and consumes them, the unified XML codec
writes and parses them, and a plant-control kernel accepts the same graph in
its create_plant_model() call.

Units in TOs are fixed: lengths and positions in mm, velocities in mm/s,
angles in degrees, energy levels in percent. Presentation-only data lives in
the visual layout (model layout elements keyed by component name).

Validation here is limited to shape and types. Semantic checks (ranges,
references) happen in the model validator after import, so that a TO with a
bad value still reaches the validator and gets reported instead of rejected
wholesale.
"""

import math
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class PropertyTO(BaseModel):
    """One entry of a string-keyed property bag."""

    name: str = Field(..., description="Property key")
    value: str = Field("", description="Property value")

    @field_validator("value", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return "" if v is None else v


class PropertiesMixin(BaseModel):
    """Ordered property bag shared by all named TOs."""

    properties: List[PropertyTO] = Field(default_factory=list)

    def properties_dict(self) -> Dict[str, str]:
        """Property bag as a dict (first entry wins on duplicate keys)."""
        result: Dict[str, str] = {}
        for prop in self.properties:
            result.setdefault(prop.name, prop.value)
        return result

    def get_property(self, name: str, default: Optional[str] = None) -> Optional[str]:
        for prop in self.properties:
            if prop.name == name:
                return prop.value
        return default


class ModelLayoutElementTO(PropertiesMixin):
    """Presentation properties of one component in the visual layout."""

    visualized_object_name: str = Field(..., description="Name of the component")
    layer: int = Field(0, description="Drawing layer")


class VisualLayoutTO(PropertiesMixin):
    name: str = Field(..., description="Layout name")
    scale_x: float = Field(50.0, description="Length per pixel in X (mm)")
    scale_y: float = Field(50.0, description="Length per pixel in Y (mm)")
    model_layout_elements: List[ModelLayoutElementTO] = Field(default_factory=list)


class PointTO(PropertiesMixin):
    name: str
    x_position: int = Field(0, description="X position (mm)")
    y_position: int = Field(0, description="Y position (mm)")
    z_position: int = Field(0, description="Z position (mm)")
    vehicle_orientation_angle: float = Field(math.nan, description="Degrees, NaN if unset")
    type: str = Field("HALT_POSITION", description="HALT_POSITION, REPORT_POSITION or PARK_POSITION")


class PathTO(PropertiesMixin):
    name: str
    source_point: Optional[str] = Field(None, description="Name of the start point")
    destination_point: Optional[str] = Field(None, description="Name of the end point")
    length: int = Field(1, description="Length (mm)")
    routing_cost: int = Field(1, description="Routing cost")
    max_velocity: int = Field(0, description="Forward velocity limit (mm/s)")
    max_reverse_velocity: int = Field(0, description="Reverse velocity limit (mm/s)")
    locked: bool = False


class VehicleTO(PropertiesMixin):
    name: str
    length: int = Field(1000, description="Length (mm)")
    energy_level_critical: int = 30
    energy_level_good: int = 90
    energy_level_fully_recharged: int = 90
    energy_level_sufficiently_recharged: int = 30
    max_velocity: int = Field(1000, description="mm/s")
    max_reverse_velocity: int = Field(1000, description="mm/s")
    current_point: Optional[str] = Field(None, description="Point name or a no-reference sentinel")
    next_point: Optional[str] = Field(None, description="Point name or a no-reference sentinel")


class LocationTypeTO(PropertiesMixin):
    name: str
    allowed_operations: List[str] = Field(default_factory=list)


class LinkTO(BaseModel):
    """Link from a point to the enclosing location."""

    point: str = Field(..., description="Name of the linked point")
    allowed_operations: List[str] = Field(default_factory=list)


class LocationTO(PropertiesMixin):
    name: str
    x_position: int = 0
    y_position: int = 0
    z_position: int = 0
    type: Optional[str] = Field(None, description="Name of the location type")
    links: List[LinkTO] = Field(default_factory=list)


class BlockTO(PropertiesMixin):
    name: str
    type: str = "SINGLE_VEHICLE_ONLY"
    members: List[str] = Field(default_factory=list)


class StaticRouteTO(PropertiesMixin):
    name: str
    hops: List[str] = Field(default_factory=list)


class GroupTO(PropertiesMixin):
    name: str
    members: List[str] = Field(default_factory=list)


class PlantModelTO(PropertiesMixin):
    """Complete plant model as exchanged with files and the kernel."""

    name: str = ""
    version: str = "0.0.2"
    points: List[PointTO] = Field(default_factory=list)
    paths: List[PathTO] = Field(default_factory=list)
    vehicles: List[VehicleTO] = Field(default_factory=list)
    location_types: List[LocationTypeTO] = Field(default_factory=list)
    locations: List[LocationTO] = Field(default_factory=list)
    blocks: List[BlockTO] = Field(default_factory=list)
    static_routes: List[StaticRouteTO] = Field(default_factory=list)
    groups: List[GroupTO] = Field(default_factory=list)
    visual_layouts: List[VisualLayoutTO] = Field(default_factory=list)


__all__ = [
    "PropertyTO",
    "ModelLayoutElementTO",
    "VisualLayoutTO",
    "PointTO",
    "PathTO",
    "VehicleTO",
    "LocationTypeTO",
    "LinkTO",
    "LocationTO",
    "BlockTO",
    "StaticRouteTO",
    "GroupTO",
    "PlantModelTO",
]
