"""
Plant model data types: components, properties, enums and transfer objects.
"""

from .enums import (
    ComponentKind,
    PointType,
    LinerType,
    EnergyState,
    ProcState,
    VehicleState,
    IntegrationLevel,
    BlockType,
    LocationRepresentation,
)
from .keys import PropKeys, OverlayKeys, MiscKeys
from .components import (
    ModelComponent,
    PointModel,
    PathModel,
    LocationTypeModel,
    LocationModel,
    LinkModel,
    BlockModel,
    GroupModel,
    StaticRouteModel,
    VehicleModel,
    LayoutModel,
    create_component,
)
from .transfer import PlantModelTO, VisualLayoutTO

__all__ = [
    # Enums
    'ComponentKind',
    'PointType',
    'LinerType',
    'EnergyState',
    'ProcState',
    'VehicleState',
    'IntegrationLevel',
    'BlockType',
    'LocationRepresentation',
    # Keys
    'PropKeys',
    'OverlayKeys',
    'MiscKeys',
    # Components
    'ModelComponent',
    'PointModel',
    'PathModel',
    'LocationTypeModel',
    'LocationModel',
    'LinkModel',
    'BlockModel',
    'GroupModel',
    'StaticRouteModel',
    'VehicleModel',
    'LayoutModel',
    'create_component',
    # Transfer objects
    'PlantModelTO',
    'VisualLayoutTO',
]
