"""
Core Layer - Model registry and shared error types.

Modules:
- system_model: Name-indexed registry of the components of one plant model
- errors: Exception hierarchy for registry and file problems
- course_graph: networkx view of points and travellable paths
"""

from .errors import (
    PlantModelError,
    DuplicateComponentError,
    ComponentNotFoundError,
    ModelIOError,
    ModelFormatError,
)
from .system_model import (
    SystemModel,
    create_system_model,
)
from .course_graph import map_course_graph

__all__ = [
    # Errors
    'PlantModelError',
    'DuplicateComponentError',
    'ComponentNotFoundError',
    'ModelIOError',
    'ModelFormatError',
    # Registry
    'SystemModel',
    'create_system_model',
    'map_course_graph',
]
