"""System Model - Name-indexed registry of plant model components.

The SystemModel owns every component of one plant model and is the single
source of truth for name resolution:
- Names are unique across all component kinds
- Components are kept in insertion order (file order on load)
- The layout component is a singleton; a second layout is merged, not added

Usage:
    from plantmodel.core.system_model import SystemModel
    from plantmodel.models.components import PointModel

    model = SystemModel("demo")
    model.add(PointModel("P1"))

    model.get("P1")                          # PointModel('P1')
    model.components(ComponentKind.POINT)    # [PointModel('P1')]
    model.layout.get_property("scaleX")      # LengthProperty(50.0, 'mm')
"""

import logging
import threading
from typing import Dict, Iterator, List, Optional

from plantmodel.core.errors import ComponentNotFoundError, DuplicateComponentError
from plantmodel.models.components import LayoutModel, ModelComponent
from plantmodel.models.enums import ComponentKind
from plantmodel.models.properties import KeyValueSetProperty

logger = logging.getLogger(__name__)


class SystemModel:
    """Registry of all components of a plant model, indexed by name."""

    def __init__(self, name: str = ""):
        """Initialize an empty model holding only the default layout.

        Args:
            name: Model name
        """
        self.name = name
        self.properties = KeyValueSetProperty()
        self._components: Dict[str, ModelComponent] = {}
        self._lock = threading.RLock()
        self._layout = LayoutModel()
        self._components[self._layout.name] = self._layout

    # ========================================================================
    # Mutation
    # ========================================================================

    def add(self, component: ModelComponent) -> None:
        """Add a component to the model.

        Args:
            component: Component to add

        Raises:
            ValueError: If component is None or a second layout
            DuplicateComponentError: If the name is used by another component
        """
        if component is None:
            raise ValueError("component must not be None")
        if component.kind == ComponentKind.LAYOUT and component is not self._layout:
            raise ValueError("A system model has exactly one layout; use merge_layout()")

        with self._lock:
            existing = self._components.get(component.name)
            if existing is not None and existing is not component:
                raise DuplicateComponentError(component.name)
            self._components[component.name] = component
            logger.debug(f"Added {component.kind.value} '{component.name}'")

    def remove(self, name: str) -> ModelComponent:
        """Remove a component by name.

        Raises:
            ComponentNotFoundError: If no component has this name
            ValueError: If name refers to the layout
        """
        with self._lock:
            component = self._components.get(name)
            if component is None:
                raise ComponentNotFoundError(name)
            if component is self._layout:
                raise ValueError("The layout cannot be removed from a system model")
            del self._components[name]
            return component

    def rename(self, old_name: str, new_name: str) -> None:
        """Rename a component and keep the name index consistent."""
        with self._lock:
            component = self.require(old_name)
            existing = self._components.get(new_name)
            if existing is not None and existing is not component:
                raise DuplicateComponentError(new_name)
            component.name = new_name
            # Rebuild to keep insertion order
            self._components = {
                (new_name if key == old_name else key): value
                for key, value in self._components.items()
            }

    def merge_layout(self, layout: LayoutModel) -> LayoutModel:
        """Merge a layout into the model's singleton layout.

        Every property of the given layout overwrites the corresponding
        property of the existing one, including the name.

        Returns:
            The singleton layout
        """
        if layout is None:
            raise ValueError("layout must not be None")
        with self._lock:
            old_name = self._layout.name
            for key, prop in layout.properties.items():
                self._layout.set_property(key, prop)
            if self._layout.name != old_name:
                self._components = {
                    (self._layout.name if value is self._layout else key): value
                    for key, value in self._components.items()
                }
            return self._layout

    def clear(self) -> None:
        """Remove all components and reset the layout to defaults."""
        with self._lock:
            self.properties = KeyValueSetProperty()
            self._layout = LayoutModel()
            self._components = {self._layout.name: self._layout}

    # ========================================================================
    # Lookup
    # ========================================================================

    @property
    def layout(self) -> LayoutModel:
        return self._layout

    def get(self, name: Optional[str]) -> Optional[ModelComponent]:
        if name is None:
            return None
        with self._lock:
            return self._components.get(name)

    def require(self, name: str) -> ModelComponent:
        """Get a component by name.

        Raises:
            ComponentNotFoundError: If no component has this name
        """
        component = self.get(name)
        if component is None:
            raise ComponentNotFoundError(name)
        return component

    def components(self, kind: Optional[ComponentKind] = None) -> List[ModelComponent]:
        """Components in insertion order, optionally restricted to one kind."""
        with self._lock:
            if kind is None:
                return list(self._components.values())
            return [c for c in self._components.values() if c.kind == kind]

    def names(self, kind: Optional[ComponentKind] = None) -> List[str]:
        return [c.name for c in self.components(kind)]

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._components

    def __len__(self) -> int:
        with self._lock:
            return len(self._components)

    def __iter__(self) -> Iterator[ModelComponent]:
        return iter(self.components())

    def __repr__(self) -> str:
        return f"SystemModel({self.name!r}, {len(self)} components)"


def create_system_model(name: str = "") -> SystemModel:
    """Factory used by readers and the model manager."""
    return SystemModel(name)


__all__ = ["SystemModel", "create_system_model"]
