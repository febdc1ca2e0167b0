"""
ModelManager - Load/save lifecycle and coordinate bookkeeping for a plant model.

Responsibilities:
- Load a system model from a legacy (.opentcs) or unified (.xml) file
- Save it to either format, refusing inconsistent models unless told otherwise
- Upload it to and restore it from a plant-control kernel
- Convert between model coordinates (mm, Y up) and presentation coordinates
  (pixels, Y down) using the scale stored on the layout

Coordinate conversion:
    presentation = (x_mm / scale_x, -y_mm / scale_y)
    model        = (x_px * scale_x, -y_px * scale_y)

The Y axis is negated exactly once in each direction.

Usage:
    manager = ModelManager()
    manager.load_model("plant.xml")
    manager.get_load_errors()           # components skipped while loading

    manager.set_scale(25.0, 25.0)
    manager.presentation_position("P1")
    manager.move_component("P1", 40, -80)

    manager.persist_model("plant.opentcs")
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import networkx as nx

from plantmodel.config.settings import get_default
from plantmodel.core.course_graph import map_course_graph
from plantmodel.core.errors import ModelIOError
from plantmodel.core.system_model import SystemModel, create_system_model
from plantmodel.models.enums import ComponentKind
from plantmodel.models.keys import OverlayKeys, PropKeys
from plantmodel.persistence.base import (
    ModelFilePersistor,
    ModelFileReader,
    SystemModelFactory,
    with_extension,
)
from plantmodel.persistence.kernel_persistence import (
    KernelPlantModelService,
    ModelKernelPersistor,
)
from plantmodel.persistence.legacy_persistence import LegacyModelPersistor, LegacyModelReader
from plantmodel.persistence.unified_persistence import UnifiedModelPersistor, UnifiedModelReader

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
Position = Tuple[float, float]

# Components drawn at a position of their own
POSITIONED_KINDS = (ComponentKind.POINT, ComponentKind.LOCATION)


class ModelManager:
    """Owns the current system model and its persistence."""

    def __init__(
        self,
        readers: Optional[Sequence[ModelFileReader]] = None,
        persistors: Optional[Sequence[ModelFilePersistor]] = None,
        kernel_persistor: Optional[ModelKernelPersistor] = None,
        system_model_factory: SystemModelFactory = create_system_model,
    ):
        """Initialize the manager with an empty model.

        Args:
            readers: File readers; the first one accepting a file is used
            persistors: File persistors; the first one is the default format
            kernel_persistor: Persistor used for kernel uploads
            system_model_factory: Creates empty system models
        """
        if system_model_factory is None:
            raise ValueError("system_model_factory must not be None")
        self._factory = system_model_factory
        self._unified_reader = UnifiedModelReader(system_model_factory)
        self.readers: List[ModelFileReader] = list(readers) if readers else [
            self._unified_reader,
            LegacyModelReader(system_model_factory),
        ]
        self.persistors: List[ModelFilePersistor] = list(persistors) if persistors else [
            UnifiedModelPersistor(),
            LegacyModelPersistor(),
        ]
        self.kernel_persistor = kernel_persistor or ModelKernelPersistor()

        self._model: SystemModel = system_model_factory("")
        self._file: Optional[Path] = None
        self._load_errors: List[str] = []
        self._presentation: Dict[str, Position] = {}
        self.restore_model()

    # ========================================================================
    # Model lifecycle
    # ========================================================================

    @property
    def model(self) -> SystemModel:
        return self._model

    @property
    def model_name(self) -> str:
        return self._model.name

    @property
    def current_file(self) -> Optional[Path]:
        return self._file

    def get_load_errors(self) -> List[str]:
        """Errors of the components skipped by the last load."""
        return list(self._load_errors)

    def create_empty_model(self, name: str = "") -> SystemModel:
        self._model = self._factory(name)
        self._file = None
        self._load_errors = []
        self.restore_model()
        logger.info(f"Created empty model '{name}'")
        return self._model

    def load_model(self, file: PathLike) -> bool:
        """Load the model stored in file.

        Components that fail validation are skipped; see get_load_errors().

        Returns:
            True once the model is loaded

        Raises:
            ModelIOError: If no reader supports the file or reading fails
        """
        path = Path(file)
        reader = next((r for r in self.readers if r.accepts(path)), None)
        if reader is None:
            raise ModelIOError(f"Unsupported model file type '{path.suffix}'", path)

        self._model = reader.deserialize(path)
        self._file = path
        self._load_errors = reader.get_deserialization_errors()
        self.restore_model()
        return True

    def persist_model(self, file: Optional[PathLike] = None, ignore_error: bool = False) -> bool:
        """Save the model.

        Args:
            file: Target file; defaults to the file the model was loaded from.
                  Files without a known extension are saved in the default format.
            ignore_error: Save even if the model is not consistent

        Returns:
            True if the file was written

        Raises:
            ValueError: If no target file is known
            ModelIOError: If writing fails
        """
        target = Path(file) if file is not None else self._file
        if target is None:
            raise ValueError("No file to save the model to")

        persistor = next((p for p in self.persistors if p.accepts(target)), self.persistors[0])
        name = self._model.name or target.stem
        if not persistor.serialize(self._model, name, target, ignore_error):
            return False
        self._file = with_extension(target, persistor.FILE_EXTENSION)
        return True

    def persist_model_to_kernel(self, kernel: KernelPlantModelService, ignore_error: bool = False) -> bool:
        """Upload the model to kernel."""
        return self.kernel_persistor.persist(self._model, kernel, ignore_error)

    def restore_model_from_kernel(self, kernel: KernelPlantModelService) -> SystemModel:
        """Replace the model with the kernel's plant model.

        The visual layout is renamed to the default layout name, and a scale
        of zero keeps the default scale.

        Raises:
            ValueError: If kernel is None
        """
        if kernel is None:
            raise ValueError("kernel must not be None")
        plant_model = kernel.get_plant_model().model_copy(deep=True)

        model = self._factory(plant_model.name)
        if plant_model.visual_layouts:
            layout_to = plant_model.visual_layouts[0]
            layout_to.name = get_default('layout_name')
            if layout_to.scale_x == 0:
                layout_to.scale_x = get_default('scale')
            if layout_to.scale_y == 0:
                layout_to.scale_y = get_default('scale')

        self._unified_reader.read_plant_model(plant_model, model)
        self._model = model
        self._file = None
        self._load_errors = self._unified_reader.get_deserialization_errors()
        self.restore_model()
        logger.info(f"Restored model '{model.name}' from kernel")
        return model

    # ========================================================================
    # Scale and coordinates
    # ========================================================================

    @property
    def scale(self) -> Position:
        """Layout scale (mm per pixel) in X and Y."""
        layout = self._model.layout
        values = []
        for key in (PropKeys.SCALE_X, PropKeys.SCALE_Y):
            value = layout.get_property(key).get_value_by_unit("mm")
            if value <= 0:
                logger.warning(f"Layout scale {key}={value} unusable, using default")
                value = get_default('scale')
            values.append(value)
        return values[0], values[1]

    def set_scale(self, scale_x: float, scale_y: float) -> None:
        """Store a new scale on the layout and recompute presentation positions.

        Raises:
            ValueError: If a scale is not positive
        """
        if scale_x <= 0 or scale_y <= 0:
            raise ValueError(f"Scale must be positive, got ({scale_x}, {scale_y})")
        layout = self._model.layout
        layout.get_property(PropKeys.SCALE_X).set_value_and_unit(scale_x, "mm")
        layout.get_property(PropKeys.SCALE_Y).set_value_and_unit(scale_y, "mm")
        self.restore_model()

    def to_presentation(self, x: float, y: float) -> Position:
        """Model coordinates (mm) to presentation coordinates (pixels)."""
        scale_x, scale_y = self.scale
        return x / scale_x, -y / scale_y

    def to_model(self, x: float, y: float) -> Position:
        """Presentation coordinates (pixels) to model coordinates (mm)."""
        scale_x, scale_y = self.scale
        return x * scale_x, -y * scale_y

    def restore_model(self) -> None:
        """Recompute the presentation position of every point and location."""
        self._presentation = {}
        for kind in POSITIONED_KINDS:
            for component in self._model.components(kind):
                try:
                    x = float(component.property_value(OverlayKeys.POSITION_X))
                    y = float(component.property_value(OverlayKeys.POSITION_Y))
                except (TypeError, ValueError):
                    logger.warning(f"{component.name}: no usable layout position")
                    continue
                self._presentation[component.name] = self.to_presentation(x, y)

    def presentation_position(self, name: str) -> Position:
        """Presentation position of a point or location.

        Raises:
            KeyError: If name has no presentation position
        """
        return self._presentation[name]

    def move_component(self, name: str, x: float, y: float) -> Position:
        """Move a point or location to a presentation position.

        Updates the layout position and the model position.

        Returns:
            The new model position in mm

        Raises:
            ComponentNotFoundError: If name is unknown
            ValueError: If the component has no position
        """
        component = self._model.require(name)
        if component.kind not in POSITIONED_KINDS:
            raise ValueError(f"{component.kind.value} '{name}' has no position")

        model_x, model_y = self.to_model(x, y)
        model_x, model_y = round(model_x), round(model_y)
        component.get_property(PropKeys.MODEL_X_POSITION).set_value_and_unit(model_x, "mm")
        component.get_property(PropKeys.MODEL_Y_POSITION).set_value_and_unit(model_y, "mm")
        component.get_property(OverlayKeys.POSITION_X).value = str(model_x)
        component.get_property(OverlayKeys.POSITION_Y).value = str(model_y)
        self._presentation[name] = self.to_presentation(model_x, model_y)
        return model_x, model_y

    def course_graph(self) -> nx.MultiDiGraph:
        """Driving course graph of the current model."""
        return map_course_graph(self._model)


__all__ = ["ModelManager", "POSITIONED_KINDS"]
