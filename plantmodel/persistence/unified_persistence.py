"""Unified model files (.xml).

UnifiedModelPersistor exports a system model to a PlantModelTO and writes it
with the unified XML codec. UnifiedModelReader parses a file, converts every
TO back into components, validates them one by one and inserts the valid
ones. The same conversion path is used for plant models received from a
kernel (read_plant_model()).

Component order on read: points, paths, vehicles, location types, locations
(each followed by its links), blocks, static routes, groups, visual layout.
Only the first visual layout is used.
"""

import logging
from pathlib import Path
from typing import List

from plantmodel.converters.unified_converter import (
    LayoutOverlay,
    export_plant_model,
    import_block,
    import_group,
    import_layout,
    import_links,
    import_location,
    import_location_type,
    import_path,
    import_point,
    import_static_route,
    import_vehicle,
)
from plantmodel.core.errors import ModelFormatError, ModelIOError
from plantmodel.core.system_model import SystemModel
from plantmodel.models.properties import KeyValueProperty
from plantmodel.models.transfer import PlantModelTO
from plantmodel.persistence.base import ModelFilePersistor, ModelFileReader
from plantmodel.persistence.unified_xml import plant_model_from_bytes, plant_model_to_bytes

logger = logging.getLogger(__name__)

FILE_EXTENSION = ".xml"


class UnifiedModelPersistor(ModelFilePersistor):
    FILE_EXTENSION = FILE_EXTENSION
    FORMAT_DESCRIPTION = "Unified plant model (*.xml)"

    def _encode(self, model: SystemModel, model_name: str) -> bytes:
        plant_model = export_plant_model(model)
        plant_model.name = model_name
        return plant_model_to_bytes(plant_model)


class UnifiedModelReader(ModelFileReader):
    FILE_EXTENSION = FILE_EXTENSION
    FORMAT_DESCRIPTION = "Unified plant model (*.xml)"

    def _decode(self, data: bytes, model: SystemModel, path: Path) -> None:
        malformed: List[str] = []
        try:
            plant_model = plant_model_from_bytes(data, malformed)
        except ModelFormatError as e:
            raise ModelIOError(f"Invalid unified model file: {e}", path) from e
        self.read_plant_model(plant_model, model)
        for error in malformed:
            self.record_error(error)

    def read_plant_model(self, plant_model: PlantModelTO, model: SystemModel) -> SystemModel:
        """Convert plant_model and accept its valid components into model.

        Deserialization errors of earlier calls are discarded.
        """
        self._errors = {}
        for prop in plant_model.properties:
            model.properties.entries.append(KeyValueProperty(prop.name, prop.value))

        layouts = plant_model.visual_layouts
        if len(layouts) > 1:
            logger.warning("There is more than one visual layout. Using only the first one.")
        overlay = LayoutOverlay(layouts[0] if layouts else None)

        for point_to in plant_model.points:
            self._import(model, import_point, point_to, overlay)
        for path_to in plant_model.paths:
            self._import(model, import_path, path_to, overlay)
        for vehicle_to in plant_model.vehicles:
            self._import(model, import_vehicle, vehicle_to, overlay)
        for location_type_to in plant_model.location_types:
            self._import(model, import_location_type, location_type_to, overlay)
        for location_to in plant_model.locations:
            self._import(model, import_location, location_to, overlay)
            for link in import_links(location_to):
                self.accept(model, link)
        for block_to in plant_model.blocks:
            self._import(model, import_block, block_to, overlay)
        for route_to in plant_model.static_routes:
            self._import(model, import_static_route, route_to, overlay)
        for group_to in plant_model.groups:
            self._import(model, import_group, group_to, overlay)
        if layouts:
            self.accept(model, import_layout(layouts[0]))
        return model

    def _import(self, model: SystemModel, importer, transfer_object, overlay: LayoutOverlay) -> bool:
        try:
            component = importer(transfer_object, overlay)
        except ValueError as e:
            # Bad presentation values, e.g. an unparsable colour
            self.record_error(f"{transfer_object.name}: {e}")
            return False
        return self.accept(model, component)


__all__ = ["UnifiedModelPersistor", "UnifiedModelReader"]
