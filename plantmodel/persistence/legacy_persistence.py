"""Legacy model files (.opentcs).

The document root is <courseModel> with one child element per component,
produced by ModelComponentConverter. Components are written grouped by
kind, referenced kinds first (layout, points, paths, location types,
locations, links, vehicles, blocks, static routes, groups), and sorted by
name within each kind. Model-level properties are stored as a key/value
set directly under the root.

When reading, every element is reverted and validated on its own. Elements
that are malformed or invalid are skipped and reported with their line
number; everything else is loaded.
"""

import logging
from pathlib import Path
from typing import List, Optional

from lxml import etree

from plantmodel.config.settings import is_enabled
from plantmodel.converters.legacy_converter import ModelComponentConverter, read_property
from plantmodel.core.errors import ModelFormatError, ModelIOError
from plantmodel.core.system_model import SystemModel, create_system_model
from plantmodel.models.components import ModelComponent
from plantmodel.models.enums import ComponentKind
from plantmodel.models.keys import PropKeys
from plantmodel.models.properties import KeyValueSetProperty
from plantmodel.persistence.base import (
    ErrorHandler,
    ModelFilePersistor,
    ModelFileReader,
    SystemModelFactory,
)

logger = logging.getLogger(__name__)

FILE_EXTENSION = ".opentcs"
ROOT_TAG = "courseModel"
FORMAT_VERSION = "0.0.1"

KIND_ORDER: List[ComponentKind] = [
    ComponentKind.LAYOUT,
    ComponentKind.POINT,
    ComponentKind.PATH,
    ComponentKind.LOCATION_TYPE,
    ComponentKind.LOCATION,
    ComponentKind.LINK,
    ComponentKind.VEHICLE,
    ComponentKind.BLOCK,
    ComponentKind.STATIC_ROUTE,
    ComponentKind.GROUP,
]


class LegacyModelPersistor(ModelFilePersistor):
    FILE_EXTENSION = FILE_EXTENSION
    FORMAT_DESCRIPTION = "Legacy course model (*.opentcs)"

    def __init__(
        self,
        error_handler: Optional[ErrorHandler] = None,
        converter: Optional[ModelComponentConverter] = None,
    ):
        super().__init__(error_handler)
        self.converter = converter or ModelComponentConverter()

    def _ordered_components(self, model: SystemModel, kind: ComponentKind) -> List[ModelComponent]:
        components = model.components(kind)
        if is_enabled('sort_legacy_output'):
            components.sort(key=lambda component: component.name or "")
        return components

    def _encode(self, model: SystemModel, model_name: str) -> bytes:
        root = etree.Element(ROOT_TAG, version=FORMAT_VERSION, name=model_name)
        properties = etree.SubElement(
            root, KeyValueSetProperty.type_tag, key=PropKeys.MISCELLANEOUS)
        for key, value in model.properties.items():
            etree.SubElement(properties, "entry", key=key, value=value)

        for kind in KIND_ORDER:
            for component in self._ordered_components(model, kind):
                root.append(self.converter.convert(component))

        return etree.tostring(root, encoding="UTF-8", xml_declaration=True, pretty_print=True)


class LegacyModelReader(ModelFileReader):
    FILE_EXTENSION = FILE_EXTENSION
    FORMAT_DESCRIPTION = "Legacy course model (*.opentcs)"

    def __init__(
        self,
        system_model_factory: SystemModelFactory = create_system_model,
        converter: Optional[ModelComponentConverter] = None,
    ):
        super().__init__(system_model_factory)
        self.converter = converter or ModelComponentConverter()

    def _decode(self, data: bytes, model: SystemModel, path: Path) -> None:
        try:
            root = etree.fromstring(data)
        except etree.XMLSyntaxError as e:
            raise ModelIOError(f"Invalid legacy model file: line {e.lineno}: {e.msg}", path) from e
        if root.tag != ROOT_TAG:
            raise ModelIOError(f"Invalid legacy model file: unexpected root <{root.tag}>", path)

        for element in root:
            if not isinstance(element.tag, str):
                continue
            if element.tag == KeyValueSetProperty.type_tag:
                self._read_model_properties(element, model)
                continue
            try:
                component = self.converter.revert(element)
            except ModelFormatError as e:
                self.record_error(str(e))
                continue
            self.accept(model, component, element.sourceline)

    def _read_model_properties(self, element: etree._Element, model: SystemModel) -> None:
        try:
            bag = read_property(element)
        except ModelFormatError as e:
            self.record_error(str(e))
            return
        for key, value in bag.items():
            model.properties.set(key, value)


__all__ = ["LegacyModelPersistor", "LegacyModelReader", "KIND_ORDER"]
