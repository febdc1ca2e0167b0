"""Legacy Converter - Components ⇄ course model document elements.

A legacy document stores each component as one element whose tag is the
component kind. Every property becomes a child element tagged with the
property type, so documents describe themselves and can be reverted without
knowing the component's default property set:

    <point>
      <stringProperty key="Name">P1</stringProperty>
      <coordinateProperty key="modelXPosition" unit="mm">1000.0</coordinateProperty>
      <angleProperty key="vehicleOrientationAngle" unit="deg">NaN</angleProperty>
      <selectionProperty key="Type" enum="PointType">HALT_POSITION</selectionProperty>
      <keyValueSetProperty key="Miscellaneous">
        <entry key="color" value="blue"/>
      </keyValueSetProperty>
    </point>

Reverted components are built bare, so a property missing from the document
stays missing and the validator reports it. Numeric text that cannot be
parsed is kept as text for the same reason.
"""

import logging
import math
from typing import Any, Callable, Dict, Optional

from lxml import etree

from plantmodel.core.errors import ModelFormatError
from plantmodel.models.components import ModelComponent, create_component
from plantmodel.models.enums import SELECTION_ENUMS, ComponentKind, LocationRepresentation, parse_enum
from plantmodel.models.properties import (
    PROPERTY_TYPES,
    BooleanProperty,
    ColorProperty,
    IntegerProperty,
    KeyValueProperty,
    KeyValueSetProperty,
    Property,
    SelectionProperty,
    StringProperty,
    StringSetProperty,
    SymbolProperty,
    TripleProperty,
    UnitProperty,
)

logger = logging.getLogger(__name__)

NULL_ATTRIBUTE = "isNull"


# ============================================================================
# Value text helpers
# ============================================================================

def _number_text(value: Any) -> str:
    if isinstance(value, float) and math.isnan(value):
        return "NaN"
    return str(value)


def _parse_number(text: Optional[str]) -> Any:
    """int or float for numeric text, the text itself otherwise."""
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


def _enum_text(value: Any) -> str:
    return value.value if hasattr(value, "value") else str(value)


# ============================================================================
# Property encoding
# ============================================================================

def _write_property(parent: etree._Element, key: str, prop: Property) -> etree._Element:
    element = etree.SubElement(parent, prop.type_tag, key=key)

    if isinstance(prop, StringSetProperty):
        for item in prop.items:
            etree.SubElement(element, "item").text = item
        return element
    if isinstance(prop, KeyValueSetProperty):
        for entry_key, entry_value in prop.items():
            etree.SubElement(element, "entry", key=entry_key, value=entry_value)
        return element
    if isinstance(prop, SelectionProperty):
        element.set("enum", prop.enum_cls.__name__)

    value = prop.value
    if value is None:
        element.set(NULL_ATTRIBUTE, "true")
    elif isinstance(prop, UnitProperty):
        element.set("unit", prop.unit)
        element.text = _number_text(value)
    elif isinstance(prop, TripleProperty):
        element.set("x", str(value[0]))
        element.set("y", str(value[1]))
        element.set("z", str(value[2]))
    elif isinstance(prop, BooleanProperty):
        element.text = "true" if value is True else str(value).lower()
    elif isinstance(prop, (SelectionProperty, SymbolProperty)):
        element.text = _enum_text(value)
    else:
        element.text = str(value)
    return element


def _read_unit(cls, element: etree._Element, text: Optional[str]) -> Property:
    prop = cls()
    unit = element.get("unit", cls.BASE_UNIT)
    try:
        prop.set_value_and_unit(_parse_number(text), unit)
    except ValueError as e:
        raise ModelFormatError(str(e), element.sourceline) from e
    return prop


def _read_selection(cls, element: etree._Element, text: Optional[str]) -> Property:
    enum_name = element.get("enum")
    enum_cls = SELECTION_ENUMS.get(enum_name)
    if enum_cls is None:
        raise ModelFormatError(f"Unknown enumeration '{enum_name}'", element.sourceline)
    prop = SelectionProperty(enum_cls)
    prop.value = parse_enum(enum_cls, text)
    return prop


def _read_triple(cls, element: etree._Element, text: Optional[str]) -> Property:
    try:
        return TripleProperty((int(element.get("x")), int(element.get("y")), int(element.get("z"))))
    except (TypeError, ValueError) as e:
        raise ModelFormatError(f"Invalid triple: {e}", element.sourceline) from e


def _read_color(cls, element: etree._Element, text: Optional[str]) -> Property:
    try:
        return ColorProperty(text or "")
    except ValueError as e:
        raise ModelFormatError(str(e), element.sourceline) from e


def _read_boolean(cls, element: etree._Element, text: Optional[str]) -> Property:
    normalized = (text or "").strip().lower()
    if normalized in ("true", "false"):
        return BooleanProperty(normalized == "true")
    prop = BooleanProperty()
    prop.value = text
    return prop


def _read_integer(cls, element: etree._Element, text: Optional[str]) -> Property:
    return IntegerProperty(_parse_number(text))


def _read_symbol(cls, element: etree._Element, text: Optional[str]) -> Property:
    return SymbolProperty(parse_enum(LocationRepresentation, text))


def _read_string_set(cls, element: etree._Element, text: Optional[str]) -> Property:
    return StringSetProperty([item.text or "" for item in element.findall("item")])


def _read_key_value_set(cls, element: etree._Element, text: Optional[str]) -> Property:
    return KeyValueSetProperty([
        KeyValueProperty(entry.get("key"), entry.get("value", ""))
        for entry in element.findall("entry")
    ])


def _read_string(cls, element: etree._Element, text: Optional[str]) -> Property:
    return cls(text or "")


_READERS: Dict[str, Callable[[type, etree._Element, Optional[str]], Property]] = {}
for _tag, _cls in PROPERTY_TYPES.items():
    if issubclass(_cls, UnitProperty):
        _READERS[_tag] = _read_unit
    elif issubclass(_cls, StringProperty):
        _READERS[_tag] = _read_string
_READERS.update({
    SelectionProperty.type_tag: _read_selection,
    TripleProperty.type_tag: _read_triple,
    ColorProperty.type_tag: _read_color,
    BooleanProperty.type_tag: _read_boolean,
    IntegerProperty.type_tag: _read_integer,
    SymbolProperty.type_tag: _read_symbol,
    StringSetProperty.type_tag: _read_string_set,
    KeyValueSetProperty.type_tag: _read_key_value_set,
})


def read_property(element: etree._Element) -> Property:
    """Decode one property element.

    Raises:
        ModelFormatError: If the tag or the content is not a valid property
    """
    reader = _READERS.get(element.tag)
    if reader is None:
        raise ModelFormatError(f"Unknown property type <{element.tag}>", element.sourceline)
    cls = PROPERTY_TYPES[element.tag]
    if element.get(NULL_ATTRIBUTE) == "true":
        prop = _read_selection(cls, element, None) if cls is SelectionProperty else cls()
        try:
            prop.value = None
        except ValueError as e:
            raise ModelFormatError(f"<{element.tag}> cannot be null", element.sourceline) from e
        prop.unmark_changed()
        return prop
    prop = reader(cls, element, element.text)
    prop.unmark_changed()
    return prop


# ============================================================================
# Component conversion
# ============================================================================

class ModelComponentConverter:
    """Converts components to legacy document elements and back."""

    def convert(self, component: ModelComponent) -> etree._Element:
        """Build the document element of component."""
        if component is None:
            raise ValueError("component must not be None")
        element = etree.Element(component.kind.value)
        for key, prop in component.properties.items():
            _write_property(element, key, prop)
        return element

    def revert(self, element: etree._Element) -> ModelComponent:
        """Build a bare component from its document element.

        Raises:
            ModelFormatError: If the element is not a known component or
                contains an invalid property
        """
        try:
            kind = ComponentKind(element.tag)
        except ValueError:
            raise ModelFormatError(
                f"Unknown component type <{element.tag}>", element.sourceline
            ) from None

        component = create_component(kind, name=None, with_defaults=False)
        for child in element:
            if not isinstance(child.tag, str):
                continue
            key = child.get("key")
            if not key:
                raise ModelFormatError(f"<{child.tag}> without key", child.sourceline)
            component.set_property(key, read_property(child))
        return component


__all__ = ["ModelComponentConverter", "read_property"]
