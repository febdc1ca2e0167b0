"""Typed, unit-aware properties held by plant model components.

Every component property is one of the classes below. A property carries a
value, an optional unit and a changed flag that is set whenever the value is
assigned. The validator uses the flag indirectly: every repair it performs
goes through the value setter, so repaired properties report has_changed().

Unit-aware properties convert between their units with get_value_by_unit():

    length = LengthProperty(1.5, "m")
    length.get_value_by_unit("mm")   # 1500.0

Values that could not be parsed from a document are kept as raw text so the
validator can report them instead of the reader failing.
"""

import copy
import math
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple, Type


class Property:
    """Base class for component properties."""

    type_tag: ClassVar[str] = "property"

    def __init__(self, value: Any = None, unit: Optional[str] = None):
        self._value = value
        self._unit = unit
        self._changed = False

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, value: Any) -> None:
        self._value = value
        self._changed = True

    @property
    def unit(self) -> Optional[str]:
        return self._unit

    def has_changed(self) -> bool:
        return self._changed

    def mark_changed(self) -> None:
        self._changed = True

    def unmark_changed(self) -> None:
        self._changed = False

    def copy(self) -> "Property":
        return copy.deepcopy(self)

    def _comparable(self) -> Any:
        return self._value

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._comparable() == other._comparable() and self._unit == other._unit

    def __repr__(self) -> str:
        if self._unit is None:
            return f"{type(self).__name__}({self._value!r})"
        return f"{type(self).__name__}({self._value!r}, {self._unit!r})"


# ============================================================================
# Unit-aware properties
# ============================================================================

class UnitProperty(Property):
    """A numeric value with a unit out of a fixed unit table.

    UNITS maps every unit to its factor relative to BASE_UNIT.
    """

    UNITS: ClassVar[Dict[str, float]] = {}
    BASE_UNIT: ClassVar[str] = ""

    def __init__(self, value: Any = 0.0, unit: Optional[str] = None):
        unit = unit or self.BASE_UNIT
        self._check_unit(unit)
        super().__init__(value, unit)

    def _check_unit(self, unit: str) -> None:
        if unit not in self.UNITS:
            available = ', '.join(self.UNITS.keys())
            raise ValueError(
                f"Unknown unit '{unit}' for {type(self).__name__}. "
                f"Available units: {available}"
            )

    def set_value_and_unit(self, value: Any, unit: str) -> None:
        self._check_unit(unit)
        self._unit = unit
        self.value = value

    def is_numeric(self) -> bool:
        try:
            float(self._value)
        except (TypeError, ValueError):
            return False
        return True

    def get_value_by_unit(self, unit: str) -> float:
        """Return the value converted to unit.

        Raises:
            ValueError: If the unit is unknown or the value is not a number
        """
        self._check_unit(unit)
        try:
            number = float(self._value)
        except (TypeError, ValueError):
            raise ValueError(
                f"Value {self._value!r} of {type(self).__name__} is not a number"
            ) from None
        if unit == self._unit:
            return number
        return number * self.UNITS[self._unit] / self.UNITS[unit]


class LengthProperty(UnitProperty):
    type_tag = "lengthProperty"
    UNITS = {"mm": 1.0, "cm": 10.0, "m": 1000.0, "km": 1_000_000.0}
    BASE_UNIT = "mm"


class CoordinateProperty(LengthProperty):
    """Length used as a course model X or Y position."""
    type_tag = "coordinateProperty"


class SpeedProperty(UnitProperty):
    type_tag = "speedProperty"
    UNITS = {"mm/s": 1.0, "m/s": 1000.0, "km/h": 1_000_000.0 / 3600.0}
    BASE_UNIT = "mm/s"


class AngleProperty(UnitProperty):
    """Angle in degrees or radians. NaN means 'not specified'."""
    type_tag = "angleProperty"
    UNITS = {"deg": 1.0, "rad": 180.0 / math.pi}
    BASE_UNIT = "deg"

    def _comparable(self) -> Any:
        # NaN != NaN would make unspecified angles unequal to themselves
        if isinstance(self._value, float) and math.isnan(self._value):
            return "NaN"
        return self._value


class PercentProperty(UnitProperty):
    type_tag = "percentProperty"
    UNITS = {"%": 1.0}
    BASE_UNIT = "%"

    def __init__(self, value: Any = 0, unit: Optional[str] = None):
        super().__init__(value, unit)


# ============================================================================
# Plain properties
# ============================================================================

class StringProperty(Property):
    type_tag = "stringProperty"

    def __init__(self, value: Optional[str] = ""):
        super().__init__(value)

    @property
    def text(self) -> Optional[str]:
        return self._value

    @text.setter
    def text(self, text: Optional[str]) -> None:
        self.value = text


class LocationTypeProperty(StringProperty):
    """Name of the location type a location belongs to."""
    type_tag = "locationTypeProperty"


class IntegerProperty(Property):
    type_tag = "integerProperty"

    def __init__(self, value: Any = 0):
        super().__init__(value)


class BooleanProperty(Property):
    type_tag = "booleanProperty"

    def __init__(self, value: bool = False):
        super().__init__(value)


class SelectionProperty(Property):
    """Value out of a closed enumeration.

    A value that is not a member of the enumeration is kept as given so that
    validation can report it.
    """

    type_tag = "selectionProperty"

    def __init__(self, enum_cls: Type[Enum], value: Any = None):
        if value is None:
            value = next(iter(enum_cls))
        super().__init__(value)
        self.enum_cls = enum_cls

    @property
    def possible_values(self) -> List[Enum]:
        return list(self.enum_cls)

    def is_member(self) -> bool:
        return isinstance(self._value, self.enum_cls)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.enum_cls is other.enum_cls and self._value == other._value


class SymbolProperty(Property):
    """Default visual representation of a location or location type."""

    type_tag = "symbolProperty"

    def __init__(self, value: Any = None):
        super().__init__(value)


class ColorProperty(Property):
    """RGB colour stored as '#RRGGBB'."""

    type_tag = "colorProperty"

    def __init__(self, value: str = "#FF0000"):
        super().__init__(normalize_color(value))

    @property
    def value(self) -> str:
        return self._value

    @value.setter
    def value(self, value: str) -> None:
        self._value = normalize_color(value)
        self._changed = True

    @property
    def rgb(self) -> Tuple[int, int, int]:
        text = self._value.lstrip("#")
        return int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16)

    @classmethod
    def from_rgb(cls, red: int, green: int, blue: int) -> "ColorProperty":
        return cls(f"#{red:02X}{green:02X}{blue:02X}")


def normalize_color(text: str) -> str:
    """Return text as an upper-case '#RRGGBB' string.

    Raises:
        ValueError: If text is not a six digit hex colour
    """
    if not isinstance(text, str):
        raise ValueError(f"Invalid colour: {text!r}")
    value = text.strip()
    if not value.startswith("#"):
        value = "#" + value
    if len(value) != 7:
        raise ValueError(f"Invalid colour: {text!r}")
    int(value[1:], 16)
    return value.upper()


class TripleProperty(Property):
    """Optional integer triple, e.g. a vehicle's precise position in mm."""

    type_tag = "tripleProperty"

    def __init__(self, value: Optional[Tuple[int, int, int]] = None):
        super().__init__(tuple(value) if value is not None else None)


class StringSetProperty(Property):
    """Ordered list of strings such as member names or operations."""

    type_tag = "stringSetProperty"

    def __init__(self, items: Optional[List[str]] = None):
        super().__init__(list(items) if items else [])

    @property
    def items(self) -> List[str]:
        return self._value

    def add_item(self, item: str) -> None:
        self._value.append(item)
        self._changed = True

    def __iter__(self) -> Iterator[str]:
        return iter(self._value)

    def __len__(self) -> int:
        return len(self._value)


class KeyValueProperty:
    """One entry of a key/value set."""

    def __init__(self, key: str, value: str):
        self.key = key
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyValueProperty):
            return NotImplemented
        return self.key == other.key and self.value == other.value

    def __repr__(self) -> str:
        return f"KeyValueProperty({self.key!r}, {self.value!r})"


class KeyValueSetProperty(Property):
    """Ordered string-keyed bag, used for miscellaneous properties."""

    type_tag = "keyValueSetProperty"

    def __init__(self, entries: Optional[List[KeyValueProperty]] = None):
        super().__init__(list(entries) if entries else [])

    @property
    def entries(self) -> List[KeyValueProperty]:
        return self._value

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        for entry in self._value:
            if entry.key == key:
                return entry.value
        return default

    def set(self, key: str, value: str) -> None:
        """Replace the value of key in place, or append a new entry."""
        for entry in self._value:
            if entry.key == key:
                entry.value = value
                self._changed = True
                return
        self._value.append(KeyValueProperty(key, value))
        self._changed = True

    def remove(self, key: str) -> None:
        before = len(self._value)
        self._value = [entry for entry in self._value if entry.key != key]
        if len(self._value) != before:
            self._changed = True

    def items(self) -> List[Tuple[str, str]]:
        return [(entry.key, entry.value) for entry in self._value]

    def __contains__(self, key: str) -> bool:
        return any(entry.key == key for entry in self._value)

    def __len__(self) -> int:
        return len(self._value)


# Property classes by legacy type tag
PROPERTY_TYPES: Dict[str, Type[Property]] = {
    cls.type_tag: cls
    for cls in (
        StringProperty,
        LocationTypeProperty,
        IntegerProperty,
        BooleanProperty,
        LengthProperty,
        CoordinateProperty,
        SpeedProperty,
        AngleProperty,
        PercentProperty,
        SelectionProperty,
        SymbolProperty,
        ColorProperty,
        TripleProperty,
        StringSetProperty,
        KeyValueSetProperty,
    )
}


__all__ = [
    "Property",
    "UnitProperty",
    "LengthProperty",
    "CoordinateProperty",
    "SpeedProperty",
    "AngleProperty",
    "PercentProperty",
    "StringProperty",
    "LocationTypeProperty",
    "IntegerProperty",
    "BooleanProperty",
    "SelectionProperty",
    "SymbolProperty",
    "ColorProperty",
    "normalize_color",
    "TripleProperty",
    "StringSetProperty",
    "KeyValueProperty",
    "KeyValueSetProperty",
    "PROPERTY_TYPES",
]
