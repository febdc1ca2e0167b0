"""Consistency validation for plant model components.

validate_component() decides whether a component can be (or stay) part of a
system model. It returns a fresh ValidationResult on every call:

    result = validate_component(model, path)
    if not result:
        for error in result.errors:
            print(error)

Rules per component kind:
- Required properties missing: error, validation stops for that component
- Names that do not resolve (path ends, link ends, members, location type,
  vehicle points): error, validation continues and fails at the end
- Numeric values out of range: repaired in place, warning logged, no error
- Enumerated values that are not members: error

validate_model() runs the check for every component and returns the
deduplicated errors of the whole pass. ModelValidator keeps the older
accumulate-and-reset calling convention on top of the same checks.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Type

from plantmodel.core.system_model import SystemModel
from plantmodel.models.components import MemberListModel, ModelComponent
from plantmodel.models.enums import (
    ComponentKind,
    EnergyState,
    LinerType,
    PointType,
    ProcState,
    parse_enum,
)
from plantmodel.models.keys import OverlayKeys, PropKeys, is_no_reference
from plantmodel.models.properties import Property, UnitProperty

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Outcome of validating one component or a whole model."""

    valid: bool
    errors: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid


class ComponentCheck:
    """Collects errors while the rules for one component run."""

    def __init__(self, model: SystemModel, component: ModelComponent):
        self.model = model
        self.component = component
        self.errors: List[str] = []

    @property
    def valid(self) -> bool:
        return not self.errors

    def error(self, message: str) -> None:
        text = f"{self.component.name}: {message}"
        logger.info(text)
        self.errors.append(text)

    def warn(self, message: str) -> None:
        logger.warning(f"{self.component.name}: {message}")

    def require(self, keys: Iterable[str]) -> bool:
        """Record an error for every missing property; True if none is missing."""
        present = True
        for key in keys:
            if self.component.get_property(key) is None:
                self.error(f"Missing property '{key}'")
                present = False
        return present

    def prop(self, key: str) -> Property:
        return self.component.get_property(key)

    def resolve(
        self,
        name: Optional[str],
        kinds: FrozenSet[ComponentKind],
        role: str,
    ) -> Optional[ModelComponent]:
        """Resolve a referenced name to a component of one of the given kinds.

        Records an error naming the role and the reference when the name does
        not exist or refers to a component of another kind.
        """
        target = self.model.get(name)
        if target is None:
            self.error(f"{role} '{name}' does not exist")
            return None
        if target.kind not in kinds:
            expected = " or ".join(sorted(kind.value for kind in kinds))
            self.error(f"{role} '{name}' is a {target.kind.value}, expected {expected}")
            return None
        return target

    def number(self, key: str, description: str, unit: Optional[str] = None) -> Optional[float]:
        """Numeric value of a property, or None with an error if not a number."""
        prop = self.prop(key)
        try:
            if unit is not None and isinstance(prop, UnitProperty):
                return prop.get_value_by_unit(unit)
            return float(prop.value)
        except (TypeError, ValueError):
            self.error(f"{description} '{prop.value}' is not a number")
            return None

    def enum_member(self, key: str, enum_cls: Type[Enum], description: str) -> Optional[Enum]:
        value = parse_enum(enum_cls, self.prop(key).value)
        if not isinstance(value, enum_cls):
            self.error(f"Invalid {description} '{value}'")
            return None
        return value

    def non_empty(self, key: str, description: str) -> bool:
        value = self.prop(key).value
        if value is None or str(value).strip() == "":
            self.error(f"{description} is empty")
            return False
        return True

    def result(self) -> ValidationResult:
        return ValidationResult(self.valid, list(self.errors))


# ============================================================================
# Kind rules
# ============================================================================

POINT_KINDS = frozenset({ComponentKind.POINT})
LOCATION_KINDS = frozenset({ComponentKind.LOCATION})
LOCATION_TYPE_KINDS = frozenset({ComponentKind.LOCATION_TYPE})

# Kinds a member of a block, group or static route may refer to
MEMBER_KINDS: Dict[ComponentKind, FrozenSet[ComponentKind]] = {
    ComponentKind.BLOCK: frozenset({
        ComponentKind.POINT, ComponentKind.PATH, ComponentKind.LOCATION, ComponentKind.LINK,
    }),
    ComponentKind.GROUP: frozenset(set(ComponentKind) - {ComponentKind.LAYOUT}),
    ComponentKind.STATIC_ROUTE: POINT_KINDS,
}

REQUIRED_PROPERTIES: Dict[ComponentKind, List[str]] = {
    ComponentKind.LAYOUT: [PropKeys.SCALE_X, PropKeys.SCALE_Y],
    ComponentKind.POINT: [
        PropKeys.MODEL_X_POSITION,
        PropKeys.MODEL_Y_POSITION,
        PropKeys.VEHICLE_ORIENTATION_ANGLE,
        PropKeys.TYPE,
        OverlayKeys.POSITION_X,
        OverlayKeys.POSITION_Y,
    ],
    ComponentKind.PATH: [
        PropKeys.LENGTH,
        PropKeys.ROUTING_COST,
        PropKeys.MAX_VELOCITY,
        PropKeys.MAX_REVERSE_VELOCITY,
        OverlayKeys.CONN_TYPE,
        OverlayKeys.CONTROL_POINTS,
        PropKeys.START_COMPONENT,
        PropKeys.END_COMPONENT,
        PropKeys.LOCKED,
    ],
    ComponentKind.LOCATION_TYPE: [PropKeys.ALLOWED_OPERATIONS],
    ComponentKind.LOCATION: [
        PropKeys.MODEL_X_POSITION,
        PropKeys.MODEL_Y_POSITION,
        OverlayKeys.POSITION_X,
        OverlayKeys.POSITION_Y,
        PropKeys.TYPE,
        OverlayKeys.LABEL_OFFSET_X,
        OverlayKeys.LABEL_OFFSET_Y,
        OverlayKeys.LABEL_ORIENTATION_ANGLE,
    ],
    ComponentKind.LINK: [PropKeys.START_COMPONENT, PropKeys.END_COMPONENT],
    ComponentKind.BLOCK: [PropKeys.BLOCK_ELEMENTS],
    ComponentKind.GROUP: [PropKeys.GROUP_ELEMENTS],
    ComponentKind.STATIC_ROUTE: [PropKeys.STATIC_ROUTE_ELEMENTS],
    ComponentKind.VEHICLE: [
        PropKeys.LENGTH,
        PropKeys.ENERGY_LEVEL_CRITICAL,
        PropKeys.ENERGY_LEVEL_GOOD,
        PropKeys.ENERGY_LEVEL,
        PropKeys.ENERGY_STATE,
        PropKeys.LOADED,
        PropKeys.PROC_STATE,
        PropKeys.INTEGRATION_LEVEL,
        PropKeys.POINT,
        PropKeys.NEXT_POINT,
        PropKeys.PRECISE_POSITION,
        PropKeys.ORIENTATION_ANGLE,
    ],
}


def _check_layout(check: ComponentCheck) -> None:
    for key in (PropKeys.SCALE_X, PropKeys.SCALE_Y):
        scale = check.number(key, f"Scale '{key}'", "mm")
        if scale is not None and scale < 0:
            check.error(f"Scale '{key}' must not be negative: {scale}")


def _check_point(check: ComponentCheck) -> None:
    angle_prop = check.prop(PropKeys.VEHICLE_ORIENTATION_ANGLE)
    angle = check.number(PropKeys.VEHICLE_ORIENTATION_ANGLE, "Orientation angle", "deg")
    if angle is not None and angle < 0:
        normalized = 360 + math.fmod(angle, 360)
        if normalized >= 360:
            normalized = 0.0
        check.warn(f"Orientation angle {angle} normalized to {normalized}")
        angle_prop.set_value_and_unit(normalized, "deg")

    check.enum_member(PropKeys.TYPE, PointType, "point type")

    check.non_empty(PropKeys.MODEL_X_POSITION, "Model X position")
    check.non_empty(PropKeys.MODEL_Y_POSITION, "Model Y position")
    check.non_empty(OverlayKeys.POSITION_X, "Layout X position")
    check.non_empty(OverlayKeys.POSITION_Y, "Layout Y position")


def _check_path(check: ComponentCheck) -> None:
    length = check.number(PropKeys.LENGTH, "Length", "mm")
    if length is not None and length < 1:
        check.warn(f"Length {length} mm is less than 1 mm, set to 1 mm")
        check.prop(PropKeys.LENGTH).set_value_and_unit(1.0, "mm")

    for key in (PropKeys.MAX_VELOCITY, PropKeys.MAX_REVERSE_VELOCITY):
        velocity = check.number(key, f"Velocity '{key}'", "mm/s")
        if velocity is not None and velocity < 0:
            check.warn(f"Velocity '{key}' {velocity} mm/s is negative, set to 0")
            check.prop(key).set_value_and_unit(0.0, "mm/s")

    for key, role in ((PropKeys.START_COMPONENT, "Start component"),
                      (PropKeys.END_COMPONENT, "End component")):
        if check.non_empty(key, role):
            check.resolve(check.prop(key).value, POINT_KINDS, role)

    liner_type = check.enum_member(OverlayKeys.CONN_TYPE, LinerType, "connection type")
    if liner_type is not None and liner_type.needs_control_points:
        control_points = check.prop(OverlayKeys.CONTROL_POINTS).value
        if not control_points:
            check.error(f"Connection type {liner_type.value} requires control points")


def _check_location_type(check: ComponentCheck) -> None:
    # Only the presence of the allowed operations is required
    pass


def _check_location(check: ComponentCheck) -> None:
    check.number(PropKeys.MODEL_X_POSITION, "Model X position", "mm")
    check.number(PropKeys.MODEL_Y_POSITION, "Model Y position", "mm")

    for key in (OverlayKeys.POSITION_X, OverlayKeys.POSITION_Y):
        value = check.prop(key).value
        try:
            int(value)
        except (TypeError, ValueError):
            check.error(f"Layout position '{key}' is not an integer: '{value}'")

    if check.non_empty(PropKeys.TYPE, "Location type"):
        check.resolve(check.prop(PropKeys.TYPE).value, LOCATION_TYPE_KINDS, "Location type")


def _check_link(check: ComponentCheck) -> None:
    start_ok = check.non_empty(PropKeys.START_COMPONENT, "Start component")
    end_ok = check.non_empty(PropKeys.END_COMPONENT, "End component")
    if start_ok:
        check.resolve(check.prop(PropKeys.START_COMPONENT).value, POINT_KINDS, "Start component")
    if end_ok:
        check.resolve(check.prop(PropKeys.END_COMPONENT).value, LOCATION_KINDS, "End component")


def _check_members(check: ComponentCheck) -> None:
    component: MemberListModel = check.component
    allowed = MEMBER_KINDS[component.kind]
    seen = set()
    for member in check.prop(component.ELEMENTS_KEY).value:
        if member in seen:
            check.error(f"Element '{member}' is listed multiple times")
            continue
        seen.add(member)
        check.resolve(member, allowed, "Element")


def _clamp_percent(check: ComponentCheck, key: str, description: str) -> Optional[float]:
    level = check.number(key, description)
    if level is None:
        return None
    if level < 0 or level > 100:
        clamped = min(max(level, 0), 100)
        check.warn(f"{description} {level} out of range, set to {clamped}")
        check.prop(key).value = int(clamped)
        return clamped
    return level


def _check_vehicle(check: ComponentCheck) -> None:
    component = check.component

    length = check.number(PropKeys.LENGTH, "Length", "mm")
    if length is not None and length < 1:
        check.warn(f"Length {length} mm is less than 1 mm, set to 1 mm")
        check.prop(PropKeys.LENGTH).set_value_and_unit(1.0, "mm")

    critical = _clamp_percent(check, PropKeys.ENERGY_LEVEL_CRITICAL, "Critical energy level")
    good = _clamp_percent(check, PropKeys.ENERGY_LEVEL_GOOD, "Good energy level")
    if critical is not None and good is not None and good < critical:
        check.warn(f"Good energy level {good} below critical level {critical}, raised to {critical}")
        check.prop(PropKeys.ENERGY_LEVEL_GOOD).value = int(critical)
    _clamp_percent(check, PropKeys.ENERGY_LEVEL, "Energy level")

    if component.has_property(PropKeys.ENERGY_LEVEL_FULLY_RECHARGED) and \
            component.has_property(PropKeys.ENERGY_LEVEL_SUFFICIENTLY_RECHARGED):
        fully = _clamp_percent(
            check, PropKeys.ENERGY_LEVEL_FULLY_RECHARGED, "Fully recharged energy level")
        sufficiently = _clamp_percent(
            check, PropKeys.ENERGY_LEVEL_SUFFICIENTLY_RECHARGED,
            "Sufficiently recharged energy level")
        if fully is not None and sufficiently is not None and fully < sufficiently:
            check.warn(f"Fully recharged level {fully} below sufficiently recharged "
                       f"level {sufficiently}, raised to {sufficiently}")
            check.prop(PropKeys.ENERGY_LEVEL_FULLY_RECHARGED).value = int(sufficiently)

    check.enum_member(PropKeys.ENERGY_STATE, EnergyState, "energy state")
    check.enum_member(PropKeys.PROC_STATE, ProcState, "processing state")

    angle = check.number(PropKeys.ORIENTATION_ANGLE, "Orientation angle", "deg")
    if angle is not None and angle < 0:
        check.warn(f"Orientation angle {angle} is negative, set to 0")
        check.prop(PropKeys.ORIENTATION_ANGLE).set_value_and_unit(0.0, "deg")

    for key, role in ((PropKeys.POINT, "Current point"), (PropKeys.NEXT_POINT, "Next point")):
        point_name = check.prop(key).value
        if not is_no_reference(point_name):
            check.resolve(point_name, POINT_KINDS, role)


_RULES: Dict[ComponentKind, Callable[[ComponentCheck], None]] = {
    ComponentKind.LAYOUT: _check_layout,
    ComponentKind.POINT: _check_point,
    ComponentKind.PATH: _check_path,
    ComponentKind.LOCATION_TYPE: _check_location_type,
    ComponentKind.LOCATION: _check_location,
    ComponentKind.LINK: _check_link,
    ComponentKind.BLOCK: _check_members,
    ComponentKind.GROUP: _check_members,
    ComponentKind.STATIC_ROUTE: _check_members,
    ComponentKind.VEHICLE: _check_vehicle,
}

_missing_rules = set(ComponentKind) - set(_RULES)
if _missing_rules:
    raise RuntimeError(f"No validation rules for component kinds: {sorted(_missing_rules)}")


# ============================================================================
# Public API
# ============================================================================

def validate_component(model: Optional[SystemModel], component: Optional[ModelComponent]) -> ValidationResult:
    """Check whether component is consistent with model.

    Args:
        model: System model used for name resolution
        component: Component to check; need not be part of model yet

    Returns:
        ValidationResult with the errors found by this call only
    """
    if model is None:
        message = "No system model to validate against"
        logger.info(message)
        return ValidationResult(False, [message])
    if component is None:
        message = "No component to validate"
        logger.info(message)
        return ValidationResult(False, [message])

    check = ComponentCheck(model, component)
    name = component.name
    if name is None or name.strip() == "":
        message = f"Invalid name '{name if name is not None else ''}' of {component.kind.value}"
        logger.info(message)
        return ValidationResult(False, [message])

    existing = model.get(name)
    same_layout = component.kind == ComponentKind.LAYOUT and existing is model.layout
    if existing is not None and existing is not component and not same_layout:
        check.error(f"Component name '{name}' used multiple times")
        return check.result()

    if not check.require(REQUIRED_PROPERTIES[component.kind]):
        return check.result()

    _RULES[component.kind](check)
    return check.result()


def validate_model(model: SystemModel) -> ValidationResult:
    """Validate every component of model.

    Returns:
        ValidationResult; errors are deduplicated in first-seen order
    """
    if model is None:
        raise ValueError("model must not be None")
    errors: Dict[str, None] = {}
    valid = True
    for component in model.components():
        result = validate_component(model, component)
        if not result.valid:
            valid = False
            errors.update(dict.fromkeys(result.errors))
    return ValidationResult(valid, list(errors))


class ModelValidator:
    """Accumulating validator.

    Each is_valid_with() call appends its errors to the instance; call
    reset_errors() before every independent validation pass.
    """

    def __init__(self):
        self._errors: List[str] = []

    def is_valid_with(self, model: Optional[SystemModel], component: Optional[ModelComponent]) -> bool:
        result = validate_component(model, component)
        self._errors.extend(result.errors)
        return result.valid

    def get_errors(self) -> List[str]:
        return list(self._errors)

    def reset_errors(self) -> None:
        self._errors = []


__all__ = [
    "ValidationResult",
    "ComponentCheck",
    "REQUIRED_PROPERTIES",
    "MEMBER_KINDS",
    "validate_component",
    "validate_model",
    "ModelValidator",
]
