"""Exception types raised by the plant model layer.

Validation problems are never raised; they are returned as error strings by
the validator. The exceptions here cover contract violations on the registry
and failures while reading or writing model files.
"""

from pathlib import Path
from typing import Optional, Union


class PlantModelError(Exception):
    """Base class for all plant model errors."""


class DuplicateComponentError(PlantModelError, ValueError):
    """Raised when a name is already taken by a different component."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Component name '{name}' is already in use")


class ComponentNotFoundError(PlantModelError, KeyError):
    """Raised when a required component is not found in the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Component {name} not found")

    def __str__(self) -> str:
        return self.args[0]


class ModelIOError(PlantModelError, IOError):
    """Raised when a model file cannot be read or written."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            message = f"{message} ({self.path})"
        super().__init__(message)


class ModelFormatError(PlantModelError, ValueError):
    """Raised when a document is well-formed XML but not a valid model."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"Line {line}: {message}"
        super().__init__(message)


__all__ = [
    "PlantModelError",
    "DuplicateComponentError",
    "ComponentNotFoundError",
    "ModelIOError",
    "ModelFormatError",
]
