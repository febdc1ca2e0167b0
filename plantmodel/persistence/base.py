"""Shared machinery for model file persistors and readers.

Persistors validate the whole model before writing. Errors are handed to an
error handler once per operation, as one deduplicated batch; unless the
caller passes ignore_error=True nothing is written when errors exist.

Readers validate every converted component before it is inserted. Invalid
components are skipped and their errors kept as deserialization errors;
the rest of the file is still loaded.

Files are written through a temporary file in the target directory that
replaces the target in one step, so a failed write never leaves a partial
model file behind.
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, ClassVar, Dict, List, Optional, Union

from plantmodel.config.settings import is_enabled
from plantmodel.core.errors import ModelIOError
from plantmodel.core.system_model import SystemModel, create_system_model
from plantmodel.models.components import ModelComponent
from plantmodel.models.enums import ComponentKind
from plantmodel.validators.model_validator import validate_component, validate_model

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
ErrorHandler = Callable[[str, List[str]], None]
SystemModelFactory = Callable[[str], SystemModel]


def log_errors(title: str, errors: List[str]) -> None:
    """Default error handler: log the batch as warnings."""
    logger.warning(f"{title} ({len(errors)} problem(s))")
    for error in errors:
        logger.warning(f"  {error}")


def with_extension(file: PathLike, extension: str) -> Path:
    """Return file with extension appended unless it already ends with it."""
    path = Path(file)
    if path.suffix.lower() != extension:
        path = path.with_name(path.name + extension)
    return path


def write_atomic(path: Path, data: bytes) -> None:
    """Write data to path.

    Raises:
        ModelIOError: If the file cannot be written
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if not is_enabled('atomic_file_writes'):
            path.write_bytes(data)
            return

        handle = tempfile.NamedTemporaryFile(
            "wb", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        )
        tmp_path = Path(handle.name)
        try:
            with handle:
                handle.write(data)
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
    except OSError as e:
        logger.error(f"Failed to write {path}: {e}")
        raise ModelIOError(f"Cannot write model file: {e.strerror or e}", path) from e


def read_file(path: Path) -> bytes:
    """Read a model file.

    Raises:
        ModelIOError: If the file cannot be read
    """
    try:
        return path.read_bytes()
    except OSError as e:
        logger.error(f"Failed to read {path}: {e}")
        raise ModelIOError(f"Cannot read model file: {e.strerror or e}", path) from e


class ModelFilePersistor(ABC):
    """Writes a system model to a file of one format."""

    FILE_EXTENSION: ClassVar[str]
    FORMAT_DESCRIPTION: ClassVar[str]

    def __init__(self, error_handler: Optional[ErrorHandler] = None):
        self.error_handler = error_handler or log_errors
        self._validation_errors: List[str] = []

    def accepts(self, file: PathLike) -> bool:
        return Path(file).suffix.lower() == self.FILE_EXTENSION

    def get_validation_errors(self) -> List[str]:
        """Errors found by the last serialize() call."""
        return list(self._validation_errors)

    def serialize(
        self,
        model: SystemModel,
        model_name: str,
        file: PathLike,
        ignore_error: bool = False,
    ) -> bool:
        """Validate model and write it to file.

        Args:
            model: System model to write
            model_name: Name written into the file
            file: Target file; the format's extension is added if missing
            ignore_error: Write even if validation finds errors

        Returns:
            True if the file was written

        Raises:
            ValueError: If model is None
            ModelIOError: If the model cannot be encoded or the file cannot be written
        """
        if model is None:
            raise ValueError("model must not be None")
        path = with_extension(file, self.FILE_EXTENSION)

        result = validate_model(model)
        self._validation_errors = result.errors
        if not result.valid:
            self.error_handler(f"Model '{model_name}' is not consistent", result.errors)
            if not ignore_error:
                logger.info(f"Model '{model_name}' not saved to {path}")
                return False
            logger.warning(f"Saving model '{model_name}' despite {len(result.errors)} error(s)")

        try:
            data = self._encode(model, model_name)
        except (ValueError, TypeError) as e:
            # lxml rejects text that XML cannot carry, e.g. control characters
            logger.error(f"Failed to encode model '{model_name}': {e}")
            raise ModelIOError(f"Cannot encode model '{model_name}': {e}", path) from e
        write_atomic(path, data)
        logger.info(f"Saved model '{model_name}' to {path}")
        return True

    @abstractmethod
    def _encode(self, model: SystemModel, model_name: str) -> bytes:
        """Serialize model to the bytes of this format."""


class ModelFileReader(ABC):
    """Reads a system model from a file of one format."""

    FILE_EXTENSION: ClassVar[str]
    FORMAT_DESCRIPTION: ClassVar[str]

    def __init__(self, system_model_factory: SystemModelFactory = create_system_model):
        if system_model_factory is None:
            raise ValueError("system_model_factory must not be None")
        self.system_model_factory = system_model_factory
        self._errors: Dict[str, None] = {}

    def accepts(self, file: PathLike) -> bool:
        return Path(file).suffix.lower() == self.FILE_EXTENSION

    def get_deserialization_errors(self) -> List[str]:
        """Errors of the components skipped by the last deserialize() call."""
        return list(self._errors)

    def deserialize(self, file: PathLike) -> SystemModel:
        """Read a system model from file.

        The model is named after the file name without extension.

        Raises:
            ModelIOError: If the file cannot be read or is not a model file
        """
        path = Path(file)
        self._errors = {}
        data = read_file(path)
        model = self.system_model_factory(path.stem)
        self._decode(data, model, path)
        if self._errors:
            logger.warning(
                f"Loaded model '{model.name}' with {len(self._errors)} error(s); "
                f"invalid components were skipped"
            )
        else:
            logger.info(f"Loaded model '{model.name}' with {len(model)} components")
        return model

    def record_error(self, error: str) -> None:
        self._errors[error] = None

    def accept(self, model: SystemModel, component: ModelComponent,
               line: Optional[int] = None) -> bool:
        """Validate component and insert it into model if it is valid.

        Args:
            model: Model being loaded
            component: Converted component
            line: Source line of the component, prefixed to its errors
        """
        result = validate_component(model, component)
        if not result.valid:
            for error in result.errors:
                self.record_error(error if line is None else f"Line {line}: {error}")
            return False
        if component.kind == ComponentKind.LAYOUT:
            model.merge_layout(component)
        else:
            model.add(component)
        return True

    @abstractmethod
    def _decode(self, data: bytes, model: SystemModel, path: Path) -> None:
        """Convert data and accept its components into model."""


__all__ = [
    "ErrorHandler",
    "SystemModelFactory",
    "log_errors",
    "with_extension",
    "write_atomic",
    "read_file",
    "ModelFilePersistor",
    "ModelFileReader",
]
