"""Transfer of system models to and from a plant-control kernel.

The kernel client itself is not part of this package. Anything that
implements KernelPlantModelService can be passed in, e.g. an RPC client
wrapper or, in tests, an in-memory fake.
"""

import logging
from typing import Callable, List, Optional, Protocol

from plantmodel.converters.unified_converter import export_plant_model
from plantmodel.core.system_model import SystemModel
from plantmodel.models.transfer import PlantModelTO
from plantmodel.persistence.base import ErrorHandler, log_errors
from plantmodel.validators.model_validator import validate_model

logger = logging.getLogger(__name__)


class KernelPlantModelService(Protocol):
    """Plant model operations offered by a kernel."""

    def create_plant_model(self, plant_model: PlantModelTO) -> None:
        """Replace the kernel's plant model with the given one."""

    def get_plant_model(self) -> PlantModelTO:
        """Return the kernel's current plant model."""


class ModelKernelPersistor:
    """Validates a system model and uploads it to a kernel."""

    def __init__(self, error_handler: Optional[ErrorHandler] = None):
        self.error_handler: Callable[[str, List[str]], None] = error_handler or log_errors
        self._validation_errors: List[str] = []

    def get_validation_errors(self) -> List[str]:
        return list(self._validation_errors)

    def persist(
        self,
        model: SystemModel,
        kernel: KernelPlantModelService,
        ignore_error: bool = False,
    ) -> bool:
        """Upload model to kernel.

        Args:
            model: System model to upload
            kernel: Kernel plant model service
            ignore_error: Upload even if validation finds errors

        Returns:
            True if the model was handed to the kernel

        Raises:
            ValueError: If model or kernel is None
        """
        if model is None:
            raise ValueError("model must not be None")
        if kernel is None:
            raise ValueError("kernel must not be None")

        result = validate_model(model)
        self._validation_errors = result.errors
        if not result.valid:
            self.error_handler(f"Model '{model.name}' is not consistent", result.errors)
            if not ignore_error:
                logger.info(f"Model '{model.name}' not uploaded to kernel")
                return False

        kernel.create_plant_model(export_plant_model(model))
        logger.info(f"Uploaded model '{model.name}' to kernel")
        return True


__all__ = ["KernelPlantModelService", "ModelKernelPersistor"]
