"""
Manager components for plantmodel.
"""

from .model_manager import (
    ModelManager,
    POSITIONED_KINDS,
)

__all__ = [
    'ModelManager',
    'POSITIONED_KINDS',
]
