"""
plantmodel - Plant layout models for driving-course based vehicle control.

Subpackages:
- models: Components, typed properties, enums and transfer objects
- core: SystemModel registry, errors and the course graph
- validators: Consistency rules applied on load and before save
- converters: Legacy (.opentcs) and unified (.xml) component conversion
- persistence: File and kernel persistors and readers
- managers: ModelManager, the load/save and coordinate facade
"""

__version__ = "0.1.0"
