from .base import Base
from .project_models import Project, ProjectArea
from .catalog_models import Product, Driver, Accessory
from .configuration_models import Configuration, ConfigurationAccessory
from .boq_models import BoqVersion, BoqItem

__all__ = [
    "Base",
    "Project",
    "ProjectArea",
    "Product",
    "Driver",
    "Accessory",
    "Configuration",
    "ConfigurationAccessory",
    "BoqVersion",
    "BoqItem",
]
