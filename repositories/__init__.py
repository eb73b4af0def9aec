"""
Database repositories.
"""
from .boq_repository import BOQRepository
from .configuration_repository import ConfigurationRepository

__all__ = [
    "BOQRepository",
    "ConfigurationRepository",
]
