from sqlalchemy import (
    Column, Integer, TIMESTAMP, ForeignKey
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from models.base import Base


class Configuration(Base):
    """
    A product (or standalone driver/accessory) placed in a project area.

    ``quantity`` is kept as stored; the normalizer coerces bad values.
    """
    __tablename__ = "configurations"

    configuration_id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.project_id"), nullable=False, index=True)
    area_id = Column(Integer, ForeignKey("project_areas.area_id"))
    subarea_id = Column(Integer, ForeignKey("project_areas.area_id"))
    product_id = Column(Integer, ForeignKey("products.prod_id"))
    driver_id = Column(Integer, ForeignKey("drivers.driver_id"))
    accessory_id = Column(Integer, ForeignKey("accessories.accessory_id"))
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    project = relationship("Project", back_populates="configurations")
    accessories = relationship(
        "ConfigurationAccessory",
        back_populates="configuration",
        cascade="all, delete-orphan",
    )


class ConfigurationAccessory(Base):
    __tablename__ = "configuration_accessories"

    id = Column(Integer, primary_key=True)
    configuration_id = Column(Integer, ForeignKey("configurations.configuration_id"), nullable=False, index=True)
    accessory_id = Column(Integer, ForeignKey("accessories.accessory_id"), nullable=False)

    configuration = relationship("Configuration", back_populates="accessories")
