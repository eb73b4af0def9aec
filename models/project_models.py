from sqlalchemy import (
    Column, Integer, String, Text, TIMESTAMP, ForeignKey
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from models.base import Base


class Project(Base):
    __tablename__ = "projects"

    project_id = Column(Integer, primary_key=True)
    project_name = Column(Text)
    project_code = Column(String(50))
    inquiry_type = Column(String(20), nullable=False, default="AREA_WISE")
    client_name = Column(Text)
    created_by = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_by = Column(Text)
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    areas = relationship("ProjectArea", back_populates="project")
    configurations = relationship("Configuration", back_populates="project")
    boq_versions = relationship("BoqVersion", back_populates="project")


class ProjectArea(Base):
    __tablename__ = "project_areas"

    area_id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.project_id"), nullable=False, index=True)
    area_name = Column(Text, nullable=False)
    parent_area_id = Column(Integer, ForeignKey("project_areas.area_id"))
    created_by = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    project = relationship("Project", back_populates="areas")
