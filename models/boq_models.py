from sqlalchemy import (
    Column, Integer, String, Text, TIMESTAMP, ForeignKey, DECIMAL, UniqueConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from models.base import Base


class BoqVersion(Base):
    __tablename__ = "boq_versions"
    __table_args__ = (
        UniqueConstraint("project_id", "version_number", name="uq_boq_version_number"),
        UniqueConstraint("project_id", "request_key", name="uq_boq_request_key"),
    )

    boq_id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.project_id"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="DRAFT")
    margin_percent = Column(DECIMAL(9, 4), nullable=False, default=0)
    subtotal = Column(DECIMAL(24, 6), nullable=False, default=0)
    grand_total = Column(DECIMAL(24, 6), nullable=False, default=0)
    request_key = Column(String(100))
    approved_at = Column(TIMESTAMP(timezone=True))
    created_by = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    project = relationship("Project", back_populates="boq_versions")
    items = relationship(
        "BoqItem",
        back_populates="version",
        cascade="all, delete-orphan",
        order_by="BoqItem.item_id",
    )


class BoqItem(Base):
    __tablename__ = "boq_items"

    item_id = Column(Integer, primary_key=True)
    boq_id = Column(Integer, ForeignKey("boq_versions.boq_id"), nullable=False, index=True)
    area_name = Column(Text, nullable=False)
    item_type = Column(String(20), nullable=False)
    catalog_key = Column(String(100))
    item_name = Column(Text)
    quantity = Column(Integer, nullable=False)
    unit_rate = Column(DECIMAL(18, 4), nullable=False, default=0)
    total = Column(DECIMAL(24, 6), nullable=False, default=0)

    version = relationship("BoqVersion", back_populates="items")
