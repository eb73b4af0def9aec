"""
Async repository for project configuration and catalog reads.

Records are returned in the bare-id shape the normalizer understands; the
catalog maps are plain dict records so price precedence is applied in one
place.
"""
import logging
from typing import Any, Dict, List
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from core.exceptions import ProjectNotFound
from models.catalog_models import Accessory, Driver, Product
from models.configuration_models import Configuration
from models.domain import Area, CatalogMaps, InquiryMode
from models.project_models import Project, ProjectArea
from repositories.session import AsyncRepository

logger = logging.getLogger(__name__)


def _product_record(row: Product) -> Dict[str, Any]:
    return {
        "id": row.prod_id,
        "make": row.make,
        "order_code": row.order_code,
        "wattage": row.wattage,
        "price": row.price,
        "base_price": row.base_price,
    }


def _driver_record(row: Driver) -> Dict[str, Any]:
    return {
        "id": row.driver_id,
        "make": row.make,
        "order_code": row.order_code,
        "driver_code": row.driver_code,
        "price": row.price,
        "base_price": row.base_price,
    }


def _accessory_record(row: Accessory) -> Dict[str, Any]:
    return {
        "id": row.accessory_id,
        "make": row.make,
        "order_code": row.order_code,
        "name": row.accessory_type,
        "price": row.price,
        "base_price": row.base_price,
    }


class ConfigurationRepository(AsyncRepository):
    """Async repository for configuration, area and catalog data."""

    async def get_project(self, project_id: int) -> Dict[str, Any]:
        async with self.session("get project") as session:
            project = await session.get(Project, project_id)
            if project is None:
                raise ProjectNotFound(project_id)
            return {
                "project_id": project.project_id,
                "project_name": project.project_name,
                "inquiry_type": project.inquiry_type,
            }

    async def get_inquiry_mode(self, project_id: int) -> InquiryMode:
        project = await self.get_project(project_id)
        try:
            return InquiryMode(project["inquiry_type"] or InquiryMode.AREA_WISE.value)
        except ValueError:
            logger.warning(f"Project {project_id} has unknown inquiry type {project['inquiry_type']!r}; using AREA_WISE")
            return InquiryMode.AREA_WISE

    async def list_areas(self, project_id: int) -> List[Area]:
        """Top-level areas of a project; subareas roll up into their parent."""
        async with self.session("list areas") as session:
            result = await session.execute(
                select(ProjectArea)
                .where(ProjectArea.project_id == project_id, ProjectArea.parent_area_id.is_(None))
                .order_by(ProjectArea.area_id)
            )
            return [Area(id=row.area_id, name=row.area_name) for row in result.scalars().all()]

    async def list_configuration_records(self, project_id: int) -> List[Dict[str, Any]]:
        async with self.session("list configuration lines") as session:
            result = await session.execute(
                select(Configuration)
                .options(selectinload(Configuration.accessories))
                .where(Configuration.project_id == project_id)
                .order_by(Configuration.configuration_id)
            )
            records = []
            for row in result.scalars().all():
                records.append({
                    "id": row.configuration_id,
                    "area": row.area_id,
                    "subarea": row.subarea_id,
                    "product": row.product_id,
                    "driver": row.driver_id,
                    "accessory": row.accessory_id,
                    "accessories": [link.accessory_id for link in row.accessories],
                    "quantity": row.quantity,
                    "created_at": row.created_at,
                })
            logger.info(f"Loaded {len(records)} configuration records for project {project_id}")
            return records

    async def load_catalogs(self) -> CatalogMaps:
        async with self.session("load catalogs") as session:
            products = (await session.execute(select(Product))).scalars().all()
            drivers = (await session.execute(select(Driver))).scalars().all()
            accessories = (await session.execute(select(Accessory))).scalars().all()
            return CatalogMaps(
                products={row.prod_id: _product_record(row) for row in products},
                drivers={row.driver_id: _driver_record(row) for row in drivers},
                accessories={row.accessory_id: _accessory_record(row) for row in accessories},
            )
