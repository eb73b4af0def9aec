from decimal import Decimal

import pytest

from models.domain import (
    BOQLineItem,
    BOQVersion,
    CatalogItem,
    CatalogMaps,
    ConfigurationLine,
    ItemKind,
    VersionStatus,
)


def product(key, price, make="Lumen", wattage=None, id=None):
    return CatalogItem(ItemKind.PRODUCT, key, make, Decimal(str(price)), wattage=wattage, id=id)


def driver(key, price, make="Drivo", id=None):
    return CatalogItem(ItemKind.DRIVER, key, make, Decimal(str(price)), id=id)


def accessory(key, price, make="Acc", id=None):
    return CatalogItem(ItemKind.ACCESSORY, key, make, Decimal(str(price)), id=id)


def line(id, area_id, item, quantity, driver=None, accessories=()):
    return ConfigurationLine(
        id=id,
        area_id=area_id,
        item=item,
        quantity=quantity,
        driver=driver,
        accessories=tuple(accessories),
    )


def boq_item(id, area, key, qty, rate, item_type="PRODUCT"):
    rate = Decimal(str(rate))
    return BOQLineItem(
        id=id,
        area_name=area,
        item_type=item_type,
        item_name=key,
        qty=qty,
        unit_rate=rate,
        total=qty * rate,
        catalog_key=key,
    )


def snapshot(items, version_number=1, margin="0", status=VersionStatus.DRAFT, id=None):
    items = tuple(items)
    subtotal = sum((item.total for item in items), Decimal("0"))
    margin = Decimal(margin)
    return BOQVersion(
        id=id if id is not None else version_number,
        project_id=1,
        version_number=version_number,
        status=status,
        margin_percent=margin,
        items=items,
        subtotal=subtotal,
        grand_total=subtotal * (1 + margin / 100),
    )


@pytest.fixture
def catalogs():
    return CatalogMaps(
        products={
            1: {"id": 1, "make": "Lumen", "order_code": "DL-12-NW", "price": "1200", "wattage": 12},
            2: {"id": 2, "make": "Lumen", "order_code": "WPR-18-WW", "base_price": 3200},
        },
        drivers={
            10: {"id": 10, "make": "Drivo", "order_code": "DRV-350", "driver_code": "D350", "price": 450},
        },
        accessories={
            20: {"id": 20, "make": "Acc", "order_code": "LENS-30", "price": 50},
            21: {"id": 21, "make": "Acc", "order_code": "CLIP-2", "base_price": "15.50"},
        },
    )
