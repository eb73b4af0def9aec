from sqlalchemy import (
    Column, Integer, String, Text, TIMESTAMP, DECIMAL
)
from sqlalchemy.sql import func
from models.base import Base


class Product(Base):
    __tablename__ = "products"

    prod_id = Column(Integer, primary_key=True)
    make = Column(String(100))
    order_code = Column(String(100), nullable=False, unique=True)
    mounting_style = Column(String(50))
    wattage = Column(DECIMAL(10, 2))
    lumen_output = Column(Integer)
    price = Column(DECIMAL(18, 4))
    base_price = Column(DECIMAL(18, 4))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())


class Driver(Base):
    __tablename__ = "drivers"

    driver_id = Column(Integer, primary_key=True)
    driver_code = Column(String(100))
    make = Column(String(100))
    order_code = Column(String(100), nullable=False, unique=True)
    max_wattage = Column(DECIMAL(10, 2))
    dimming_protocol = Column(String(50))
    price = Column(DECIMAL(18, 4))
    base_price = Column(DECIMAL(18, 4))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())


class Accessory(Base):
    __tablename__ = "accessories"

    accessory_id = Column(Integer, primary_key=True)
    make = Column(String(100))
    order_code = Column(String(100), nullable=False, unique=True)
    accessory_type = Column(String(50))
    accessory_category = Column(Text)
    price = Column(DECIMAL(18, 4))
    base_price = Column(DECIMAL(18, 4))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
