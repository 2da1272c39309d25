"""
db.models - SQLAlchemy ORM declarations.

Tables
------
parts_catalog   - one row per SKU.  Holds the nominal spec (default_spec)
                  every NEW lot of the part is assumed to carry.
part_suppliers  - supplier links, replaced as a whole set on update.
locations       - storage locations referenced by lots.
inventory       - physical lots.  quantity counts identical pieces,
                  spec_value is the measure left on each SCRAP piece.
"""

from __future__ import annotations

import enum
import json
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint, Column, DateTime, Float, ForeignKey, Index, Integer,
    String, Text,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class LotCondition(str, enum.Enum):
    NEW = "NEW"
    SCRAP = "SCRAP"


class PartCatalog(Base):
    __tablename__ = "parts_catalog"

    sku             = Column(String(100), primary_key=True)
    category        = Column(String(100), nullable=False, index=True)
    name            = Column(String(300), nullable=False, index=True)
    mpn             = Column(String(200), nullable=True)
    package_code    = Column(String(100), nullable=True, index=True)
    description     = Column(Text, nullable=True)
    spec_definition = Column(Text, default="{}")
    image_url       = Column(Text, nullable=True)
    default_spec    = Column(Float, nullable=False, default=0.0)
    unit            = Column(String(20), nullable=False, default="pcs")

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    suppliers = relationship(
        "PartSupplier", back_populates="part",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="PartSupplier.id",
    )

    __table_args__ = (
        CheckConstraint("default_spec >= 0", name="ck_catalog_default_spec"),
    )

    @property
    def spec(self) -> dict:
        """Deserialized specification document ({} when unreadable)."""
        if not self.spec_definition:
            return {}
        try:
            return json.loads(self.spec_definition)
        except (json.JSONDecodeError, TypeError):
            return {}

    def to_dict(self) -> dict:
        return {
            "sku": self.sku,
            "category": self.category,
            "name": self.name,
            "mpn": self.mpn,
            "package_code": self.package_code,
            "description": self.description,
            "spec_definition": self.spec,
            "image_url": self.image_url,
            "default_spec": self.default_spec,
            "unit": self.unit,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "suppliers": [s.to_dict() for s in self.suppliers],
        }


class PartSupplier(Base):
    __tablename__ = "part_suppliers"

    id            = Column(Integer, primary_key=True, autoincrement=True)
    part_sku      = Column(String(100),
                           ForeignKey("parts_catalog.sku", ondelete="CASCADE"),
                           nullable=False, index=True)
    supplier_code = Column(String(200), nullable=True, index=True)
    supplier_name = Column(String(200), nullable=True)
    product_url   = Column(Text, nullable=True)

    part = relationship("PartCatalog", back_populates="suppliers")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "part_sku": self.part_sku,
            "supplier_code": self.supplier_code,
            "supplier_name": self.supplier_name,
            "product_url": self.product_url,
        }


class Location(Base):
    __tablename__ = "locations"

    code        = Column(String(100), primary_key=True)
    type        = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)


class InventoryLot(Base):
    __tablename__ = "inventory"

    id            = Column(Integer, primary_key=True, autoincrement=True)
    part_sku      = Column(String(100), ForeignKey("parts_catalog.sku"),
                           nullable=False, index=True)
    location_code = Column(String(100), ForeignKey("locations.code"),
                           nullable=False)
    quantity      = Column(Integer, nullable=False, default=1)
    spec_value    = Column(Float, nullable=False, default=0.0)
    condition     = Column(String(10), nullable=False, default=LotCondition.NEW.value)
    last_updated  = Column(DateTime, default=utcnow, onupdate=utcnow)

    part = relationship("PartCatalog")
    location = relationship("Location")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity"),
        CheckConstraint("spec_value >= 0", name="ck_inventory_spec_value"),
        CheckConstraint("condition IN ('NEW', 'SCRAP')", name="ck_inventory_condition"),
        Index("ix_inventory_sku_qty", "part_sku", "quantity"),
    )

    @property
    def effective_spec(self) -> float:
        # NEW pieces are untouched, so the catalog nominal applies
        if self.condition == LotCondition.NEW.value:
            return self.part.default_spec
        return self.spec_value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "part_sku": self.part_sku,
            "location_code": self.location_code,
            "quantity": self.quantity,
            "spec_value": self.spec_value,
            "condition": self.condition,
            "effective_spec": self.effective_spec,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }
