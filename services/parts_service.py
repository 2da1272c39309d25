"""
services.parts_service - CRUD operations on catalog entries.

All session management is the caller's responsibility (open before,
close/commit after).  This keeps the service testable and lets the
catalog row change and its supplier replacement share one transaction.
"""

from __future__ import annotations

import json
import logging
import math

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.models import InventoryLot, PartCatalog, PartSupplier
from services.exceptions import ConflictError, NotFoundError, ValidationError
from services.lot_store import LotStore

logger = logging.getLogger(__name__)

# Model attribute → accepted body keys (camelCase first, snake_case second)
CATALOG_FIELDS: dict[str, tuple[str, ...]] = {
    "category":        ("category",),
    "name":            ("name",),
    "mpn":             ("mpn",),
    "package_code":    ("packageCode", "package_code"),
    "description":     ("description",),
    "spec_definition": ("specDefinition", "spec_definition"),
    "image_url":       ("imageUrl", "image_url"),
    "default_spec":    ("defaultSpec", "default_spec"),
    "unit":            ("unit",),
}

SUPPLIER_FIELDS: dict[str, tuple[str, ...]] = {
    "supplier_code": ("supplierCode", "supplier_code"),
    "supplier_name": ("supplierName", "supplier_name"),
    "product_url":   ("productUrl", "product_url"),
}


def _pick(data: dict, keys: tuple[str, ...]):
    """First non-None value among *keys*, else None."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _clean_str(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_default_spec(value) -> float:
    if isinstance(value, bool):
        raise ValidationError("defaultSpec must be a number")
    try:
        spec = float(value)
    except (TypeError, ValueError):
        raise ValidationError("defaultSpec must be a number") from None
    if not math.isfinite(spec) or spec < 0:
        raise ValidationError("defaultSpec must be a non-negative number")
    return spec


def _dump_spec(value) -> str:
    if not isinstance(value, dict):
        raise ValidationError("specDefinition must be an object")
    return json.dumps(value, ensure_ascii=False)


def _build_suppliers(raw) -> list[PartSupplier]:
    if not isinstance(raw, list):
        raise ValidationError("suppliers must be a list")
    suppliers = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValidationError("each supplier must be an object")
        suppliers.append(PartSupplier(**{
            attr: _clean_str(_pick(entry, keys))
            for attr, keys in SUPPLIER_FIELDS.items()
        }))
    return suppliers


class PartsService:

    # ── Create ─────────────────────────────────────────────────────────

    @staticmethod
    def create(session: Session, data: dict) -> PartCatalog:
        """
        Create a catalog entry.  Required keys: sku, category, name.
        Suppliers, when given, are inserted alongside.
        """
        sku = _clean_str(data.get("sku"))
        category = _clean_str(data.get("category"))
        name = _clean_str(data.get("name"))
        if not (sku and category and name):
            raise ValidationError("SKU, category, and name are required")

        if session.get(PartCatalog, sku) is not None:
            raise ConflictError("Part with this SKU already exists")

        spec = _pick(data, CATALOG_FIELDS["spec_definition"])
        default_spec = _pick(data, CATALOG_FIELDS["default_spec"])
        part = PartCatalog(
            sku=sku,
            category=category,
            name=name,
            mpn=_clean_str(_pick(data, CATALOG_FIELDS["mpn"])),
            package_code=_clean_str(_pick(data, CATALOG_FIELDS["package_code"])),
            description=_clean_str(_pick(data, CATALOG_FIELDS["description"])),
            spec_definition=_dump_spec(spec if spec is not None else {}),
            image_url=_clean_str(_pick(data, CATALOG_FIELDS["image_url"])),
            default_spec=_parse_default_spec(default_spec) if default_spec is not None else 0.0,
            unit=_clean_str(_pick(data, CATALOG_FIELDS["unit"])) or "pcs",
        )

        suppliers = data.get("suppliers")
        if suppliers is not None:
            part.suppliers = _build_suppliers(suppliers)

        session.add(part)
        try:
            session.flush()
        except IntegrityError:
            # lost a race with a concurrent create of the same SKU
            raise ConflictError("Part with this SKU already exists") from None
        logger.info(f"Created part {sku} with {len(part.suppliers)} supplier(s)")
        return part

    # ── Read ───────────────────────────────────────────────────────────

    @staticmethod
    def get(session: Session, sku: str) -> PartCatalog | None:
        return session.get(PartCatalog, sku)

    @staticmethod
    def get_or_404(session: Session, sku: str) -> PartCatalog:
        part = PartsService.get(session, sku)
        if part is None:
            raise NotFoundError("Part not found")
        return part

    # ── Update ─────────────────────────────────────────────────────────

    @staticmethod
    def update(session: Session, sku: str, data: dict) -> PartCatalog:
        """
        Coalescing update: only fields present (and not null) change.
        A ``suppliers`` list replaces every existing supplier row.
        """
        part = PartsService.get_or_404(session, sku)

        for attr, keys in CATALOG_FIELDS.items():
            value = _pick(data, keys)
            if value is None:
                continue
            if attr == "spec_definition":
                part.spec_definition = _dump_spec(value)
            elif attr == "default_spec":
                part.default_spec = _parse_default_spec(value)
            elif attr in ("category", "name", "unit"):
                cleaned = _clean_str(value)
                if cleaned is None:
                    raise ValidationError(f"{attr} cannot be blank")
                setattr(part, attr, cleaned)
            else:
                setattr(part, attr, _clean_str(value))

        suppliers = data.get("suppliers")
        if suppliers is not None:
            replacement = _build_suppliers(suppliers)
            session.execute(delete(PartSupplier).where(PartSupplier.part_sku == sku))
            session.expire(part, ["suppliers"])
            for supplier in replacement:
                supplier.part_sku = sku
                session.add(supplier)

        session.flush()
        session.refresh(part)
        logger.info(f"Updated part {sku}")
        return part

    # ── Delete ─────────────────────────────────────────────────────────

    @staticmethod
    def delete(session: Session, sku: str) -> None:
        """
        Delete a catalog entry and its suppliers.

        Refused while any lot of the part still holds stock; lots that
        are down to zero pieces go with the part.
        """
        part = PartsService.get_or_404(session, sku)

        live = LotStore.count_live_lots(session, sku)
        if live:
            raise ConflictError(f"Part {sku} still has {live} lot(s) in stock")

        session.execute(delete(InventoryLot).where(InventoryLot.part_sku == sku))
        session.delete(part)
        session.flush()
        logger.info(f"Deleted part {sku}")

    # ── Lots ───────────────────────────────────────────────────────────

    @staticmethod
    def lots(session: Session, sku: str) -> dict:
        """Every lot row of a part, including ones with no pieces left."""
        default_spec = LotStore.default_spec(session, sku)
        if default_spec is None:
            raise NotFoundError("Part not found")
        unit = session.execute(
            select(PartCatalog.unit).where(PartCatalog.sku == sku)
        ).scalar_one()
        return {
            "sku": sku,
            "unit": unit,
            "default_spec": default_spec,
            "lots": [lot.to_dict() for lot in LotStore.list_lots(session, sku)],
        }
