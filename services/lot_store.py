"""
services.lot_store - Persistence boundary for inventory lots.

Every method takes the caller's session; the caller owns the
transaction (see db.engine.Store.transaction).
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from db.models import InventoryLot, LotCondition, PartCatalog, utcnow


@dataclass(frozen=True)
class LotSnapshot:
    """A lot row as read at the start of a cut, joined with its catalog default."""

    id: int
    part_sku: str
    location_code: str
    quantity: int
    spec_value: float
    condition: str
    default_spec: float

    @property
    def effective_spec(self) -> float:
        if self.condition == LotCondition.NEW.value:
            return self.default_spec
        return self.spec_value


class LotStore:

    # ── Reads ──────────────────────────────────────────────────────────

    @staticmethod
    def fetch_lot(session: Session, lot_id: int, *, for_update: bool = False) -> LotSnapshot | None:
        """
        Read one lot joined with its part's default spec.

        for_update requests a row lock on stores that have one
        (rendered as nothing on SQLite).
        """
        stmt = (
            select(InventoryLot, PartCatalog.default_spec)
            .join(PartCatalog, InventoryLot.part_sku == PartCatalog.sku)
            .where(InventoryLot.id == lot_id)
        )
        if for_update:
            stmt = stmt.with_for_update(of=InventoryLot)

        row = session.execute(stmt).first()
        if row is None:
            return None
        lot, default_spec = row
        return LotSnapshot(
            id=lot.id,
            part_sku=lot.part_sku,
            location_code=lot.location_code,
            quantity=lot.quantity,
            spec_value=lot.spec_value,
            condition=lot.condition,
            default_spec=default_spec or 0.0,
        )

    @staticmethod
    def default_spec(session: Session, sku: str) -> float | None:
        """Nominal spec of a NEW piece of *sku*, or None for an unknown SKU."""
        return session.execute(
            select(PartCatalog.default_spec).where(PartCatalog.sku == sku)
        ).scalar_one_or_none()

    @staticmethod
    def list_lots(session: Session, sku: str) -> list[InventoryLot]:
        return list(session.execute(
            select(InventoryLot)
            .where(InventoryLot.part_sku == sku)
            .order_by(InventoryLot.id)
        ).scalars())

    @staticmethod
    def count_live_lots(session: Session, sku: str) -> int:
        return session.execute(
            select(func.count(InventoryLot.id)).where(
                InventoryLot.part_sku == sku,
                InventoryLot.quantity > 0,
            )
        ).scalar_one()

    # ── Writes ─────────────────────────────────────────────────────────

    @staticmethod
    def take_one(session: Session, lot_id: int) -> bool:
        """
        Remove one whole piece from a lot and touch its timestamp.

        The WHERE clause re-checks quantity at write time, so a piece
        taken by a concurrent cut since our read makes this a no-op.
        Returns False when no row was decremented.
        """
        result = session.execute(
            update(InventoryLot)
            .where(InventoryLot.id == lot_id, InventoryLot.quantity >= 1)
            .values(quantity=InventoryLot.quantity - 1, last_updated=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def insert_lot(
        session: Session,
        *,
        part_sku: str,
        location_code: str,
        quantity: int = 1,
        spec_value: float = 0.0,
        condition: LotCondition | str = LotCondition.NEW,
    ) -> InventoryLot:
        lot = InventoryLot(
            part_sku=part_sku,
            location_code=location_code,
            quantity=quantity,
            spec_value=spec_value,
            condition=LotCondition(condition).value,
            last_updated=utcnow(),
        )
        session.add(lot)
        session.flush()
        return lot
