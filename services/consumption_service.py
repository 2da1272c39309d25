"""
services.consumption_service - Cutting material from inventory lots.

A cut takes one whole piece off a lot (quantity - 1) and, when the piece
still has material on it, puts that remainder back into stock as a new
single-piece SCRAP lot at the same location.  Pieces sharing a row are
interchangeable, so one must be detached before its spec can diverge.

The caller supplies the session and owns the transaction; decrement and
remainder insert must commit or roll back together.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from db.models import LotCondition
from services.exceptions import (
    InsufficientQuantityError, NotFoundError, ValidationError,
)
from services.lot_store import LotStore

logger = logging.getLogger(__name__)

# Remainders closer to zero than this are float residue, not material
SPEC_EPSILON = 1e-9


@dataclass(frozen=True)
class CutResult:
    lot_id: int
    remaining_spec: float
    scrap_lot_id: int | None = None


def _parse_request(lot_id: Any, use_amount: Any) -> tuple[int, float]:
    if not lot_id or not use_amount:
        raise ValidationError("Inventory ID and use amount are required")

    if isinstance(lot_id, bool) or (isinstance(lot_id, float) and not lot_id.is_integer()):
        raise ValidationError("Inventory ID must be an integer")
    try:
        lot_id = int(lot_id)
    except (TypeError, ValueError):
        raise ValidationError("Inventory ID must be an integer") from None

    if isinstance(use_amount, bool):
        raise ValidationError("Use amount must be a number")
    try:
        amount = float(use_amount)
    except (TypeError, ValueError):
        raise ValidationError("Use amount must be a number") from None
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError("Use amount must be a positive number")

    return lot_id, amount


class ConsumptionService:

    @staticmethod
    def cut(session: Session, lot_id: Any, use_amount: Any) -> CutResult:
        """
        Consume *use_amount* from one piece of lot *lot_id*.

        Checks run in order and the first failure wins:
        missing input → unknown lot → no whole piece → amount too large.
        Nothing is written until all checks pass.
        """
        lot_id, amount = _parse_request(lot_id, use_amount)

        lot = LotStore.fetch_lot(session, lot_id, for_update=True)
        if lot is None:
            raise NotFoundError("Inventory item not found")

        if lot.quantity < 1:
            logger.warning(f"Cut rejected: lot {lot_id} has no pieces left")
            raise InsufficientQuantityError(lot_id)

        remaining = lot.effective_spec - amount
        if abs(remaining) < SPEC_EPSILON:
            remaining = 0.0
        if remaining < 0:
            logger.warning(
                f"Cut rejected: lot {lot_id} holds {lot.effective_spec}, "
                f"asked for {amount}"
            )
            raise ValidationError("Use amount exceeds current spec")

        if not LotStore.take_one(session, lot_id):
            # another cut took the last piece between our read and write
            logger.warning(f"Cut lost race on lot {lot_id}")
            raise InsufficientQuantityError(lot_id)

        scrap_id = None
        if remaining > 0:
            scrap = LotStore.insert_lot(
                session,
                part_sku=lot.part_sku,
                location_code=lot.location_code,
                quantity=1,
                spec_value=remaining,
                condition=LotCondition.SCRAP,
            )
            scrap_id = scrap.id

        logger.info(
            f"Cut {amount} from lot {lot_id} ({lot.part_sku}); "
            f"remaining {remaining}"
            + (f" → scrap lot {scrap_id}" if scrap_id else "")
        )
        return CutResult(lot_id=lot_id, remaining_spec=remaining, scrap_lot_id=scrap_id)
