import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ...models import MovementKind
from ._lot_ops import create_lot
from ._movement_log import append_movement
from .results import ReceiptResult, VariantRef

logger = logging.getLogger(__name__)


def receive_lot(
    session,
    variant: VariantRef,
    quantity: int,
    unit_cost: Decimal,
    arrival_time: Optional[datetime] = None,
    note: Optional[str] = None,
    actor: Optional[str] = None,
) -> ReceiptResult:
    """Create a lot and its inbound movement; both land in the caller's transaction."""
    lot = create_lot(
        session,
        variant,
        quantity,
        unit_cost,
        arrival_time=arrival_time,
        note=note,
        created_by=actor,
    )
    movement = append_movement(
        session,
        variant,
        MovementKind.INBOUND,
        lot.initial_quantity,
        unit_cost=lot.unit_cost,
        lot_id=lot.id,
        note=note,
        actor=actor,
    )
    logger.info("RECEIVE: variant %s lot %s +%s @ %s", variant.variant_id, lot.id, quantity, lot.unit_cost)
    return ReceiptResult(lot=lot, movement=movement)
