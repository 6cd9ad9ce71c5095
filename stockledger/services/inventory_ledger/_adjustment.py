"""
Adjustment handler - stock corrections that never touch lots.

Adjustments reconcile the projected stock with a physical count without
inventing lot history, so they carry no lot reference and no unit cost and
leave the weighted average cost alone.
"""

import logging
from typing import Optional

from ...models import MovementKind, StockMovement
from ._lot_ops import lock_variant_rows
from ._movement_log import append_movement
from ._projection import project_stock
from .exceptions import InvalidArgumentError
from .results import VariantRef

logger = logging.getLogger(__name__)


def apply_adjustment(
    session,
    variant: VariantRef,
    delta: int,
    note: Optional[str] = None,
    actor: Optional[str] = None,
) -> StockMovement:
    lock_variant_rows(session, [variant.variant_id])
    current = project_stock(session, variant).on_hand
    if current + delta < 0:
        raise InvalidArgumentError(
            "adjustment would take stock below zero",
            variant_id=variant.variant_id,
            delta=delta,
            available=current,
        )
    movement = append_movement(session, variant, MovementKind.ADJUSTMENT, delta, note=note, actor=actor)
    logger.info("ADJUST: variant %s %+d (%s -> %s)", variant.variant_id, delta, current, current + delta)
    return movement


def apply_recount(
    session,
    variant: VariantRef,
    target: int,
    note: Optional[str] = None,
    actor: Optional[str] = None,
) -> Optional[StockMovement]:
    """Set absolute stock by writing the difference; None when already at target."""
    current = project_stock(session, variant).on_hand
    delta = target - current
    if delta == 0:
        logger.info("ADJUST: variant %s already at %s, nothing written", variant.variant_id, target)
        return None
    recount_note = note or f"set stock {current} -> {target}"
    return apply_adjustment(session, variant, delta, note=recount_note, actor=actor)
