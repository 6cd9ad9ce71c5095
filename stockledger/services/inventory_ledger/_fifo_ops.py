import logging
from typing import List, Optional

from ...models import MovementKind
from ._lot_ops import decrement_lot, list_available_lots, lock_variant_rows
from ._movement_log import adjustment_net, append_movement
from .exceptions import ConcurrentMutationError, InsufficientStockError
from .results import Allocation, AllocationLine, VariantRef

logger = logging.getLogger(__name__)


def issuable_quantity(session, variant_id: int, lots) -> int:
    """Locked lot balance, capped by on-hand stock when recounts removed units."""
    lot_balance = sum(lot.available_quantity for lot in lots)
    return lot_balance + min(0, adjustment_net(session, variant_id))


def allocate_fifo(
    session,
    variant: VariantRef,
    quantity: int,
    note: Optional[str] = None,
    external_ref: Optional[str] = None,
    actor: Optional[str] = None,
) -> Allocation:
    """
    Issue quantity from the variant's lots, oldest first.

    Must run inside a ledger transaction that holds the variant's lock. Either the
    whole quantity is allocated or an error is raised before anything is written;
    the caller's transaction rolls back whatever was written before a late failure.
    """
    lock_variant_rows(session, [variant.variant_id])
    lots = list_available_lots(session, variant.variant_id, lock=True)

    total_available = issuable_quantity(session, variant.variant_id, lots)
    if total_available < quantity:
        logger.warning(
            "ISSUE: refused variant %s, requested=%s available=%s",
            variant.variant_id, quantity, max(total_available, 0),
        )
        raise InsufficientStockError(variant.variant_id, quantity, max(total_available, 0))

    allocation = Allocation(
        variant_id=variant.variant_id,
        product_id=variant.product_id,
        requested=quantity,
    )
    remaining = quantity

    for lot in lots:
        if remaining <= 0:
            break
        take = min(remaining, lot.available_quantity)
        if take <= 0:
            continue

        decrement_lot(session, lot, take)
        movement = append_movement(
            session,
            variant,
            MovementKind.OUTBOUND,
            -take,
            unit_cost=lot.unit_cost,
            lot_id=lot.id,
            external_ref=external_ref,
            note=note,
            actor=actor,
        )
        allocation.lines.append(
            AllocationLine(
                lot_id=lot.id,
                quantity_taken=take,
                unit_cost=lot.unit_cost,
                movement_id=movement.id,
            )
        )
        remaining -= take

    if remaining > 0:
        logger.error(
            "ISSUE: lots for variant %s drained outside the lock; requested=%s allocated=%s",
            variant.variant_id, quantity, quantity - remaining,
        )
        raise ConcurrentMutationError(variant.variant_id, quantity, quantity - remaining)

    logger.info(
        "ISSUE: variant %s issued %s across %s lot(s)",
        variant.variant_id, quantity, len(allocation.lines),
    )
    return allocation


def lock_variants(session, variant_ids) -> None:
    """Take row locks on the variants and their open lots in ascending variant order."""
    lock_variant_rows(session, variant_ids)
    for variant_id in sorted(set(variant_ids)):
        list_available_lots(session, variant_id, lock=True)


def allocate_many(session, lines: List[tuple], actor: Optional[str] = None) -> List[Allocation]:
    """Allocate (VariantRef, IssueRequest) pairs in order within one transaction."""
    lock_variants(session, [variant.variant_id for variant, _ in lines])
    return [
        allocate_fifo(
            session,
            variant,
            request.quantity,
            note=request.note,
            external_ref=request.external_ref,
            actor=actor,
        )
        for variant, request in lines
    ]
