import logging
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select

from ...models import MovementKind, Product, ProductVariant, StockMovement
from ...utils.timezone_utils import TimezoneUtils
from ._validation import clean_text
from .exceptions import InvalidArgumentError, InvariantViolationError
from .results import MovementFilter, VariantRef

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 200
MAX_LIMIT = 1000


def _check_sign(kind: MovementKind, quantity_delta: int) -> None:
    if isinstance(quantity_delta, bool) or not isinstance(quantity_delta, int):
        raise InvariantViolationError(f"movement delta must be an integer, got {quantity_delta!r}")
    if kind is MovementKind.INBOUND and quantity_delta <= 0:
        raise InvariantViolationError("inbound movement must carry a positive delta")
    if kind is MovementKind.OUTBOUND and quantity_delta >= 0:
        raise InvariantViolationError("outbound movement must carry a negative delta")
    if kind is MovementKind.ADJUSTMENT and quantity_delta == 0:
        raise InvariantViolationError("adjustment movement must carry a non-zero delta")


def append_movement(
    session,
    variant: VariantRef,
    kind: MovementKind,
    quantity_delta: int,
    unit_cost: Optional[Decimal] = None,
    lot_id: Optional[int] = None,
    external_ref: Optional[str] = None,
    note: Optional[str] = None,
    actor: Optional[str] = None,
) -> StockMovement:
    """Insert one immutable movement and flush it so its id is available."""
    kind = MovementKind.parse(kind)
    _check_sign(kind, quantity_delta)
    if kind is MovementKind.ADJUSTMENT and (lot_id is not None or unit_cost is not None):
        raise InvariantViolationError("adjustments reference no lot and carry no unit cost")

    movement = StockMovement(
        variant_id=variant.variant_id,
        product_id=variant.product_id,
        kind=kind.value,
        quantity_delta=quantity_delta,
        unit_cost=unit_cost,
        lot_id=lot_id,
        external_ref=clean_text(external_ref, 'ref', max_length=128),
        note=clean_text(note, 'note'),
        actor=clean_text(actor, 'actor', max_length=128),
    )
    session.add(movement)
    session.flush()
    return movement


def list_movements(
    session,
    movement_filter: MovementFilter,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> List[StockMovement]:
    """Read-only movement history, newest first."""
    stmt = (
        select(StockMovement)
        .outerjoin(ProductVariant, ProductVariant.id == StockMovement.variant_id)
        .outerjoin(Product, Product.id == StockMovement.product_id)
    )

    if movement_filter.variant_id is not None:
        stmt = stmt.where(StockMovement.variant_id == movement_filter.variant_id)
    if movement_filter.kind:
        try:
            kind = MovementKind.parse(movement_filter.kind)
        except ValueError:
            raise InvalidArgumentError("unknown movement type", type=movement_filter.kind)
        stmt = stmt.where(StockMovement.kind == kind.value)
    if movement_filter.from_time is not None:
        stmt = stmt.where(StockMovement.created_at >= TimezoneUtils.ensure_timezone_aware(movement_filter.from_time))
    if movement_filter.to_time is not None:
        stmt = stmt.where(StockMovement.created_at < TimezoneUtils.ensure_timezone_aware(movement_filter.to_time))

    search = (movement_filter.text_search or '').strip()
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            or_(
                Product.name.ilike(pattern),
                ProductVariant.sku.ilike(pattern),
                StockMovement.note.ilike(pattern),
                StockMovement.external_ref.ilike(pattern),
            )
        )

    limit = movement_filter.limit or default_limit
    limit = max(1, min(int(limit), max_limit))
    offset = max(0, int(movement_filter.offset or 0))

    stmt = (
        stmt.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(session.execute(stmt).scalars().all())


def adjustment_net(session, variant_id: int) -> int:
    """Signed total of all adjustment movements for the variant."""
    total = session.execute(
        select(func.coalesce(func.sum(StockMovement.quantity_delta), 0)).where(
            StockMovement.variant_id == variant_id,
            StockMovement.kind == MovementKind.ADJUSTMENT.value,
        )
    ).scalar_one()
    return int(total or 0)


def movement_sum(session, variant_id: int) -> int:
    total = session.execute(
        select(func.coalesce(func.sum(StockMovement.quantity_delta), 0)).where(
            StockMovement.variant_id == variant_id,
        )
    ).scalar_one()
    return int(total or 0)


def lot_movement_totals(session, variant_id: int) -> Dict[int, int]:
    """Net movement delta per lot id (inbound minus outbound) for the variant."""
    rows = session.execute(
        select(StockMovement.lot_id, func.sum(StockMovement.quantity_delta))
        .where(
            StockMovement.variant_id == variant_id,
            StockMovement.lot_id.is_not(None),
        )
        .group_by(StockMovement.lot_id)
    ).all()
    return {lot_id: int(total or 0) for lot_id, total in rows}
