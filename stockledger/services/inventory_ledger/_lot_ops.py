import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update

from ...models import ProductVariant, StockLot
from ...utils.timezone_utils import TimezoneUtils
from ._validation import clean_text, require_positive_int, require_unit_cost
from .exceptions import InvalidArgumentError, InvariantViolationError
from .results import VariantRef

logger = logging.getLogger(__name__)


def _fifo_order():
    return (StockLot.arrived_at.asc(), StockLot.id.asc())


def variant_lock_statement(variant_ids):
    return (
        select(ProductVariant.id)
        .where(ProductVariant.id.in_(sorted(set(variant_ids))))
        .order_by(ProductVariant.id)
        .with_for_update()
    )


def lock_variant_rows(session, variant_ids) -> None:
    """
    Row-lock the variants themselves, in ascending id order.

    Issues and adjustments both take this lock before reading stock, so writers in
    different processes serialize on the variant even when it has no open lots.
    """
    session.execute(variant_lock_statement(variant_ids)).all()


def list_available_lots(session, variant_id: int, lock: bool = True) -> List[StockLot]:
    """
    Lots for the variant with stock left, oldest arrival first (id breaks ties).

    With lock=True the rows are read FOR UPDATE and refreshed from the database,
    so callers inside a transaction see the latest committed quantities and hold
    them until commit.
    """
    stmt = (
        select(StockLot)
        .where(
            StockLot.variant_id == variant_id,
            StockLot.available_quantity > 0,
        )
        .order_by(*_fifo_order())
    )
    if lock:
        # SQLite renders no FOR UPDATE; the variant process lock covers it there
        stmt = stmt.with_for_update(of=StockLot).execution_options(populate_existing=True)
    return list(session.execute(stmt).scalars().all())


def list_lots(session, variant_id: int, include_depleted: bool = False) -> List[StockLot]:
    stmt = select(StockLot).where(StockLot.variant_id == variant_id)
    if not include_depleted:
        stmt = stmt.where(StockLot.available_quantity > 0)
    return list(session.execute(stmt.order_by(*_fifo_order())).scalars().all())


def decrement_lot(session, lot: StockLot, amount: int) -> StockLot:
    """Take amount out of a locked lot; never lets available_quantity go negative."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvariantViolationError(
            f"lot {lot.id} decrement must be a positive integer, got {amount!r}"
        )
    if amount > lot.available_quantity:
        raise InvariantViolationError(
            f"lot {lot.id} would go negative: available={lot.available_quantity}, decrement={amount}"
        )

    result = session.execute(
        update(StockLot)
        .where(
            StockLot.id == lot.id,
            StockLot.available_quantity >= amount,
        )
        .values(available_quantity=StockLot.available_quantity - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvariantViolationError(
            f"lot {lot.id} changed underneath the allocator; decrement of {amount} refused"
        )

    session.refresh(lot, attribute_names=['available_quantity'])
    logger.debug("LOT: decremented lot %s by %s, now %s", lot.id, amount, lot.available_quantity)
    return lot


def create_lot(
    session,
    variant: VariantRef,
    initial_quantity: int,
    unit_cost,
    arrival_time: Optional[datetime] = None,
    note: Optional[str] = None,
    created_by: Optional[str] = None,
) -> StockLot:
    quantity = require_positive_int(initial_quantity, 'quantity')
    cost: Decimal = require_unit_cost(unit_cost)
    if arrival_time is not None and not isinstance(arrival_time, datetime):
        raise InvalidArgumentError("received_at must be a datetime", received_at=arrival_time)

    lot = StockLot(
        variant_id=variant.variant_id,
        product_id=variant.product_id,
        initial_quantity=quantity,
        available_quantity=quantity,
        unit_cost=cost,
        arrived_at=TimezoneUtils.ensure_timezone_aware(arrival_time) or TimezoneUtils.utc_now(),
        note=clean_text(note, 'note'),
        created_by=created_by,
    )
    session.add(lot)
    session.flush()

    logger.info("LOT: created lot %s with %s units @ %s for variant %s", lot.id, quantity, cost, variant.variant_id)
    return lot
