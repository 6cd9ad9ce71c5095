from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from sqlalchemy import select

from ...models import ProductVariant, StockLot
from ._lot_ops import list_lots
from ._movement_log import adjustment_net
from ._validation import COST_QUANTUM
from .results import StockSnapshot, VariantRef


def weighted_average_cost(lots: Iterable[StockLot]) -> Optional[Decimal]:
    """Cost-weighted mean over lots with stock left; None when there are none."""
    quantity = 0
    value = Decimal('0')
    for lot in lots:
        if lot.available_quantity <= 0:
            continue
        quantity += lot.available_quantity
        value += Decimal(lot.unit_cost) * lot.available_quantity
    if quantity == 0:
        return None
    return (value / quantity).quantize(COST_QUANTUM, rounding=ROUND_HALF_UP)


def project_stock(session, variant: VariantRef) -> StockSnapshot:
    lots = list_lots(session, variant.variant_id)
    return StockSnapshot(
        variant_id=variant.variant_id,
        product_id=variant.product_id,
        lot_balance=sum(lot.available_quantity for lot in lots),
        adjustment_net=adjustment_net(session, variant.variant_id),
        open_lots=len(lots),
        weighted_average_cost=weighted_average_cost(lots),
    )


def project_product_stock(session, product_id: int) -> int:
    variant_ids = session.execute(
        select(ProductVariant.id).where(ProductVariant.product_id == product_id)
    ).scalars().all()
    return sum(
        project_stock(session, VariantRef(variant_id=variant_id, product_id=product_id)).on_hand
        for variant_id in variant_ids
    )
