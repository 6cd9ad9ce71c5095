from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from ...models import StockLot, StockMovement
from ...utils.timezone_utils import TimezoneUtils


@dataclass(frozen=True)
class VariantRef:
    variant_id: int
    product_id: int


@dataclass(frozen=True)
class AllocationLine:
    lot_id: int
    quantity_taken: int
    unit_cost: Decimal
    movement_id: int

    def to_dict(self):
        return {
            'lot_id': self.lot_id,
            'allocated_qty': self.quantity_taken,
            'unit_cost': str(self.unit_cost),
            'move_id': self.movement_id,
        }


@dataclass
class Allocation:
    """How one issue request was fulfilled across lots, oldest lot first."""
    variant_id: int
    product_id: int
    requested: int
    lines: List[AllocationLine] = field(default_factory=list)

    @property
    def total_allocated(self) -> int:
        return sum(line.quantity_taken for line in self.lines)

    @property
    def total_cost(self) -> Decimal:
        return sum((line.unit_cost * line.quantity_taken for line in self.lines), Decimal('0'))

    def to_dict(self):
        return {
            'variant_id': self.variant_id,
            'product_id': self.product_id,
            'requested': self.requested,
            'total_allocated': self.total_allocated,
            'total_cost': str(self.total_cost),
            'allocations': [line.to_dict() for line in self.lines],
        }


@dataclass(frozen=True)
class IssueRequest:
    variant_id: int
    quantity: int
    note: Optional[str] = None
    external_ref: Optional[str] = None


@dataclass(frozen=True)
class ReceiptResult:
    lot: StockLot
    movement: StockMovement

    def to_dict(self):
        return {'lot': self.lot.to_dict(), 'movement': self.movement.to_dict()}


@dataclass(frozen=True)
class MovementFilter:
    variant_id: Optional[int] = None
    kind: Optional[str] = None
    from_time: Optional[datetime] = None
    to_time: Optional[datetime] = None
    text_search: Optional[str] = None
    limit: Optional[int] = None
    offset: int = 0


@dataclass(frozen=True)
class StockSnapshot:
    variant_id: int
    product_id: int
    lot_balance: int
    adjustment_net: int
    open_lots: int
    weighted_average_cost: Optional[Decimal]

    @property
    def on_hand(self) -> int:
        return self.lot_balance + self.adjustment_net

    def to_dict(self):
        wac = self.weighted_average_cost
        return {
            'variant_id': self.variant_id,
            'product_id': self.product_id,
            'stock': self.on_hand,
            'lot_balance': self.lot_balance,
            'adjustment_net': self.adjustment_net,
            'open_lots': self.open_lots,
            'avg_cost': str(wac) if wac is not None else None,
        }


@dataclass(frozen=True)
class LotDiscrepancy:
    lot_id: int
    expected_available: int
    actual_available: int


@dataclass(frozen=True)
class LedgerAudit:
    """Lot state versus the movement history for one variant."""
    variant_id: int
    projected_stock: int
    movement_sum: int
    lot_discrepancies: List[LotDiscrepancy] = field(default_factory=list)
    checked_at: datetime = field(default_factory=TimezoneUtils.utc_now)

    @property
    def is_valid(self) -> bool:
        return self.projected_stock == self.movement_sum and not self.lot_discrepancies

    def to_dict(self):
        return {
            'variant_id': self.variant_id,
            'projected_stock': self.projected_stock,
            'movement_sum': self.movement_sum,
            'is_valid': self.is_valid,
            'lot_discrepancies': [
                {
                    'lot_id': d.lot_id,
                    'expected_available': d.expected_available,
                    'actual_available': d.actual_available,
                }
                for d in self.lot_discrepancies
            ],
            'checked_at': TimezoneUtils.format_datetime_for_api(self.checked_at),
        }
