from decimal import Decimal

import pytest
from sqlalchemy import func, select

from stockledger.models import StockLot, StockMovement
from stockledger.services.inventory_ledger import (
    InsufficientStockError,
    InvalidArgumentError,
    VariantNotFoundError,
)


def _movement_count(session):
    return session.execute(select(func.count(StockMovement.id))).scalar_one()


def _balances(session, variant_id):
    return session.execute(
        select(StockLot.available_quantity)
        .where(StockLot.variant_id == variant_id)
        .order_by(StockLot.id)
    ).scalars().all()


class TestFifoAllocation:
    """Issues always drain the oldest lot first and record one movement per lot touched."""

    def test_issue_spans_lots_oldest_first(self, db_session, ledger, stocked_variant):
        allocation = ledger.issue(stocked_variant.id, 7, external_ref='ORDER-7')

        assert [(line.quantity_taken, line.unit_cost) for line in allocation.lines] == [
            (5, Decimal('10.0000')),
            (2, Decimal('20.0000')),
        ]
        assert allocation.total_allocated == 7
        assert allocation.total_cost == Decimal('90.0000')
        assert _balances(db_session, stocked_variant.id) == [0, 3]
        assert ledger.current_stock(stocked_variant.id) == 3

        outs = db_session.execute(
            select(StockMovement).where(StockMovement.kind == 'out').order_by(StockMovement.id)
        ).scalars().all()
        assert [(m.quantity_delta, m.lot_id, m.external_ref) for m in outs] == [
            (-5, allocation.lines[0].lot_id, 'ORDER-7'),
            (-2, allocation.lines[1].lot_id, 'ORDER-7'),
        ]
        assert [m.id for m in outs] == [line.movement_id for line in allocation.lines]

    def test_issue_exact_total_drains_every_lot(self, db_session, ledger, stocked_variant):
        ledger.issue(stocked_variant.id, 10)
        assert _balances(db_session, stocked_variant.id) == [0, 0]
        assert ledger.current_stock(stocked_variant.id) == 0
        assert ledger.weighted_average_cost(stocked_variant.id) is None

    def test_insufficient_stock_writes_nothing(self, db_session, ledger, stocked_variant):
        before = _movement_count(db_session)

        with pytest.raises(InsufficientStockError) as exc_info:
            ledger.issue(stocked_variant.id, 11)

        error = exc_info.value
        assert error.requested == 11
        assert error.available == 10
        assert error.status_code == 400
        assert error.details == {'variant_id': stocked_variant.id, 'requested': 11, 'available': 10}
        assert _movement_count(db_session) == before
        assert _balances(db_session, stocked_variant.id) == [5, 5]

    def test_negative_adjustment_caps_issuable_quantity(self, ledger, variant):
        ledger.receive(variant.id, 10, '1.00')
        ledger.adjust(variant.id, -3, note='found damaged')

        with pytest.raises(InsufficientStockError) as exc_info:
            ledger.issue(variant.id, 8)
        assert exc_info.value.available == 7

        ledger.issue(variant.id, 7)
        assert ledger.current_stock(variant.id) == 0

    def test_positive_adjustment_is_not_issuable(self, ledger, variant):
        ledger.adjust(variant.id, 4, note='found in back room')
        assert ledger.current_stock(variant.id) == 4

        with pytest.raises(InsufficientStockError) as exc_info:
            ledger.issue(variant.id, 1)
        assert exc_info.value.available == 0

    def test_unknown_variant(self, ledger):
        with pytest.raises(VariantNotFoundError) as exc_info:
            ledger.issue(9999, 1)
        assert exc_info.value.status_code == 404

    @pytest.mark.parametrize('quantity', [0, -2, True, None, 'abc', 1.5, 2**31, 10**20, '99999999999999999999'])
    def test_rejects_bad_quantity(self, ledger, stocked_variant, quantity):
        with pytest.raises(InvalidArgumentError):
            ledger.issue(stocked_variant.id, quantity)

    def test_accepts_integral_strings(self, ledger, stocked_variant):
        allocation = ledger.issue(stocked_variant.id, '3')
        assert allocation.total_allocated == 3

    def test_oversized_quantity_writes_nothing(self, db_session, ledger, stocked_variant):
        before = _movement_count(db_session)
        with pytest.raises(InvalidArgumentError) as exc_info:
            ledger.issue(stocked_variant.id, 10**20)
        assert 'must not exceed' in exc_info.value.message
        assert _movement_count(db_session) == before
        assert _balances(db_session, stocked_variant.id) == [5, 5]
