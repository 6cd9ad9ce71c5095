from decimal import Decimal

from stockledger.services.inventory_ledger._projection import weighted_average_cost
from stockledger.models import StockLot


class TestProjection:
    def test_weighted_average_follows_remaining_lots(self, ledger, stocked_variant):
        assert ledger.weighted_average_cost(stocked_variant.id) == Decimal('15.0000')

        ledger.issue(stocked_variant.id, 7)

        assert ledger.weighted_average_cost(stocked_variant.id) == Decimal('20.0000')

    def test_weighted_average_rounds_to_four_places(self):
        lots = [
            StockLot(available_quantity=1, unit_cost=Decimal('1')),
            StockLot(available_quantity=2, unit_cost=Decimal('2')),
            StockLot(available_quantity=0, unit_cost=Decimal('99')),
        ]
        assert weighted_average_cost(lots) == Decimal('1.6667')

    def test_no_lots_means_no_cost(self, ledger, variant):
        assert ledger.weighted_average_cost(variant.id) is None
        assert ledger.current_stock(variant.id) == 0

    def test_snapshot_shape(self, ledger, stocked_variant):
        ledger.adjust(stocked_variant.id, -1)
        data = ledger.snapshot(stocked_variant.id).to_dict()

        assert data['stock'] == 9
        assert data['lot_balance'] == 10
        assert data['adjustment_net'] == -1
        assert data['open_lots'] == 2
        assert data['avg_cost'] == '15.0000'

    def test_product_stock_sums_variants(self, ledger, make_variant):
        first = make_variant(product_name='Rose Candle')
        second = make_variant(product=first.product)
        other = make_variant(product_name='Pine Candle')
        ledger.receive(first.id, 4, '1.00')
        ledger.receive(second.id, 6, '1.00')
        ledger.adjust(second.id, -1)
        ledger.receive(other.id, 50, '1.00')

        assert ledger.product_stock(first.product_id) == 9
        assert ledger.product_stock(123456) == 0
