import json


class TestLedgerCommands:
    def test_receive_issue_and_stock(self, runner, variant):
        variant_id = variant.id

        received = runner.invoke(args=['ledger', 'receive', str(variant_id), '5', '2.50', '--note', 'cli lot'])
        assert received.exit_code == 0, received.output
        assert 'Received lot' in received.output

        issued = runner.invoke(args=['ledger', 'issue', str(variant_id), '2', '--ref', 'CLI-1'])
        assert issued.exit_code == 0, issued.output
        assert 'Issued 2' in issued.output

        stock = runner.invoke(args=['ledger', 'stock', str(variant_id)])
        assert stock.exit_code == 0, stock.output
        assert json.loads(stock.output)['stock'] == 3

    def test_recount_and_verify(self, runner, variant):
        variant_id = variant.id
        runner.invoke(args=['ledger', 'receive', str(variant_id), '4', '1.00'])

        recount = runner.invoke(args=['ledger', 'stock', str(variant_id), '--set', '1'])
        assert json.loads(recount.output)['stock'] == 1

        adjusted = runner.invoke(args=['ledger', 'adjust', str(variant_id), '2'])
        assert adjusted.exit_code == 0, adjusted.output
        assert 'stock now 3' in adjusted.output

        verified = runner.invoke(args=['ledger', 'verify', str(variant_id)])
        assert verified.exit_code == 0, verified.output
        assert 'Ledger consistent' in verified.output

    def test_refusal_exits_non_zero(self, runner, variant):
        result = runner.invoke(args=['ledger', 'issue', str(variant.id), '1'])
        assert result.exit_code == 1
        assert 'insufficient_stock' in result.output
