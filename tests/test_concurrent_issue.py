import threading

from stockledger.extensions import db
from stockledger.services.inventory_ledger import InsufficientStockError, get_ledger


def _run_concurrently(app, variant_id, quantity, workers):
    barrier = threading.Barrier(workers)
    outcomes = []
    outcomes_lock = threading.Lock()

    def _worker():
        with app.app_context():
            ledger = get_ledger()
            barrier.wait()
            try:
                allocation = ledger.issue(variant_id, quantity, actor='worker')
                result = ('ok', allocation.total_allocated)
            except InsufficientStockError as e:
                result = ('short', e.available)
            with outcomes_lock:
                outcomes.append(result)

    threads = [threading.Thread(target=_worker) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return outcomes


class TestConcurrentIssue:
    def test_only_one_of_two_competing_issues_succeeds(self, app, ledger, stocked_variant):
        variant_id = stocked_variant.id
        db.session.commit()

        outcomes = _run_concurrently(app, variant_id, 7, workers=2)

        assert sorted(outcomes) == [('ok', 7), ('short', 3)]
        assert ledger.current_stock(variant_id) == 3

    def test_many_small_issues_never_oversell(self, app, ledger, stocked_variant):
        variant_id = stocked_variant.id
        db.session.commit()

        outcomes = _run_concurrently(app, variant_id, 1, workers=12)

        assert [kind for kind, _ in outcomes].count('ok') == 10
        assert [kind for kind, _ in outcomes].count('short') == 2
        assert ledger.current_stock(variant_id) == 0
        assert ledger.verify(variant_id).is_valid
