import threading

import pytest

from stockledger.extensions import db
from stockledger.services.inventory_ledger import LockTimeoutError, StockLedger, variant_locks
from stockledger.services.inventory_ledger._transaction import VariantLockRegistry, is_lock_failure


class TestVariantLockRegistry:
    def test_acquire_and_release(self):
        registry = VariantLockRegistry()
        held = registry.acquire([3, 1, 3], timeout=1)
        assert len(held) == 2
        registry.release(held)
        registry.release(registry.acquire([1, 3], timeout=1))

    def test_timeout_releases_partial_holds(self):
        registry = VariantLockRegistry()
        blocker = registry.acquire([2], timeout=1)
        try:
            with pytest.raises(LockTimeoutError) as exc_info:
                registry.acquire([1, 2], timeout=0.05)
            assert exc_info.value.retryable
            assert exc_info.value.status_code == 503
        finally:
            registry.release(blocker)

        # variant 1 was released when variant 2 timed out
        registry.release(registry.acquire([1], timeout=0.05))

    def test_variants_sharing_a_stripe_take_it_once(self):
        registry = VariantLockRegistry(stripes=4)
        held = registry.acquire([1, 5, 9], timeout=0.05)
        assert len(held) == 1
        registry.release(held)

    def test_lock_pool_does_not_grow_with_variant_ids(self):
        registry = VariantLockRegistry(stripes=8)
        for variant_id in range(1, 5000, 7):
            registry.release(registry.acquire([variant_id], timeout=0.05))
        assert registry.stripes == 8
        assert len(registry._locks) == 8

    def test_rejects_empty_pool(self):
        with pytest.raises(ValueError):
            VariantLockRegistry(stripes=0)

    def test_ledger_write_times_out_while_variant_is_held(self, app, db_session, stocked_variant):
        ledger = StockLedger(db_session, lock_timeout=0.05)
        variant_id = stocked_variant.id
        ready = threading.Event()
        done = threading.Event()

        def _hold():
            held = variant_locks.acquire([variant_id], timeout=1)
            ready.set()
            done.wait(timeout=5)
            variant_locks.release(held)

        holder = threading.Thread(target=_hold)
        holder.start()
        ready.wait(timeout=5)
        try:
            with pytest.raises(LockTimeoutError):
                ledger.issue(variant_id, 1)
        finally:
            done.set()
            holder.join(timeout=5)

        assert ledger.current_stock(variant_id) == 10
        db.session.rollback()


class _FakeOrig(Exception):
    def __init__(self, message, pgcode=None):
        super().__init__(message)
        self.pgcode = pgcode


class _FakeDBError(Exception):
    def __init__(self, orig):
        super().__init__(str(orig))
        self.orig = orig


@pytest.mark.parametrize('pgcode', ['55P03', '40P01', '57014'])
def test_postgres_lock_codes_are_lock_failures(pgcode):
    assert is_lock_failure(_FakeDBError(_FakeOrig('blocked', pgcode=pgcode)))


def test_sqlite_busy_is_lock_failure():
    assert is_lock_failure(_FakeDBError(_FakeOrig('database is locked')))
    assert not is_lock_failure(_FakeDBError(_FakeOrig('no such table: stock_lot', pgcode=None)))
