"""
Stock ledger test suite.

Tests are organized by component:
- test_lot_store.py / test_movement_log.py: persistence primitives
- test_fifo_allocator.py / test_issue_many.py: allocation
- test_receiving.py / test_adjustment.py / test_projection.py / test_audit.py
- test_concurrent_issue.py / test_lock_registry.py: locking
- test_inventory_api.py / test_management_commands.py: outer surfaces
"""
