"""
Stock ledger: FIFO lot costing with an append-only movement log.

Use ``get_ledger()`` inside an application context, or build a ``StockLedger``
around any SQLAlchemy session.
"""

from flask import current_app

from ...extensions import db
from ._core import StockLedger
from ._resolver import CatalogVariantResolver, VariantResolver
from ._transaction import ledger_transaction, variant_locks
from .exceptions import (
    ConcurrentMutationError,
    InsufficientStockError,
    InvalidArgumentError,
    InvariantViolationError,
    LedgerError,
    LockTimeoutError,
    VariantNotFoundError,
)
from .results import (
    Allocation,
    AllocationLine,
    IssueRequest,
    LedgerAudit,
    MovementFilter,
    ReceiptResult,
    StockSnapshot,
    VariantRef,
)


def get_ledger(session=None, resolver=None) -> StockLedger:
    """Ledger bound to the request's session and configured from the app."""
    config = current_app.config
    return StockLedger(
        session if session is not None else db.session,
        resolver=resolver,
        lock_timeout=config.get('LEDGER_LOCK_TIMEOUT_SECONDS', 10.0),
        default_actor=config.get('LEDGER_DEFAULT_ACTOR', 'system'),
        movements_default_limit=config.get('LEDGER_MOVEMENTS_DEFAULT_LIMIT', 200),
        movements_max_limit=config.get('LEDGER_MOVEMENTS_MAX_LIMIT', 1000),
    )


__all__ = [
    'StockLedger',
    'get_ledger',
    'ledger_transaction',
    'variant_locks',
    'VariantResolver',
    'CatalogVariantResolver',
    'LedgerError',
    'InvalidArgumentError',
    'VariantNotFoundError',
    'InsufficientStockError',
    'ConcurrentMutationError',
    'LockTimeoutError',
    'InvariantViolationError',
    'Allocation',
    'AllocationLine',
    'IssueRequest',
    'LedgerAudit',
    'MovementFilter',
    'ReceiptResult',
    'StockSnapshot',
    'VariantRef',
]
