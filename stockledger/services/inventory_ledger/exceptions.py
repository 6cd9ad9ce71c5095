"""Ledger error kinds.

Every failure the ledger reports derives from ``LedgerError`` and carries a
stable ``code``, the HTTP status the service layer should answer with, whether
a caller may retry it, and structured ``details`` limited to values the caller
supplied (variant id, requested and available quantities).
"""

from __future__ import annotations

from typing import Any, Dict


class LedgerError(RuntimeError):
    code = "ledger_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = {k: v for k, v in details.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "details": dict(self.details),
        }


class InvalidArgumentError(LedgerError):
    """Malformed input: non-positive quantity, negative cost, zero delta."""
    code = "invalid_argument"
    status_code = 400


class VariantNotFoundError(LedgerError):
    code = "not_found"
    status_code = 404

    def __init__(self, variant_id):
        super().__init__("variant not found", variant_id=variant_id)
        self.variant_id = variant_id


class InsufficientStockError(LedgerError):
    code = "insufficient_stock"
    status_code = 400

    def __init__(self, variant_id, requested: int, available: int):
        super().__init__(
            "Insufficient stock",
            variant_id=variant_id,
            requested=requested,
            available=available,
        )
        self.variant_id = variant_id
        self.requested = requested
        self.available = available


class ConcurrentMutationError(LedgerError):
    """Locked lots ran out mid-walk. Signals broken lock discipline; never retry."""
    code = "concurrent_mutation"
    status_code = 409

    def __init__(self, variant_id, requested: int, allocated: int):
        super().__init__(
            "Concurrent stock change detected",
            variant_id=variant_id,
            requested=requested,
            allocated=allocated,
        )
        self.variant_id = variant_id
        self.requested = requested
        self.allocated = allocated


class LockTimeoutError(LedgerError):
    code = "lock_timeout"
    status_code = 503
    retryable = True


class InvariantViolationError(LedgerError):
    code = "invariant_violation"
    status_code = 500
