import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from ...models import StockLot, StockMovement
from ._adjustment import apply_adjustment, apply_recount
from ._audit import audit_variant
from ._fifo_ops import allocate_fifo, allocate_many
from ._lot_ops import list_lots
from ._movement_log import DEFAULT_LIMIT, MAX_LIMIT, list_movements
from ._projection import project_product_stock, project_stock
from ._receiving import receive_lot
from ._resolver import CatalogVariantResolver, VariantResolver
from ._transaction import ledger_transaction
from ._validation import (
    clean_text,
    require_non_negative_int,
    require_nonzero_int,
    require_positive_int,
    require_unit_cost,
)
from .exceptions import InvalidArgumentError
from .results import (
    Allocation,
    IssueRequest,
    LedgerAudit,
    MovementFilter,
    ReceiptResult,
    StockSnapshot,
)

logger = logging.getLogger(__name__)

DEFAULT_ACTOR = 'system'


class StockLedger:
    """
    Entry point for every stock change and stock query.

    The ledger is bound to one database session; each mutating call validates its
    input, then runs as exactly one transaction on that session. Errors are raised
    as LedgerError subclasses after the transaction has been rolled back.
    """

    def __init__(
        self,
        session,
        resolver: Optional[VariantResolver] = None,
        lock_timeout: float = 10.0,
        default_actor: str = DEFAULT_ACTOR,
        movements_default_limit: int = DEFAULT_LIMIT,
        movements_max_limit: int = MAX_LIMIT,
    ):
        self.session = session
        self.resolver = resolver or CatalogVariantResolver(session)
        self.lock_timeout = lock_timeout
        self.default_actor = default_actor
        self.movements_default_limit = movements_default_limit
        self.movements_max_limit = movements_max_limit

    def _actor(self, actor) -> str:
        return clean_text(actor, 'actor', max_length=128) or self.default_actor

    def _transaction(self, variant_ids: Iterable[int] = ()):
        return ledger_transaction(self.session, variant_ids, lock_timeout=self.lock_timeout)

    # -- writes ---------------------------------------------------------------

    def receive(
        self,
        variant_id: int,
        quantity,
        unit_cost,
        arrival_time: Optional[datetime] = None,
        note: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> ReceiptResult:
        variant_id = require_positive_int(variant_id, 'variant_id')
        quantity = require_positive_int(quantity, 'quantity')
        cost: Decimal = require_unit_cost(unit_cost)
        if arrival_time is not None and not isinstance(arrival_time, datetime):
            raise InvalidArgumentError("received_at must be a datetime", received_at=arrival_time)
        note = clean_text(note, 'note')
        actor = self._actor(actor)

        with self._transaction():
            variant = self.resolver.resolve(variant_id)
            return receive_lot(
                self.session,
                variant,
                quantity,
                cost,
                arrival_time=arrival_time,
                note=note,
                actor=actor,
            )

    def issue(
        self,
        variant_id: int,
        quantity,
        note: Optional[str] = None,
        external_ref: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Allocation:
        variant_id = require_positive_int(variant_id, 'variant_id')
        quantity = require_positive_int(quantity, 'quantity')
        note = clean_text(note, 'note')
        external_ref = clean_text(external_ref, 'ref', max_length=128)
        actor = self._actor(actor)

        with self._transaction([variant_id]):
            variant = self.resolver.resolve(variant_id)
            return allocate_fifo(
                self.session,
                variant,
                quantity,
                note=note,
                external_ref=external_ref,
                actor=actor,
            )

    def issue_many(self, items: Sequence, actor: Optional[str] = None) -> List[Allocation]:
        """Issue every line or none of them; lines are allocated in the given order."""
        requests = [self._coerce_request(item) for item in items]
        if not requests:
            raise InvalidArgumentError("items required")
        actor = self._actor(actor)

        with self._transaction([request.variant_id for request in requests]):
            lines = [(self.resolver.resolve(request.variant_id), request) for request in requests]
            allocations = allocate_many(self.session, lines, actor=actor)

        logger.info("ISSUE: batch of %s line(s) committed", len(allocations))
        return allocations

    def adjust(
        self,
        variant_id: int,
        delta,
        note: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> StockMovement:
        variant_id = require_positive_int(variant_id, 'variant_id')
        delta = require_nonzero_int(delta, 'delta')
        note = clean_text(note, 'note')
        actor = self._actor(actor)

        with self._transaction([variant_id]):
            variant = self.resolver.resolve(variant_id)
            return apply_adjustment(self.session, variant, delta, note=note, actor=actor)

    def set_stock(
        self,
        variant_id: int,
        target,
        note: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Optional[StockMovement]:
        variant_id = require_positive_int(variant_id, 'variant_id')
        target = require_non_negative_int(target, 'stock')
        note = clean_text(note, 'note')
        actor = self._actor(actor)

        with self._transaction([variant_id]):
            variant = self.resolver.resolve(variant_id)
            return apply_recount(self.session, variant, target, note=note, actor=actor)

    # -- reads ----------------------------------------------------------------

    def snapshot(self, variant_id: int) -> StockSnapshot:
        return project_stock(self.session, self.resolver.resolve(variant_id))

    def current_stock(self, variant_id: int) -> int:
        return self.snapshot(variant_id).on_hand

    def weighted_average_cost(self, variant_id: int) -> Optional[Decimal]:
        return self.snapshot(variant_id).weighted_average_cost

    def product_stock(self, product_id: int) -> int:
        return project_product_stock(self.session, product_id)

    def lots(self, variant_id: int, include_depleted: bool = False) -> List[StockLot]:
        self.resolver.resolve(variant_id)
        return list_lots(self.session, variant_id, include_depleted=include_depleted)

    def list_movements(self, movement_filter: Optional[MovementFilter] = None) -> List[StockMovement]:
        return list_movements(
            self.session,
            movement_filter or MovementFilter(),
            default_limit=self.movements_default_limit,
            max_limit=self.movements_max_limit,
        )

    def verify(self, variant_id: int) -> LedgerAudit:
        return audit_variant(self.session, self.resolver.resolve(variant_id))

    # -- helpers --------------------------------------------------------------

    @staticmethod
    def _coerce_request(item) -> IssueRequest:
        if isinstance(item, IssueRequest):
            variant_id, quantity, note, ref = item.variant_id, item.quantity, item.note, item.external_ref
        elif isinstance(item, dict):
            variant_id = item.get('variant_id')
            quantity = item.get('quantity', item.get('qty'))
            note = item.get('note')
            ref = item.get('external_ref', item.get('ref'))
        else:
            raise InvalidArgumentError("each item must provide variant_id and quantity")

        return IssueRequest(
            variant_id=require_positive_int(variant_id, 'variant_id'),
            quantity=require_positive_int(quantity, 'quantity'),
            note=clean_text(note, 'note'),
            external_ref=clean_text(ref, 'ref', max_length=128),
        )
