import logging

from ._lot_ops import list_lots
from ._movement_log import lot_movement_totals, movement_sum
from ._projection import project_stock
from .results import LedgerAudit, LotDiscrepancy, VariantRef

logger = logging.getLogger(__name__)


def audit_variant(session, variant: VariantRef) -> LedgerAudit:
    """Replay the movement history and compare it with current lot state."""
    projected = project_stock(session, variant).on_hand
    replayed = movement_sum(session, variant.variant_id)

    per_lot = lot_movement_totals(session, variant.variant_id)
    discrepancies = []
    for lot in list_lots(session, variant.variant_id, include_depleted=True):
        expected = per_lot.get(lot.id, 0)
        if expected != lot.available_quantity:
            discrepancies.append(
                LotDiscrepancy(
                    lot_id=lot.id,
                    expected_available=expected,
                    actual_available=lot.available_quantity,
                )
            )

    audit = LedgerAudit(
        variant_id=variant.variant_id,
        projected_stock=projected,
        movement_sum=replayed,
        lot_discrepancies=discrepancies,
    )
    if not audit.is_valid:
        logger.error(
            "LEDGER SYNC MISMATCH for variant %s: projected=%s movements=%s lot_discrepancies=%s",
            variant.variant_id, projected, replayed, len(discrepancies),
        )
    return audit
