import enum

from sqlalchemy import event

from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils, movement_clock


class MovementKind(str, enum.Enum):
    INBOUND = 'in'
    OUTBOUND = 'out'
    ADJUSTMENT = 'adjust'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        normalized = str(value or '').strip().lower()
        # Legacy move_type spellings
        aliases = {'inbound': 'in', 'outbound': 'out', 'adj': 'adjust', 'adjustment': 'adjust'}
        return cls(aliases.get(normalized, normalized))


class StockMovement(db.Model):
    """Append-only audit record of a single quantity change."""
    __tablename__ = 'stock_movement'

    id = db.Column(db.Integer, primary_key=True)
    variant_id = db.Column(db.Integer, db.ForeignKey('product_variant.id'), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False, index=True)
    kind = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)
    # Null for adjustments
    unit_cost = db.Column(db.Numeric(12, 4), nullable=True)
    lot_id = db.Column(db.Integer, db.ForeignKey('stock_lot.id'), nullable=True, index=True)
    external_ref = db.Column(db.String(128), nullable=True)
    note = db.Column(db.Text, nullable=True)
    actor = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=movement_clock, nullable=False)

    lot = db.relationship('StockLot', foreign_keys=[lot_id])
    variant = db.relationship('ProductVariant', foreign_keys=[variant_id])
    product = db.relationship('Product', foreign_keys=[product_id])

    __table_args__ = (
        db.CheckConstraint(
            "(kind = 'in' AND quantity_delta > 0)"
            " OR (kind = 'out' AND quantity_delta < 0)"
            " OR (kind = 'adjust' AND quantity_delta <> 0)",
            name='ck_stock_movement_delta_sign',
        ),
        db.Index('idx_stock_movement_variant_created', 'variant_id', 'created_at'),
        db.Index('idx_stock_movement_created', 'created_at', 'id'),
    )

    def __repr__(self):
        return f'<StockMovement {self.id} | Variant {self.variant_id} | {self.kind}: {self.quantity_delta}>'

    def to_dict(self):
        return {
            'move_id': self.id,
            'variant_id': self.variant_id,
            'product_id': self.product_id,
            'move_type': self.kind,
            'change_qty': self.quantity_delta,
            'unit_cost': str(self.unit_cost) if self.unit_cost is not None else None,
            'lot_id': self.lot_id,
            'ref': self.external_ref,
            'note': self.note,
            'actor': self.actor,
            'created_at': TimezoneUtils.format_datetime_for_api(self.created_at),
        }


@event.listens_for(StockMovement, "before_update")
def _reject_movement_update(mapper, connection, target):
    from ..services.inventory_ledger.exceptions import InvariantViolationError

    raise InvariantViolationError(
        f"stock movement {target.id} is immutable; write an offsetting movement instead"
    )


@event.listens_for(StockMovement, "before_delete")
def _reject_movement_delete(mapper, connection, target):
    from ..services.inventory_ledger.exceptions import InvariantViolationError

    raise InvariantViolationError(f"stock movement {target.id} cannot be deleted")
