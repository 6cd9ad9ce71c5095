from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils


class StockLot(db.Model):
    """
    One receipt of physical stock for a variant.

    initial_quantity and unit_cost are fixed at creation. available_quantity only
    goes down, through the FIFO allocator, while the row is locked. Lots are never
    deleted: they carry the cost history the weighted average is computed from.
    """
    __tablename__ = 'stock_lot'

    id = db.Column(db.Integer, primary_key=True)
    variant_id = db.Column(db.Integer, db.ForeignKey('product_variant.id'), nullable=False)
    # Denormalized for reporting
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False, index=True)

    initial_quantity = db.Column(db.Integer, nullable=False)
    available_quantity = db.Column(db.Integer, nullable=False)
    unit_cost = db.Column(db.Numeric(12, 4), nullable=False)

    arrived_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)
    note = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(128), nullable=True)

    variant = db.relationship('ProductVariant', foreign_keys=[variant_id])

    __table_args__ = (
        db.CheckConstraint('available_quantity >= 0', name='ck_stock_lot_available_non_negative'),
        db.CheckConstraint('initial_quantity > 0', name='ck_stock_lot_initial_positive'),
        db.CheckConstraint('available_quantity <= initial_quantity', name='ck_stock_lot_available_le_initial'),
        db.CheckConstraint('unit_cost >= 0', name='ck_stock_lot_unit_cost_non_negative'),
        db.Index('idx_stock_lot_fifo', 'variant_id', 'arrived_at', 'id'),
    )

    def __repr__(self):
        return f'<StockLot {self.id}: {self.available_quantity}/{self.initial_quantity} @ {self.unit_cost}>'

    @property
    def is_depleted(self):
        return self.available_quantity <= 0

    @property
    def consumed_quantity(self):
        return self.initial_quantity - self.available_quantity

    def to_dict(self):
        return {
            'lot_id': self.id,
            'variant_id': self.variant_id,
            'product_id': self.product_id,
            'initial_quantity': self.initial_quantity,
            'available_quantity': self.available_quantity,
            'unit_cost': str(self.unit_cost) if self.unit_cost is not None else None,
            'arrived_at': TimezoneUtils.format_datetime_for_api(self.arrived_at),
            'note': self.note,
        }
