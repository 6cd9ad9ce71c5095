from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils


class Product(db.Model):
    """Catalog product. Owned by the catalog service; the ledger only reads it."""
    __tablename__ = 'product'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    variants = db.relationship('ProductVariant', back_populates='product', lazy='selectin')

    def __repr__(self):
        return f'<Product {self.id}: {self.name}>'


class ProductVariant(db.Model):
    """Sellable unit stock is tracked against."""
    __tablename__ = 'product_variant'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False, index=True)
    sku = db.Column(db.String(128), nullable=True, unique=True)
    name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    product = db.relationship('Product', back_populates='variants')

    def __repr__(self):
        return f'<ProductVariant {self.id} ({self.sku}) of product {self.product_id}>'
