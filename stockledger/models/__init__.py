"""Models package - imports all models for the application"""
from ..extensions import db

from .catalog import Product, ProductVariant
from .stock_lot import StockLot
from .stock_movement import MovementKind, StockMovement

__all__ = [
    'db',
    'Product',
    'ProductVariant',
    'StockLot',
    'StockMovement',
    'MovementKind',
]
