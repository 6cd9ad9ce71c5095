from __future__ import annotations

from typing import Protocol

from ...models import ProductVariant
from .exceptions import VariantNotFoundError
from .results import VariantRef


class VariantResolver(Protocol):
    def resolve(self, variant_id: int) -> VariantRef:
        """Return the variant's product reference or raise VariantNotFoundError."""


class CatalogVariantResolver:
    """Resolve variants against the catalog's product_variant table."""

    def __init__(self, session):
        self.session = session

    def resolve(self, variant_id: int) -> VariantRef:
        variant = self.session.get(ProductVariant, variant_id)
        if variant is None:
            raise VariantNotFoundError(variant_id)
        return VariantRef(variant_id=variant.id, product_id=variant.product_id)
