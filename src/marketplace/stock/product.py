"""Product aggregate — the catalogue entry whose stock orders draw from.

A product either tracks a single scalar ``stock`` or, when it has variants,
one stock count per variant (a variant being a set of option values such as
``{"size": "M", "color": "red"}``). An order line that names a variant draws
from that variant's count; a line without one draws from the scalar count.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.stock.events import ProductRegistered, StockLevelUpdated


def variant_key(selected_variant: dict | None) -> str:
    """Canonical JSON for a variant selector.

    Two selectors match when they have the same option names and every value is
    equal; sorting keys and stringifying values makes that plain string equality.
    """
    if not selected_variant:
        return ""
    return json.dumps({str(k): str(v) for k, v in selected_variant.items()}, sort_keys=True)


@marketplace.entity(part_of="Product")
class VariantStock:
    options = Text(required=True)  # canonical JSON, see variant_key()
    stock = Integer(default=0)
    price = Float()
    sku = String(max_length=50)

    @property
    def selector(self) -> dict:
        return json.loads(self.options)


@marketplace.aggregate
class Product:
    name = String(required=True, max_length=255)
    vendor = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    description = Text()
    stock = Integer(default=0)
    variant_details = HasMany(VariantStock)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def stock_is_never_negative(self):
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})
        for variant in self.variant_details or []:
            if variant.stock is not None and variant.stock < 0:
                raise ValidationError({"stock": [f"Stock for variant {variant.options} cannot be negative"]})

    @classmethod
    def register(cls, name, vendor, price, stock=0, description=None, variants=None):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            vendor=vendor,
            price=price,
            description=description,
            stock=stock or 0,
            created_at=now,
            updated_at=now,
        )
        for variant in variants or []:
            key = variant_key(variant.get("options"))
            if not key:
                raise ValidationError({"variant_details": ["Each variant needs at least one option"]})
            if product.variant_for(variant["options"]) is not None:
                raise ValidationError({"variant_details": [f"Duplicate variant {key}"]})
            product.add_variant_details(
                VariantStock(
                    options=key,
                    stock=variant.get("stock") or 0,
                    price=variant.get("price"),
                    sku=variant.get("sku"),
                )
            )

        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=name,
                vendor=vendor,
                stock=product.stock,
                variant_count=len(product.variant_details),
                registered_at=now,
            )
        )
        return product

    @property
    def has_variants(self) -> bool:
        return bool(self.variant_details)

    def variant_for(self, selected_variant: dict | None) -> VariantStock | None:
        key = variant_key(selected_variant)
        if not key:
            return None
        for variant in self.variant_details or []:
            if variant.options == key:
                return variant
        return None

    def draws_from_variant(self, selected_variant: dict | None) -> bool:
        """A line that names a variant takes stock from that variant only, never the scalar count."""
        return bool(variant_key(selected_variant))

    def available(self, selected_variant: dict | None = None) -> int:
        """Units a line with this selector could take. An unknown variant has none."""
        if self.draws_from_variant(selected_variant):
            variant = self.variant_for(selected_variant)
            return variant.stock if variant else 0
        return self.stock or 0

    def withdraw(self, quantity: int, selected_variant: dict | None = None) -> None:
        """Take stock for a reservation. Callers check ``available()`` first."""
        if self.draws_from_variant(selected_variant):
            variant = self.variant_for(selected_variant)
            variant.stock = variant.stock - quantity
        else:
            self.stock = (self.stock or 0) - quantity
        self.updated_at = datetime.now(UTC)

    def restore(self, quantity: int, selected_variant: dict | None = None) -> bool:
        """Return released stock to where it was taken from.

        Returns False when the variant no longer exists; the units then go to
        the scalar count so the total is conserved.
        """
        variant = self.variant_for(selected_variant) if self.draws_from_variant(selected_variant) else None
        if variant is not None:
            variant.stock = variant.stock + quantity
        else:
            self.stock = (self.stock or 0) + quantity
        self.updated_at = datetime.now(UTC)
        return variant is not None or not self.draws_from_variant(selected_variant)

    def set_stock(self, quantity: int, selected_variant: dict | None = None) -> None:
        if quantity is None or quantity < 0:
            raise ValidationError({"stock": ["Stock must be a non-negative integer"]})

        if selected_variant:
            variant = self.variant_for(selected_variant)
            if variant is None:
                raise ValidationError({"selected_variant": [f"Unknown variant {variant_key(selected_variant)}"]})
            previous = variant.stock
            variant.stock = quantity
        else:
            previous = self.stock or 0
            self.stock = quantity

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            StockLevelUpdated(
                product_id=str(self.id),
                selected_variant=variant_key(selected_variant) or None,
                previous_quantity=previous,
                new_quantity=quantity,
                updated_at=now,
            )
        )
