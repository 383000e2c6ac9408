"""Stock domain events."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Product")
class ProductRegistered:
    """A seller listed a new product with its opening stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    vendor = String(required=True)
    stock = Integer(required=True)
    variant_count = Integer(required=True)
    registered_at = DateTime(required=True)


@marketplace.event(part_of="Product")
class StockLevelUpdated:
    """A seller set the on-hand quantity of a product or one of its variants."""

    __version__ = 1

    product_id = Identifier(required=True)
    selected_variant = Text()  # JSON object, absent for scalar stock
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    updated_at = DateTime(required=True)


@marketplace.event(part_of="StockReservation")
class StockReserved:
    """Stock for every line of an order was taken in one step."""

    __version__ = 1

    reservation_id = Identifier(required=True)
    order_reference = Identifier(required=True)
    lines = Text(required=True)  # JSON list of {product_id, selected_variant, quantity}
    reserved_at = DateTime(required=True)


@marketplace.event(part_of="StockReservation")
class StockReleased:
    """A reservation's stock went back to the catalogue."""

    __version__ = 1

    reservation_id = Identifier(required=True)
    order_reference = Identifier(required=True)
    reason = String()
    released_at = DateTime(required=True)
