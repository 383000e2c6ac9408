"""Stock ledger — reserve and release stock across products as one step.

Both operations run inside the caller's Unit of Work. ``reserve`` checks every
line before it withdraws anything, so a failing line leaves no product
touched; if anything later in the same command fails, the Unit of Work rolls
the withdrawals back along with everything else.
"""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from marketplace.exceptions import InsufficientStock, NotFound
from marketplace.stock.product import Product, variant_key
from marketplace.stock.reservation import StockReservation

logger = structlog.get_logger(__name__)


def _merge_lines(lines: list[dict]) -> list[dict]:
    """Collapse lines drawing from the same stock so they are checked together.

    Two lines for the same product and variant must fit in the stock at once;
    checking them separately would let the second pass against stock the
    first has already claimed.
    """
    merged: dict[tuple[str, str], dict] = {}
    for line in lines:
        quantity = int(line["quantity"])
        if quantity < 1:
            raise ValidationError({"quantity": [f"Quantity for product {line['product_id']} must be at least 1"]})
        key = (str(line["product_id"]), variant_key(line.get("selected_variant")))
        if key in merged:
            merged[key]["quantity"] += quantity
        else:
            merged[key] = {
                "product_id": key[0],
                "selected_variant": key[1],
                "selector": line.get("selected_variant") or None,
                "name": line.get("name"),
                "quantity": quantity,
            }
    return list(merged.values())


def reserve(lines: list[dict], order_reference: str) -> str:
    """Withdraw stock for every line and record a reservation; return its id.

    Each line carries ``product_id``, ``quantity`` and optionally
    ``selected_variant`` (a dict). Raises ``InsufficientStock`` naming the first
    line that cannot be covered, or ``NotFound`` for an unknown product.
    """
    product_repo = current_domain.repository_for(Product)
    merged = _merge_lines(lines)

    products: dict[str, Product] = {}
    for line in merged:
        product_id = line["product_id"]
        if product_id not in products:
            try:
                products[product_id] = product_repo.get(product_id)
            except ObjectNotFoundError as exc:
                raise NotFound("Product", product_id) from exc

    for line in merged:
        product = products[line["product_id"]]
        available = product.available(line["selector"])
        if available < line["quantity"]:
            logger.info(
                "Stock reservation rejected",
                order_reference=order_reference,
                product_id=line["product_id"],
                selected_variant=line["selected_variant"] or None,
                required=line["quantity"],
                available=available,
            )
            raise InsufficientStock(
                line["product_id"],
                product.name,
                line["quantity"],
                available,
                line["selector"],
            )

    for line in merged:
        products[line["product_id"]].withdraw(line["quantity"], line["selector"])
    for product in products.values():
        product_repo.add(product)

    reservation = StockReservation.open(
        order_reference,
        [
            {
                "product_id": line["product_id"],
                "name": line["name"],
                "selected_variant": line["selected_variant"],
                "quantity": line["quantity"],
            }
            for line in merged
        ],
    )
    current_domain.repository_for(StockReservation).add(reservation)

    logger.info(
        "Stock reserved",
        reservation_id=str(reservation.id),
        order_reference=order_reference,
        line_count=len(merged),
    )
    return str(reservation.id)


def release(reservation_id: str, reason: str | None = None) -> bool:
    """Return a reservation's stock to the catalogue.

    Returns False, changing nothing, if the reservation was already released.
    """
    reservation_repo = current_domain.repository_for(StockReservation)
    reservation = reservation_repo.get(reservation_id)

    if not reservation.is_active:
        logger.info(
            "Stock reservation already released",
            reservation_id=reservation_id,
            order_reference=str(reservation.order_reference),
        )
        return False

    product_repo = current_domain.repository_for(Product)
    products: dict[str, Product] = {}
    for line in reservation.lines:
        product_id = str(line.product_id)
        if product_id not in products:
            products[product_id] = product_repo.get(product_id)
        if not products[product_id].restore(line.quantity, line.variant):
            logger.warning(
                "Variant no longer listed; stock returned to product",
                reservation_id=reservation_id,
                product_id=product_id,
                selected_variant=line.selected_variant,
                quantity=line.quantity,
            )
    for product in products.values():
        product_repo.add(product)

    reservation.mark_released(reason)
    reservation_repo.add(reservation)

    logger.info(
        "Stock released",
        reservation_id=reservation_id,
        order_reference=str(reservation.order_reference),
    )
    return True
