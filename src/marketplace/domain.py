"""Marketplace bounded context — order fulfillment across five actors.

Customers place and cancel orders, sellers prepare them, delivery and depot
agents move parcels to the customer, and admins adjudicate disputes. Stock
reservation, depot inventory and seller balances hang off the same order
record. All aggregates live in one domain so that a single Unit of Work can
span an order and the products it reserves.
"""

from protean.domain import Domain

from marketplace.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

marketplace = Domain(name="marketplace")
