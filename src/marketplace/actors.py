"""Actors who act on orders, and how their identity travels through commands.

Authentication happens upstream. By the time a request reaches the domain the
actor is a trusted tuple of id, role, display name and, depending on the role,
the seller's shop name or the depot agent's depot.
"""

from dataclasses import dataclass
from enum import Enum

from marketplace.exceptions import Unauthorized


class Role(Enum):
    CUSTOMER = "customer"
    SELLER = "seller"
    DELIVERY_AGENT = "delivery_agent"
    DEPOT_AGENT = "depot_agent"
    ADMIN = "admin"


_ROLE_LABELS = {
    Role.CUSTOMER: "Customer",
    Role.SELLER: "Seller",
    Role.DELIVERY_AGENT: "Delivery Agent",
    Role.DEPOT_AGENT: "Depot Agent",
    Role.ADMIN: "Admin",
}


@dataclass(frozen=True)
class Actor:
    id: str
    role: Role
    name: str
    shop_name: str | None = None
    depot_id: str | None = None

    @classmethod
    def from_command(cls, command) -> "Actor":
        """Rebuild the actor from the ``actor_*`` fields every order command carries."""
        try:
            role = Role(command.actor_role)
        except ValueError as exc:
            raise Unauthorized(f"Unknown role '{command.actor_role}'") from exc
        return cls(
            id=str(command.actor_id),
            role=role,
            name=command.actor_name or str(command.actor_id),
            shop_name=getattr(command, "actor_shop", None),
            depot_id=getattr(command, "actor_depot", None),
        )

    def command_fields(self) -> dict:
        """Identity fields shared by every command; shop and depot are added per command."""
        return {
            "actor_id": self.id,
            "actor_role": self.role.value,
            "actor_name": self.name,
        }

    @property
    def label(self) -> str:
        """Audit-log rendering, e.g. ``Depot Agent: Ama``."""
        name = self.shop_name if self.role == Role.SELLER and self.shop_name else self.name
        return f"{_ROLE_LABELS[self.role]}: {name}"

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def require(self, *roles: Role) -> None:
        if self.role not in roles:
            raise Unauthorized(f"User role '{self.role.value}' is not authorized to perform this action")
