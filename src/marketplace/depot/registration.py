"""Depot registration (admin)."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.actors import Actor, Role
from marketplace.depot.depot import Depot
from marketplace.domain import marketplace

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Depot")
class RegisterDepot:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    depot_id = Identifier()  # optional; lets operators choose a readable id
    name = String(required=True, max_length=200)
    city = String(required=True, max_length=100)
    neighborhood = String(max_length=100)
    aisles = Integer(required=True, min_value=1)
    shelves = Integer(required=True, min_value=1)
    locations = Integer(required=True, min_value=1)


@marketplace.command_handler(part_of=Depot)
class DepotRegistrationHandler:
    @handle(RegisterDepot)
    def register_depot(self, command):
        actor = Actor.from_command(command)
        actor.require(Role.ADMIN)

        depot = Depot.register(
            name=command.name,
            city=command.city,
            neighborhood=command.neighborhood,
            layout={
                "aisles": command.aisles,
                "shelves": command.shelves,
                "locations": command.locations,
            },
            depot_id=command.depot_id,
        )
        current_domain.repository_for(Depot).add(depot)

        logger.info("Depot registered", depot_id=str(depot.id), capacity=depot.layout.capacity)
        return str(depot.id)
