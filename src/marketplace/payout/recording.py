"""Payout recording (admin)."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from marketplace.actors import Actor, Role
from marketplace.domain import marketplace
from marketplace.payout.payout import Payout

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Payout")
class RecordPayout:
    actor_id = Identifier(required=True)
    actor_role = String(required=True)
    actor_name = String()
    store_name = String(required=True, max_length=255)
    amount = Float(required=True)
    reference = String(max_length=255)


@marketplace.command_handler(part_of=Payout)
class PayoutHandler:
    @handle(RecordPayout)
    def record_payout(self, command):
        actor = Actor.from_command(command)
        actor.require(Role.ADMIN)
        if command.amount is None or command.amount <= 0:
            raise ValidationError({"amount": ["Payout amount must be greater than zero"]})

        payout = Payout.record(
            store_name=command.store_name,
            amount=command.amount,
            recorded_by=actor.id,
            reference=command.reference,
        )
        current_domain.repository_for(Payout).add(payout)

        logger.info(
            "Payout recorded",
            payout_id=str(payout.id),
            store_name=payout.store_name,
            amount=payout.amount,
        )
        return str(payout.id)
