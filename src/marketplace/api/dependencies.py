"""Request-scoped actor resolution.

Authentication happens in front of this service; it forwards the caller's
identity in ``X-Actor-*`` headers. Each router declares which roles it
serves and rejects everyone else with 403.
"""

from fastapi import Depends, Header, HTTPException

from marketplace.actors import Actor, Role
from marketplace.utils.logging import bind_actor


def current_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
    x_actor_name: str | None = Header(default=None),
    x_actor_shop: str | None = Header(default=None),
    x_actor_depot: str | None = Header(default=None),
) -> Actor:
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=403, detail="Missing actor identity")
    try:
        role = Role(x_actor_role)
    except ValueError as exc:
        raise HTTPException(status_code=403, detail=f"Unknown role '{x_actor_role}'") from exc

    actor = Actor(
        id=x_actor_id,
        role=role,
        name=x_actor_name or x_actor_id,
        shop_name=x_actor_shop,
        depot_id=x_actor_depot,
    )
    bind_actor(actor)
    return actor


def require_role(*roles: Role):
    """Dependency factory: the current actor, provided it holds one of ``roles``."""

    def _dependency(actor: Actor = Depends(current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"User role '{actor.role.value}' is not authorized to access this route",
            )
        return actor

    return _dependency
