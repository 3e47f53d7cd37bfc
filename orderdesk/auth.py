"""
Acting-party resolution for requests.

There is no credential verification: role views identify themselves with
X-Actor-Role and X-Actor-Id headers (driver id for drivers, phone number
for customers).
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException

from .constants import ROLE_ADMIN, ROLE_CUSTOMER, ROLES
from .domain.orders.lifecycle import Actor
from .shared.validators import normalize_phone

logger = logging.getLogger(__name__)


async def get_actor(
    x_actor_role: Optional[str] = Header(None),
    x_actor_id: Optional[str] = Header(None),
) -> Actor:
    if not x_actor_role:
        raise HTTPException(status_code=401, detail="Missing X-Actor-Role header")

    role = x_actor_role.strip().lower()
    if role not in ROLES:
        raise HTTPException(status_code=401, detail=f"Unknown role: {x_actor_role}")

    actor_id = x_actor_id.strip() if x_actor_id else None
    if role == ROLE_CUSTOMER and actor_id:
        try:
            actor_id = normalize_phone(actor_id)
        except ValueError as e:
            raise HTTPException(status_code=401, detail=str(e)) from e

    return Actor(role=role, id=actor_id)


async def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != ROLE_ADMIN:
        logger.warning(f"⚠️ Admin endpoint called by {actor.role}")
        raise HTTPException(status_code=403, detail="Admin access required")
    return actor
