# backend/app/api/dependencies/auth.py
"""
Acting-user dependency.

Authentication happens upstream. The auth gateway forwards the verified
subject in a header, and this service only reads it.
"""

import logging

from fastapi import Header, HTTPException, status

from ...core.constants import ACTOR_HEADER

logger = logging.getLogger(__name__)


async def get_actor_id(
    x_user_sub: str | None = Header(default=None, alias=ACTOR_HEADER),
) -> str:
    """
    Return the acting user's id.

    Raises:
        HTTPException: 401 when the gateway did not forward a subject
    """
    actor_id = (x_user_sub or "").strip()
    if not actor_id:
        logger.debug("Request without %s header rejected", ACTOR_HEADER)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authenticated user",
        )
    return actor_id
