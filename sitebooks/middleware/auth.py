"""
Authenticated User Dependency

Sign-in, sessions and password resets live with the hosted identity
provider. Its gateway verifies the session and forwards the user id in the
X-User-Id header; this module only reads it.

Usage:
    from sitebooks.middleware.auth import get_current_user_id

    @router.get("/jobs/{job_id}/payments")
    async def list_payments(job_id: str, user_id: str = Depends(get_current_user_id)):
        ...
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from sitebooks.logging_config import set_request_context
from sitebooks.sentry_integration import set_user

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"

user_id_header = APIKeyHeader(name=USER_ID_HEADER, auto_error=False)


async def get_current_user_id(user_id: Optional[str] = Depends(user_id_header)) -> str:
    """
    FastAPI dependency returning the authenticated user's id.

    Raises:
        HTTPException: 401 when the gateway did not forward a user
    """
    user_id = (user_id or "").strip()
    if not user_id:
        logger.warning("Request without authenticated user")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    set_request_context(user_id=user_id)
    set_user(user_id)
    return user_id
