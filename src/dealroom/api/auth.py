"""
Request gates for the deal room API.

Every route requires the shared bearer token of the rendering layer. Routes
that act for a user also read the signed-in identity it forwards in the
X-Identity-Id header; the token is what makes that header trustworthy.
"""

import hmac

from fastapi import Header, HTTPException

from dealroom.models import Identity

from .config import get_settings

BEARER_PREFIX = "Bearer "


async def verify_client_token(authorization: str | None = Header(None)) -> None:
    """Validate the bearer token sent by the rendering layer."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise HTTPException(status_code=401, detail="Invalid or missing bearer token")
    presented = authorization[len(BEARER_PREFIX):].encode()
    if not hmac.compare_digest(presented, get_settings().DEALROOM_API_TOKEN.encode()):
        raise HTTPException(status_code=401, detail="Invalid or missing bearer token")


async def acting_identity(x_identity_id: str = Header(...)) -> Identity:
    """The signed-in identity the rendering layer is acting for."""
    uid = x_identity_id.strip()
    if not uid:
        raise HTTPException(
            status_code=422,
            detail={"field": "X-Identity-Id", "message": "Identity header is empty"},
        )
    return Identity(id=uid)
