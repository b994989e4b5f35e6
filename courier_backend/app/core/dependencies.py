"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with bearer tokens.
"""

import logging
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from courier_backend.app.core.exceptions import UnauthorizedError, ForbiddenError
from courier_backend.app.core.identity import (
    IdentityVerificationError,
    JWTIdentityVerifier,
    get_identity_verifier,
)

logger = logging.getLogger(__name__)

# HTTP Bearer security scheme; missing credentials are reported by us, not FastAPI
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: JWTIdentityVerifier = Depends(get_identity_verifier),
) -> dict:
    """
    FastAPI dependency for bearer authentication.

    1. No ``Authorization: Bearer <token>`` header → 401
    2. Token rejected by the identity verifier → 403
    3. Otherwise returns the decoded identity (``email`` always present)

    Raises:
        UnauthorizedError: credential absent
        ForbiddenError: credential invalid
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()

    try:
        return await verifier.verify(credentials.credentials)
    except IdentityVerificationError as e:
        logger.info("Rejected bearer token: %s", e)
        raise ForbiddenError()


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: JWTIdentityVerifier = Depends(get_identity_verifier),
) -> Optional[dict]:
    """
    Like ``get_current_user`` but anonymous requests pass through as None.

    A credential that is present must still be valid.
    """
    if credentials is None:
        return None
    return await get_current_user(credentials, verifier)
