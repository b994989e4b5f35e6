"""
Identity verification for bearer credentials.

The identity provider issues signed JWTs whose payload carries at least the
user's ``email``. Two key sources are supported:

* a shared secret (HS256 by default), for self-issued tokens and tests;
* a JWKS endpoint publishing rotating RSA public keys (RS256), as used by
  Firebase Authentication. Set ``IDENTITY_JWKS_URL`` to enable it, e.g.
  ``https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com``
  with ``IDENTITY_AUDIENCE=<project-id>`` and
  ``IDENTITY_ISSUER=https://securetoken.google.com/<project-id>``.

The verifier is exposed as a FastAPI dependency so it can be swapped in tests.
"""

import logging
import time
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

import httpx
from jose import JWTError, jwt
from courier_backend.app.core.config import settings
from courier_backend.app.core.exceptions import UpstreamFailureError

logger = logging.getLogger(__name__)


class IdentityVerificationError(Exception):
    """Raised when a bearer token cannot be verified."""


class JWTIdentityVerifier:
    """
    Verifies identity tokens signed with a shared secret.

    Audience and issuer are only checked when configured.
    """

    def __init__(
        self,
        secret_key: Optional[str],
        algorithm: str = "HS256",
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.audience = audience
        self.issuer = issuer

    async def signing_key(self, token: str) -> Any:
        return self.secret_key

    async def verify(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate an identity token.

        Returns:
            Decoded claims with ``email`` normalised to lower case

        Raises:
            IdentityVerificationError: signature, expiry, audience or issuer
                check failed, or the token carries no email
        """
        key = await self.signing_key(token)
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_aud": self.audience is not None},
            )
        except JWTError as e:
            raise IdentityVerificationError(str(e)) from e

        email = claims.get("email")
        if not email:
            raise IdentityVerificationError("Token carries no email claim")

        claims["email"] = email.lower()
        return claims


class JWKSIdentityVerifier(JWTIdentityVerifier):
    """
    Verifies RS256 tokens against public keys fetched from a JWKS URL.

    Keys are cached for ``cache_seconds``; a token naming an unknown ``kid``
    forces one refetch so key rotation is picked up immediately.
    """

    def __init__(
        self,
        jwks_url: str,
        algorithm: str = "RS256",
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
        cache_seconds: int = 3600,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(None, algorithm=algorithm, audience=audience, issuer=issuer)
        self.jwks_url = jwks_url
        self.cache_seconds = cache_seconds
        self.timeout = timeout
        self.transport = transport
        self._keys: Dict[str, Dict[str, Any]] = {}
        self._fetched_at = 0.0

    async def signing_key(self, token: str) -> Dict[str, Any]:
        try:
            kid = jwt.get_unverified_header(token).get("kid")
        except JWTError as e:
            raise IdentityVerificationError(str(e)) from e
        if not kid:
            raise IdentityVerificationError("Token header has no kid")

        if kid not in self._keys or time.time() - self._fetched_at > self.cache_seconds:
            await self._refresh_keys()

        key = self._keys.get(kid)
        if key is None:
            raise IdentityVerificationError(f"Unknown signing key {kid}")
        return key

    async def _refresh_keys(self) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(self.jwks_url)
                response.raise_for_status()
                document = response.json()
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                logger.error(f"JWKS fetch from {self.jwks_url} failed: {e}")
                raise UpstreamFailureError("Identity provider unavailable") from e

        self._keys = {k["kid"]: k for k in document.get("keys", []) if "kid" in k}
        self._fetched_at = time.time()
        logger.info("Loaded %d identity signing keys", len(self._keys))


def create_identity_token(
    email: str,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Issue a shared-secret identity token for ``email``.

    Used by the seed script and tests; in deployment tokens come from the
    identity provider.
    """
    to_encode: Dict[str, Any] = {"sub": email, "email": email}
    if extra_claims:
        to_encode.update(extra_claims)

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.identity_token_expire_minutes)
    to_encode["exp"] = expire

    if settings.identity_audience:
        to_encode["aud"] = settings.identity_audience
    if settings.identity_issuer:
        to_encode["iss"] = settings.identity_issuer

    return jwt.encode(to_encode, settings.identity_secret_key, algorithm=settings.identity_algorithm)


def build_identity_verifier() -> JWTIdentityVerifier:
    if settings.identity_jwks_url:
        return JWKSIdentityVerifier(
            jwks_url=settings.identity_jwks_url,
            audience=settings.identity_audience,
            issuer=settings.identity_issuer,
            cache_seconds=settings.identity_jwks_cache_seconds,
        )
    return JWTIdentityVerifier(
        secret_key=settings.identity_secret_key,
        algorithm=settings.identity_algorithm,
        audience=settings.identity_audience,
        issuer=settings.identity_issuer,
    )


identity_verifier = build_identity_verifier()


def get_identity_verifier() -> JWTIdentityVerifier:
    """FastAPI dependency returning the configured verifier."""
    return identity_verifier
