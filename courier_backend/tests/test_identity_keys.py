"""
Tests for verifying RS256 identity tokens against a published key set.
"""

import time

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from courier_backend.app.main import app
from courier_backend.app.core.exceptions import UpstreamFailureError
from courier_backend.app.core.identity import (
    IdentityVerificationError,
    JWKSIdentityVerifier,
    get_identity_verifier,
)

PROJECT = "parcel-demo"
ISSUER = f"https://securetoken.google.com/{PROJECT}"
JWKS_URL = "https://keys.example.com/jwks"


class SigningKey:
    def __init__(self, kid: str):
        self.kid = kid
        private = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.private_pem = private.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
        public_pem = private.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        self.public_jwk = {**jwk.construct(public_pem, "RS256").to_dict(), "kid": kid, "use": "sig"}

    def token(self, email="rider@example.com", audience=PROJECT, issuer=ISSUER, ttl=300):
        claims = {"email": email, "aud": audience, "iss": issuer, "exp": int(time.time()) + ttl}
        return jwt.encode(claims, self.private_pem, algorithm="RS256", headers={"kid": self.kid})


class KeyServer:
    """Serves a JWKS document and counts fetches."""

    def __init__(self, *keys):
        self.keys = list(keys)
        self.fetches = 0
        self.down = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.fetches += 1
        if self.down:
            return httpx.Response(503)
        return httpx.Response(200, json={"keys": [k.public_jwk for k in self.keys]})


@pytest.fixture(scope="module")
def current_key():
    return SigningKey("key-1")


@pytest.fixture(scope="module")
def rotated_key():
    return SigningKey("key-2")


def build_verifier(server: KeyServer) -> JWKSIdentityVerifier:
    return JWKSIdentityVerifier(
        jwks_url=JWKS_URL,
        audience=PROJECT,
        issuer=ISSUER,
        transport=httpx.MockTransport(server.handler),
    )


@pytest.mark.asyncio
async def test_verifies_token_signed_by_published_key(current_key):
    verifier = build_verifier(KeyServer(current_key))

    claims = await verifier.verify(current_key.token(email="Rider@Example.com"))

    assert claims["email"] == "rider@example.com"


@pytest.mark.asyncio
async def test_keys_are_cached_between_verifications(current_key):
    server = KeyServer(current_key)
    verifier = build_verifier(server)

    await verifier.verify(current_key.token())
    await verifier.verify(current_key.token())

    assert server.fetches == 1


@pytest.mark.asyncio
async def test_unknown_kid_triggers_refetch(current_key, rotated_key):
    server = KeyServer(current_key)
    verifier = build_verifier(server)
    await verifier.verify(current_key.token())

    server.keys.append(rotated_key)
    claims = await verifier.verify(rotated_key.token())

    assert claims["email"] == "rider@example.com"
    assert server.fetches == 2


@pytest.mark.asyncio
async def test_rejects_wrong_audience_and_unpublished_key(current_key, rotated_key):
    verifier = build_verifier(KeyServer(current_key))

    with pytest.raises(IdentityVerificationError):
        await verifier.verify(current_key.token(audience="another-project"))

    with pytest.raises(IdentityVerificationError):
        await verifier.verify(rotated_key.token())


@pytest.mark.asyncio
async def test_rejects_shared_secret_token(current_key):
    verifier = build_verifier(KeyServer(current_key))
    forged = jwt.encode({"email": "a@x.com"}, "secret", algorithm="HS256", headers={"kid": "key-1"})

    with pytest.raises(IdentityVerificationError):
        await verifier.verify(forged)


@pytest.mark.asyncio
async def test_key_server_outage_is_upstream_failure(current_key):
    server = KeyServer(current_key)
    server.down = True

    with pytest.raises(UpstreamFailureError):
        await build_verifier(server).verify(current_key.token())


@pytest.mark.asyncio
async def test_app_accepts_provider_tokens(client, current_key):
    verifier = build_verifier(KeyServer(current_key))
    app.dependency_overrides[get_identity_verifier] = lambda: verifier

    accepted = await client.get(
        f"/parcels/{'a' * 32}",
        headers={"Authorization": f"Bearer {current_key.token()}"},
    )
    rejected = await client.get(
        f"/parcels/{'a' * 32}",
        headers={"Authorization": f"Bearer {current_key.token(issuer='https://evil.example.com')}"},
    )

    assert accepted.status_code == 404
    assert rejected.status_code == 403
