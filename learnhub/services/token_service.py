"""JWT access token creation and validation (ES256).

Registration and login issue tokens here; api/dependencies.py validates
them.  Both sides share the key, issuer, audience and claim schema.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

from learnhub.core.config import SETTINGS

# Dev/test: an ephemeral EC key pair generated on import, so tokens do
# not survive a restart.
_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "learnhub"
AUDIENCE = "learnhub-api"


def create_access_token(
    *,
    sub: str,
    phone: str | None = None,
    roles: list[str] | None = None,
    ttl_min: int | None = None,
) -> str:
    """Build and sign an access token.

    Claims: sub (user id), phone, roles, iss, aud, exp, iat, jti.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_min or SETTINGS.access_token_ttl_min),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["user"],
    }
    if phone is not None:
        payload["phone"] = phone
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256 so alg:none and alg-switching tokens are
    rejected.  Raises jwt.ExpiredSignatureError or jwt.InvalidTokenError.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
