from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from cashlog.core.config import settings


@dataclass(frozen=True)
class Principal:
    user_id: str
    organization_id: str | None
    org_name: str | None = None


def create_access_token(sub: str, org_id: str | None, org_name: str | None = None) -> str:
    # Tokens are normally minted by the identity provider; this is used by seed data and tests.
    now = datetime.now(timezone.utc)
    payload = {
        "sub": sub,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.jwt_expires_min)).timestamp()),
    }
    if org_id is not None:
        payload["org_id"] = org_id
    if org_name:
        payload["org_name"] = org_name
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    if settings.jwt_issuer:
        payload["iss"] = settings.jwt_issuer
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_token(token: str) -> dict:
    kwargs = {}
    if settings.jwt_audience:
        kwargs["audience"] = settings.jwt_audience
    if settings.jwt_issuer:
        kwargs["issuer"] = settings.jwt_issuer
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg], **kwargs)


def principal_from_claims(claims: dict) -> Principal:
    sub = claims.get("sub")
    if not sub:
        raise jwt.InvalidTokenError("missing sub")
    org = claims.get("org_id") or None
    org_name = claims.get("org_name")
    if not org_name:
        meta = claims.get("org_metadata")
        if isinstance(meta, dict):
            org_name = meta.get("name")
    return Principal(user_id=str(sub), organization_id=str(org) if org else None, org_name=org_name)
