from datetime import datetime, timedelta, timezone

import jwt

from slotbook.core import config

OWNER_SCOPE = "owner"


def normalize_owner_email(email: str) -> str:
    return (email or "").strip().lower()


def create_owner_token(email: str, owner_id: int | None = None, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": normalize_owner_email(email),
        "scope": OWNER_SCOPE,
        "exp": issued_at + timedelta(minutes=expire_minutes),
        "iat": issued_at,
    }
    if owner_id is not None:
        payload["owner_id"] = owner_id
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_owner_token(token: str) -> str:
    """Return the owner email carried by ``token``.

    Raises ``jwt.InvalidTokenError`` for tokens not issued to slot owners.
    """
    payload = jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={"require": ["exp", "sub"]},
    )
    if payload.get("scope") != OWNER_SCOPE:
        raise jwt.InvalidTokenError("Token was not issued to a slot owner")

    email = normalize_owner_email(payload["sub"])
    if not email:
        raise jwt.InvalidTokenError("Token subject is empty")
    return email
