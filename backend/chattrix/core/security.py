from datetime import timedelta
from typing import Optional

import bcrypt
import jwt

from .clock import utcnow
from .config import settings

REQUIRED_CLAIMS = ["sub", "exp", "iat"]


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """False for a wrong password and for a stored value that is not a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(sub: str, extra: Optional[dict] = None, expires_minutes: Optional[int] = None) -> str:
    issued = utcnow()
    lifetime = timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)
    # registered claims win over anything passed in ``extra``
    payload = {**(extra or {}), "sub": sub, "iat": issued, "exp": issued + lifetime}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": REQUIRED_CLAIMS},
    )
