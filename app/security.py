import base64
import datetime
import hashlib
import hmac
import secrets
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from app.errors import AuthInvalid
from app.settings import Settings, settings

PASSWORD_ITERATIONS = 240_000
bearer_scheme = HTTPBearer(auto_error=False)


def get_settings() -> Settings:
    """Small wrapper to allow dependency overrides in tests."""
    return settings


def hash_password(password: str, salt: bytes | None = None) -> str:
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt, PASSWORD_ITERATIONS
    )
    return "$".join(
        [
            "pbkdf2_sha256",
            str(PASSWORD_ITERATIONS),
            base64.b64encode(salt).decode("ascii"),
            base64.b64encode(digest).decode("ascii"),
        ]
    )


def verify_password(password: str, stored: str) -> bool:
    try:
        algorithm, iterations, salt, expected = stored.split("$")
    except (AttributeError, ValueError):
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        base64.b64decode(salt),
        int(iterations),
    )
    return hmac.compare_digest(base64.b64encode(digest).decode("ascii"), expected)


def create_access_token(
    subject: str,
    current_settings: Settings | None = None,
    now: datetime.datetime | None = None,
) -> str:
    current_settings = current_settings or settings
    if not current_settings.JWT_SECRET:
        raise ValueError("JWT_SECRET must be set to issue session tokens")
    issued_at = now or datetime.datetime.now(datetime.timezone.utc)
    payload = {
        "sub": subject,
        "iat": issued_at,
        "exp": issued_at
        + datetime.timedelta(minutes=current_settings.JWT_EXPIRE_MINUTES),
    }
    return jwt.encode(
        payload,
        current_settings.JWT_SECRET,
        algorithm=current_settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str, current_settings: Settings | None = None) -> str:
    """Return the token subject, or raise AuthInvalid for a bad/expired token."""
    current_settings = current_settings or settings
    if not current_settings.JWT_SECRET:
        raise AuthInvalid("Session tokens are not configured")
    try:
        payload = jwt.decode(
            token,
            current_settings.JWT_SECRET,
            algorithms=[current_settings.JWT_ALGORITHM],
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthInvalid("Session token expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthInvalid("Invalid session token") from e

    subject = payload.get("sub")
    if not subject:
        raise AuthInvalid("Session token has no subject")
    return subject


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    current_settings: Settings = Depends(get_settings),
) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_access_token(credentials.credentials, current_settings)
    except AuthInvalid as e:
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail=str(e))


def get_session_user(
    request: Request,
    current_settings: Settings = Depends(get_settings),
) -> Optional[str]:
    """Owner name from the dashboard session cookie, or None."""
    token = request.cookies.get(current_settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    try:
        return decode_access_token(token, current_settings)
    except AuthInvalid:
        return None
