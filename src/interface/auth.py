"""Identity: verification of signed session tokens.

Tokens are minted by the external session layer with the shared secret; this
service only needs to turn a bearer token back into a user id.
"""

import logging

from fastapi import HTTPException, Request, status
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from src.core.config import settings


logger = logging.getLogger(__name__)

serializer = URLSafeTimedSerializer(str(settings.secret_key), salt="taskgate-session")


def issue_session_token(user_id: str) -> str:
    """Sign a session token for a user."""
    return serializer.dumps({"user_id": user_id})


def resolve_session_token(token: str) -> str | None:
    """Return the user id carried by a valid token, or None if it is invalid or expired."""
    try:
        session_data = serializer.loads(token, max_age=settings.session_max_age_seconds)
    except (BadSignature, SignatureExpired):
        return None
    if not isinstance(session_data, dict):
        return None
    user_id = session_data.get("user_id")
    return str(user_id) if user_id else None


async def get_current_user_id(request: Request) -> str:
    """FastAPI dependency resolving the authenticated user from the Authorization header."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        logger.warning("auth_missing_token", extra={"path": request.url.path})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = resolve_session_token(token)
    if user_id is None:
        logger.warning("auth_invalid_token", extra={"path": request.url.path})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id
