"""Firebase Authentication over REST.

Signs in with the configured email/password account and keeps the ID token
fresh for Firestore requests. When no account is configured, requests go out
with the API key only (works for databases with open rules).
"""

import logging
import time
from dataclasses import dataclass

import httpx

from herdbook.core.config import settings

logger = logging.getLogger(__name__)

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
REFRESH_URL = "https://securetoken.googleapis.com/v1/token"

# Refresh this many seconds before the token actually expires
EXPIRY_MARGIN_SECONDS = 60


class AuthError(Exception):
    """Raised when Firebase Auth rejects a sign-in or refresh."""

    pass


@dataclass
class AuthSession:
    """Signed-in Firebase user."""

    uid: str
    email: str | None
    id_token: str
    refresh_token: str
    expires_at: float  # time.time() epoch seconds

    @property
    def expired(self) -> bool:
        return time.time() >= self.expires_at - EXPIRY_MARGIN_SECONDS


_session: AuthSession | None = None


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return response.text


async def sign_in(email: str, password: str) -> AuthSession:
    """Sign in with email and password.

    Args:
        email: Account email
        password: Account password

    Returns:
        The new session (also cached for get_id_token)

    Raises:
        AuthError: If Firebase rejects the credentials
    """
    global _session

    async with httpx.AsyncClient() as client:
        response = await client.post(
            SIGN_IN_URL,
            params={"key": settings.firebase_api_key},
            json={"email": email, "password": password, "returnSecureToken": True},
            timeout=30,
        )

    if response.status_code != 200:
        raise AuthError(f"Sign-in failed: {_error_message(response)}")

    data = response.json()
    _session = AuthSession(
        uid=data["localId"],
        email=data.get("email", email),
        id_token=data["idToken"],
        refresh_token=data["refreshToken"],
        expires_at=time.time() + int(data.get("expiresIn", 3600)),
    )
    logger.info("Signed in as %s", _session.email)
    return _session


async def refresh(session: AuthSession) -> AuthSession:
    """Exchange a refresh token for a new ID token."""
    global _session

    async with httpx.AsyncClient() as client:
        response = await client.post(
            REFRESH_URL,
            params={"key": settings.firebase_api_key},
            data={"grant_type": "refresh_token", "refresh_token": session.refresh_token},
            timeout=30,
        )

    if response.status_code != 200:
        raise AuthError(f"Token refresh failed: {_error_message(response)}")

    data = response.json()
    _session = AuthSession(
        uid=data.get("user_id", session.uid),
        email=session.email,
        id_token=data["id_token"],
        refresh_token=data["refresh_token"],
        expires_at=time.time() + int(data.get("expires_in", 3600)),
    )
    logger.debug("Refreshed ID token for %s", _session.uid)
    return _session


async def get_session() -> AuthSession | None:
    """Return a valid session, signing in or refreshing as needed.

    Returns None when no account is configured.
    """
    if _session is not None and not _session.expired:
        return _session
    if _session is not None:
        return await refresh(_session)
    if settings.firebase_email and settings.firebase_password:
        return await sign_in(settings.firebase_email, settings.firebase_password)
    return None


async def get_id_token() -> str | None:
    """Get a bearer token for Firestore, or None for API-key-only access."""
    session = await get_session()
    return session.id_token if session else None


async def get_uid() -> str | None:
    """Get the signed-in user's uid (used as the `userId` owner field)."""
    session = await get_session()
    return session.uid if session else None


def sign_out() -> None:
    """Forget the cached session."""
    global _session
    _session = None
