from __future__ import annotations

import json
from collections.abc import Awaitable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, TypeVar

import httpx
from loguru import logger
from supabase import AsyncClient
from supabase import AuthError as SupabaseAuthError

from groq_chat.errors import AuthError

T = TypeVar("T")


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    user_id: str
    email: str | None = None
    refresh_token: str | None = None
    expires_at: int | None = None


def _session_from_response(response: Any) -> AuthSession | None:
    session = getattr(response, "session", None)
    if session is None or not session.access_token:
        return None
    user = session.user or getattr(response, "user", None)
    if user is None:
        return None
    return AuthSession(
        access_token=session.access_token,
        user_id=str(user.id),
        email=user.email,
        refresh_token=session.refresh_token,
        expires_at=session.expires_at,
    )


class AuthClient:
    """Email/password auth through the Supabase client's auth API."""

    def __init__(self, client: AsyncClient):
        self._client = client

    async def _call(self, action: str, call: Awaitable[T]) -> T:
        # The provider's own message reaches the user unchanged.
        try:
            return await call
        except SupabaseAuthError as ex:
            logger.warning(f"Auth {action} failed: {ex.message}")
            raise AuthError(ex.message) from ex
        except httpx.HTTPError as ex:
            logger.error(f"Auth {action} failed: {ex}")
            raise AuthError(str(ex)) from ex

    async def sign_in(self, email: str, password: str) -> AuthSession:
        response = await self._call(
            "sign in",
            self._client.auth.sign_in_with_password({"email": email, "password": password}),
        )
        session = _session_from_response(response)
        if session is None:
            raise AuthError("Authentication failed")
        logger.info(f"Signed in as {session.email or session.user_id}")
        return session

    async def sign_up(self, email: str, password: str) -> AuthSession | None:
        """Register an account. Returns None while the email awaits confirmation."""
        response = await self._call(
            "sign up",
            self._client.auth.sign_up({"email": email, "password": password}),
        )
        session = _session_from_response(response)
        logger.info(f"Signed up {email} (confirmed={session is not None})")
        return session

    async def restore(self, saved: AuthSession) -> AuthSession:
        """Re-establish a saved session, refreshing it when the token has expired."""
        if not saved.refresh_token:
            return saved
        response = await self._call(
            "restore session",
            self._client.auth.set_session(saved.access_token, saved.refresh_token),
        )
        session = _session_from_response(response)
        if session is None:
            raise AuthError("Session expired")
        return session

    async def sign_out(self) -> None:
        await self._call("sign out", self._client.auth.sign_out())


class SessionFile:
    """Keeps the signed-in session between runs of the chat client."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    def load(self) -> AuthSession | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return AuthSession(**data)
        except (ValueError, TypeError) as ex:
            logger.warning(f"Ignoring unreadable session file {self._path}: {ex}")
            return None

    def save(self, session: AuthSession) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(asdict(session)), encoding="utf-8")

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
