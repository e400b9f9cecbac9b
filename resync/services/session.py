"""
Session providers - supply the bearer token for admin API calls.

Authentication itself lives outside this package; the client only needs a
way to ask for the current access token.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol

from resync.services.errors import AuthenticationError


@dataclass(frozen=True)
class Session:
    """An authenticated session."""

    access_token: str
    user_id: str | None = None


class SessionProvider(Protocol):
    async def get_session(self) -> Session | None: ...


class StaticSessionProvider:
    """Serves a fixed token, or no session when the token is empty."""

    def __init__(self, access_token: str | None, user_id: str | None = None):
        self._session = (
            Session(access_token=access_token, user_id=user_id) if access_token else None
        )

    async def get_session(self) -> Session | None:
        return self._session

    def sign_out(self) -> None:
        self._session = None


class CallableSessionProvider:
    """Adapts an async function returning a token (or None)."""

    def __init__(self, fetch_token: Callable[[], Awaitable[str | None]]):
        self._fetch_token = fetch_token

    async def get_session(self) -> Session | None:
        token = await self._fetch_token()
        return Session(access_token=token) if token else None


async def require_access_token(provider: SessionProvider) -> str:
    """Return the current token or raise AuthenticationError."""
    session = await provider.get_session()
    if session is None or not session.access_token:
        raise AuthenticationError()
    return session.access_token
