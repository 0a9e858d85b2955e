"""Auth session state and hosted auth API client"""

import logging
import httpx
from typing import Any, Callable, Dict, List, Optional
from prime_ledger.domain.models import AuthUser
from prime_ledger.domain.exceptions import AuthenticationError
from prime_ledger.config import settings

AuthListener = Callable[[str, Optional[AuthUser]], None]

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
USER_UPDATED = "USER_UPDATED"


class AuthSession:
    """Current user for a client session, with change notifications"""

    def __init__(self, user: Optional[AuthUser] = None, access_token: Optional[str] = None):
        self._user = user
        self._access_token = access_token
        self._listeners: List[AuthListener] = []

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._user

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    def set_session(self, user: AuthUser, access_token: Optional[str] = None) -> None:
        event = USER_UPDATED if self._user is not None and self._user.id == user.id else SIGNED_IN
        self._user = user
        if access_token is not None:
            self._access_token = access_token
        self._notify(event)

    def clear(self) -> None:
        had_user = self._user is not None
        self._user = None
        self._access_token = None
        if had_user:
            self._notify(SIGNED_OUT)

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it"""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(event, self._user)


class AuthClient:
    """Client for the hosted auth API (email/password)"""

    def __init__(
        self,
        session: AuthSession,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.session = session
        self.base_url = (base_url or settings.auth_api_base).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.store_api_key
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"apikey": self.api_key},
            transport=self._transport,
        )

    def _auth_headers(self) -> Dict[str, str]:
        token = self.session.access_token
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        async with self._client() as client:
            try:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response.json() if response.content else {}
            except httpx.TimeoutException as e:
                raise AuthenticationError(f"Auth service timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise AuthenticationError(_error_message(e.response)) from e
            except httpx.RequestError as e:
                raise AuthenticationError(f"Auth service unreachable: {e}") from e
            except ValueError as e:
                raise AuthenticationError(f"Invalid response from auth service: {e}") from e

    async def sign_up(self, email: str, password: str, display_name: str = "") -> AuthUser:
        """
        Register a new user.

        When the service returns a session (no email confirmation required)
        the user is signed in immediately.
        """
        data = await self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": {"display_name": display_name}},
        )
        user = _parse_user(data.get("user", data))
        if data.get("access_token"):
            self.session.set_session(user, data["access_token"])
        logging.info("User signed up", extra={"user_id": user.id})
        return user

    async def sign_in(self, email: str, password: str) -> AuthUser:
        data = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if "access_token" not in data:
            raise AuthenticationError("Auth service returned no session")
        user = _parse_user(data.get("user", {}))
        self.session.set_session(user, data["access_token"])
        logging.info("User signed in", extra={"user_id": user.id})
        return user

    async def sign_out(self) -> None:
        """Revoke the session remotely; the local session is cleared either way"""
        if self.session.access_token is None:
            self.session.clear()
            return
        try:
            await self._request("POST", "/auth/v1/logout", headers=self._auth_headers())
        finally:
            self.session.clear()

    async def get_current_user(self) -> Optional[AuthUser]:
        """Refresh the signed-in user from the service; None when there is no valid session"""
        if self.session.access_token is None:
            return self.session.current_user
        async with self._client() as client:
            try:
                response = await client.get("/auth/v1/user", headers=self._auth_headers())
                if response.status_code == 401:
                    self.session.clear()
                    return None
                response.raise_for_status()
                user = _parse_user(response.json())
            except httpx.TimeoutException as e:
                raise AuthenticationError(f"Auth service timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise AuthenticationError(_error_message(e.response)) from e
            except httpx.RequestError as e:
                raise AuthenticationError(f"Auth service unreachable: {e}") from e
            except ValueError as e:
                raise AuthenticationError(f"Invalid response from auth service: {e}") from e
        self.session.set_session(user)
        return user


def _parse_user(data: Dict[str, Any]) -> AuthUser:
    try:
        metadata = data.get("user_metadata") or {}
        return AuthUser(
            id=str(data["id"]),
            email=data.get("email", ""),
            display_name=metadata.get("display_name", ""),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise AuthenticationError(f"Invalid user payload from auth service: {e}") from e


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("error_description") or body.get("msg") or body.get("message")
    return message or f"Auth service error: {response.status_code}"
