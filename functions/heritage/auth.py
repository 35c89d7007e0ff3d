"""
Admin authentication against the hosted auth service.

Sessions are owned by the auth backend; this module only signs in and out,
resolves bearer tokens to sessions and fans session changes out to
subscribers.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

import requests

from heritage.errors import AuthError, BackendError

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

AuthListener = Callable[[str, Optional["AuthSession"]], None]


@dataclass
class AuthSession:
    access_token: str
    user_id: str
    email: str
    created_at: float = field(default_factory=lambda: time.time())


class AuthClient(Protocol):
    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        ...

    def sign_out(self, access_token: str) -> None:
        ...

    def get_session(self, access_token: str) -> Optional[AuthSession]:
        ...

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        ...


class _Listeners:
    def __init__(self):
        self._listeners: list[AuthListener] = []

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, event: str, session: Optional[AuthSession]) -> None:
        for listener in list(self._listeners):
            listener(event, session)


def _json_body(response: requests.Response) -> dict:
    """Decoded JSON object, or {} for an empty or non-JSON body."""
    if not response.content:
        return {}
    try:
        payload = response.json()
    except ValueError:
        logger.warning("Auth service sent a non-JSON body (%s)", response.status_code)
        return {}
    return payload if isinstance(payload, dict) else {}


class InMemoryAuthClient(_Listeners):
    """Single admin account held in memory; used for development and tests."""

    def __init__(self, email: str, password: Optional[str]):
        super().__init__()
        self.email = email
        self.password = password
        self.sessions: dict[str, AuthSession] = {}

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        if not self.password:
            raise AuthError("Admin sign-in is not configured")
        valid_email = hmac.compare_digest(email.strip().lower(), self.email.lower())
        valid_password = hmac.compare_digest(password, self.password)
        if not (valid_email and valid_password):
            raise AuthError("Invalid login credentials")
        session = AuthSession(
            access_token=secrets.token_urlsafe(32),
            user_id="admin",
            email=self.email,
        )
        self.sessions[session.access_token] = session
        self._emit(SIGNED_IN, session)
        return session

    def sign_out(self, access_token: str) -> None:
        session = self.sessions.pop(access_token, None)
        if session:
            self._emit(SIGNED_OUT, session)

    def get_session(self, access_token: str) -> Optional[AuthSession]:
        return self.sessions.get(access_token)


class SupabaseAuthClient(_Listeners):
    """GoTrue REST client (the auth half of a Supabase project)."""

    def __init__(self, url: str, anon_key: str, timeout: float = 10.0):
        super().__init__()
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout

    def _headers(self, access_token: Optional[str] = None) -> dict:
        headers = {"apikey": self.anon_key}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        try:
            response = requests.post(
                f"{self.url}/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise BackendError(str(exc)) from exc
        if response.status_code >= 500:
            raise BackendError(f"Auth service error {response.status_code}")
        payload = _json_body(response)
        if response.status_code != 200:
            message = (
                payload.get("error_description")
                or payload.get("msg")
                or "Invalid login credentials"
            )
            raise AuthError(message)
        if not payload.get("access_token"):
            raise BackendError("Auth service returned no access token")
        user = payload.get("user") or {}
        session = AuthSession(
            access_token=payload["access_token"],
            user_id=user.get("id", ""),
            email=user.get("email", email),
        )
        self._emit(SIGNED_IN, session)
        return session

    def sign_out(self, access_token: str) -> None:
        try:
            requests.post(
                f"{self.url}/auth/v1/logout",
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
        except requests.RequestException:
            logger.warning("Sign-out request failed; dropping the session locally")
        self._emit(SIGNED_OUT, AuthSession(access_token, user_id="", email=""))

    def get_session(self, access_token: str) -> Optional[AuthSession]:
        try:
            response = requests.get(
                f"{self.url}/auth/v1/user",
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise BackendError(str(exc)) from exc
        if response.status_code >= 500:
            raise BackendError(f"Auth service error {response.status_code}")
        if response.status_code != 200:
            return None
        user = _json_body(response)
        if not user:
            raise BackendError("Auth service returned an unreadable user")
        return AuthSession(
            access_token=access_token,
            user_id=user.get("id", ""),
            email=user.get("email", ""),
        )
