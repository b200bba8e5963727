# db/auth.py
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from db.models import AuthUser
from db.relational import get_engine, session_factory

logger = logging.getLogger(__name__)


class AuthError(Exception):
    pass


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Session:
    access_token: str
    identity: Identity
    issued_at: datetime


Listener = Callable[[AuthEvent, Optional[Session]], None]


class Subscription:
    def __init__(self, service: "AuthService", callback: Listener) -> None:
        self._service = service
        self.callback = callback

    def unsubscribe(self) -> None:
        self._service._remove_listener(self.callback)


class AuthService:
    """
    Email/password auth backed by the auth_users table.

    One instance per browser session: it holds that session's current login and
    notifies subscribers on every transition (sign-in, sign-out, token refresh).
    """

    def __init__(self, engine: Optional[Engine] = None) -> None:
        self.engine = engine or get_engine()
        self._session_factory = session_factory(self.engine)
        self._current: Optional[Session] = None
        self._listeners: List[Listener] = []

    # -------------------------
    # Accounts
    # -------------------------
    def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> Identity:
        email = (email or "").strip().lower()
        if not email or not password:
            raise AuthError("Email and password are required")

        db = self._session_factory()
        try:
            user = AuthUser(
                email=email,
                password_hash=generate_password_hash(password),
                user_metadata=dict(metadata or {}),
            )
            db.add(user)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise AuthError("User already registered") from e
        except SQLAlchemyError as e:
            db.rollback()
            raise AuthError(f"Sign up failed: {e}") from e
        finally:
            db.close()

        logger.info("Registered %s", email)
        return Identity(id=user.id, email=user.email, metadata=dict(user.user_metadata or {}))

    def sign_in_with_password(self, email: str, password: str) -> Session:
        email = (email or "").strip().lower()

        db = self._session_factory()
        try:
            user = db.execute(select(AuthUser).where(AuthUser.email == email)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise AuthError(f"Sign in failed: {e}") from e
        finally:
            db.close()

        if user is None or not check_password_hash(user.password_hash, password or ""):
            raise AuthError("Invalid login credentials")

        identity = Identity(id=user.id, email=user.email, metadata=dict(user.user_metadata or {}))
        self._current = self._issue(identity)
        self._emit(AuthEvent.SIGNED_IN, self._current)
        return self._current

    def sign_out(self) -> None:
        self._current = None
        self._emit(AuthEvent.SIGNED_OUT, None)

    def refresh_session(self) -> Session:
        if self._current is None:
            raise AuthError("No session to refresh")
        self._current = self._issue(self._current.identity)
        self._emit(AuthEvent.TOKEN_REFRESHED, self._current)
        return self._current

    def get_session(self) -> Optional[Session]:
        return self._current

    # -------------------------
    # Change notifications
    # -------------------------
    def on_auth_state_change(self, callback: Listener) -> Subscription:
        self._listeners.append(callback)
        return Subscription(self, callback)

    def _remove_listener(self, callback: Listener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _emit(self, event: AuthEvent, session: Optional[Session]) -> None:
        for callback in list(self._listeners):
            try:
                callback(event, session)
            except Exception:
                logger.exception("Auth listener failed on %s", event.value)

    @staticmethod
    def _issue(identity: Identity) -> Session:
        return Session(
            access_token=secrets.token_urlsafe(32),
            identity=identity,
            issued_at=datetime.now(timezone.utc),
        )
