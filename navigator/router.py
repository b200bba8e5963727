# navigator/router.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from db.auth import AuthEvent, AuthService, Session, Subscription
from db.client import BackendClient
from navigator.errors import ProfileResolutionFailed
from navigator.preferences import LanguagePreference
from navigator.profiles import resolve_profile
from navigator.roles import Role
from navigator.schemas import Profile

logger = logging.getLogger(__name__)


class RouteState(str, Enum):
    CHECKING_SESSION = "checking-session"
    LOGIN = "login"
    RESOLVING_PROFILE = "resolving-profile"
    RESOLUTION_FAILED = "resolution-failed"
    LANGUAGE_SELECT = "language-select"
    PATIENT_DASHBOARD = "patient-dashboard"
    HOSPITAL_DASHBOARD = "hospital-dashboard"
    ADMIN_UNSUPPORTED = "admin-unsupported"


DASHBOARD_FOR_ROLE = {
    Role.PATIENT: RouteState.PATIENT_DASHBOARD,
    Role.HOSPITAL: RouteState.HOSPITAL_DASHBOARD,
    Role.ADMIN: RouteState.ADMIN_UNSUPPORTED,
}

if set(DASHBOARD_FOR_ROLE) != set(Role):
    raise RuntimeError("DASHBOARD_FOR_ROLE must map every Role")


@dataclass(frozen=True)
class ViewToken:
    view: str
    generation: int


class RoleRouter:
    """
    Session -> profile -> dashboard state machine.

    checking-session -> login                      (no session)
    checking-session -> resolving-profile          (session)
    resolving-profile -> language-select           (no stored language)
    resolving-profile / language-select -> patient-dashboard | hospital-dashboard | admin-unsupported
    resolving-profile -> resolution-failed         (fail closed, retry() available)
    any state -> login                             (session lost)

    Each resolution attempt carries a generation number. A result reported with an
    older generation than the latest session change is dropped, so a slow lookup
    for a signed-out user can never land them on a dashboard.
    """

    def __init__(self, auth: AuthService, client: BackendClient, preferences: LanguagePreference) -> None:
        self.auth = auth
        self.client = client
        self.preferences = preferences

        self.state = RouteState.CHECKING_SESSION
        self.session: Optional[Session] = None
        self.profile: Optional[Profile] = None
        self.error: Optional[str] = None

        self._generation = 0
        self._view_generation = 0
        self._subscription: Optional[Subscription] = None

    # -------------------------
    # Lifecycle
    # -------------------------
    def start(self, resolve_now: bool = True) -> Optional[int]:
        """
        Subscribes to session changes and runs the initial session check.
        Returns the pending resolution generation (None when there is no session).
        With resolve_now=False the caller runs resolve(generation) itself, e.g. on a worker thread.
        """
        if self._subscription is None:
            self._subscription = self.auth.on_auth_state_change(self._on_auth_event)
        return self.on_session_change(self.auth.get_session(), resolve_now=resolve_now)

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_auth_event(self, event: AuthEvent, session: Optional[Session]) -> None:
        if event is AuthEvent.TOKEN_REFRESHED and session is not None and self._same_identity(session):
            # same principal, new token: keep the resolved profile
            self.session = session
            return
        self.on_session_change(session)

    def _same_identity(self, session: Session) -> bool:
        return self.session is not None and self.session.identity.id == session.identity.id

    # -------------------------
    # Transitions
    # -------------------------
    def on_session_change(self, session: Optional[Session], resolve_now: bool = True) -> Optional[int]:
        self._generation += 1
        self._view_generation += 1
        self.session = session
        self.profile = None
        self.error = None

        if session is None:
            self.state = RouteState.LOGIN
            return None

        self.state = RouteState.RESOLVING_PROFILE
        generation = self._generation
        if resolve_now:
            self.resolve(generation)
        return generation

    def resolve(self, generation: int) -> None:
        """Runs one resolution attempt and reports it back under its generation."""
        session = self.session
        if session is None or generation != self._generation:
            return
        try:
            profile = resolve_profile(self.client, session.identity)
        except ProfileResolutionFailed as e:
            self.fail_resolution(generation, str(e))
        else:
            self.complete_resolution(generation, profile)

    def complete_resolution(self, generation: int, profile: Profile) -> bool:
        if not self._is_live(generation):
            logger.info("Dropping stale profile resolution #%s", generation)
            return False
        self.profile = profile
        self.error = None
        if self.language is None:
            self.state = RouteState.LANGUAGE_SELECT
        else:
            self.state = DASHBOARD_FOR_ROLE[profile.role]
        return True

    def fail_resolution(self, generation: int, error: str) -> bool:
        if not self._is_live(generation):
            logger.info("Dropping stale resolution failure #%s", generation)
            return False
        self.profile = None
        self.error = error
        self.state = RouteState.RESOLUTION_FAILED
        return True

    def retry(self, resolve_now: bool = True) -> Optional[int]:
        if self.state is not RouteState.RESOLUTION_FAILED:
            return None
        return self.on_session_change(self.session, resolve_now=resolve_now)

    def change_language(self) -> None:
        """Forgets this user's language and asks again."""
        if self.session is None:
            return
        self.preferences.clear(self.session.identity.id)
        if self.profile is not None:
            self.state = RouteState.LANGUAGE_SELECT

    def choose_language(self, code: str) -> None:
        if self.session is None:
            raise ValueError("No signed-in user to store a language for")
        self.preferences.set(self.session.identity.id, code)
        if self.state is RouteState.LANGUAGE_SELECT and self.profile is not None:
            self.state = DASHBOARD_FOR_ROLE[self.profile.role]

    def _is_live(self, generation: int) -> bool:
        return (
            generation == self._generation
            and self.session is not None
            and self.state is RouteState.RESOLVING_PROFILE
        )

    # -------------------------
    # Guards and views
    # -------------------------
    @property
    def role(self) -> Optional[Role]:
        return self.profile.role if self.profile is not None else None

    @property
    def language(self) -> Optional[str]:
        if self.session is None:
            return None
        return self.preferences.get(self.session.identity.id)

    def is_authenticated(self) -> bool:
        return self.session is not None

    def mount(self, view: str) -> ViewToken:
        """Marks a new screen as current; results tied to older tokens are stale."""
        self._view_generation += 1
        return ViewToken(view=view, generation=self._view_generation)

    def is_current(self, token: ViewToken) -> bool:
        return token.generation == self._view_generation and self.session is not None
