from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from lifeos.guards import GenerationGuard, InFlightGuard

logger = logging.getLogger(__name__)

THEMES = ("light", "dark", "auto")


class SessionClosed(RuntimeError):
    pass


@dataclass
class UserSession:
    """Everything the signed-in user's components share, from sign-in to sign-out."""

    user_id: str
    email: str | None = None
    theme: str = "auto"
    system_scheme: str = "light"
    slices: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    notices: list = field(default_factory=list)
    generations: GenerationGuard = field(default_factory=GenerationGuard)
    in_flight: InFlightGuard = field(default_factory=InFlightGuard)
    closed: bool = False

    def _ensure_open(self):
        if self.closed:
            raise SessionClosed(f"Session for {self.user_id} is closed")

    @property
    def effective_theme(self) -> str:
        if self.theme == "auto":
            return self.system_scheme if self.system_scheme in {"light", "dark"} else "light"
        return self.theme

    def set_theme(self, theme: str) -> None:
        self._ensure_open()
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme}")
        self.theme = theme

    def get_slice(self, slice_name):
        self._ensure_open()
        return self.slices.setdefault(slice_name, {})

    def get_value(self, slice_name, name, default=None):
        return self.get_slice(slice_name).get(name, default)

    def set_value(self, slice_name, name, value):
        self.get_slice(slice_name)[name] = value

    def update_slice(self, slice_name, values):
        self.get_slice(slice_name).update(values)

    def clear_slice(self, slice_name):
        self.slices.pop(slice_name, None)

    def notify(self, message: str) -> None:
        self.notices.append(message)

    def pop_notices(self) -> list:
        notices, self.notices = self.notices, []
        return notices

    def close(self) -> None:
        self.slices.clear()
        self.notices.clear()
        self.closed = True


def sign_in(user_id: str, email: str | None = None, theme: str = "auto", system_scheme: str = "light") -> UserSession:
    user_id = str(user_id or "").strip()
    if not user_id:
        raise ValueError("Cannot open a session without a user id")
    session = UserSession(user_id=user_id, email=email, system_scheme=system_scheme)
    session.set_theme(theme)
    logger.info("Session opened for %s", user_id)
    return session


def sign_out(session: UserSession) -> None:
    session.close()
    logger.info("Session closed for %s", session.user_id)
