from __future__ import annotations

from contextlib import contextmanager

from lifeos.errors import ToggleInProgress


class InFlightGuard:
    """Keys of controls whose request has not resolved yet.

    A control is disabled while its key is held; a second attempt raises
    ToggleInProgress instead of racing the first one.
    """

    def __init__(self):
        self._held: set[str] = set()

    def is_busy(self, key: str) -> bool:
        return key in self._held

    @contextmanager
    def hold(self, key: str):
        if key in self._held:
            raise ToggleInProgress(key)
        self._held.add(key)
        try:
            yield
        finally:
            self._held.discard(key)


class GenerationGuard:
    """Per-view load tickets; only the newest ticket may apply its response."""

    def __init__(self):
        self._latest: dict[str, int] = {}

    def begin(self, view: str) -> int:
        ticket = self._latest.get(view, 0) + 1
        self._latest[view] = ticket
        return ticket

    def is_current(self, view: str, ticket: int) -> bool:
        return self._latest.get(view) == ticket

    def invalidate(self, view: str) -> None:
        self.begin(view)
