"""Debounced search-as-you-type lookups with last-issued-wins ordering.

Each submitted query takes a ticket from a generation counter. After the
debounce delay and again after the fetch completes, the ticket is checked
against the counter: only the most recently *issued* query may publish its
result, regardless of which fetch finishes first. No cancellation primitive
is needed; a stale request simply has its result discarded.
"""

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from clinic_insights.clients.clinic_api import ClinicApiError, SessionExpiredError
from clinic_insights.config import settings

logger = logging.getLogger(__name__)

Fetch = Callable[[str], Awaitable[Any]]


class LookupState(str, Enum):
    IDLE = "idle"
    SUPERSEDED = "superseded"
    FOUND = "found"
    MISSING = "missing"
    ERROR = "error"


@dataclass(frozen=True)
class LookupOutcome:
    """Result of one submitted query."""

    state: LookupState
    query: str
    result: Any = None
    message: str = ""


class LatestRequestGuard:
    """Generation counter: only the newest ticket is current."""

    def __init__(self) -> None:
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def issue(self) -> int:
        """Start a new request, invalidating every earlier ticket."""
        self._generation += 1
        return self._generation

    def is_current(self, ticket: int) -> bool:
        return ticket == self._generation


class DebouncedLookup:
    """Debounce a lookup coroutine and publish only the latest result.

    Args:
        fetch: Coroutine function taking the query and returning the found
            record or None when nothing matches. May instead be given per
            submit, for callers whose fetch is bound to a single request.
        delay: Debounce delay in seconds.
    """

    def __init__(
        self,
        fetch: Fetch | None = None,
        delay: float | None = None,
    ) -> None:
        self._fetch = fetch
        self._delay = settings.lookup_debounce_seconds if delay is None else delay
        self._guard = LatestRequestGuard()
        self.latest: LookupOutcome = LookupOutcome(state=LookupState.IDLE, query="")

    def _publish(self, outcome: LookupOutcome) -> LookupOutcome:
        self.latest = outcome
        return outcome

    async def submit(self, query: str, fetch: Fetch | None = None) -> LookupOutcome:
        """Submit a query; resolves to its own outcome.

        Superseded queries resolve to SUPERSEDED and never touch `latest`.
        SessionExpiredError propagates to the caller.
        """
        fetch = fetch or self._fetch
        if fetch is None:
            raise TypeError("no fetch function given")
        ticket = self._guard.issue()
        query = (query or "").strip()
        if not query:
            return self._publish(LookupOutcome(state=LookupState.IDLE, query=""))

        await asyncio.sleep(self._delay)
        if not self._guard.is_current(ticket):
            return LookupOutcome(state=LookupState.SUPERSEDED, query=query)

        try:
            result = await fetch(query)
        except SessionExpiredError:
            raise
        except ClinicApiError as exc:
            if not self._guard.is_current(ticket):
                return LookupOutcome(state=LookupState.SUPERSEDED, query=query)
            logger.warning("Lookup for %r failed: %s", query, exc.detail)
            return self._publish(LookupOutcome(
                state=LookupState.ERROR,
                query=query,
                message=exc.detail or "No se pudo validar el paciente.",
            ))

        if not self._guard.is_current(ticket):
            logger.debug("Discarding stale lookup result for %r", query)
            return LookupOutcome(state=LookupState.SUPERSEDED, query=query)

        if result is None:
            return self._publish(LookupOutcome(
                state=LookupState.MISSING,
                query=query,
                message="Paciente no existe. Debe crearlo primero.",
            ))
        return self._publish(LookupOutcome(
            state=LookupState.FOUND,
            query=query,
            result=result,
            message="Paciente encontrado",
        ))


class LookupRegistry:
    """One DebouncedLookup per session, so a caller only supersedes itself.

    Least recently used sessions are evicted beyond max_sessions.
    """

    def __init__(self, delay: float | None = None, max_sessions: int = 1024) -> None:
        self._delay = delay
        self._max_sessions = max_sessions
        self._lookups: OrderedDict[str, DebouncedLookup] = OrderedDict()

    def __len__(self) -> int:
        return len(self._lookups)

    def for_session(self, session_key: str) -> DebouncedLookup:
        lookup = self._lookups.pop(session_key, None)
        if lookup is None:
            lookup = DebouncedLookup(delay=self._delay)
        self._lookups[session_key] = lookup
        while len(self._lookups) > self._max_sessions:
            self._lookups.popitem(last=False)
        return lookup
