"""
Debounced, bounded cache for autocomplete-style suggestions.

Entries are keyed by a normalized prefix and evicted oldest-inserted-first.
Each session has at most one pending fetch; arming a new one cancels the
previous timer, and results of superseded in-flight fetches are discarded.
"""
import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Optional

from config import Config
from services.suggestion_service import SuggestionService
from utils.logger import get_logger

logger = get_logger("suggestions")


class SuggestionCache:
    """Bounded mapping with insertion-order (FIFO) eviction."""

    KEY_TOKENS = 3

    def __init__(self, capacity: int = Config.SUGGESTION_CACHE_SIZE):
        self._capacity = capacity
        self._order: deque[str] = deque()
        self._entries: dict[str, list[str]] = {}

    @classmethod
    def make_key(cls, text: str) -> str:
        """Lower-cased first three whitespace-delimited tokens."""
        return " ".join(text.lower().split()[:cls.KEY_TOKENS])

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: str) -> Optional[list[str]]:
        entry = self._entries.get(key)
        return list(entry) if entry is not None else None

    def put(self, key: str, suggestions: list[str]) -> None:
        """Insert or update ``key``; an update keeps the key's original position."""
        if key not in self._entries:
            self._order.append(key)
        self._entries[key] = list(suggestions)

        while len(self._order) > self._capacity:
            oldest = self._order.popleft()
            del self._entries[oldest]
            logger.debug(f"Suggestion cache evicted '{oldest}'")

    def keys(self) -> list[str]:
        return list(self._order)

    def clear(self) -> None:
        self._order.clear()
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._order)


@dataclass
class _FetchToken:
    """Cancellation token for one scheduled fetch."""
    text: str
    key: str
    handle: Optional[asyncio.TimerHandle] = None
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True
        if self.handle is not None:
            self.handle.cancel()
            self.handle = None


@dataclass
class _SessionState:
    suggestions: list[str] = field(default_factory=list)
    loading: bool = False
    token: Optional[_FetchToken] = None
    waiters: list[asyncio.Future] = field(default_factory=list)

    @property
    def busy(self) -> bool:
        return self.token is not None or bool(self.waiters)

    @property
    def idle(self) -> bool:
        return not self.busy and not self.suggestions


class PredictiveSuggestionCache:
    """Debounced suggestion fetcher in front of a SuggestionCache."""

    def __init__(
        self,
        service: SuggestionService,
        debounce_seconds: float = Config.PREDICTIVE_DEBOUNCE_SECONDS,
        capacity: int = Config.SUGGESTION_CACHE_SIZE,
        min_chars: int = 1,
        max_sessions: int = Config.SUGGESTION_SESSION_LIMIT,
        on_publish: Optional[Callable[[str, list[str]], None]] = None
    ):
        self._service = service
        self._debounce_seconds = debounce_seconds
        self._min_chars = min_chars
        self._max_sessions = max_sessions
        self._on_publish = on_publish
        self._cache = SuggestionCache(capacity)
        self._sessions: dict[str, _SessionState] = {}
        self._tasks: set[asyncio.Task] = set()

    @property
    def cache(self) -> SuggestionCache:
        return self._cache

    @property
    def debounce_seconds(self) -> float:
        return self._debounce_seconds

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def suggestions(self, session: str = "default") -> list[str]:
        state = self._sessions.get(session)
        return list(state.suggestions) if state else []

    def is_loading(self, session: str = "default") -> bool:
        state = self._sessions.get(session)
        return bool(state and state.loading)

    def _state(self, session: str) -> _SessionState:
        state = self._sessions.get(session)
        if state is None:
            self._evict_sessions(self._max_sessions - 1)
            state = self._sessions[session] = _SessionState()
        return state

    def _evict_sessions(self, limit: int) -> None:
        """Drop the oldest sessions with no pending fetch until at most ``limit`` remain."""
        excess = len(self._sessions) - limit
        if excess <= 0:
            return
        stale = [name for name, state in self._sessions.items() if not state.busy][:excess]
        for name in stale:
            del self._sessions[name]

    def _discard_if_idle(self, session: str, state: _SessionState) -> None:
        if state.idle and self._sessions.get(session) is state:
            del self._sessions[session]

    @staticmethod
    def _invalidate(state: _SessionState) -> None:
        if state.token is not None:
            state.token.cancel()
            state.token = None

    def _publish(self, session: str, state: _SessionState, suggestions: list[str]) -> None:
        state.suggestions = list(suggestions)
        state.loading = False

        waiters, state.waiters = state.waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(list(suggestions))

        if self._on_publish is not None:
            self._on_publish(session, list(suggestions))

        self._discard_if_idle(session, state)

    async def fetch(self, text: str, session: str = "default") -> list[str]:
        """
        Suggestions for ``text`` in ``session``.

        Blank input and cache hits answer immediately. A miss is debounced;
        every caller still waiting on the session receives the value that is
        finally published for it.
        """
        stripped = text.strip()
        if not stripped or len(stripped) < self._min_chars:
            self.clear(session)
            return []

        state = self._state(session)
        self._invalidate(state)

        key = SuggestionCache.make_key(text)
        cached = self._cache.get(key)
        if cached:
            logger.debug(f"Suggestion cache HIT: '{key}'")
            self._publish(session, state, cached)
            return cached

        loop = asyncio.get_running_loop()
        token = _FetchToken(text=text, key=key)
        token.handle = loop.call_later(self._debounce_seconds, self._fire, session, token)
        state.token = token
        state.loading = True

        waiter = loop.create_future()
        state.waiters.append(waiter)
        return await waiter

    def _fire(self, session: str, token: _FetchToken) -> None:
        if token.cancelled:
            return
        token.handle = None
        task = asyncio.get_running_loop().create_task(self._run_fetch(session, token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_fetch(self, session: str, token: _FetchToken) -> None:
        try:
            suggestions = list(await self._service.get_suggestions(token.text))
        except Exception as e:
            logger.warning(f"Failed to fetch suggestions: {e}")
            state = self._sessions.get(session)
            if state is not None and state.token is token:
                state.token = None
                self._publish(session, state, [])
            return

        state = self._sessions.get(session)
        if state is None or state.token is not token:
            logger.debug(f"Discarding superseded suggestions for '{token.key}'")
            return

        state.token = None
        self._cache.put(token.key, suggestions)
        self._publish(session, state, suggestions)

    def clear(self, session: str = "default") -> None:
        """Cancel any pending fetch and clear the visible suggestions."""
        state = self._sessions.get(session)
        if state is None:
            return
        self._invalidate(state)
        self._publish(session, state, [])

    def apply_suggestion(self, suggestion: str, current_input: str, session: str = "default") -> str:
        """Append ``suggestion`` to the input and clear the session's suggestions."""
        current = current_input.strip()
        new_input = f"{current} {suggestion}" if current else suggestion
        self.clear(session)
        return new_input

    def cancel_all(self) -> None:
        for session in list(self._sessions):
            self.clear(session)
        for task in list(self._tasks):
            task.cancel()
