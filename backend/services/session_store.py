"""In-memory session history with idle eviction."""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from config import MAX_HISTORY_TURNS, SESSION_IDLE_SECONDS, SWEEP_INTERVAL_SECONDS
from models.conversation import Session, Turn
from services.prompt_builder import format_history

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """
    Keyed mapping from session id to a length-capped list of turns.

    State lives only in process memory. The clock is injected so eviction
    can be driven without real waits.
    """

    def __init__(
        self,
        max_turns: int = MAX_HISTORY_TURNS,
        clock: Callable[[], datetime] = utc_now,
        idle_threshold: timedelta = timedelta(seconds=SESSION_IDLE_SECONDS)
    ):
        self.max_turns = max_turns
        self.clock = clock
        self.idle_threshold = idle_threshold
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get_or_create(self, session_id: str) -> List[Turn]:
        """
        Get the turns of an existing session or start an empty one.

        Args:
            session_id: Client-supplied session id

        Returns:
            Copy of the session's turns in chronological order
        """
        session = self._sessions.get(session_id)
        if session is None:
            session = Session(session_id=session_id)
            self._sessions[session_id] = session
            logger.info(f"Created new session: {session_id}")
        return list(session.turns)

    def get(self, session_id: str) -> Optional[List[Turn]]:
        """Turns of a session without creating it; None when unknown."""
        session = self._sessions.get(session_id)
        return list(session.turns) if session is not None else None

    def append(self, session_id: str, turn: Turn) -> None:
        """
        Append a turn, dropping the oldest turns beyond max_turns.

        A session evicted while its request was in flight is recreated here.
        """
        session = self._sessions.get(session_id)
        if session is None:
            session = Session(session_id=session_id)
            self._sessions[session_id] = session

        session.turns.append(turn)
        overflow = len(session.turns) - self.max_turns
        if overflow > 0:
            del session.turns[:overflow]
        logger.debug(f"Session {session_id} now holds {len(session.turns)} turns")

    def clear(self, session_id: str) -> bool:
        """Remove a session entirely. Returns whether anything was removed."""
        removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info(f"Cleared session: {session_id}")
        return removed

    def get_context(self, session_id: str) -> str:
        """Formatted history of a session for the answer prompt."""
        session = self._sessions.get(session_id)
        if session is None:
            return ""
        return format_history(session.turns)

    def sweep(self, now: Optional[datetime] = None, idle_threshold: Optional[timedelta] = None) -> List[str]:
        """
        Evict sessions whose last turn is strictly older than the idle threshold.

        Sessions with no turns are never evicted.

        Args:
            now: Reference instant (defaults to the store's clock)
            idle_threshold: Maximum idle time (defaults to the store's threshold)

        Returns:
            Ids of evicted sessions
        """
        now = now or self.clock()
        idle_threshold = idle_threshold if idle_threshold is not None else self.idle_threshold

        evicted = [
            session_id
            for session_id, session in self._sessions.items()
            if session.last_active is not None and now - session.last_active > idle_threshold
        ]
        for session_id in evicted:
            del self._sessions[session_id]

        if evicted:
            logger.info(f"Evicted {len(evicted)} idle sessions, {len(self._sessions)} remaining")
        return evicted


class SessionSweeper:
    """Background task that sweeps a SessionStore on a fixed period."""

    def __init__(self, store: SessionStore, interval_seconds: float = SWEEP_INTERVAL_SECONDS):
        self.store = store
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Session sweeper started (interval={self.interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Session sweeper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.store.sweep()
            except Exception as e:
                logger.error(f"Session sweep failed: {e}", exc_info=True)
