"""Preview request coordination.

A user toggling "randomize sample article" can issue previews faster than
they complete. Within one preview session only the latest issued request
may return a result: issuing a newer request cancels the older one, and an
older request that still finishes late is reported as superseded.
"""

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from app.core.exceptions import PreviewSupersededError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _Session:
    latest_request_id: int = 0
    task: asyncio.Task | None = None


class PreviewCoordinator:
    """Last-issued-wins coordination of preview requests per session."""

    def __init__(self, max_sessions: int = 1024) -> None:
        self._sessions: OrderedDict[str, _Session] = OrderedDict()
        self._max_sessions = max_sessions
        self._lock = asyncio.Lock()

    async def run(
        self,
        session_key: str,
        operation: Callable[[], Awaitable[T]],
        request_id: int | None = None,
    ) -> tuple[int, T]:
        """Run a preview operation as the newest request of its session.

        Args:
            session_key: Identifies the preview session (e.g. one editor tab).
            operation: Coroutine factory producing the preview.
            request_id: Client-issued, increasing request number. When omitted
                the coordinator numbers requests in arrival order.

        Returns:
            The request id and the operation result.

        Raises:
            PreviewSupersededError: If a newer request was issued for the session.
        """
        async with self._lock:
            session = self._session(session_key)
            if request_id is None:
                request_id = session.latest_request_id + 1
            elif request_id <= session.latest_request_id:
                raise PreviewSupersededError(session_key, request_id, session.latest_request_id)

            previous = session.task
            session.latest_request_id = request_id
            task = asyncio.ensure_future(operation())
            session.task = task

        if previous is not None and not previous.done():
            logger.debug(f"Cancelling stale preview for {session_key}")
            previous.cancel()

        try:
            result = await task
        except asyncio.CancelledError:
            if task.cancelled() and session.latest_request_id != request_id:
                raise PreviewSupersededError(
                    session_key, request_id, session.latest_request_id
                ) from None
            raise
        finally:
            async with self._lock:
                if session.task is task:
                    session.task = None

        if session.latest_request_id != request_id:
            raise PreviewSupersededError(session_key, request_id, session.latest_request_id)
        return request_id, result

    def latest_request_id(self, session_key: str) -> int:
        session = self._sessions.get(session_key)
        return session.latest_request_id if session else 0

    def _session(self, session_key: str) -> _Session:
        session = self._sessions.get(session_key)
        if session is None:
            session = _Session()
            self._sessions[session_key] = session
            self._evict_idle(keep=session_key)
        else:
            self._sessions.move_to_end(session_key)
        return session

    def _evict_idle(self, keep: str) -> None:
        """Drop least recently used sessions without a preview in flight.

        Busy sessions are kept even past the limit so their request numbering
        survives; they become evictable once their preview finishes.
        """
        excess = len(self._sessions) - self._max_sessions
        if excess <= 0:
            return
        idle = [
            key
            for key, session in self._sessions.items()
            if key != keep and (session.task is None or session.task.done())
        ]
        for key in idle[:excess]:
            del self._sessions[key]
