"""Upload status broadcaster: canonical session table plus observer fan-out.

Every mutation updates the table and then synchronously hands each
observer a fresh tuple of frozen snapshots. Observers cannot reach the
live sessions through what they receive.

Single-writer/many-reader on one event loop: each session is mutated
only by its own upload task, so no lock is needed. A port to threads
would need one around _sessions and _observers.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable

from media_upload.application.interfaces.services import IStatusObserver
from media_upload.domain.entities.upload_session import (
    UploadSession,
    UploadSessionSnapshot,
)
from media_upload.domain.enums import UploadStatus
from media_upload.domain.exceptions import (
    DuplicateSessionException,
    SessionNotFoundException,
)

logger = logging.getLogger(__name__)

Snapshot = tuple[UploadSessionSnapshot, ...]

_CLOSED = object()


class SnapshotChannel:
    """Async iterator over broadcaster notifications.

    Subscribes on creation; every notification is queued in order. close()
    unsubscribes and ends iteration once queued items are consumed.

    Usage:
        async with broadcaster.channel() as channel:
            async for snapshot in channel:
                ...
    """

    def __init__(self, broadcaster: StatusBroadcaster) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False
        self._unsubscribe = broadcaster.subscribe(self._push)

    def _push(self, snapshots: Snapshot) -> None:
        if not self._closed:
            self._queue.put_nowait(snapshots)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop receiving notifications. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> SnapshotChannel:
        return self

    async def __anext__(self) -> Snapshot:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item  # type: ignore[return-value]

    async def __aenter__(self) -> SnapshotChannel:
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.close()


class StatusBroadcaster:
    """Single source of truth for upload sessions (in-flight, completed, failed).

    - Session ids are unique for the broadcaster's lifetime, including ids
      that were removed or cleared.
    - Mutations on a removed session are dropped (return False); on an id
      never registered they raise SessionNotFoundException.
    - subscribe/unsubscribe are O(1) and safe inside a notification;
      observers added during a notification are called from the next one.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, UploadSession] = {}
        self._seen_ids: set[str] = set()
        self._observers: dict[int, IStatusObserver] = {}
        self._tokens = itertools.count()

    # Observers

    def subscribe(self, observer: IStatusObserver) -> Callable[[], None]:
        """Register observer; returns a function that unsubscribes it."""
        token = next(self._tokens)
        self._observers[token] = observer

        def unsubscribe() -> None:
            self._observers.pop(token, None)

        return unsubscribe

    def channel(self) -> SnapshotChannel:
        """Return a new async channel subscribed to this broadcaster."""
        return SnapshotChannel(self)

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for token, observer in list(self._observers.items()):
            if token not in self._observers:
                continue
            try:
                observer(snapshot)
            except Exception:
                logger.exception("Error in upload status observer")

    # Reads

    def snapshot(self) -> Snapshot:
        """Return frozen copies of every tracked session, in registration order."""
        return tuple(session.snapshot() for session in self._sessions.values())

    def get(self, session_id: str) -> UploadSessionSnapshot:
        """Return one session's snapshot.

        Raises:
            SessionNotFoundException: If the id is not tracked.
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundException(session_id)
        return session.snapshot()

    @property
    def is_uploading(self) -> bool:
        """True if any tracked session is still uploading."""
        return any(
            s.status is UploadStatus.UPLOADING for s in self._sessions.values()
        )

    # Mutations

    def register(self, session: UploadSession) -> UploadSessionSnapshot:
        """Track a new session and notify observers.

        Raises:
            DuplicateSessionException: If the id was ever registered before.
        """
        if session.session_id in self._seen_ids:
            raise DuplicateSessionException(session.session_id)
        self._seen_ids.add(session.session_id)
        self._sessions[session.session_id] = session
        logger.debug("Registered upload session %s (%s)", session.session_id, session.filename)
        self._notify()
        return session.snapshot()

    def _tracked(self, session_id: str) -> UploadSession | None:
        session = self._sessions.get(session_id)
        if session is None:
            if session_id not in self._seen_ids:
                raise SessionNotFoundException(session_id)
            logger.debug("Dropping update for removed session %s", session_id)
        return session

    def report_progress(self, session_id: str, percent: int) -> bool:
        """Record progress; notifies only when the value actually advanced."""
        session = self._tracked(session_id)
        if session is None or not session.report_progress(percent):
            return False
        self._notify()
        return True

    def attach_transport(
        self,
        session_id: str,
        transport_handle: str | None = None,
        content_hash: str | None = None,
    ) -> bool:
        """Record transport handle and content fingerprint on the session."""
        session = self._tracked(session_id)
        if session is None:
            return False
        session.attach_transport(transport_handle, content_hash)
        self._notify()
        return True

    def complete(self, session_id: str) -> bool:
        """Mark the session completed (progress 100) and notify."""
        session = self._tracked(session_id)
        if session is None:
            return False
        session.complete()
        logger.info("Upload %s completed (%s)", session_id, session.filename)
        self._notify()
        return True

    def fail(self, session_id: str, error: str | None = None) -> bool:
        """Mark the session failed (progress -1) and notify."""
        session = self._tracked(session_id)
        if session is None:
            return False
        session.fail(error)
        logger.warning("Upload %s failed (%s): %s", session_id, session.filename, error)
        self._notify()
        return True

    def remove(self, session_id: str) -> bool:
        """Stop tracking one session. Returns False if it was not tracked."""
        if self._sessions.pop(session_id, None) is None:
            return False
        self._notify()
        return True

    def clear(self, include_active: bool = False) -> int:
        """Remove finished sessions (or every session when include_active).

        Uploads still running after their session was cleared keep going;
        their updates are dropped.

        Returns:
            Number of sessions removed.
        """
        doomed = [
            sid
            for sid, s in self._sessions.items()
            if include_active or s.is_terminal
        ]
        for sid in doomed:
            del self._sessions[sid]
        self._notify()
        return len(doomed)
