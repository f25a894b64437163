"""
Per-session directory stack for qcd.

Every shell session owns a LIFO of previously visited directories, stored in
the ``_stack`` table and partitioned by session id. The top of a session's
stack is its entry with the greatest id.

Pushing the directory that is already on top is a no-op; the comparison only
looks at the top, so a directory may appear several times further down.

Push, pop and listing first run an expiry sweep that deletes entries of all
sessions older than the retention window. The sweep is fire-and-forget: a
failing sweep is logged and never stops the operation that triggered it.
Its outcome is available as ``last_sweep``.

Concurrent qcd processes only get SQLite's per-statement guarantees: a pop
followed by a push (swap) is not atomic with respect to other processes.
"""
import logging
import time
from typing import Callable, List, Optional

from sqlalchemy import select, delete

from qcd.constants import STACK_EXPIRE_DAYS, SECONDS_PER_DAY
from qcd.db import Database
from qcd.errors import EmptyStack, StorageUnavailable
from qcd.models import StackEntry

logger = logging.getLogger(__name__)


class DirectoryStack:
    """
    Directory stacks of all sessions in one database.

    Args:
        db: Open database
        clock: Callable returning the current time in epoch seconds
        expire_days: Retention window of stack entries
    """

    def __init__(
        self,
        db: Database,
        clock: Callable[[], float] = time.time,
        expire_days: int = STACK_EXPIRE_DAYS
    ):
        self.db = db
        self.clock = clock
        self.expire_days = expire_days
        # None until a sweep ran, then rows removed (or None again on failure)
        self.last_sweep: Optional[int] = None
        self.sweep_failed = False

    def _now(self) -> int:
        return int(self.clock())

    def tidy_up(self) -> Optional[int]:
        """
        Remove old entries from all sessions.

        Returns:
            Number of removed entries, or None if the sweep failed
        """
        best_after = self._now() - self.expire_days * SECONDS_PER_DAY
        try:
            with self.db.session() as session:
                result = session.execute(
                    delete(StackEntry).where(StackEntry.timestamp < best_after)
                )
                removed = result.rowcount
        except StorageUnavailable as e:
            logger.warning("Could not tidy up stack: %s", e)
            self.last_sweep = None
            self.sweep_failed = True
            return None

        if removed:
            logger.debug("Removed %d expired stack entries", removed)
        self.last_sweep = removed
        self.sweep_failed = False
        return removed

    def top(self, sessionid: str) -> StackEntry:
        """
        Get the top entry of a session's stack.

        Raises:
            EmptyStack: If the session has no entries
        """
        with self.db.session(expire_on_commit=False) as session:
            entry = session.execute(
                select(StackEntry)
                .where(StackEntry.sessionid == sessionid)
                .order_by(StackEntry.id.desc())
                .limit(1)
            ).scalars().first()

        if entry is None:
            raise EmptyStack()
        return entry

    def entries(self, sessionid: str) -> List[StackEntry]:
        """Get all entries of a session's stack, top to bottom."""
        self.tidy_up()

        with self.db.session(expire_on_commit=False) as session:
            result = session.execute(
                select(StackEntry)
                .where(StackEntry.sessionid == sessionid)
                .order_by(StackEntry.id.desc())
            )
            return list(result.scalars())

    def push(self, sessionid: str, directory: str) -> Optional[StackEntry]:
        """
        Put a directory on top of a session's stack.

        Args:
            sessionid: Session owning the stack
            directory: Clean absolute directory path

        Returns:
            The new entry, or None if directory already was on top
        """
        self.tidy_up()

        directory = str(directory)
        try:
            if self.top(sessionid).directory == directory:
                logger.debug("%s already on top of stack", directory)
                return None
        except EmptyStack:
            pass

        entry = StackEntry(sessionid=sessionid, timestamp=self._now(), directory=directory)
        with self.db.session(expire_on_commit=False) as session:
            session.add(entry)

        logger.debug("Pushed %s (id %d)", directory, entry.id)
        return entry

    def pop(self, sessionid: str) -> str:
        """
        Remove the top entry of a session's stack.

        Returns:
            Directory of the removed entry

        Raises:
            EmptyStack: If the session has no entries
        """
        self.tidy_up()

        with self.db.session() as session:
            entry = session.execute(
                select(StackEntry)
                .where(StackEntry.sessionid == sessionid)
                .order_by(StackEntry.id.desc())
                .limit(1)
            ).scalars().first()
            if entry is None:
                raise EmptyStack()
            directory = entry.directory
            session.delete(entry)

        logger.debug("Popped %s", directory)
        return directory

    def drop(self, sessionid: str) -> None:
        """Remove the top entry of a session's stack without returning it."""
        self.pop(sessionid)

    def swap(self, sessionid: str, directory: str) -> str:
        """
        Exchange the top of a session's stack with directory.

        Returns:
            Directory of the former top entry

        Raises:
            EmptyStack: If the session has no entries
        """
        former_top = self.pop(sessionid)
        self.push(sessionid, directory)
        return former_top
