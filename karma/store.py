"""
Karma Ledger Record Store

Key-addressed persistence of souls with atomic create and
compare-and-swap semantics. All concurrency control for the ledger lives
at this boundary:

- create() fails with AlreadyExists if the identity is taken
- put() only lands if the caller's expected version is still current
- commit() applies several writes (and a journal event) as one unit:
  every version check passes and everything lands, or nothing does

Implementations must be:
- Atomic (no partial multi-record writes)
- Consistent (no lost updates between concurrent transitions)
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .errors import AlreadyExists, NotFound, VersionConflict
from .journal import JournalEntry, TransitionEvent, chain_event
from .soul import Soul, StoredSoul


@dataclass(frozen=True)
class Write:
    """
    One record write inside a commit.

    expected_version None means "create": the identity must not exist yet.
    """
    identity: str
    soul: Soul
    expected_version: Optional[int] = None


class SoulStore(ABC):
    """Abstract interface for soul persistence."""

    @abstractmethod
    def get(self, identity: str) -> StoredSoul:
        """Load a soul. Raises NotFound."""
        pass

    @abstractmethod
    def commit(self, writes: Sequence[Write], event: Optional[TransitionEvent] = None) -> List[StoredSoul]:
        """
        Atomically apply `writes` and append `event` to the journal.

        Returns:
            The stored souls in the order of `writes`

        Raises:
            AlreadyExists: A create write targets an existing identity
            NotFound: A compare-and-swap write targets a missing identity
            VersionConflict: A compare-and-swap write lost a race
        """
        pass

    @abstractmethod
    def journal(self, limit: Optional[int] = None) -> List[JournalEntry]:
        """Journal entries in commit order (the newest `limit` if given)."""
        pass

    def create(self, identity: str, soul: Soul, event: Optional[TransitionEvent] = None) -> StoredSoul:
        return self.commit([Write(identity, soul)], event)[0]

    def put(
        self,
        identity: str,
        expected_version: int,
        soul: Soul,
        event: Optional[TransitionEvent] = None
    ) -> StoredSoul:
        return self.commit([Write(identity, soul, expected_version)], event)[0]

    def exists(self, identity: str) -> bool:
        try:
            self.get(identity)
            return True
        except NotFound:
            return False


class InMemorySoulStore(SoulStore):
    """
    In-memory soul store for development/testing.

    WARNING: Not persistent across restarts. Use the SQLite store in
    karma_api.db for anything that must survive a process.
    """

    def __init__(self):
        self._souls: Dict[str, StoredSoul] = {}
        self._journal: List[JournalEntry] = []
        self._lock = threading.Lock()

    def get(self, identity: str) -> StoredSoul:
        with self._lock:
            stored = self._souls.get(identity)
        if stored is None:
            raise NotFound(f"no soul for {identity}", identity=identity)
        return stored

    def commit(self, writes: Sequence[Write], event: Optional[TransitionEvent] = None) -> List[StoredSoul]:
        with self._lock:
            # Validate every write before touching anything
            for w in writes:
                current = self._souls.get(w.identity)
                if w.expected_version is None:
                    if current is not None:
                        raise AlreadyExists(f"soul exists for {w.identity}", identity=w.identity)
                elif current is None:
                    raise NotFound(f"no soul for {w.identity}", identity=w.identity)
                elif current.version != w.expected_version:
                    raise VersionConflict(
                        f"version conflict on {w.identity}",
                        identity=w.identity,
                        expected_version=w.expected_version,
                        actual_version=current.version,
                    )

            stored = []
            for w in writes:
                version = 1 if w.expected_version is None else w.expected_version + 1
                s = StoredSoul(soul=w.soul, version=version)
                self._souls[w.identity] = s
                stored.append(s)

            if event is not None:
                prev = self._journal[-1].entry_hash if self._journal else None
                self._journal.append(chain_event(len(self._journal) + 1, prev, event))

            return stored

    def journal(self, limit: Optional[int] = None) -> List[JournalEntry]:
        with self._lock:
            entries = self._journal[:]
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return entries
