"""
Database module for the Karma Ledger service.

Provides SQLite-based storage for souls, the transition journal and
request nonces. Connections are thread-local; every commit runs inside
one BEGIN IMMEDIATE transaction so multi-record compare-and-swap writes
land together or not at all.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from karma.auth import NonceRegistry
from karma.errors import AlreadyExists, NotFound, VersionConflict
from karma.journal import JournalEntry, TransitionEvent, chain_event
from karma.soul import Soul, StoredSoul
from karma.store import SoulStore, Write


SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS souls (
        authority TEXT PRIMARY KEY,
        karma INTEGER NOT NULL,
        energy INTEGER NOT NULL CHECK (energy >= 0),
        last_sunrise INTEGER NOT NULL,
        version INTEGER NOT NULL
    );""",
    """
    CREATE TABLE IF NOT EXISTS journal (
        seq INTEGER PRIMARY KEY,
        kind TEXT NOT NULL,
        authority TEXT NOT NULL,
        counterparty TEXT,
        direction TEXT,
        occurred_at INTEGER NOT NULL,
        payload_hash TEXT NOT NULL,
        prev_entry_hash TEXT,
        entry_hash TEXT NOT NULL
    );""",
    """
    CREATE INDEX IF NOT EXISTS idx_journal_authority
    ON journal(authority);""",
    """
    CREATE TABLE IF NOT EXISTS nonces (
        nonce TEXT PRIMARY KEY,
        expires_at INTEGER NOT NULL
    );""",
    """
    CREATE INDEX IF NOT EXISTS idx_nonces_expires
    ON nonces(expires_at);""",
)


class SqliteDatabase:
    """
    Thread-local SQLite connections to one database file.

    Connections run in autocommit mode; transactions are opened
    explicitly by `transaction()`.
    """

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        self._local = threading.local()

    def connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False, isolation_level=None)
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA busy_timeout=5000;")
            conn.row_factory = sqlite3.Row
            self._local.conn = conn
        return conn

    @contextmanager
    def transaction(self):
        """
        Context manager for write transactions.
        Takes the write lock up front, commits on success, rolls back on failure.
        """
        conn = self.connection()
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            conn.execute("COMMIT")
        except Exception:
            conn.execute("ROLLBACK")
            raise

    def init_schema(self) -> None:
        """Safe to call multiple times (uses IF NOT EXISTS)."""
        with self.transaction() as conn:
            for stmt in SCHEMA:
                conn.execute(stmt)

    def reset(self) -> None:
        """Clear all tables but keep the schema. Test support only."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM souls")
            conn.execute("DELETE FROM journal")
            conn.execute("DELETE FROM nonces")

    def stats(self) -> Dict[str, int]:
        conn = self.connection()
        stats = {}
        for table in ["souls", "journal", "nonces"]:
            cur = conn.execute(f"SELECT COUNT(*) AS cnt FROM {table}")
            stats[f"{table}_count"] = cur.fetchone()["cnt"]
        return stats

    def close(self) -> None:
        """Close this thread's connection."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None


def _row_to_stored(row: sqlite3.Row) -> StoredSoul:
    soul = Soul(
        authority=row["authority"],
        karma=row["karma"],
        energy=row["energy"],
        last_sunrise=row["last_sunrise"],
    )
    return StoredSoul(soul=soul, version=row["version"])


def _row_to_entry(row: sqlite3.Row) -> JournalEntry:
    return JournalEntry.from_dict(dict(row))


class SqliteSoulStore(SoulStore):
    """SoulStore backed by the `souls` and `journal` tables."""

    def __init__(self, db: SqliteDatabase):
        self.db = db

    def get(self, identity: str) -> StoredSoul:
        cur = self.db.connection().execute(
            "SELECT authority, karma, energy, last_sunrise, version FROM souls WHERE authority=?",
            (identity,)
        )
        row = cur.fetchone()
        if row is None:
            raise NotFound(f"no soul for {identity}", identity=identity)
        return _row_to_stored(row)

    def commit(self, writes: Sequence[Write], event: Optional[TransitionEvent] = None) -> List[StoredSoul]:
        stored = []
        with self.db.transaction() as conn:
            for w in writes:
                stored.append(self._apply(conn, w))
            if event is not None:
                self._append_journal(conn, event)
        return stored

    def _apply(self, conn: sqlite3.Connection, w: Write) -> StoredSoul:
        s = w.soul
        if w.expected_version is None:
            try:
                conn.execute(
                    "INSERT INTO souls(authority, karma, energy, last_sunrise, version) VALUES(?,?,?,?,1)",
                    (w.identity, s.karma, s.energy, s.last_sunrise)
                )
            except sqlite3.IntegrityError:
                raise AlreadyExists(f"soul exists for {w.identity}", identity=w.identity)
            return StoredSoul(soul=s, version=1)

        # Atomic compare-and-swap on the version column
        cur = conn.execute(
            "UPDATE souls SET karma=?, energy=?, last_sunrise=?, version=version+1 "
            "WHERE authority=? AND version=?",
            (s.karma, s.energy, s.last_sunrise, w.identity, w.expected_version)
        )
        if cur.rowcount == 1:
            return StoredSoul(soul=s, version=w.expected_version + 1)

        row = conn.execute("SELECT version FROM souls WHERE authority=?", (w.identity,)).fetchone()
        if row is None:
            raise NotFound(f"no soul for {w.identity}", identity=w.identity)
        raise VersionConflict(
            f"version conflict on {w.identity}",
            identity=w.identity,
            expected_version=w.expected_version,
            actual_version=row["version"],
        )

    def _append_journal(self, conn: sqlite3.Connection, event: TransitionEvent) -> None:
        row = conn.execute("SELECT seq, entry_hash FROM journal ORDER BY seq DESC LIMIT 1").fetchone()
        seq = (row["seq"] + 1) if row else 1
        prev = row["entry_hash"] if row else None
        entry = chain_event(seq, prev, event)
        conn.execute(
            "INSERT INTO journal(seq, kind, authority, counterparty, direction, occurred_at, "
            "payload_hash, prev_entry_hash, entry_hash) VALUES(?,?,?,?,?,?,?,?,?)",
            (entry.seq, event.kind, event.authority, event.counterparty, event.direction,
             event.occurred_at, entry.payload_hash, entry.prev_entry_hash, entry.entry_hash)
        )

    def journal(self, limit: Optional[int] = None) -> List[JournalEntry]:
        conn = self.db.connection()
        cols = ("seq, kind, authority, counterparty, direction, occurred_at, "
                "payload_hash, prev_entry_hash, entry_hash")
        if limit is None:
            cur = conn.execute(f"SELECT {cols} FROM journal ORDER BY seq ASC")
            return [_row_to_entry(r) for r in cur.fetchall()]
        cur = conn.execute(f"SELECT {cols} FROM journal ORDER BY seq DESC LIMIT ?", (max(0, limit),))
        return [_row_to_entry(r) for r in reversed(cur.fetchall())]

    def list_souls(self, limit: int = 100, offset: int = 0) -> List[StoredSoul]:
        cur = self.db.connection().execute(
            "SELECT authority, karma, energy, last_sunrise, version FROM souls "
            "ORDER BY karma DESC, authority ASC LIMIT ? OFFSET ?",
            (limit, offset)
        )
        return [_row_to_stored(r) for r in cur.fetchall()]


class SqliteNonceRegistry(NonceRegistry):
    """Nonce registry backed by the `nonces` table."""

    def __init__(self, db: SqliteDatabase):
        self.db = db

    def register(self, nonce: str, expires_at: int, now: int) -> bool:
        try:
            with self.db.transaction() as conn:
                conn.execute("DELETE FROM nonces WHERE expires_at < ?", (now,))
                conn.execute("INSERT INTO nonces(nonce, expires_at) VALUES(?,?)", (nonce, expires_at))
            return True
        except sqlite3.IntegrityError:
            return False
