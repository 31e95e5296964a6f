"""
Karma Ledger Transition Journal

Append-only, hash-chained record of every committed transition.
Stores append the entry in the same atomic commit as the record writes,
so the journal never disagrees with the records it describes.

    entry_hash[n] = SHA-256(entry_hash[n-1] || payload_hash[n])

Skipped transitions change nothing and are not journaled.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

from .canonicalization import chain_entry_hash, payload_hash


KIND_CREATE = "create"
KIND_INTERACT = "interact"
KIND_SUNRISE = "sunrise"


@dataclass(frozen=True)
class TransitionEvent:
    """Description of a committed transition, before it is chained."""
    kind: str
    authority: str
    occurred_at: int
    counterparty: Optional[str] = None
    direction: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "authority": self.authority,
            "counterparty": self.counterparty,
            "direction": self.direction,
            "occurred_at": self.occurred_at,
        }


@dataclass(frozen=True)
class JournalEntry:
    seq: int
    event: TransitionEvent
    payload_hash: str
    prev_entry_hash: Optional[str]
    entry_hash: str

    def to_dict(self) -> Dict[str, Any]:
        d = self.event.to_dict()
        d.update({
            "seq": self.seq,
            "payload_hash": self.payload_hash,
            "prev_entry_hash": self.prev_entry_hash,
            "entry_hash": self.entry_hash,
        })
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        event = TransitionEvent(
            kind=data["kind"],
            authority=data["authority"],
            occurred_at=int(data["occurred_at"]),
            counterparty=data.get("counterparty"),
            direction=data.get("direction"),
        )
        return cls(
            seq=int(data["seq"]),
            event=event,
            payload_hash=data["payload_hash"],
            prev_entry_hash=data.get("prev_entry_hash"),
            entry_hash=data["entry_hash"],
        )


def chain_event(seq: int, prev_entry_hash: Optional[str], event: TransitionEvent) -> JournalEntry:
    """Link `event` onto the chain whose head is `prev_entry_hash`."""
    ph = payload_hash(event.to_dict())
    return JournalEntry(
        seq=seq,
        event=event,
        payload_hash=ph,
        prev_entry_hash=prev_entry_hash,
        entry_hash=chain_entry_hash(prev_entry_hash, ph),
    )


def verify_chain(entries: Iterable[JournalEntry]) -> Tuple[bool, str]:
    """
    Verify payload hashes and links of a journal export.

    Returns:
        Tuple of (valid, reason)
    """
    prev = None
    count = 0
    for entry in entries:
        if payload_hash(entry.event.to_dict()) != entry.payload_hash:
            return False, f"payload hash mismatch at seq {entry.seq}"
        if entry.prev_entry_hash != prev:
            return False, f"broken link at seq {entry.seq}"
        if chain_entry_hash(prev, entry.payload_hash) != entry.entry_hash:
            return False, f"chain mismatch at seq {entry.seq}"
        prev = entry.entry_hash
        count += 1
    return True, f"{count} entries verified"
