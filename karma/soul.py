"""
Karma Ledger Soul Record

A Soul is the per-identity record: who owns it, its cumulative karma,
its remaining energy for the current day, and when its day started.

Snapshots are immutable. Transitions produce new snapshots instead of
mutating old ones, so a snapshot read from a store can be compared
against the store later.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict

from .constants import ENERGY_PER_SUNRISE, SECONDS_PER_DAY


class SoulState(str, Enum):
    """Derived per-record state."""
    RESTED = "RESTED"           # may act, may not renew yet
    EXHAUSTED = "EXHAUSTED"     # may not act, may not renew yet
    STALE = "STALE"             # may not act, may renew


@dataclass(frozen=True)
class Soul:
    """
    Immutable snapshot of an identity record.

    Attributes:
        authority: Identity key that owns and controls the record
        karma: Cumulative signed reputation score (unbounded)
        energy: Interaction budget for the current day, 0..ENERGY_PER_SUNRISE
        last_sunrise: Epoch seconds of the last renewal (or creation)
    """
    authority: str
    karma: int
    energy: int
    last_sunrise: int

    def __post_init__(self):
        if not self.authority:
            raise ValueError("authority is required")
        if not 0 <= self.energy <= ENERGY_PER_SUNRISE:
            raise ValueError(
                f"energy must be within 0..{ENERGY_PER_SUNRISE}, got {self.energy}"
            )

    def evolve(self, **changes) -> "Soul":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "authority": self.authority,
            "karma": self.karma,
            "energy": self.energy,
            "last_sunrise": self.last_sunrise,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Soul":
        return cls(
            authority=data["authority"],
            karma=int(data["karma"]),
            energy=int(data["energy"]),
            last_sunrise=int(data["last_sunrise"]),
        )


@dataclass(frozen=True)
class StoredSoul:
    """A Soul as held by a store, with the version used for compare-and-swap."""
    soul: Soul
    version: int

    @property
    def authority(self) -> str:
        return self.soul.authority

    def to_dict(self) -> Dict[str, Any]:
        d = self.soul.to_dict()
        d["version"] = self.version
        return d


def state_of(soul: Soul, now: int) -> SoulState:
    """
    Classify a soul at time `now`.

    STALE covers every record whose day has run out, whatever energy it
    still holds; leftover energy cannot be spent once the day is over.

    STALE starts at exactly SECONDS_PER_DAY, the first second a sunrise
    is allowed, while interact() only skips once more than a full day has
    passed. At that one boundary second a soul reported STALE can still
    act, so an APPLIED interaction may show its actor as STALE.
    """
    if now - soul.last_sunrise >= SECONDS_PER_DAY:
        return SoulState.STALE
    if soul.energy == 0:
        return SoulState.EXHAUSTED
    return SoulState.RESTED
