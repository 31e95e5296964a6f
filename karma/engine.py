"""
Karma Ledger State Transition Engine

Pure functions that turn record snapshots plus one timestamp into new
snapshots. Nothing here reads a clock, touches storage or checks
signatures; the ledger does that around these calls.

Transitions:
    new_soul  - fresh record: karma 0, full energy, day starts now
    interact  - actor spends energy to move both parties' karma by +1/-1
    renew     - sunrise: once per day, energy back to the cap

Gating never raises. A transition that is not allowed returns a result
whose outcome says why it was skipped, with the input snapshots unchanged.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union

from .constants import ENERGY_PER_INTERACTION, ENERGY_PER_SUNRISE, SECONDS_PER_DAY
from .errors import InvalidInteraction
from .soul import Soul


class Direction(str, Enum):
    """Interaction direction."""
    PRAISE = "praise"
    ACCUSE = "accuse"

    @property
    def delta(self) -> int:
        return 1 if self is Direction.PRAISE else -1

    @classmethod
    def parse(cls, value: Union[str, "Direction"]) -> "Direction":
        if isinstance(value, Direction):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidInteraction(f"unknown direction: {value!r}")


class Outcome(str, Enum):
    """What a transition did."""
    APPLIED = "APPLIED"
    SKIPPED_NO_ENERGY = "SKIPPED_NO_ENERGY"
    SKIPPED_COOLDOWN = "SKIPPED_COOLDOWN"
    SKIPPED_TOO_EARLY = "SKIPPED_TOO_EARLY"


@dataclass(frozen=True)
class InteractionResult:
    outcome: Outcome
    actor: Soul
    target: Soul

    @property
    def applied(self) -> bool:
        return self.outcome == Outcome.APPLIED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "actor": self.actor.to_dict(),
            "target": self.target.to_dict(),
        }


@dataclass(frozen=True)
class RenewalResult:
    outcome: Outcome
    soul: Soul

    @property
    def applied(self) -> bool:
        return self.outcome == Outcome.APPLIED

    def to_dict(self) -> Dict[str, Any]:
        return {"outcome": self.outcome.value, "soul": self.soul.to_dict()}


def new_soul(authority: str, now: int) -> Soul:
    """Build the initial snapshot for a freshly created record."""
    return Soul(
        authority=authority,
        karma=0,
        energy=ENERGY_PER_SUNRISE,
        last_sunrise=now,
    )


def interact(
    direction: Union[str, Direction],
    actor: Soul,
    target: Soul,
    now: int
) -> InteractionResult:
    """
    Apply one pairwise interaction.

    Gates are evaluated against the actor only, in order:
        1. no energy left          -> SKIPPED_NO_ENERGY
        2. more than a day elapsed -> SKIPPED_COOLDOWN (sunrise first)

    When applied, the actor pays ENERGY_PER_INTERACTION and both parties'
    karma moves by the same signed amount. The target's energy and timer
    are never touched.

    Only `energy > 0` is checked before paying, so an actor holding less
    than a full interaction's worth still acts once; the payment is
    clamped so energy never drops below zero.

    Args:
        direction: PRAISE (+1) or ACCUSE (-1)
        actor: Snapshot of the acting (paying) party
        target: Snapshot of the affected party
        now: Transition timestamp (epoch seconds)

    Returns:
        InteractionResult with the outcome and resulting snapshots

    Raises:
        InvalidInteraction: Unknown direction, or actor and target are the same identity
    """
    direction = Direction.parse(direction)
    if actor.authority == target.authority:
        raise InvalidInteraction(
            "actor and target must be distinct identities", identity=actor.authority
        )

    if actor.energy == 0:
        return InteractionResult(Outcome.SKIPPED_NO_ENERGY, actor, target)

    if now - actor.last_sunrise > SECONDS_PER_DAY:
        return InteractionResult(Outcome.SKIPPED_COOLDOWN, actor, target)

    delta = direction.delta
    new_actor = actor.evolve(
        energy=max(0, actor.energy - ENERGY_PER_INTERACTION),
        karma=actor.karma + delta,
    )
    new_target = target.evolve(karma=target.karma + delta)
    return InteractionResult(Outcome.APPLIED, new_actor, new_target)


def renew(soul: Soul, now: int) -> RenewalResult:
    """
    Sunrise: start a new day for `soul`.

    Allowed once a full day has passed since the last sunrise. Energy is
    reset to exactly ENERGY_PER_SUNRISE; whatever was left is discarded.
    """
    if now - soul.last_sunrise < SECONDS_PER_DAY:
        return RenewalResult(Outcome.SKIPPED_TOO_EARLY, soul)

    return RenewalResult(
        Outcome.APPLIED,
        soul.evolve(energy=ENERGY_PER_SUNRISE, last_sunrise=now),
    )
