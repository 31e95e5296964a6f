"""
Karma Ledger

Orchestrates one transition end to end:

    caller
        ↓ signed request
    Authentication Gate   - proves control of the acting identity
        ↓
    Record Store (read)   - loads the snapshot(s) and their versions
        ↓
    Engine                - pure create / interact / renew
        ↓
    Record Store (commit) - atomic compare-and-swap of every touched record

The clock is sampled once per transition; the same value drives proof
freshness and every engine gate.

Skipped transitions (no energy, cooldown lapsed, sunrise too early)
return normally with the unchanged records. Failures raise KarmaError
subclasses and leave the store untouched. The ledger never retries;
a VersionConflict is the caller's to retry.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from . import engine
from .auth import AuthenticationGate
from .clock import Clock, SystemClock
from .engine import Direction, Outcome
from .errors import InvalidInteraction, Unauthorized
from .journal import KIND_CREATE, KIND_INTERACT, KIND_SUNRISE, TransitionEvent
from .signing import OP_CREATE, OP_INTERACT, OP_SUNRISE, SignedRequest
from .soul import StoredSoul
from .store import SoulStore, Write

logger = logging.getLogger(__name__)


@dataclass
class TransitionReport:
    """Outcome of a ledger call and the records as they stand afterwards."""
    operation: str
    outcome: Outcome
    occurred_at: int
    souls: Dict[str, StoredSoul] = field(default_factory=dict)

    @property
    def applied(self) -> bool:
        return self.outcome == Outcome.APPLIED

    def soul(self, identity: str) -> StoredSoul:
        return self.souls[identity]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "outcome": self.outcome.value,
            "applied": self.applied,
            "occurred_at": self.occurred_at,
            "souls": {k: v.to_dict() for k, v in self.souls.items()},
        }


class KarmaLedger:
    """
    Entry point for all soul mutations.

    Usage:
        ledger = KarmaLedger(InMemorySoulStore(), Ed25519Gate())
        ledger.create(identity, sign_create(private_key))
        ledger.interact("praise", identity, other, sign_interact(private_key, other, "praise"))
    """

    def __init__(
        self,
        store: SoulStore,
        gate: AuthenticationGate,
        clock: Optional[Clock] = None
    ):
        self.store = store
        self.gate = gate
        self.clock = clock or SystemClock()

    def get(self, identity: str) -> StoredSoul:
        return self.store.get(identity)

    def create(self, authority: str, proof: Optional[SignedRequest]) -> TransitionReport:
        """
        Create the soul for `authority`.

        Raises:
            Unauthorized: Proof does not come from `authority`
            AlreadyExists: `authority` already has a soul
        """
        now = self.clock.now()
        self._authorize(authority, proof, now, OP_CREATE)

        soul = engine.new_soul(authority, now)
        event = TransitionEvent(kind=KIND_CREATE, authority=authority, occurred_at=now)
        stored = self.store.create(authority, soul, event)

        self._log("soul created", authority=authority, occurred_at=now)
        return TransitionReport(OP_CREATE, Outcome.APPLIED, now, {authority: stored})

    def interact(
        self,
        direction: Union[str, Direction],
        actor: str,
        target: str,
        proof: Optional[SignedRequest]
    ) -> TransitionReport:
        """
        Praise or accuse `target` as `actor`.

        Only the actor needs to prove control; the target is affected
        unilaterally.

        Raises:
            InvalidInteraction: Unknown direction or actor == target
            Unauthorized: Proof does not come from `actor` or is bound to another request
            NotFound: Actor or target has no soul
            VersionConflict: A concurrent transition touched either record first
        """
        now = self.clock.now()
        direction = Direction.parse(direction)
        if actor == target:
            raise InvalidInteraction("actor and target must be distinct identities", identity=actor)

        self._authorize(actor, proof, now, OP_INTERACT, target=target, direction=direction.value)

        actor_rec = self.store.get(actor)
        target_rec = self.store.get(target)
        result = engine.interact(direction, actor_rec.soul, target_rec.soul, now)

        if not result.applied:
            self._log(
                "interaction skipped",
                actor=actor, target=target, direction=direction.value,
                outcome=result.outcome.value, occurred_at=now,
            )
            return TransitionReport(
                OP_INTERACT, result.outcome, now, {actor: actor_rec, target: target_rec}
            )

        event = TransitionEvent(
            kind=KIND_INTERACT,
            authority=actor,
            counterparty=target,
            direction=direction.value,
            occurred_at=now,
        )
        new_actor, new_target = self.store.commit(
            [
                Write(actor, result.actor, actor_rec.version),
                Write(target, result.target, target_rec.version),
            ],
            event,
        )

        self._log(
            "interaction applied",
            actor=actor, target=target, direction=direction.value,
            actor_energy=new_actor.soul.energy, occurred_at=now,
        )
        return TransitionReport(OP_INTERACT, result.outcome, now, {actor: new_actor, target: new_target})

    def praise(self, actor: str, target: str, proof: Optional[SignedRequest]) -> TransitionReport:
        return self.interact(Direction.PRAISE, actor, target, proof)

    def accuse(self, actor: str, target: str, proof: Optional[SignedRequest]) -> TransitionReport:
        return self.interact(Direction.ACCUSE, actor, target, proof)

    def renew(self, identity: str, proof: Optional[SignedRequest]) -> TransitionReport:
        """
        Sunrise for `identity`.

        Raises:
            Unauthorized: Proof does not come from `identity`
            NotFound: `identity` has no soul
            VersionConflict: A concurrent transition touched the record first
        """
        now = self.clock.now()
        self._authorize(identity, proof, now, OP_SUNRISE)

        rec = self.store.get(identity)
        result = engine.renew(rec.soul, now)

        if not result.applied:
            self._log("sunrise skipped", authority=identity, outcome=result.outcome.value, occurred_at=now)
            return TransitionReport(OP_SUNRISE, result.outcome, now, {identity: rec})

        event = TransitionEvent(kind=KIND_SUNRISE, authority=identity, occurred_at=now)
        stored = self.store.put(identity, rec.version, result.soul, event)

        self._log("sunrise applied", authority=identity, occurred_at=now)
        return TransitionReport(OP_SUNRISE, result.outcome, now, {identity: stored})

    sunrise = renew

    def _authorize(
        self,
        identity: str,
        proof: Optional[SignedRequest],
        now: int,
        op: str,
        **bound
    ) -> None:
        """Check that `proof` is for exactly this operation and comes from `identity`."""
        if proof is None:
            raise Unauthorized("missing proof", identity=identity)

        payload = proof.payload
        if payload.get("op") != op:
            raise Unauthorized(f"proof is for {payload.get('op')!r}, not {op!r}", identity=identity)
        for key, value in bound.items():
            if payload.get(key) != value:
                raise Unauthorized(f"proof does not match {key}", identity=identity)

        if not self.gate.verify(identity, proof, now):
            raise Unauthorized("proof rejected", identity=identity)

    def _log(self, message: str, **fields) -> None:
        logger.info(message, extra={"extra_fields": fields})
