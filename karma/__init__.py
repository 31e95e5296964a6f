"""
Karma Ledger Reference Implementation

Version: 1.0.0

A reputation-accounting ledger. Every identity owns one Soul record with:
    karma         cumulative signed reputation score
    energy        daily interaction budget (2400, 100 per interaction)
    last_sunrise  when the current day started

Interactions are symmetric in karma (both parties move by +1 or -1) and
asymmetric in cost (only the actor spends energy). A sunrise, allowed
once every 86400 seconds, resets energy to the cap.

Usage:
    from karma import (
        KarmaLedger,
        InMemorySoulStore,
        Ed25519Gate,
        generate_keypair,
        sign_create,
        sign_interact,
    )

    ledger = KarmaLedger(InMemorySoulStore(), Ed25519Gate())

    alice, alice_key = generate_keypair()
    bob, bob_key = generate_keypair()
    ledger.create(alice, sign_create(alice_key))
    ledger.create(bob, sign_create(bob_key))

    report = ledger.interact("praise", alice, bob, sign_interact(alice_key, bob, "praise"))
    if report.applied:
        print(report.soul(alice).soul.energy)  # 2300
"""

__version__ = "1.0.0"

from .constants import ENERGY_PER_SUNRISE, ENERGY_PER_INTERACTION, SECONDS_PER_DAY

# Errors
from .errors import (
    KarmaError,
    Unauthorized,
    AlreadyExists,
    NotFound,
    VersionConflict,
    InvalidInteraction,
)

# Records and engine
from .soul import Soul, StoredSoul, SoulState, state_of
from .engine import (
    Direction,
    Outcome,
    InteractionResult,
    RenewalResult,
    new_soul,
    interact,
    renew,
)

# Collaborators
from .store import SoulStore, InMemorySoulStore, Write
from .journal import TransitionEvent, JournalEntry, verify_chain
from .clock import Clock, SystemClock, ManualClock
from .auth import AuthenticationGate, Ed25519Gate, NonceRegistry, InMemoryNonceRegistry

# Signing
from .canonicalization import canonicalize, canonicalize_str, sha256_hex
from .signing import (
    SignedRequest,
    generate_keypair,
    identity_of,
    sign_create,
    sign_interact,
    sign_sunrise,
)

# Orchestration
from .ledger import KarmaLedger, TransitionReport


__all__ = [
    "__version__",

    # Constants
    "ENERGY_PER_SUNRISE",
    "ENERGY_PER_INTERACTION",
    "SECONDS_PER_DAY",

    # Errors
    "KarmaError",
    "Unauthorized",
    "AlreadyExists",
    "NotFound",
    "VersionConflict",
    "InvalidInteraction",

    # Records
    "Soul",
    "StoredSoul",
    "SoulState",
    "state_of",

    # Engine
    "Direction",
    "Outcome",
    "InteractionResult",
    "RenewalResult",
    "new_soul",
    "interact",
    "renew",

    # Store and journal
    "SoulStore",
    "InMemorySoulStore",
    "Write",
    "TransitionEvent",
    "JournalEntry",
    "verify_chain",

    # Clock
    "Clock",
    "SystemClock",
    "ManualClock",

    # Authentication
    "AuthenticationGate",
    "Ed25519Gate",
    "NonceRegistry",
    "InMemoryNonceRegistry",

    # Signing
    "canonicalize",
    "canonicalize_str",
    "sha256_hex",
    "SignedRequest",
    "generate_keypair",
    "identity_of",
    "sign_create",
    "sign_interact",
    "sign_sunrise",

    # Ledger
    "KarmaLedger",
    "TransitionReport",
]
