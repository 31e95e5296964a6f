#!/usr/bin/env python3
"""
Karma Ledger Command Line Interface

Usage:
    karma keygen --output <file>
    karma sign --key <file> create|sunrise
    karma sign --key <file> praise|accuse --target <identity>
    karma show --db <file> <identity>
    karma verify-journal --db <file>
    karma demo
"""

import argparse
import json
import os
import sys
from typing import Optional


def load_json(path: str) -> dict:
    """Load JSON from file."""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def save_json(data: dict, path: str):
    """Save JSON to file."""
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)


def cmd_keygen(args):
    """Generate an Ed25519 identity key file."""
    from karma.signing import generate_keypair

    identity, private_key_b64 = generate_keypair()
    data = {"identity": identity, "private_key_b64": private_key_b64}

    if args.output:
        save_json(data, args.output)
        try:
            os.chmod(args.output, 0o600)
        except OSError:
            pass
        print(f"Key saved to: {args.output}", file=sys.stderr)
    else:
        print(json.dumps(data, indent=2))

    print(f"Identity: {identity}", file=sys.stderr)
    return 0


def cmd_sign(args):
    """Emit a signed request body for the service."""
    from karma.signing import load_key_file, sign_create, sign_interact, sign_sunrise

    identity, private_key_b64 = load_key_file(args.key)

    if args.op == "create":
        proof = sign_create(private_key_b64, issued_at=args.issued_at)
        body = {"authority": identity, "proof": proof.to_dict()}
    elif args.op == "sunrise":
        proof = sign_sunrise(private_key_b64, issued_at=args.issued_at)
        body = {"proof": proof.to_dict()}
    else:
        if not args.target:
            print("--target is required for praise/accuse", file=sys.stderr)
            return 2
        proof = sign_interact(private_key_b64, args.target, args.op, issued_at=args.issued_at)
        body = {"direction": args.op, "actor": identity, "target": args.target, "proof": proof.to_dict()}

    print(json.dumps(body, indent=2))
    return 0


def _open_store(db_path: str):
    from karma_api.db import SqliteDatabase, SqliteSoulStore

    if not os.path.exists(db_path):
        raise FileNotFoundError(db_path)
    return SqliteSoulStore(SqliteDatabase(db_path))


def cmd_show(args):
    """Print one soul from a ledger database."""
    from karma.clock import SystemClock
    from karma.errors import NotFound
    from karma.soul import state_of

    try:
        store = _open_store(args.db)
    except FileNotFoundError:
        print(f"✗ no database at {args.db}", file=sys.stderr)
        return 1

    try:
        stored = store.get(args.identity)
    except NotFound:
        print(f"✗ no soul for {args.identity}", file=sys.stderr)
        return 1

    view = stored.to_dict()
    view["state"] = state_of(stored.soul, SystemClock().now()).value
    print(json.dumps(view, indent=2))
    return 0


def cmd_verify_journal(args):
    """Verify the transition journal hash chain of a ledger database."""
    from karma.journal import verify_chain

    try:
        store = _open_store(args.db)
    except FileNotFoundError:
        print(f"✗ no database at {args.db}", file=sys.stderr)
        return 1

    ok, reason = verify_chain(store.journal())
    if ok:
        print(f"✓ journal valid: {reason}")
        return 0
    print(f"✗ INVALID: {reason}")
    return 1


def cmd_demo(args):
    """Walk through a day of interactions on an in-memory ledger."""
    from karma import (
        Ed25519Gate,
        InMemorySoulStore,
        KarmaLedger,
        ManualClock,
        SECONDS_PER_DAY,
        generate_keypair,
        sign_create,
        sign_interact,
        sign_sunrise,
    )

    clock = ManualClock(start=1_700_000_000)
    ledger = KarmaLedger(InMemorySoulStore(), Ed25519Gate(), clock)

    alice, alice_key = generate_keypair()
    bob, bob_key = generate_keypair()

    def show(label: str, identity: str):
        s = ledger.get(identity).soul
        print(f"  {label:<6} karma={s.karma:<4} energy={s.energy:<5} last_sunrise={s.last_sunrise}")

    print("=" * 60)
    print("Karma Ledger Demonstration")
    print("=" * 60)

    ledger.create(alice, sign_create(alice_key, issued_at=clock.now()))
    ledger.create(bob, sign_create(bob_key, issued_at=clock.now()))
    print("\nCreated two souls:")
    show("alice", alice)
    show("bob", bob)

    print("\n" + "-" * 60)
    print("Alice praises Bob 25 times in one day")
    print("-" * 60)
    outcomes = {}
    for _ in range(25):
        clock.advance(10)
        proof = sign_interact(alice_key, bob, "praise", issued_at=clock.now())
        report = ledger.praise(alice, bob, proof)
        outcomes[report.outcome.value] = outcomes.get(report.outcome.value, 0) + 1
    for outcome, count in sorted(outcomes.items()):
        print(f"  {outcome}: {count}")
    show("alice", alice)
    show("bob", bob)

    print("\n" + "-" * 60)
    print("Sunrise too early, then after a full day")
    print("-" * 60)
    report = ledger.renew(alice, sign_sunrise(alice_key, issued_at=clock.now()))
    print(f"  early:  {report.outcome.value}")
    clock.advance(SECONDS_PER_DAY)
    report = ledger.renew(alice, sign_sunrise(alice_key, issued_at=clock.now()))
    print(f"  later:  {report.outcome.value}")
    show("alice", alice)

    print("\n" + "=" * 60)
    print("Demonstration complete.")
    print("=" * 60)
    return 0


def main(argv: Optional[list] = None):
    parser = argparse.ArgumentParser(
        prog="karma",
        description="Karma Ledger CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  karma keygen -o alice.json
  karma sign -k alice.json create
  karma sign -k alice.json praise -t <bob identity>
  karma show --db data/karma.db <identity>
  karma verify-journal --db data/karma.db
  karma demo
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    keygen_parser = subparsers.add_parser("keygen", help="Generate an identity key")
    keygen_parser.add_argument("-o", "--output", help="Output file for the key")

    sign_parser = subparsers.add_parser("sign", help="Build a signed request body")
    sign_parser.add_argument("op", choices=["create", "praise", "accuse", "sunrise"])
    sign_parser.add_argument("-k", "--key", required=True, help="Key file from keygen")
    sign_parser.add_argument("-t", "--target", help="Target identity (praise/accuse)")
    sign_parser.add_argument("--issued-at", type=int, help="Override issued_at (epoch seconds)")

    show_parser = subparsers.add_parser("show", help="Show a soul")
    show_parser.add_argument("identity")
    show_parser.add_argument("--db", default="data/karma.db", help="Ledger database")

    verify_parser = subparsers.add_parser("verify-journal", help="Verify the journal hash chain")
    verify_parser.add_argument("--db", default="data/karma.db", help="Ledger database")

    subparsers.add_parser("demo", help="Run demonstration")

    args = parser.parse_args(argv)

    commands = {
        "keygen": cmd_keygen,
        "sign": cmd_sign,
        "show": cmd_show,
        "verify-journal": cmd_verify_journal,
        "demo": cmd_demo,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 2
    return handler(args)


if __name__ == "__main__":
    sys.exit(main())
