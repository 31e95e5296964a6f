"""Verify the hash-chain integrity of a journal exported from GET /journal."""
import json, sys
from karma.journal import JournalEntry, verify_chain

def main(path):
    with open(path, "r", encoding="utf-8") as f:
        entries = [JournalEntry.from_dict(e) for e in json.load(f)]
    ok, reason = verify_chain(entries)
    if not ok:
        print("FAIL:", reason)
        sys.exit(1)
    print("PASS: journal chain valid,", reason)

if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python tools/verify_journal_chain.py <journal_export.json>")
        raise SystemExit(2)
    main(sys.argv[1])
