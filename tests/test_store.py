import dataclasses

import pytest

from karma.engine import new_soul
from karma.errors import AlreadyExists, NotFound, VersionConflict
from karma.journal import KIND_CREATE, KIND_INTERACT, TransitionEvent, verify_chain
from karma.store import Write


def _event(kind, authority, at, **kw):
    return TransitionEvent(kind=kind, authority=authority, occurred_at=at, **kw)


def test_create_then_get(store):
    stored = store.create("A", new_soul("A", 0))
    assert stored.version == 1
    assert store.get("A") == stored
    assert store.exists("A")
    assert not store.exists("B")


def test_create_twice_is_already_exists(store):
    store.create("A", new_soul("A", 0))
    with pytest.raises(AlreadyExists):
        store.create("A", new_soul("A", 5))
    assert store.get("A").soul.last_sunrise == 0


def test_get_missing_is_not_found(store):
    with pytest.raises(NotFound) as exc:
        store.get("nobody")
    assert exc.value.identity == "nobody"


def test_put_increments_version(store):
    v1 = store.create("A", new_soul("A", 0))
    v2 = store.put("A", v1.version, v1.soul.evolve(karma=3))
    assert v2.version == 2
    assert store.get("A").soul.karma == 3


def test_put_with_stale_version_conflicts(store):
    v1 = store.create("A", new_soul("A", 0))
    store.put("A", v1.version, v1.soul.evolve(karma=1))

    with pytest.raises(VersionConflict) as exc:
        store.put("A", v1.version, v1.soul.evolve(karma=99))
    assert exc.value.expected_version == 1
    assert exc.value.actual_version == 2
    assert store.get("A").soul.karma == 1


def test_put_missing_is_not_found(store):
    with pytest.raises(NotFound):
        store.put("ghost", 1, new_soul("ghost", 0))


def test_commit_is_all_or_nothing(store):
    a = store.create("A", new_soul("A", 0))
    b = store.create("B", new_soul("B", 0))
    store.put("B", b.version, b.soul.evolve(karma=-1))
    journal_before = len(store.journal())

    with pytest.raises(VersionConflict):
        store.commit(
            [
                Write("A", a.soul.evolve(karma=1, energy=2300), a.version),
                Write("B", b.soul.evolve(karma=1), b.version),
            ],
            _event(KIND_INTERACT, "A", 10, counterparty="B", direction="praise"),
        )

    assert store.get("A") == a
    assert store.get("B").soul.karma == -1
    assert len(store.journal()) == journal_before


def test_commit_two_records_with_event(store):
    a = store.create("A", new_soul("A", 0), _event(KIND_CREATE, "A", 0))
    b = store.create("B", new_soul("B", 0), _event(KIND_CREATE, "B", 0))

    new_a, new_b = store.commit(
        [
            Write("A", a.soul.evolve(karma=1, energy=2300), a.version),
            Write("B", b.soul.evolve(karma=1), b.version),
        ],
        _event(KIND_INTERACT, "A", 10, counterparty="B", direction="praise"),
    )
    assert (new_a.version, new_b.version) == (2, 2)

    entries = store.journal()
    assert [e.seq for e in entries] == [1, 2, 3]
    assert entries[2].event.counterparty == "B"
    assert entries[2].event.direction == "praise"
    assert entries[0].prev_entry_hash is None
    assert entries[1].prev_entry_hash == entries[0].entry_hash
    assert verify_chain(entries) == (True, "3 entries verified")


def test_commit_without_event_does_not_journal(store):
    store.create("A", new_soul("A", 0))
    assert store.journal() == []


def test_journal_limit_returns_newest(store):
    for name in ("A", "B", "C"):
        store.create(name, new_soul(name, 0), _event(KIND_CREATE, name, 0))

    tail = store.journal(limit=2)
    assert [e.event.authority for e in tail] == ["B", "C"]
    assert store.journal(limit=0) == []


def test_tampered_journal_detected(store):
    for name in ("A", "B"):
        store.create(name, new_soul(name, 0), _event(KIND_CREATE, name, 0))
    entries = store.journal()

    forged = dataclasses.replace(entries[0], event=_event(KIND_CREATE, "Z", 0))
    ok, reason = verify_chain([forged, entries[1]])
    assert not ok
    assert reason == "payload hash mismatch at seq 1"

    ok, reason = verify_chain([entries[1]])
    assert not ok
    assert reason == "broken link at seq 2"


def test_journal_entry_dict_round_trip(store):
    store.create("A", new_soul("A", 0), _event(KIND_CREATE, "A", 0))
    entry = store.journal()[0]
    restored = type(entry).from_dict(entry.to_dict())
    assert restored == entry
