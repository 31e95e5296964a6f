import pytest
from dataclasses import dataclass
from fastapi.testclient import TestClient

from karma import (
    Ed25519Gate,
    InMemorySoulStore,
    KarmaLedger,
    ManualClock,
    generate_keypair,
    sign_create,
    sign_interact,
    sign_sunrise,
)
from karma_api import main as api_main
from karma_api.db import SqliteDatabase, SqliteSoulStore


@dataclass
class Party:
    """An identity plus its private key, with helpers that sign at the clock's current time."""
    identity: str
    key: str
    clock: ManualClock

    def create_proof(self):
        return sign_create(self.key, issued_at=self.clock.now())

    def interact_proof(self, target: "Party", direction: str = "praise"):
        return sign_interact(self.key, target.identity, direction, issued_at=self.clock.now())

    def sunrise_proof(self):
        return sign_sunrise(self.key, issued_at=self.clock.now())


@pytest.fixture
def clock():
    return ManualClock(start=0)


@pytest.fixture
def make_party(clock):
    def _make():
        identity, key = generate_keypair()
        return Party(identity, key, clock)
    return _make


@pytest.fixture
def ledger(clock):
    return KarmaLedger(InMemorySoulStore(), Ed25519Gate(), clock)


@pytest.fixture
def sqlite_db(tmp_path):
    db = SqliteDatabase(str(tmp_path / "karma.db"))
    db.init_schema()
    yield db
    db.close()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        yield InMemorySoulStore()
        return
    db = SqliteDatabase(str(tmp_path / "store.db"))
    db.init_schema()
    yield SqliteSoulStore(db)
    db.close()


@pytest.fixture
def api_clock():
    return ManualClock(start=1_700_000_000)


@pytest.fixture
def client(tmp_path, api_clock):
    api_main.init_ledger(str(tmp_path / "api.db"), clock=api_clock)
    for limiter in (api_main.create_limiter, api_main.interact_limiter, api_main.sunrise_limiter):
        limiter.reset()
    yield TestClient(api_main.app)
    api_main.DB.close()
