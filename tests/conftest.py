import os

import pytest

import qcd.config
from qcd.db import Database
from qcd.stack import DirectoryStack


SESSION_A = "20240101120000123456789"
SESSION_B = "20240101120000987654321"

DAY = 24 * 60 * 60


class FakeClock:
    """Settable clock returning epoch seconds."""

    def __init__(self, now: float = 1_700_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture(autouse=True)
def clean_qcd_env(monkeypatch, tmp_path):
    """
    Fixture to create a clean qcd environment without affecting real config.

    Removes QCD_RS_ environment variables, sets HOME to a temp directory and
    forgets the global configuration.
    """
    for key in list(os.environ.keys()):
        if key.startswith("QCD_RS_"):
            monkeypatch.delenv(key, raising=False)

    mock_home = tmp_path / "home"
    mock_home.mkdir()
    monkeypatch.setenv("HOME", str(mock_home))

    monkeypatch.setattr(qcd.config, "_config", None)
    return tmp_path


@pytest.fixture
def db_path(tmp_path):
    """Path of a not yet created database file."""
    return tmp_path / "data" / "qcd.sqlite"


@pytest.fixture
def db(db_path):
    """Fresh database for each test."""
    return Database(db_path)


@pytest.fixture
def populated_db(db):
    """Database with a few aliased and unaliased rows."""
    db.insert("main", 1, "/home/user/pets", "pets")
    db.insert("main", 2, "/home/user/people", "people")
    db.insert("main", 5, "/srv/www", "")
    db.insert("main", 3, "/tmp", "tmp")
    return db


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stack(db, clock):
    """Directory stack on the fresh database with a fake clock."""
    return DirectoryStack(db, clock=clock)
