from datetime import timedelta

import pytest

from src.core.session import Session
from tests.unit.fakes import SESSION_START, FakeClock, FakeDisplays, make_records


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def displays():
    return FakeDisplays()


@pytest.fixture
def stopped_session(tmp_path):
    """A stopped 5-minute session with 10 records."""
    session = Session.create(tmp_path, SESSION_START, "primary", [0], capture_interval=30,
                             task_name="Write quarterly report")
    session.start_time = SESSION_START
    session.end_time = SESSION_START + timedelta(minutes=5)
    session.records = make_records(10)
    return session
