import logging
from datetime import datetime

import pytest


class FakeClock:
    """A settable clock so appended QSOs get predictable timestamps."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 12, 0, 0))


@pytest.fixture
def logbook(tmp_path, clock):
    """Create a logbook on a temporary database for testing."""
    from tuilog.storage import Logbook

    book = Logbook(tmp_path / "test.db", clock=clock)
    book.create_tables()
    try:
        yield book
    finally:
        book.close()


@pytest.fixture
def home_profile(logbook):
    """Create the 'Home' W1AW profile and return its id."""
    from tuilog.models import OperatorProfileBase

    profile_id = logbook.create_profile()
    logbook.update_profile(
        profile_id,
        OperatorProfileBase(
            name="Home", call="W1AW", grid="FN31", cqz="5", ituz="8", dxcc="291", cont="NA"
        ),
    )
    return profile_id


@pytest.fixture
def sample_entry():
    """Create a sample QSO for testing."""
    from tuilog.models import LogEntryBase

    return LogEntryBase(
        call="K1ABC",
        band="20M",
        frequency="14.0",
        mode="USB",
        rsttx="59",
        rstrx="59",
        comments="",
    )


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a temporary database and config file."""
    monkeypatch.setenv("TUILOG_DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("TUILOG_CONFIG", str(tmp_path / "config.json"))
    return tmp_path


@pytest.fixture(autouse=True)
def restore_root_logging():
    """CLI invocations install a RichHandler on the root logger; undo that."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in [h for h in root.handlers if h not in handlers]:
        root.removeHandler(handler)
    root.setLevel(level)
