"""Data models used by TUILog.

Two SQLModel tables back the logbook: OperatorProfile (the "my station"
identity used when exporting) and LogEntry (a single QSO). Every LogEntry
belongs to exactly one OperatorProfile through a NOT NULL foreign key.

Timestamps are kept as fixed-width UTC text (YYYY-MM-DD HH:MM:SS) so that
ordering and range filtering can be done directly on the stored column.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from .errors import TimestampFormatError

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class OperatorProfileBase(SQLModel):
    """Station identity attributes; all free text."""

    name: str = ""
    call: str = ""
    grid: str = ""
    cqz: str = ""
    ituz: str = ""
    dxcc: str = ""
    cont: str = ""


class OperatorProfile(OperatorProfileBase, table=True):
    __tablename__ = "operator_profile"
    # AUTOINCREMENT keeps SQLite from handing out the id of a deleted row again
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)


class LogEntryBase(SQLModel):
    """The operator-supplied part of a QSO.

    Attributes
    - call: Worked station's callsign.
    - rsttx/rstrx: Signal reports sent and received.
    - band/frequency/mode: Radio details; frequency is decimal MHz as text.
    - power: Transmit power, free text (optional).
    - comments: Free-form notes (optional).
    """

    call: str = Field(index=True)
    rsttx: str = ""
    rstrx: str = ""
    band: str = ""
    frequency: str = ""
    mode: str = ""
    power: Optional[str] = None
    comments: Optional[str] = None


class LogEntry(LogEntryBase, table=True):
    """A stored QSO, stamped by the store at append time."""

    __tablename__ = "log_entry"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    timestamp: str = Field(index=True, description="QSO time, UTC, YYYY-MM-DD HH:MM:SS")
    profile_id: int = Field(foreign_key="operator_profile.id", nullable=False)

    @property
    def stamp(self) -> datetime:
        return parse_timestamp(self.timestamp)


@dataclass(frozen=True)
class EnrichedLogEntry:
    """A LogEntry joined with the profile it was logged under (export only)."""

    entry: LogEntry
    profile: OperatorProfile


def now_utc() -> datetime:
    """Return the current time as a naive UTC datetime without microseconds."""
    return datetime.now(UTC).replace(tzinfo=None, microsecond=0)


def format_timestamp(dt: datetime) -> str:
    return dt.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(text: str) -> datetime:
    """Parse strict YYYY-MM-DD HH:MM:SS text into a naive datetime.

    Raises TimestampFormatError for anything else.
    """
    try:
        return datetime.strptime(text, TIMESTAMP_FORMAT)
    except (TypeError, ValueError) as e:
        raise TimestampFormatError(
            f"Could not parse timestamp {text!r}; expected YYYY-MM-DD HH:MM:SS"
        ) from e
