"""Persistence layer: SQLite engine setup, the Logbook store, and export.

The database lives in the user's data directory by default, and can be
overridden via the TUILOG_DB_PATH environment variable. SQLModel/SQLAlchemy 2.x
are used for ORM-style access.

A Logbook owns one engine and one lock. Every operation holds the lock for its
whole duration, so no two store operations ever interleave.
"""

from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Union

from platformdirs import user_data_dir
from sqlalchemy import delete, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine, select

from .adif import dump_adif, write_adif
from .errors import (
    ProfileNotFoundError,
    ReferentialError,
    StorageError,
    StorageUnavailableError,
    TuilogError,
)
from .models import (
    EnrichedLogEntry,
    LogEntry,
    LogEntryBase,
    OperatorProfile,
    OperatorProfileBase,
    format_timestamp,
    now_utc,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

APP_NAME = "tuilog"
DB_ENV_VAR = "TUILOG_DB_PATH"
NEW_PROFILE_NAME = "New Profile"
LEGACY_PROFILE_ID = 0

Bound = Union[str, datetime, None]


def _default_db_path() -> Path:
    data_dir = Path(user_data_dir(appname=APP_NAME, appauthor=False))
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "tuilog.db"


def get_db_path() -> Path:
    """Resolve the active database path, honoring TUILOG_DB_PATH if set."""
    env = os.getenv(DB_ENV_VAR)
    if env:
        p = Path(env).expanduser()
        p.parent.mkdir(parents=True, exist_ok=True)
        return p
    return _default_db_path()


def make_engine(db_path: Path) -> Engine:
    """Create an engine for the SQLite file with foreign keys enforced.

    SQLite ships with foreign key checks off per connection, so every new
    connection turns them on before it is handed out.
    """
    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def _coerce_bound(value: Bound, name: str) -> Optional[str]:
    """Normalize an export bound to stored timestamp text, or None if absent.

    Aware datetimes are converted to UTC. A fractional start rounds up to the
    next whole second, a fractional end rounds down. Raises
    TimestampFormatError for text that is not YYYY-MM-DD HH:MM:SS.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        if value.microsecond and name == "start":
            # stored stamps are whole seconds; the first one at or after start
            value += timedelta(seconds=1)
        return format_timestamp(value.replace(microsecond=0))
    if not value.strip():
        return None
    logger.debug("Parsing %s bound %r", name, value)
    return format_timestamp(parse_timestamp(value.strip()))


@dataclass(frozen=True)
class ExportResult:
    path: Path
    count: int


class Logbook:
    """The profile store, the QSO store and the export filter over one database."""

    def __init__(
        self,
        db_path: Optional[Path] = None,
        *,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        try:
            self.db_path = Path(db_path) if db_path is not None else get_db_path()
        except OSError as e:
            raise StorageError(f"Failed to prepare database location: {e}") from e
        try:
            self._engine: Optional[Engine] = make_engine(self.db_path)
        except Exception as e:
            raise StorageError(f"Failed to create database engine: {e}") from e

    def __enter__(self) -> "Logbook":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None

    @contextmanager
    def _locked(self) -> Iterator[Engine]:
        """Hold the store lock and yield the live engine."""
        with self._lock:
            if self._engine is None:
                raise StorageUnavailableError(f"Logbook at {self.db_path} is closed")
            try:
                yield self._engine
            except TuilogError:
                raise
            except SQLAlchemyError as e:
                raise StorageError(f"Database operation failed: {e}") from e

    @contextmanager
    def _locked_session(self) -> Iterator[Session]:
        """Hold the store lock for the lifetime of a session.

        The session is rolled back on any error and always closed before the
        lock is released.
        """
        with self._locked() as engine:
            session = Session(engine, expire_on_commit=False)
            try:
                yield session
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def create_tables(self) -> Path:
        """Create all tables if they don't exist yet; return the database path."""
        with self._locked() as engine:
            SQLModel.metadata.create_all(engine)
        logger.debug("Schema ready at %s", self.db_path)
        return self.db_path

    def migrate_default_profile(self) -> bool:
        """Make sure profile 0 exists for entries logged before profiles did.

        Returns True if the profile had to be created.
        """
        with self._locked_session() as session:
            if session.get(OperatorProfile, LEGACY_PROFILE_ID) is not None:
                return False
            session.add(OperatorProfile(id=LEGACY_PROFILE_ID, name="Default"))
            session.commit()
        logger.info("Created legacy default profile %d", LEGACY_PROFILE_ID)
        return True

    # Profile store

    def create_profile(self) -> int:
        """Insert a placeholder profile and return its new id."""
        with self._locked_session() as session:
            profile = OperatorProfile(name=NEW_PROFILE_NAME)
            session.add(profile)
            session.commit()
            session.refresh(profile)
            profile_id = profile.id
        logger.debug("Created operator profile %s", profile_id)
        return profile_id

    def list_profiles(self) -> List[OperatorProfile]:
        """Return every profile in ascending id order."""
        with self._locked_session() as session:
            stmt = select(OperatorProfile).order_by(OperatorProfile.id.asc())
            return list(session.exec(stmt))

    def get_profile(self, profile_id: int) -> Optional[OperatorProfile]:
        with self._locked_session() as session:
            return session.get(OperatorProfile, profile_id)

    def update_profile(self, profile_id: int, attributes: OperatorProfileBase) -> OperatorProfile:
        """Replace every attribute of a profile.

        Raises ProfileNotFoundError if the id does not resolve.
        """
        with self._locked_session() as session:
            profile = session.get(OperatorProfile, profile_id)
            if profile is None:
                logger.warning("Update of unknown operator profile %s", profile_id)
                raise ProfileNotFoundError(profile_id)
            for name in OperatorProfileBase.model_fields:
                setattr(profile, name, getattr(attributes, name))
            session.add(profile)
            session.commit()
            session.refresh(profile)
        logger.debug("Updated operator profile %s", profile_id)
        return profile

    def delete_profile(self, profile_id: int) -> bool:
        """Delete a profile by id, returning True if it existed.

        Log entries that reference the profile are left untouched; the
        foreign key check is suspended for this statement only.
        """
        with self._locked() as engine:
            with engine.connect() as conn:
                conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
                try:
                    result = conn.execute(
                        delete(OperatorProfile).where(OperatorProfile.id == profile_id)
                    )
                    removed = result.rowcount > 0
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
                finally:
                    conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        if removed:
            logger.debug("Deleted operator profile %s", profile_id)
        return removed

    # Log store

    def append_log(self, entry: LogEntryBase, profile_id: int) -> LogEntry:
        """Stamp a QSO with the current UTC time and store it under a profile.

        Raises ReferentialError if the profile does not exist; nothing is
        written in that case.
        """
        fields = entry.model_dump(include=set(LogEntryBase.model_fields))
        with self._locked_session() as session:
            if session.get(OperatorProfile, profile_id) is None:
                logger.warning("Rejected QSO with %s: no profile %s", entry.call, profile_id)
                raise ReferentialError(profile_id)
            stamp = self._clock().replace(microsecond=0)
            row = LogEntry(**fields, timestamp=format_timestamp(stamp), profile_id=profile_id)
            session.add(row)
            try:
                session.commit()
            except IntegrityError as e:
                raise ReferentialError(profile_id) from e
            session.refresh(row)
        logger.debug("Logged QSO id=%s with %s at %s", row.id, row.call, row.timestamp)
        return row

    def list_logs(self) -> List[LogEntry]:
        """Return every QSO, newest first; equal timestamps newest-appended first."""
        with self._locked_session() as session:
            stmt = select(LogEntry).order_by(LogEntry.timestamp.desc(), LogEntry.id.desc())
            return list(session.exec(stmt))

    # Filter engine

    def export_range(self, start: Bound = None, end: Bound = None) -> List[EnrichedLogEntry]:
        """Return QSOs joined with their profile within inclusive bounds.

        Both bounds are parsed before the store is touched. QSOs whose profile
        no longer exists are not returned.
        """
        start_text = _coerce_bound(start, "start")
        end_text = _coerce_bound(end, "end")
        with self._locked_session() as session:
            stmt = select(LogEntry, OperatorProfile).join(
                OperatorProfile, LogEntry.profile_id == OperatorProfile.id
            )
            if start_text is not None:
                stmt = stmt.where(LogEntry.timestamp >= start_text)
            if end_text is not None:
                stmt = stmt.where(LogEntry.timestamp <= end_text)
            stmt = stmt.order_by(LogEntry.timestamp.desc(), LogEntry.id.desc())
            rows = [EnrichedLogEntry(entry=e, profile=p) for e, p in session.exec(stmt)]
        logger.debug("Export range [%s, %s] matched %d QSOs", start_text, end_text, len(rows))
        return rows

    def export(self, path: Union[str, Path], start: Bound = None, end: Bound = None) -> ExportResult:
        """Write the QSOs within the bounds to an ADIF file.

        Raises TimestampFormatError for malformed bounds and ExportIOError when
        the destination cannot be written.
        """
        entries = self.export_range(start, end)
        destination = Path(path)
        write_adif(destination, dump_adif(entries))
        logger.info("Exported %d QSOs to %s", len(entries), destination)
        return ExportResult(path=destination, count=len(entries))
