"""SQLite-backed reminder store."""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from sqlalchemy import Integer, Text, create_engine, select
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import ReminderNotFound
from .models import Reminder, deserialize_times, serialize_times

logger = logging.getLogger(__name__)

Base = declarative_base()


class ReminderRow(Base):
    """One stored reminder. Times of day are kept as a JSON document."""

    __tablename__ = "reminders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    recur_settings: Mapped[str] = mapped_column(Text, nullable=False)

    def to_reminder(self) -> Reminder:
        return Reminder(
            id=self.id,
            title=self.title,
            body=self.content,
            times=deserialize_times(self.recur_settings),
        )


def _database_url(database: Union[str, Path]) -> str:
    database = str(database)
    if database.startswith("sqlite"):
        return database
    return f"sqlite:///{database}"


class ReminderStore:
    """Durable record of reminders. Assigns reminder ids."""

    def __init__(self, database: Union[str, Path] = ":memory:"):
        """
        Open (and create if needed) the reminder database.

        Args:
            database: Path of the SQLite file, a SQLAlchemy URL, or ":memory:"
        """
        url = _database_url(database)
        if url in ("sqlite://", "sqlite:///:memory:"):
            # A single shared connection, otherwise each session sees an empty database
            self.engine = create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            if not str(database).startswith("sqlite"):
                Path(database).parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(url, connect_args={"check_same_thread": False})

        Base.metadata.create_all(self.engine)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def insert(self, title: str, body: str, times: Sequence[float]) -> int:
        """Store a new reminder and return its id."""
        validate_title(title)
        with self._session_factory.begin() as session:
            row = ReminderRow(title=title, content=body, recur_settings=serialize_times(times))
            session.add(row)
            session.flush()
            reminder_id = row.id

        logger.debug("Inserted reminder %d '%s'", reminder_id, title)
        return reminder_id

    def update(self, reminder_id: int, title: str, body: str, times: Sequence[float]) -> None:
        """Overwrite the stored fields of an existing reminder."""
        validate_title(title)
        with self._session_factory.begin() as session:
            row = session.get(ReminderRow, reminder_id)
            if row is None:
                raise ReminderNotFound(reminder_id)
            row.title = title
            row.content = body
            row.recur_settings = serialize_times(times)

        logger.debug("Updated reminder %d", reminder_id)

    def remove(self, reminder_id: int) -> None:
        """Delete a reminder. Unknown ids are ignored."""
        with self._session_factory.begin() as session:
            row = session.get(ReminderRow, reminder_id)
            if row is not None:
                session.delete(row)

    def get(self, reminder_id: int) -> Optional[Reminder]:
        with self._session_factory() as session:
            row = session.get(ReminderRow, reminder_id)
            return row.to_reminder() if row is not None else None

    def list_all(self) -> List[Reminder]:
        """All reminders, oldest first."""
        with self._session_factory() as session:
            rows = session.scalars(select(ReminderRow).order_by(ReminderRow.id))
            return [row.to_reminder() for row in rows]

    def close(self) -> None:
        self.engine.dispose()


def validate_title(title: str) -> None:
    """Raise ValueError for a blank title."""
    if not title or not title.strip():
        raise ValueError("Reminder title must not be empty")
