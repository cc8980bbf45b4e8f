"""Local durable store: the crash-safety floor under every save.

Snapshots live in a key/value table (SQLite by default) under
``timeline_project_<id>``, with an ISO-8601 timestamp in the
``<key>_timestamp`` sidecar row.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Generator

from pydantic import ValidationError
from sqlalchemy import Engine, create_engine, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from timeline_engine.exceptions import LocalStoreError
from timeline_engine.models import Base, LocalEntry
from timeline_engine.schemas.timeline import Project

logger = logging.getLogger(__name__)

KEY_PREFIX = "timeline_project_"
TIMESTAMP_SUFFIX = "_timestamp"


def storage_key(project_id: str) -> str:
    return f"{KEY_PREFIX}{project_id}"


def create_local_engine(url: str, echo: bool = False) -> Engine:
    """Create the SQLAlchemy engine for the local store.

    In-memory SQLite URLs share one connection so every session sees the
    same database.
    """
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(url, echo=echo, pool_pre_ping=True)


class LocalStore:
    def __init__(self, engine: Engine, *, enabled: bool = True) -> None:
        self.engine = engine
        self.enabled = enabled
        self._session_maker = sessionmaker(engine, class_=Session, expire_on_commit=False)
        Base.metadata.create_all(engine)

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False, enabled: bool = True) -> "LocalStore":
        return cls(create_local_engine(url, echo), enabled=enabled)

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        session = self._session_maker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def save_snapshot(self, project_id: str, snapshot: dict[str, Any]) -> datetime | None:
        """Write a serialized project. Returns the write time, or None when disabled.

        Raises:
            LocalStoreError: The table could not be written
        """
        if not self.enabled:
            return None

        key = storage_key(project_id)
        now = datetime.now(timezone.utc)
        try:
            with self._session() as session:
                session.merge(LocalEntry(key=key, value=json.dumps(snapshot), updated_at=now))
                session.merge(
                    LocalEntry(key=f"{key}{TIMESTAMP_SUFFIX}", value=now.isoformat(), updated_at=now)
                )
        except SQLAlchemyError as e:
            logger.error(f"Local save failed for project {project_id}: {e}")
            raise LocalStoreError(f"Local save failed: {e}") from e

        logger.debug(f"Saved project {project_id} to local store")
        return now

    def save_project(self, project: Project) -> datetime | None:
        return self.save_snapshot(project.id, project.to_wire())

    def load_snapshot(self, project_id: str) -> dict[str, Any] | None:
        if not self.enabled:
            return None

        key = storage_key(project_id)
        try:
            with self._session() as session:
                entry = session.get(LocalEntry, key)
                value = entry.value if entry else None
        except SQLAlchemyError as e:
            raise LocalStoreError(f"Local load failed: {e}") from e

        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt local snapshot for project {project_id}: {e}")
            return None

    def load_project(self, project_id: str) -> Project | None:
        """Restore a project from its local snapshot, or None if absent/unreadable."""
        snapshot = self.load_snapshot(project_id)
        if snapshot is None:
            return None
        try:
            project = Project.model_validate(snapshot)
        except ValidationError as e:
            logger.error(f"Local snapshot for project {project_id} failed validation: {e}")
            return None

        logger.info(f"Loaded project {project_id} from local store (saved at {self.load_timestamp(project_id)})")
        return project

    def load_timestamp(self, project_id: str) -> datetime | None:
        if not self.enabled:
            return None
        try:
            with self._session() as session:
                entry = session.get(LocalEntry, f"{storage_key(project_id)}{TIMESTAMP_SUFFIX}")
                value = entry.value if entry else None
        except SQLAlchemyError as e:
            raise LocalStoreError(f"Local load failed: {e}") from e
        return datetime.fromisoformat(value) if value else None

    def clear(self, project_id: str) -> None:
        key = storage_key(project_id)
        try:
            with self._session() as session:
                session.execute(
                    delete(LocalEntry).where(LocalEntry.key.in_([key, f"{key}{TIMESTAMP_SUFFIX}"]))
                )
        except SQLAlchemyError as e:
            raise LocalStoreError(f"Local clear failed: {e}") from e
        logger.info(f"Cleared local snapshot for project {project_id}")

    def list_project_ids(self) -> list[str]:
        with self._session() as session:
            keys = session.scalars(
                select(LocalEntry.key).where(LocalEntry.key.like(f"{KEY_PREFIX}%"))
            ).all()
        return sorted(
            k[len(KEY_PREFIX):] for k in keys if not k.endswith(TIMESTAMP_SUFFIX)
        )

    def close(self) -> None:
        self.engine.dispose()
