"""LocalEntry model: the durable key/value floor behind local snapshots."""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from timeline_engine.models.base import Base


class LocalEntry(Base):
    """One key/value pair in the local durable store.

    Attributes:
        key: Storage key, e.g. ``timeline_project_<id>`` or its ``_timestamp`` sidecar
        value: Serialized value (JSON snapshot or ISO-8601 timestamp)
        updated_at: When the row was last written
    """

    __tablename__ = "local_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
