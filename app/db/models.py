"""Database models using SQLModel.

One row per (feed, connection) pair holds that connection's custom
placeholders and external properties as JSON documents.
"""

import datetime
import uuid
from typing import Any

from sqlalchemy import JSON, Column, DateTime, UniqueConstraint, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from app.strategies.placeholder_engine.models import ConnectionDefinitions

# JSONB on PostgreSQL, plain JSON elsewhere
JsonDocument = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class ConnectionFormatBase(SQLModel):
    """Identity of the connection a definition set belongs to."""

    feed_id: str = Field(min_length=1, max_length=255, index=True)
    connection_id: str = Field(min_length=1, max_length=255)


class ConnectionFormat(ConnectionFormatBase, table=True):
    """Persisted placeholder definitions of one feed connection."""

    __tablename__ = "connection_formats"
    __table_args__ = (
        UniqueConstraint("feed_id", "connection_id", name="uq_connection_formats_feed_connection"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True),
    )
    custom_placeholders: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JsonDocument, nullable=False, default=list),
    )
    external_properties: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JsonDocument, nullable=False, default=list),
    )
    created_at: datetime.datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), server_default=func.now()),
    )
    updated_at: datetime.datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
        ),
    )

    def to_definitions(self) -> ConnectionDefinitions:
        return ConnectionDefinitions.model_validate(
            {
                "customPlaceholders": self.custom_placeholders or [],
                "externalProperties": self.external_properties or [],
            }
        )

    def apply_definitions(self, definitions: ConnectionDefinitions) -> None:
        dumped = definitions.model_dump(mode="json", by_alias=True)
        self.custom_placeholders = dumped["customPlaceholders"]
        self.external_properties = dumped["externalProperties"]
        self.updated_at = _utcnow()
