"""SQLModel mappings for stored outlets and contacts."""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import BigInteger, Column, DateTime, Float, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql import expression
from sqlmodel import Field, SQLModel

from app.models.contact import Contact, Outlet


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


JSON_BACKING_TYPE = sa.JSON().with_variant(JSONB(astext_type=sa.Text()), "postgresql")


class UtcNow(expression.FunctionElement):
    """Dialect-aware server default that pins timestamps to UTC."""

    type = DateTime(timezone=True)
    inherit_cache = True


@compiles(UtcNow)
def _utc_now_default(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "CURRENT_TIMESTAMP"


@compiles(UtcNow, "postgresql")
def _utc_now_default_postgres(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "timezone('utc', now())"


class OutletRecord(SQLModel, table=True):
    """ORM model for persisted Outlet rows."""

    __tablename__ = "media_outlets"
    __table_args__ = (
        sa.UniqueConstraint("tenant_id", "website", name="uq_media_outlets_tenant_website"),
        sa.Index("ix_media_outlets_tenant_id", "tenant_id"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    tenant_id: str = Field(sa_column=Column(String(length=255), nullable=False))
    name: str = Field(sa_column=Column(String(length=512), nullable=False))
    website: str = Field(sa_column=Column(String(length=1024), nullable=False))
    outlet_type: str = Field(sa_column=Column(String(length=64), nullable=False))
    category: str | None = Field(default=None, sa_column=Column(String(length=128), nullable=True))
    verification_status: str = Field(sa_column=Column(String(length=32), nullable=False))
    data_source: str = Field(sa_column=Column(String(length=64), nullable=False))
    domain_authority: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
    monthly_visitors: int | None = Field(default=None, sa_column=Column(BigInteger, nullable=True))
    location: str | None = Field(default=None, sa_column=Column(String(length=255), nullable=True))
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, server_default=UtcNow()),
    )
    updated_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True, onupdate=UtcNow()),
    )

    @classmethod
    def from_outlet(cls, outlet: Outlet) -> OutletRecord:
        return cls(**outlet.model_dump())

    def to_outlet(self) -> Outlet:
        return Outlet(
            id=self.id,
            tenant_id=self.tenant_id,
            name=self.name,
            website=self.website,
            outlet_type=self.outlet_type,
            category=self.category,
            verification_status=self.verification_status,
            data_source=self.data_source,
            domain_authority=self.domain_authority,
            monthly_visitors=self.monthly_visitors,
            location=self.location,
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
        )


class ContactRecord(SQLModel, table=True):
    """ORM model for persisted Contact rows."""

    __tablename__ = "journalist_contacts"
    __table_args__ = (
        sa.UniqueConstraint("tenant_id", "email", name="uq_journalist_contacts_tenant_email"),
        sa.Index("ix_journalist_contacts_tenant_id", "tenant_id"),
        sa.Index("ix_journalist_contacts_outlet_id", "outlet_id"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    tenant_id: str = Field(sa_column=Column(String(length=255), nullable=False))
    outlet_id: UUID | None = Field(default=None, sa_column=Column(Uuid(as_uuid=True), nullable=True))
    first_name: str = Field(sa_column=Column(String(length=255), nullable=False))
    last_name: str = Field(sa_column=Column(String(length=255), nullable=False))
    email: str | None = Field(default=None, sa_column=Column(String(length=320), nullable=True))
    title: str | None = Field(default=None, sa_column=Column(String(length=255), nullable=True))
    bio: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    image_url: str | None = Field(default=None, sa_column=Column(String(length=2048), nullable=True))
    profile_url: str | None = Field(default=None, sa_column=Column(String(length=2048), nullable=True))
    twitter_handle: str | None = Field(default=None, sa_column=Column(String(length=255), nullable=True))
    linkedin_url: str | None = Field(default=None, sa_column=Column(String(length=2048), nullable=True))
    personal_website: str | None = Field(
        default=None, sa_column=Column(String(length=2048), nullable=True)
    )
    location: str | None = Field(default=None, sa_column=Column(String(length=255), nullable=True))
    beat: str | None = Field(default=None, sa_column=Column(String(length=64), nullable=True))
    secondary_beats: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON_BACKING_TYPE, nullable=False),
    )
    expertise_score: float | None = Field(default=None, sa_column=Column(Float, nullable=True))
    relationship_score: float | None = Field(default=None, sa_column=Column(Float, nullable=True))
    preferred_contact_time: str | None = Field(
        default=None, sa_column=Column(String(length=64), nullable=True)
    )
    timezone: str | None = Field(default=None, sa_column=Column(String(length=64), nullable=True))
    response_rate: float | None = Field(default=None, sa_column=Column(Float, nullable=True))
    avg_response_time_hours: float | None = Field(
        default=None, sa_column=Column(Float, nullable=True)
    )
    interaction_count: int = Field(default=0, sa_column=Column(Integer, nullable=False))
    successful_pitches: int = Field(default=0, sa_column=Column(Integer, nullable=False))
    total_pitches: int = Field(default=0, sa_column=Column(Integer, nullable=False))
    confidence_score: float = Field(default=0.0, sa_column=Column(Float, nullable=False))
    verification_status: str = Field(sa_column=Column(String(length=32), nullable=False))
    last_verified_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    verification_metadata: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSON_BACKING_TYPE, nullable=True)
    )
    ai_intelligence: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSON_BACKING_TYPE, nullable=True)
    )
    data_source: str = Field(sa_column=Column(String(length=64), nullable=False))
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, server_default=UtcNow()),
    )
    updated_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True, onupdate=UtcNow()),
    )

    @classmethod
    def from_contact(cls, contact: Contact) -> ContactRecord:
        """Convert an in-memory Contact into a persistence row."""
        return cls(**contact.model_dump(mode="json", exclude={"full_name"}) | _native_fields(contact))

    def apply(self, contact: Contact) -> None:
        """Copy mutable fields from a Contact onto this row."""
        payload = contact.model_dump(mode="json", exclude={"id", "tenant_id", "created_at", "full_name"})
        payload.update(_native_fields(contact))
        payload.pop("id", None)
        payload.pop("created_at", None)
        for key, value in payload.items():
            setattr(self, key, value)

    def to_contact(self) -> Contact:
        """Hydrate a Contact domain model from the stored row."""
        return Contact(
            id=self.id,
            tenant_id=self.tenant_id,
            outlet_id=self.outlet_id,
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            title=self.title,
            bio=self.bio,
            image_url=self.image_url,
            profile_url=self.profile_url,
            twitter_handle=self.twitter_handle,
            linkedin_url=self.linkedin_url,
            personal_website=self.personal_website,
            location=self.location,
            beat=self.beat,
            secondary_beats=list(self.secondary_beats or []),
            expertise_score=self.expertise_score,
            relationship_score=self.relationship_score,
            preferred_contact_time=self.preferred_contact_time,
            timezone=self.timezone,
            response_rate=self.response_rate,
            avg_response_time_hours=self.avg_response_time_hours,
            interaction_count=self.interaction_count,
            successful_pitches=self.successful_pitches,
            total_pitches=self.total_pitches,
            confidence_score=self.confidence_score,
            verification_status=self.verification_status,
            last_verified_at=_as_utc(self.last_verified_at),
            verification_metadata=self.verification_metadata,
            ai_intelligence=self.ai_intelligence,
            data_source=self.data_source,
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
        )


def _native_fields(contact: Contact) -> dict[str, Any]:
    """Keep UUID and datetime columns as Python objects; JSON mode flattens them to strings."""
    return {
        "id": contact.id,
        "outlet_id": contact.outlet_id,
        "last_verified_at": contact.last_verified_at,
        "created_at": contact.created_at,
        "updated_at": contact.updated_at,
    }
