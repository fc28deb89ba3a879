"""Persistence backends for outlets and journalist contacts."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, select

from app.config import settings
from app.models.contact import Contact, Outlet
from app.models.intelligence import ContactIntelligence
from app.models.records import ContactRecord, OutletRecord
from app.models.verification import VerificationResult
from app.observability.metrics import metrics
from app.services.errors import ContactNotFoundError, RepositoryError

logger = logging.getLogger(__name__)

# Profile fields a re-scrape may fill in when the stored value is empty.
_FILLABLE_FIELDS = (
    "title",
    "bio",
    "image_url",
    "profile_url",
    "twitter_handle",
    "linkedin_url",
    "personal_website",
    "location",
    "outlet_id",
)


class ContactRepository(Protocol):
    """Tenant-scoped persistence contract for outlets and contacts."""

    async def get_outlet(self, tenant_id: str, website: str) -> Outlet | None:
        ...

    async def get_outlet_by_id(self, tenant_id: str, outlet_id: UUID) -> Outlet | None:
        ...

    async def save_outlet(self, outlet: Outlet) -> Outlet:
        ...

    async def upsert_contact(self, contact: Contact) -> Contact:
        ...

    async def get_contact(self, tenant_id: str, contact_id: str) -> Contact | None:
        ...

    async def list_contacts(self, tenant_id: str) -> list[Contact]:
        ...

    async def update_verification(
        self, tenant_id: str, contact_id: str, result: VerificationResult
    ) -> Contact:
        ...

    async def update_intelligence(
        self, tenant_id: str, contact_id: str, intelligence: ContactIntelligence
    ) -> Contact:
        ...

    async def ping(self) -> bool:
        ...


def merge_contact(existing: Contact, incoming: Contact) -> Contact:
    """Merge a re-scraped contact into the stored one without degrading it.

    Once a contact has been verified its score belongs to the verification
    pipeline, so a re-scrape only fills in missing profile fields.
    """
    updates: dict[str, Any] = {"updated_at": _utcnow()}
    if existing.verification_status == "pending":
        updates["confidence_score"] = max(existing.confidence_score, incoming.confidence_score)
    for field_name in _FILLABLE_FIELDS:
        if getattr(existing, field_name) in (None, "") and getattr(incoming, field_name):
            updates[field_name] = getattr(incoming, field_name)
    return existing.model_copy(update=updates)


def apply_verification(contact: Contact, result: VerificationResult) -> Contact:
    overall = result.overall_verification
    return contact.model_copy(
        update={
            "confidence_score": overall.confidence_score,
            "verification_status": overall.verification_status,
            "last_verified_at": overall.last_verified_at,
            "verification_metadata": {
                "email_verification": result.email_verification.model_dump(mode="json"),
                "social_verification": result.social_verification.model_dump(mode="json"),
                "content_verification": result.content_verification.model_dump(mode="json"),
                "influence_metrics": result.influence_metrics.model_dump(mode="json"),
                "verification_notes": list(overall.verification_notes),
            },
            "updated_at": _utcnow(),
        }
    )


def apply_intelligence(contact: Contact, intelligence: ContactIntelligence) -> Contact:
    categorization = intelligence.categorization
    communication = intelligence.communication_intelligence
    optimal_times = communication.optimal_contact_times
    return contact.model_copy(
        update={
            "beat": categorization.primary_beat,
            "secondary_beats": list(categorization.secondary_beats),
            "expertise_score": categorization.confidence_score,
            "preferred_contact_time": optimal_times[0] if optimal_times else None,
            "timezone": intelligence.geographic_analysis.timezone,
            "relationship_score": float(intelligence.relationship_insights.networking_score),
            "ai_intelligence": {
                "categorization": categorization.model_dump(mode="json"),
                "influence_analysis": intelligence.influence_analysis.model_dump(mode="json"),
                "geographic_analysis": intelligence.geographic_analysis.model_dump(mode="json"),
                "communication_intelligence": communication.model_dump(mode="json"),
                "content_format_analysis": intelligence.content_format_analysis.model_dump(mode="json"),
                "relationship_insights": intelligence.relationship_insights.model_dump(mode="json"),
                "last_processed_at": intelligence.last_processed_at.isoformat(),
            },
            "updated_at": _utcnow(),
        }
    )


class InMemoryContactRepository(ContactRepository):
    """Thread-safe repository used for API/local development."""

    def __init__(self) -> None:
        self._outlets: dict[tuple[str, str], Outlet] = {}
        self._contacts: dict[UUID, Contact] = {}
        self._lock = Lock()

    async def get_outlet(self, tenant_id: str, website: str) -> Outlet | None:
        with self._lock:
            return self._outlets.get((tenant_id, website))

    async def get_outlet_by_id(self, tenant_id: str, outlet_id: UUID) -> Outlet | None:
        with self._lock:
            for outlet in self._outlets.values():
                if outlet.tenant_id == tenant_id and outlet.id == outlet_id:
                    return outlet
        return None

    async def save_outlet(self, outlet: Outlet) -> Outlet:
        key = (outlet.tenant_id, outlet.website)
        with self._lock:
            existing = self._outlets.get(key)
            if existing:
                outlet = existing.model_copy(update={"name": outlet.name, "updated_at": _utcnow()})
            self._outlets[key] = outlet
        metrics.increment("repository.outlet_saved", tags={"repository": "memory"})
        return outlet

    async def upsert_contact(self, contact: Contact) -> Contact:
        with self._lock:
            existing = self._find_existing(contact)
            persisted = merge_contact(existing, contact) if existing else contact
            self._contacts[persisted.id] = persisted
        metrics.increment(
            "repository.contact_upserted",
            tags={"repository": "memory", "is_new": existing is None},
        )
        logger.info(
            "repository.contact_upserted",
            extra={
                "tenant_id": contact.tenant_id,
                "contact_id": str(persisted.id),
                "is_new": existing is None,
                "backend": "memory",
            },
        )
        return persisted

    async def get_contact(self, tenant_id: str, contact_id: str) -> Contact | None:
        key = _parse_contact_id(contact_id)
        if key is None:
            return None
        with self._lock:
            contact = self._contacts.get(key)
        if contact and contact.tenant_id == tenant_id:
            return contact
        return None

    async def list_contacts(self, tenant_id: str) -> list[Contact]:
        with self._lock:
            return [contact for contact in self._contacts.values() if contact.tenant_id == tenant_id]

    async def ping(self) -> bool:
        return True

    async def update_verification(
        self, tenant_id: str, contact_id: str, result: VerificationResult
    ) -> Contact:
        return await self._update(tenant_id, contact_id, lambda contact: apply_verification(contact, result))

    async def update_intelligence(
        self, tenant_id: str, contact_id: str, intelligence: ContactIntelligence
    ) -> Contact:
        return await self._update(
            tenant_id, contact_id, lambda contact: apply_intelligence(contact, intelligence)
        )

    async def _update(self, tenant_id: str, contact_id: str, mutate) -> Contact:
        key = _parse_contact_id(contact_id)
        with self._lock:
            contact = self._contacts.get(key) if key else None
            if contact is None or contact.tenant_id != tenant_id:
                raise ContactNotFoundError(contact_id)
            updated = mutate(contact)
            self._contacts[updated.id] = updated
        return updated

    def _find_existing(self, contact: Contact) -> Contact | None:
        for stored in self._contacts.values():
            if stored.tenant_id != contact.tenant_id:
                continue
            if contact.email:
                if stored.email and stored.email.lower() == contact.email.lower():
                    return stored
            elif (
                not stored.email
                and stored.outlet_id == contact.outlet_id
                and stored.first_name.lower() == contact.first_name.lower()
                and stored.last_name.lower() == contact.last_name.lower()
            ):
                return stored
        return None


class SqlContactRepository(ContactRepository):
    """SQLModel-backed repository running on SQLAlchemy async sessions."""

    def __init__(
        self,
        database_url: str,
        *,
        pool_min_size: int | None = None,
        pool_max_size: int | None = None,
        auto_create_schema: bool = False,
    ) -> None:
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlContactRepository.")

        parsed_url = _coerce_async_database_url(make_url(database_url))
        drivername = parsed_url.drivername
        is_sqlite = drivername.startswith("sqlite")
        engine_kwargs: dict[str, Any] = {"echo": False}
        if is_sqlite:
            if parsed_url.database in (None, "", ":memory:"):
                engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        else:
            pool_min = max(pool_min_size or settings.db_pool_min_size, 1)
            pool_max = max(pool_max_size or settings.db_pool_max_size, pool_min)
            engine_kwargs["pool_pre_ping"] = True
            engine_kwargs["pool_size"] = pool_min
            engine_kwargs["max_overflow"] = max(pool_max - pool_min, 0)

        self._engine: AsyncEngine = create_async_engine(parsed_url, **engine_kwargs)
        self._sessions = async_sessionmaker(self._engine, class_=AsyncSession, expire_on_commit=False)
        self._auto_create_schema = auto_create_schema
        self._schema_ready = not auto_create_schema
        self._schema_lock = asyncio.Lock()
        self._metrics_tags = {"repository": "sqlite" if is_sqlite else "postgres"}

    async def dispose(self) -> None:
        """Close the underlying SQLAlchemy engine."""
        await self._engine.dispose()

    async def ping(self) -> bool:
        """Check if the database is accessible."""
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            logger.error("repository.ping_failed", extra={"error": str(exc)})
            return False
        return True

    async def get_outlet(self, tenant_id: str, website: str) -> Outlet | None:
        async with self._session("get_outlet") as session:
            record = await self._find_outlet(session, tenant_id, website)
            return record.to_outlet() if record else None

    async def get_outlet_by_id(self, tenant_id: str, outlet_id: UUID) -> Outlet | None:
        async with self._session("get_outlet_by_id") as session:
            statement = select(OutletRecord).where(
                OutletRecord.tenant_id == tenant_id, OutletRecord.id == outlet_id
            )
            record = (await session.execute(statement)).scalars().first()
            return record.to_outlet() if record else None

    async def save_outlet(self, outlet: Outlet) -> Outlet:
        async with self._session("save_outlet") as session:
            record = await self._find_outlet(session, outlet.tenant_id, outlet.website)
            if record:
                record.name = outlet.name
                record.updated_at = _utcnow()
            else:
                record = OutletRecord.from_outlet(outlet)
                session.add(record)
            await session.commit()
            metrics.increment("repository.outlet_saved", tags=self._metrics_tags)
            return record.to_outlet()

    async def upsert_contact(self, contact: Contact) -> Contact:
        async with self._session("upsert_contact") as session:
            record = await self._find_contact_record(session, contact)
            created = record is None
            if record is None:
                record = ContactRecord.from_contact(contact)
                session.add(record)
                persisted = contact
            else:
                persisted = merge_contact(record.to_contact(), contact)
                record.apply(persisted)
            await session.commit()
            metrics.increment(
                "repository.contact_upserted", tags={**self._metrics_tags, "is_new": created}
            )
            logger.info(
                "repository.contact_upserted",
                extra={
                    "tenant_id": contact.tenant_id,
                    "contact_id": str(persisted.id),
                    "is_new": created,
                    "backend": self._metrics_tags["repository"],
                },
            )
            return persisted

    async def get_contact(self, tenant_id: str, contact_id: str) -> Contact | None:
        key = _parse_contact_id(contact_id)
        if key is None:
            return None
        async with self._session("get_contact") as session:
            record = await self._get_contact_record(session, tenant_id, key)
            return record.to_contact() if record else None

    async def list_contacts(self, tenant_id: str) -> list[Contact]:
        async with self._session("list_contacts") as session:
            statement = (
                select(ContactRecord)
                .where(ContactRecord.tenant_id == tenant_id)
                .order_by(ContactRecord.created_at)
            )
            records = (await session.execute(statement)).scalars().all()
            return [record.to_contact() for record in records]

    async def update_verification(
        self, tenant_id: str, contact_id: str, result: VerificationResult
    ) -> Contact:
        return await self._update(
            tenant_id, contact_id, lambda contact: apply_verification(contact, result)
        )

    async def update_intelligence(
        self, tenant_id: str, contact_id: str, intelligence: ContactIntelligence
    ) -> Contact:
        return await self._update(
            tenant_id, contact_id, lambda contact: apply_intelligence(contact, intelligence)
        )

    async def _update(self, tenant_id: str, contact_id: str, mutate) -> Contact:
        key = _parse_contact_id(contact_id)
        if key is None:
            raise ContactNotFoundError(contact_id)
        async with self._session("update_contact") as session:
            record = await self._get_contact_record(session, tenant_id, key)
            if record is None:
                raise ContactNotFoundError(contact_id)
            updated = mutate(record.to_contact())
            record.apply(updated)
            await session.commit()
            return updated

    async def _find_outlet(
        self, session: AsyncSession, tenant_id: str, website: str
    ) -> OutletRecord | None:
        statement = select(OutletRecord).where(
            OutletRecord.tenant_id == tenant_id, OutletRecord.website == website
        )
        return (await session.execute(statement)).scalars().first()

    async def _get_contact_record(
        self, session: AsyncSession, tenant_id: str, contact_id: UUID
    ) -> ContactRecord | None:
        statement = select(ContactRecord).where(
            ContactRecord.tenant_id == tenant_id, ContactRecord.id == contact_id
        )
        return (await session.execute(statement)).scalars().first()

    async def _find_contact_record(
        self, session: AsyncSession, contact: Contact
    ) -> ContactRecord | None:
        statement = select(ContactRecord).where(ContactRecord.tenant_id == contact.tenant_id)
        if contact.email:
            statement = statement.where(ContactRecord.email == contact.email)
        else:
            statement = statement.where(
                ContactRecord.email.is_(None),
                ContactRecord.outlet_id == contact.outlet_id,
                ContactRecord.first_name == contact.first_name,
                ContactRecord.last_name == contact.last_name,
            )
        return (await session.execute(statement)).scalars().first()

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self._schema_lock:
            if self._schema_ready:
                return
            async with self._engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
            self._schema_ready = True

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            await self._ensure_schema()
            async with self._sessions() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.exception(
                "repository.error",
                extra={"operation": operation, "backend": self._metrics_tags["repository"]},
            )
            raise RepositoryError(f"Repository operation failed: {operation}", code="500_INTERNAL") from exc


def _parse_contact_id(contact_id: str) -> UUID | None:
    try:
        return UUID(str(contact_id))
    except ValueError:
        return None


def _coerce_async_database_url(url: URL) -> URL:
    """Swap sync drivers for their asyncio counterparts."""
    drivername = url.drivername
    if drivername in ("postgresql", "postgres", "postgresql+psycopg2"):
        return url.set(drivername="postgresql+asyncpg")
    if drivername == "sqlite":
        return url.set(drivername="sqlite+aiosqlite")
    return url


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_contact_repository(database_url: str | None = None) -> ContactRepository:
    """Instantiate a ContactRepository using DATABASE_URL when available."""
    resolved_url = database_url or settings.database_url
    if not resolved_url:
        logger.info("repository.initialized", extra={"backend": "memory"})
        return InMemoryContactRepository()
    try:
        repository = SqlContactRepository(
            resolved_url,
            pool_min_size=settings.db_pool_min_size,
            pool_max_size=settings.db_pool_max_size,
            auto_create_schema=settings.db_auto_create_schema,
        )
        logger.info("repository.initialized", extra={"backend": "database"})
        return repository
    except Exception:
        logger.exception("repository.init_failed", extra={"backend": "database"})
        raise
