"""Domain models for media outlets and journalist contacts."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, computed_field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Outlet(BaseModel):
    """Media organization identified by its web origin."""

    id: UUID = Field(default_factory=uuid4)
    tenant_id: str
    name: str
    website: str = Field(description="Normalized origin, scheme and host only.")
    outlet_type: str = "digital_native"
    category: str | None = None
    verification_status: str = "pending"
    data_source: str = "automated_scraping"
    domain_authority: int | None = Field(default=None, ge=0, le=100)
    monthly_visitors: int | None = Field(default=None, ge=0)
    location: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class SocialLinks(BaseModel):
    """Social profile links scraped alongside a contact."""

    twitter: str | None = None
    linkedin: str | None = None
    personal_site: str | None = None

    def any(self) -> bool:
        return bool(self.twitter or self.linkedin or self.personal_site)


class ContactCandidate(BaseModel):
    """Unpersisted contact extracted from a single staff page."""

    name: str
    title: str | None = None
    email: str | None = None
    bio: str | None = None
    image_url: str | None = None
    profile_url: str | None = None
    social_links: SocialLinks = Field(default_factory=SocialLinks)
    beat: str | None = None
    confidence_score: int = Field(default=0, ge=0, le=100)
    source_url: str | None = None

    def dedup_key(self) -> str:
        return f"{self.name.strip().lower()}-{(self.email or 'no-email').strip().lower()}"


class Contact(BaseModel):
    """Persisted journalist contact enriched by verification and intelligence runs."""

    id: UUID = Field(default_factory=uuid4)
    tenant_id: str
    outlet_id: UUID | None = None
    first_name: str
    last_name: str = ""
    email: str | None = None
    title: str | None = None
    bio: str | None = None
    image_url: str | None = None
    profile_url: str | None = None
    twitter_handle: str | None = None
    linkedin_url: str | None = None
    personal_website: str | None = None
    location: str | None = None
    beat: str | None = None
    secondary_beats: list[str] = Field(default_factory=list)
    expertise_score: float | None = None
    relationship_score: float | None = None
    preferred_contact_time: str | None = None
    timezone: str | None = None
    response_rate: float | None = None
    avg_response_time_hours: float | None = None
    interaction_count: int = 0
    successful_pitches: int = 0
    total_pitches: int = 0
    confidence_score: float = Field(default=0.0, ge=0, le=100)
    verification_status: str = "pending"
    last_verified_at: datetime | None = None
    verification_metadata: dict[str, Any] | None = None
    ai_intelligence: dict[str, Any] | None = None
    data_source: str = "automated_scraping"
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[misc]
    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class ScrapingMetadata(BaseModel):
    """Bookkeeping attached to every scrape run."""

    scraped_at: datetime = Field(default_factory=_utcnow)
    pages_discovered: int = 0
    pages_processed: int = 0
    total_contacts: int = 0
    success_rate: float = 0.0
    scraping_method: str = "staff_page_discovery"


class ScrapeResult(BaseModel):
    """Payload returned by the scrape_outlet action."""

    outlet_name: str
    outlet_url: str
    contacts_found: list[ContactCandidate] = Field(default_factory=list)
    scraping_metadata: ScrapingMetadata
