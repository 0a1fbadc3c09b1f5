"""Pydantic schemas for the persisted consent record and consent endpoints.

Field aliases are the keys of the JSON blob kept in storage, so records
written by older SDK builds load unchanged.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from pydantic import BaseModel, Field, FieldSerializationInfo, field_serializer

from consentsync.config import settings


class ConsentStatus(str, enum.Enum):
    UNKNOWN = "UNKNOWN"
    NON_PERSONALIZED = "NON_PERSONALIZED"
    PERSONALIZED = "PERSONALIZED"


class ConsentSource(str, enum.Enum):
    SDK = "sdk"
    FORM = "form"
    PROGRAMMATIC = "programmatic"


class DebugGeography(int, enum.Enum):
    """Region override honoured only in test contexts."""

    DISABLED = 0
    EEA = 1
    NOT_EEA = 2


class AdProvider(BaseModel):
    """Ad-technology company. Equal and hashable by all three fields."""

    id: str = Field(alias="company_id")
    name: str = Field("", alias="company_name")
    privacy_policy_url: str = Field("", alias="policy_url")

    model_config = {"frozen": True, "populate_by_name": True}

    def sort_key(self) -> tuple[str, str, str]:
        return (self.id, self.name, self.privacy_policy_url)


class ConsentRecord(BaseModel):
    """Singleton consent state for one app installation."""

    known_providers: frozenset[AdProvider] = Field(default_factory=frozenset, alias="providers")
    is_in_regulated_region_or_unknown: bool = Field(False, alias="is_request_in_eea_or_unknown")
    consented_providers: frozenset[AdProvider] = Field(
        default_factory=frozenset, alias="consented_providers"
    )
    under_age_of_consent_tag: bool = Field(False, alias="tag_for_under_age_of_consent")
    status: ConsentStatus = Field(ConsentStatus.UNKNOWN, alias="consent_state")
    publisher_ids: frozenset[str] = Field(default_factory=frozenset, alias="pub_ids")
    has_non_personalized_publisher_id: bool = Field(False, alias="has_any_npa_pub_id")
    consent_source: ConsentSource | None = Field(None, alias="consent_source")
    sdk_version: str = Field(default_factory=lambda: settings.SDK_VERSION, alias="version")
    sdk_platform: str = Field(default_factory=lambda: settings.SDK_PLATFORM, alias="plat")
    raw_response: str = Field("", alias="raw_response")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_serializer("known_providers", "consented_providers")
    def _serialize_providers(
        self, providers: frozenset[AdProvider], info: FieldSerializationInfo
    ) -> list[dict]:
        # Sorted so equal records encode to identical blobs
        return [
            p.model_dump(by_alias=info.by_alias)
            for p in sorted(providers, key=AdProvider.sort_key)
        ]

    @field_serializer("publisher_ids")
    def _serialize_publisher_ids(self, publisher_ids: frozenset[str]) -> list[str]:
        return sorted(publisher_ids)


@dataclass(frozen=True)
class FormResult:
    """Outcome of a consent dialog dismissal."""

    status: ConsentStatus
    user_prefers_ad_free: bool = False


class FormOptions(BaseModel):
    """Choices the consent dialog offers to the user."""

    app_privacy_policy_url: str = Field(min_length=1)
    offer_personalized: bool = False
    offer_non_personalized: bool = False
    offer_ad_free: bool = False


# --- Endpoint bodies ---


class ConsentUpdateRequest(BaseModel):
    publisher_ids: list[str] = Field(min_length=1)


class ConsentStatusBody(BaseModel):
    status: ConsentStatus


class UnderAgeBody(BaseModel):
    under_age_of_consent: bool


class DebugGeographyBody(BaseModel):
    debug_geography: DebugGeography


class DeviceRegistrationBody(BaseModel):
    hashed_device_id: str = Field(min_length=1)


class FormResultBody(BaseModel):
    status: str


class FormResultResponse(BaseModel):
    status: ConsentStatus
    user_prefers_ad_free: bool
