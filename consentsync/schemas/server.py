"""Pydantic schemas for the consent server's pubvendors response."""

from __future__ import annotations

from pydantic import BaseModel, field_validator

from consentsync.schemas.consent import AdProvider


class AdNetworkLookup(BaseModel):
    """Server verdict for one requested publisher id."""

    ad_network_id: str | None = None
    company_ids: list[str] | None = None
    lookup_failed: bool = False
    not_found: bool = False
    is_npa: bool = False

    @field_validator("ad_network_id", mode="before")
    @classmethod
    def _numeric_id_as_str(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("company_ids", mode="before")
    @classmethod
    def _numeric_company_ids_as_str(cls, v):
        if isinstance(v, list):
            return [str(c) if isinstance(c, (int, float)) and not isinstance(c, bool) else c for c in v]
        return v

    @field_validator("lookup_failed", "not_found", "is_npa", mode="before")
    @classmethod
    def _null_flag_is_false(cls, v):
        return False if v is None else v


class ServerResponse(BaseModel):
    """Raw response shape. Every field may be absent on the wire."""

    companies: list[AdProvider] | None = None
    ad_network_ids: list[AdNetworkLookup] | None = None
    is_request_in_eea_or_unknown: bool | None = None


class ValidatedResponse(BaseModel):
    """A response that passed structural validation.

    The region flag is always present here; ``companies`` is only absent
    when the region flag is false.
    """

    is_request_in_eea_or_unknown: bool
    companies: tuple[AdProvider, ...] | None = None
    ad_network_ids: tuple[AdNetworkLookup, ...] = ()
    raw: str = ""

    model_config = {"frozen": True}
